"""Import county election results, boundaries and demographics.

Usage:
    python scripts/import_election_data.py --data-dir ./data/elections
"""
import argparse
import asyncio
import os
import sys
from pathlib import Path

sys.path.append(os.getcwd())

import structlog

from app.config import settings
from app.dependencies import async_session_maker, engine, init_db
from app.services.election_import import ElectionImporter

logger = structlog.get_logger()

LAYOUT_HELP = """
Please ensure your data files are organized as follows:
{data_dir}/
  county_election_results.csv
  county_boundaries.geojson (optional)
  county_demographics.csv (optional)

CSV format for county_election_results.csv:
county_fips,county_name,state_abbr,state_name,year,democratic_votes,republican_votes,other_votes,total_votes
17031,Cook County,IL,Illinois,2020,1725891,738227,45987,2510105

A wide format with columns 1892_D,1892_R,1892_O,1892_T,...,2024_T is also accepted.
"""


async def run_import(data_dir: Path) -> int:
    await init_db()
    try:
        async with async_session_maker() as db:
            stats = await ElectionImporter(db).import_directory(data_dir)
    except FileNotFoundError as e:
        logger.error("Election import aborted", error=str(e))
        print(LAYOUT_HELP.format(data_dir=data_dir))
        return 1
    finally:
        await engine.dispose()

    print(f"Counties imported: {stats.counties}")
    print(f"Errors: {stats.errors}")
    print(f"Election years: {stats.years}")
    print(f"Demographic records: {stats.demographics} ({stats.demographic_errors} errors)")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path(settings.election_data_dir),
        help="Directory holding the election CSV / GeoJSON files",
    )
    args = parser.parse_args()
    return asyncio.run(run_import(args.data_dir))


if __name__ == "__main__":
    sys.exit(main())
