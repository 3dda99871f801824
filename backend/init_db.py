#!/usr/bin/env python
"""Simple database initialization script."""
import asyncio
import os
import sys

sys.path.append(os.getcwd())

from app.dependencies import engine, init_db


async def main():
    """Create every table the API and workers use."""
    try:
        await init_db()
        print("All tables created/updated successfully!")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
