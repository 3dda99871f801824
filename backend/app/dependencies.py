"""Application dependencies and database initialization."""
import logging
from functools import lru_cache
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from tenacity import before_sleep_log, retry, stop_after_attempt, wait_fixed
import structlog

from app.config import settings
from app.engine.audience_profiles import ProfileRegistry, get_profile_registry
from app.engine.version_generator import VersionGenerator
from app.integrations.providers import ProviderRegistry
from app.models import Base
from app.models.enums import UserRole
from app.services.messages import Actor, MessageService
from app.services.publishing import PublishingDispatcher

logger = structlog.get_logger()

# Keep the pool small; managed Postgres tiers have low connection limits
_pool_options = {} if settings.get_database_url.startswith("sqlite") else {
    "pool_size": 2,
    "max_overflow": 4,
    "pool_recycle": 300,
    "pool_pre_ping": True,
    "pool_timeout": 30,
}

engine = create_async_engine(
    settings.get_database_url,
    echo=settings.debug,
    **_pool_options,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@retry(
    stop=stop_after_attempt(5),
    wait=wait_fixed(2),
    before_sleep=before_sleep_log(logger, logging.INFO),
)
async def init_db() -> None:
    """Create tables if they don't exist, retrying while the database comes up."""
    logger.info("Connecting to database", host=settings.get_database_url.split("@")[-1])
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Actor:
    """Identify the caller from the X-User-Id / X-User-Role headers."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        role = UserRole((x_user_role or UserRole.USER.value).upper())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_user_role}")
    return Actor(user_id=x_user_id, role=role)


@lru_cache
def get_provider_registry() -> ProviderRegistry:
    return ProviderRegistry()


@lru_cache
def get_version_generator() -> VersionGenerator:
    return VersionGenerator()


def get_message_service(
    db: AsyncSession = Depends(get_db),
    registry: ProfileRegistry = Depends(get_profile_registry),
    generator: VersionGenerator = Depends(get_version_generator),
) -> MessageService:
    return MessageService(db, registry=registry, generator=generator)


def get_dispatcher(
    db: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_provider_registry),
) -> PublishingDispatcher:
    return PublishingDispatcher(db, providers=providers)
