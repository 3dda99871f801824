"""Publish tasks - scheduled and background message publishing."""
import asyncio
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.integrations.providers import ProviderRegistry
from app.models.enums import Platform, UserRole
from app.services.messages import Actor, load_message
from app.services.publishing import PublishingDispatcher
from app.workers import celery_app

logger = structlog.get_logger()


def _session_factory():
    engine = create_async_engine(
        settings.get_database_url,
        pool_pre_ping=True,
        pool_recycle=300,
    )
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@celery_app.task(name="publish.due_messages")
def publish_due_messages() -> Dict[str, int]:
    """Publish every SCHEDULED message whose time has come (run by celery beat)."""

    async def _run() -> Dict[str, int]:
        engine, session_maker = _session_factory()
        try:
            async with session_maker() as db:
                dispatcher = PublishingDispatcher(db, providers=ProviderRegistry())
                return await dispatcher.publish_due()
        finally:
            await engine.dispose()

    return asyncio.run(_run())


@celery_app.task(name="publish.publish_message")
def publish_message_task(
    message_id: str,
    user_id: str,
    role: str = UserRole.ADMIN.value,
    platform: Optional[str] = None,
    publish_settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Publish one message outside the request cycle."""

    async def _run() -> Dict[str, Any]:
        engine, session_maker = _session_factory()
        try:
            async with session_maker() as db:
                dispatcher = PublishingDispatcher(db, providers=ProviderRegistry())
                if platform is None:
                    message = await load_message(db, UUID(message_id))
                    target = Platform(message.platform)
                else:
                    target = Platform(platform)

                result = await dispatcher.publish(
                    UUID(message_id),
                    target,
                    publish_settings,
                    Actor(user_id=user_id, role=UserRole(role)),
                )
                await db.commit()
                logger.info("Background publish finished", message_id=message_id, success=result.success)
                return {
                    "message_id": message_id,
                    "success": result.success,
                    "status": result.message.status,
                    "error": result.error,
                }
        finally:
            await engine.dispose()

    return asyncio.run(_run())
