"""Publishing dispatcher - hands approved messages to platform providers.

Provider failures never propagate: a missing provider, a rejected send, an
exception or a timeout all become a FAILED PublishRecord and the message
keeps its status so the caller can retry by publishing again.
"""
import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.engine.lifecycle import Action, TransitionContext, ensure_allowed, transition
from app.exceptions import CampaignError, ValidationError
from app.integrations.providers import ProviderRegistry, SendResult
from app.models.base import utcnow
from app.models.campaign import Campaign
from app.models.enums import MessageStatus, Platform, PublishStatus, UserRole
from app.models.message import Message, PublishRecord
from app.services.activity import ActivityLogger, ActivityType
from app.services.messages import (
    Actor,
    apply_state,
    current_state,
    flush_or_conflict,
    load_campaign,
    load_message,
)

logger = structlog.get_logger()

SCHEDULER_ID = "system:scheduler"


@dataclass
class PublishResult:
    success: bool
    message: Message
    record: PublishRecord

    @property
    def error(self) -> Optional[str]:
        return self.record.error


class PublishingDispatcher:
    """Publishes messages through the provider configured for their campaign."""

    def __init__(
        self,
        db: AsyncSession,
        providers: Optional[ProviderRegistry] = None,
        timeout: Optional[float] = None,
    ):
        self.db = db
        self.providers = providers or ProviderRegistry()
        self.timeout = timeout if timeout is not None else settings.publish_timeout_seconds
        self.activity = ActivityLogger(db)

    async def publish(
        self,
        message_id: uuid.UUID,
        platform: Platform,
        publish_settings: Optional[Dict[str, Any]],
        actor: Actor,
    ) -> PublishResult:
        """
        Publish one APPROVED or SCHEDULED message.

        Args:
            message_id: Message to publish
            platform: Must equal the message's platform
            publish_settings: Provider options (``recipients``, ``reply_to``, ``tags``);
                stored on the PublishRecord
            actor: Who triggered the publish

        Returns:
            PublishResult; ``success`` is False when the provider failed

        Raises:
            NotFoundError, IllegalTransitionError, ValidationError
        """
        message = await load_message(self.db, message_id)
        state = current_state(message)
        ensure_allowed(state, Action.PUBLISH)

        platform = Platform(platform)
        if platform.value != message.platform:
            raise ValidationError(
                "Platform mismatch",
                requested=platform.value,
                message_platform=message.platform,
            )

        campaign = await load_campaign(self.db, message.campaign_id)
        options = dict(publish_settings or {})
        send_result = await self._send(campaign, message, platform, options)

        record = PublishRecord(
            platform=platform.value,
            status=PublishStatus.SUCCESS.value if send_result.ok else PublishStatus.FAILED.value,
            external_id=send_result.id,
            error=send_result.error,
            details=options,
            published_by=actor.user_id,
            scheduled_for=message.scheduled_for if actor.user_id == SCHEDULER_ID else None,
        )
        message.publish_records.append(record)

        if send_result.ok:
            new_state = transition(state, Action.PUBLISH, TransitionContext(now=utcnow(), actor_role=actor.role))
            apply_state(message, new_state)
            await flush_or_conflict(self.db, message)
            self.activity.log(
                message.campaign_id, actor.user_id, ActivityType.MESSAGE_PUBLISHED,
                f'published message "{message.title}" to {platform.value}',
                message_id=message.id, platform=platform.value, publish_record_id=record.id,
            )
            logger.info(
                "Message published",
                message_id=str(message.id),
                platform=platform.value,
                external_id=send_result.id,
            )
        else:
            await flush_or_conflict(self.db, message)
            self.activity.log(
                message.campaign_id, actor.user_id, ActivityType.MESSAGE_PUBLISH_FAILED,
                f'failed to publish message "{message.title}" to {platform.value}',
                message_id=message.id, platform=platform.value, error=send_result.error,
            )
            logger.warning(
                "Publish failed",
                message_id=str(message.id),
                platform=platform.value,
                error=send_result.error,
            )

        return PublishResult(success=send_result.ok, message=message, record=record)

    async def _send(
        self,
        campaign: Campaign,
        message: Message,
        platform: Platform,
        options: Dict[str, Any],
    ) -> SendResult:
        provider = self.providers.for_campaign(campaign, platform)
        if provider is None:
            return SendResult.fail(f"No provider configured for {platform.value}")

        config = (campaign.provider_settings or {}).get(platform.value, {})
        recipients: List[str] = list(options.get("recipients") or config.get("recipients") or [])

        try:
            result = await asyncio.wait_for(
                provider.send(recipients, message.title, message.content, options),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return SendResult.fail(f"Provider timed out after {self.timeout:g}s")
        except Exception as e:
            logger.error("Provider error", provider=provider.name, error=str(e))
            return SendResult.fail(f"Provider error: {e}")

        if not result.ok:
            return SendResult.fail(result.error or "Provider rejected the message")
        return result

    async def publish_due(self, now: Optional[datetime] = None, limit: int = 100) -> Dict[str, int]:
        """
        Publish every SCHEDULED message whose time has come.

        Each message is committed on its own; one failure never blocks the rest.
        A slot is attempted once: a failed attempt waits for an operator to
        publish again or reschedule.
        """
        now = now or utcnow()
        result = await self.db.execute(
            select(Message.id)
            .where(Message.status == MessageStatus.SCHEDULED.value)
            .where(Message.scheduled_for <= now)
            .where(
                ~select(PublishRecord.id)
                .where(PublishRecord.message_id == Message.id)
                .where(PublishRecord.scheduled_for == Message.scheduled_for)
                .exists()
            )
            .order_by(Message.scheduled_for)
            .limit(limit)
        )
        due_ids = list(result.scalars().all())

        stats = {"due": len(due_ids), "published": 0, "failed": 0, "errors": 0}
        scheduler = Actor(user_id=SCHEDULER_ID, role=UserRole.ADMIN)

        for message_id in due_ids:
            try:
                message = await load_message(self.db, message_id)
                outcome = await self.publish(message_id, Platform(message.platform), None, scheduler)
                await self.db.commit()
            except (CampaignError, SQLAlchemyError) as e:
                await self.db.rollback()
                stats["errors"] += 1
                logger.error("Scheduled publish error", message_id=str(message_id), error=str(e))
                continue

            stats["published" if outcome.success else "failed"] += 1

        logger.info("Scheduled publish run complete", **stats)
        return stats
