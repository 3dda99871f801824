"""Activity logging - audit trail rows written in the caller's unit of work."""
import uuid
from enum import Enum
from typing import Any, List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import Activity

logger = structlog.get_logger()


class ActivityType(str, Enum):
    CAMPAIGN_CREATED = "CAMPAIGN_CREATED"
    CAMPAIGN_UPDATED = "CAMPAIGN_UPDATED"
    MESSAGE_CREATED = "MESSAGE_CREATED"
    MESSAGE_UPDATED = "MESSAGE_UPDATED"
    MESSAGE_DELETED = "MESSAGE_DELETED"
    MESSAGE_SUBMITTED = "MESSAGE_SUBMITTED"
    MESSAGE_APPROVED = "MESSAGE_APPROVED"
    MESSAGE_REJECTED = "MESSAGE_REJECTED"
    MESSAGE_CHANGES_REQUESTED = "MESSAGE_CHANGES_REQUESTED"
    MESSAGE_SCHEDULED = "MESSAGE_SCHEDULED"
    MESSAGE_UNSCHEDULED = "MESSAGE_UNSCHEDULED"
    MESSAGE_PUBLISHED = "MESSAGE_PUBLISHED"
    MESSAGE_PUBLISH_FAILED = "MESSAGE_PUBLISH_FAILED"
    MESSAGE_ARCHIVED = "MESSAGE_ARCHIVED"
    VERSION_GENERATED = "VERSION_GENERATED"
    VERSION_CREATED = "VERSION_CREATED"


class ActivityLogger:
    """Appends Activity rows to the session; the caller owns the commit."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def log(
        self,
        campaign_id: uuid.UUID,
        user_id: str,
        type: ActivityType,
        description: str,
        **metadata: Any,
    ) -> Activity:
        activity = Activity(
            campaign_id=campaign_id,
            user_id=user_id,
            type=type.value,
            description=description,
            details={k: str(v) if isinstance(v, uuid.UUID) else v for k, v in metadata.items()},
        )
        self.db.add(activity)
        logger.info("Activity", type=type.value, campaign_id=str(campaign_id), user_id=user_id)
        return activity

    async def recent(self, campaign_id: uuid.UUID, limit: int = 50) -> List[Activity]:
        result = await self.db.execute(
            select(Activity)
            .where(Activity.campaign_id == campaign_id)
            .order_by(Activity.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
