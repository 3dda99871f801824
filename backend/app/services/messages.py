"""Message service - lifecycle transitions, append-only logs and bulk actions.

Every mutating operation follows the same pattern: load the message, rebuild
its typed lifecycle state, ask ``app.engine.lifecycle.transition`` for the
next state, write that state back to the row, append the matching log rows
(Approval / MessageVersion) and an Activity, then flush. A flush that loses
the optimistic-concurrency race raises ``ConcurrentModificationError``.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.engine.audience_profiles import ProfileRegistry, get_profile_registry
from app.engine.content_analysis import ContentAnalyzer
from app.engine.lifecycle import (
    EDITABLE_STATUSES,
    Action,
    MessageState,
    TransitionContext,
    can_review,
    state_from_fields,
    transition,
)
from app.engine.version_generator import GeneratedContent, VersionGenerator
from app.exceptions import (
    CampaignError,
    ConcurrentModificationError,
    IllegalTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.models.base import to_naive_utc, utcnow
from app.models.campaign import Campaign
from app.models.enums import ApprovalStatus, MessageStatus, Platform, UserRole, can_create_messages
from app.models.message import Approval, Message, MessageVersion
from app.schemas.campaign import CampaignContext
from app.services.activity import ActivityLogger, ActivityType

logger = structlog.get_logger()


@dataclass(frozen=True)
class Actor:
    """The user performing an action."""
    user_id: str
    role: UserRole


REVIEW_DECISIONS: Dict[ApprovalStatus, Action] = {
    ApprovalStatus.APPROVED: Action.APPROVE,
    ApprovalStatus.REJECTED: Action.REJECT,
    ApprovalStatus.CHANGES_REQUESTED: Action.REQUEST_CHANGES,
}

REVIEW_ACTIVITY: Dict[ApprovalStatus, ActivityType] = {
    ApprovalStatus.APPROVED: ActivityType.MESSAGE_APPROVED,
    ApprovalStatus.REJECTED: ActivityType.MESSAGE_REJECTED,
    ApprovalStatus.CHANGES_REQUESTED: ActivityType.MESSAGE_CHANGES_REQUESTED,
}

BULK_ACTIONS = ("approve", "reject", "archive", "delete")


# ============== Shared helpers ==============

async def load_message(db: AsyncSession, message_id: uuid.UUID) -> Message:
    """Fetch a message, refreshing any copy already in the session."""
    result = await db.execute(
        select(Message)
        .where(Message.id == message_id)
        .execution_options(populate_existing=True)
    )
    message = result.scalar_one_or_none()
    if message is None:
        raise NotFoundError("Message not found", message_id=message_id)
    return message


async def load_campaign(db: AsyncSession, campaign_id: uuid.UUID) -> Campaign:
    result = await db.execute(select(Campaign).where(Campaign.id == campaign_id))
    campaign = result.scalar_one_or_none()
    if campaign is None:
        raise NotFoundError("Campaign not found", campaign_id=campaign_id)
    return campaign


def current_state(message: Message) -> MessageState:
    return state_from_fields(
        MessageStatus(message.status),
        scheduled_for=message.scheduled_for,
        published_at=message.published_at,
        review_digest=message.review_digest,
    )


def apply_state(message: Message, state: MessageState) -> None:
    """Write a typed state back to the flat columns."""
    message.status = state.status.value
    message.scheduled_for = getattr(state, "scheduled_for", None)
    message.review_digest = getattr(state, "review_digest", None)
    published_at = getattr(state, "published_at", None)
    if published_at is not None:
        message.published_at = published_at


async def flush_or_conflict(db: AsyncSession, message: Message) -> None:
    try:
        await db.flush()
    except StaleDataError as e:
        logger.warning("Concurrent modification", message_id=str(message.id))
        raise ConcurrentModificationError(
            "Message was modified by another request; reload and retry",
            message_id=message.id,
        ) from e


class MessageService:
    """Message operations bound to one database session."""

    def __init__(
        self,
        db: AsyncSession,
        analyzer: Optional[ContentAnalyzer] = None,
        registry: Optional[ProfileRegistry] = None,
        generator: Optional[VersionGenerator] = None,
    ):
        self.db = db
        self.analyzer = analyzer or ContentAnalyzer()
        self.registry = registry or get_profile_registry()
        self._generator = generator
        self.activity = ActivityLogger(db)

    @property
    def generator(self) -> VersionGenerator:
        if self._generator is None:
            self._generator = VersionGenerator()
        return self._generator

    def _context(self, message: Message, actor: Optional[Actor] = None, **kwargs: Any) -> TransitionContext:
        return TransitionContext(
            now=utcnow(),
            actor_role=actor.role if actor else None,
            title=message.title,
            content=message.content,
            **kwargs,
        )

    def _analyze(self, message: Message) -> None:
        result = self.analyzer.analyze(message.content)
        message.approval_tier = result["tier"].value
        message.approval_analysis = result["analysis"]

    # ============== CRUD ==============

    async def create_message(
        self,
        campaign_id: uuid.UUID,
        actor: Actor,
        title: str,
        content: str,
        platform: Platform,
        ai_generated: bool = False,
    ) -> Message:
        """Create a DRAFT message with its approval tier computed from the content."""
        if not can_create_messages(actor.role):
            raise PermissionDeniedError("Role cannot create messages", role=actor.role.value)
        await load_campaign(self.db, campaign_id)

        message = Message(
            campaign_id=campaign_id,
            author_id=actor.user_id,
            title=title,
            content=content,
            platform=Platform(platform).value,
            status=MessageStatus.DRAFT.value,
            ai_generated=ai_generated,
            versions=[],
            approvals=[],
            publish_records=[],
        )
        self._analyze(message)
        self.db.add(message)
        await self.db.flush()

        self.activity.log(
            campaign_id, actor.user_id, ActivityType.MESSAGE_CREATED,
            f'created message "{title}"',
            message_id=message.id, message_title=title,
        )
        logger.info("Message created", message_id=str(message.id), tier=message.approval_tier)
        return message

    async def get_message(self, message_id: uuid.UUID) -> Message:
        return await load_message(self.db, message_id)

    async def list_messages(
        self,
        campaign_id: Optional[uuid.UUID] = None,
        status: Optional[MessageStatus] = None,
        platform: Optional[Platform] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Message], int]:
        stmt = select(Message)
        count_stmt = select(func.count(Message.id))

        if campaign_id:
            stmt = stmt.where(Message.campaign_id == campaign_id)
            count_stmt = count_stmt.where(Message.campaign_id == campaign_id)
        if status:
            stmt = stmt.where(Message.status == MessageStatus(status).value)
            count_stmt = count_stmt.where(Message.status == MessageStatus(status).value)
        if platform:
            stmt = stmt.where(Message.platform == Platform(platform).value)
            count_stmt = count_stmt.where(Message.platform == Platform(platform).value)

        total = (await self.db.execute(count_stmt)).scalar() or 0

        offset = (page - 1) * page_size
        stmt = stmt.order_by(Message.created_at.desc()).offset(offset).limit(page_size)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def update_message(
        self,
        message_id: uuid.UUID,
        actor: Actor,
        title: Optional[str] = None,
        content: Optional[str] = None,
        platform: Optional[Platform] = None,
    ) -> Message:
        """Edit content; only DRAFT and CHANGES_REQUESTED messages are editable."""
        message = await load_message(self.db, message_id)
        status = MessageStatus(message.status)
        if status not in EDITABLE_STATUSES:
            raise IllegalTransitionError(status, "edit")

        if title is not None:
            message.title = title
        if content is not None:
            message.content = content
            self._analyze(message)
        if platform is not None:
            message.platform = Platform(platform).value

        await flush_or_conflict(self.db, message)
        self.activity.log(
            message.campaign_id, actor.user_id, ActivityType.MESSAGE_UPDATED,
            f'updated message "{message.title}"',
            message_id=message.id, message_title=message.title,
        )
        return message

    async def delete(self, message_id: uuid.UUID, actor: Actor) -> None:
        """Hard delete; only drafts may be deleted (ARCHIVED is the soft path)."""
        message = await load_message(self.db, message_id)
        status = MessageStatus(message.status)
        if status != MessageStatus.DRAFT:
            raise IllegalTransitionError(status, "delete", "Only draft messages can be deleted")

        campaign_id, title = message.campaign_id, message.title
        await self.db.delete(message)
        await flush_or_conflict(self.db, message)
        self.activity.log(
            campaign_id, actor.user_id, ActivityType.MESSAGE_DELETED,
            f'deleted message "{title}"',
            message_id=message_id, message_title=title,
        )

    # ============== Lifecycle ==============

    async def submit(self, message_id: uuid.UUID, actor: Actor) -> Message:
        """DRAFT → PENDING_APPROVAL, appending a PENDING approval marker."""
        message = await load_message(self.db, message_id)
        state = transition(current_state(message), Action.SUBMIT, self._context(message, actor))
        apply_state(message, state)
        message.approvals.append(Approval(
            status=ApprovalStatus.PENDING.value,
            approved_by=actor.user_id,
        ))
        await flush_or_conflict(self.db, message)

        self.activity.log(
            message.campaign_id, actor.user_id, ActivityType.MESSAGE_SUBMITTED,
            f'submitted message "{message.title}" for approval',
            message_id=message.id, approval_tier=message.approval_tier,
        )
        return message

    async def review(
        self,
        message_id: uuid.UUID,
        actor: Actor,
        decision: ApprovalStatus,
        comments: Optional[str] = None,
        bulk: bool = False,
    ) -> Message:
        """Record an approve / reject / request-changes decision."""
        decision = ApprovalStatus(decision)
        action = REVIEW_DECISIONS.get(decision)
        if action is None:
            raise ValidationError(f"Invalid review decision: {decision.value}")

        message = await load_message(self.db, message_id)
        state = transition(current_state(message), action, self._context(message, actor, bulk=bulk))
        apply_state(message, state)
        message.approvals.append(Approval(
            status=decision.value,
            comments=comments,
            approved_by=actor.user_id,
        ))
        await flush_or_conflict(self.db, message)

        self.activity.log(
            message.campaign_id, actor.user_id, REVIEW_ACTIVITY[decision],
            f'{decision.value.lower().replace("_", " ")} message "{message.title}"',
            message_id=message.id, comments=comments,
        )
        logger.info("Message reviewed", message_id=str(message.id), decision=decision.value)
        return message

    async def resubmit(self, message_id: uuid.UUID, actor: Actor) -> Message:
        """CHANGES_REQUESTED → PENDING_APPROVAL; the content must have changed."""
        message = await load_message(self.db, message_id)
        state = transition(current_state(message), Action.RESUBMIT, self._context(message, actor))
        apply_state(message, state)
        message.approvals.append(Approval(
            status=ApprovalStatus.PENDING.value,
            approved_by=actor.user_id,
        ))
        await flush_or_conflict(self.db, message)

        self.activity.log(
            message.campaign_id, actor.user_id, ActivityType.MESSAGE_SUBMITTED,
            f'resubmitted message "{message.title}" for approval',
            message_id=message.id,
        )
        return message

    async def schedule(self, message_id: uuid.UUID, actor: Actor, scheduled_for: datetime) -> Message:
        message = await load_message(self.db, message_id)
        when = to_naive_utc(scheduled_for)
        state = transition(
            current_state(message),
            Action.SCHEDULE,
            self._context(message, actor, scheduled_for=when),
        )
        apply_state(message, state)
        await flush_or_conflict(self.db, message)

        self.activity.log(
            message.campaign_id, actor.user_id, ActivityType.MESSAGE_SCHEDULED,
            f'scheduled message "{message.title}" for {when.isoformat()}',
            message_id=message.id, scheduled_for=when.isoformat(),
        )
        return message

    async def unschedule(self, message_id: uuid.UUID, actor: Actor) -> Message:
        message = await load_message(self.db, message_id)
        state = transition(current_state(message), Action.UNSCHEDULE, self._context(message, actor))
        apply_state(message, state)
        await flush_or_conflict(self.db, message)

        self.activity.log(
            message.campaign_id, actor.user_id, ActivityType.MESSAGE_UNSCHEDULED,
            f'unscheduled message "{message.title}"',
            message_id=message.id,
        )
        return message

    async def archive(self, message_id: uuid.UUID, actor: Actor) -> Message:
        message = await load_message(self.db, message_id)
        state = transition(current_state(message), Action.ARCHIVE, self._context(message, actor))
        apply_state(message, state)
        await flush_or_conflict(self.db, message)

        self.activity.log(
            message.campaign_id, actor.user_id, ActivityType.MESSAGE_ARCHIVED,
            f'archived message "{message.title}"',
            message_id=message.id,
        )
        return message

    # ============== Bulk ==============

    async def bulk_action(
        self,
        message_ids: Sequence[uuid.UUID],
        action: str,
        actor: Actor,
    ) -> Dict[str, Any]:
        """
        Apply one action to many messages, committing each success on its own.

        A failure on one item never rolls back the others.

        Returns:
            {"success_count", "error_count", "results": [{id, success, status, error}]}
        """
        if action not in BULK_ACTIONS:
            raise ValidationError(f"Unsupported bulk action: {action}")
        if action in ("approve", "reject") and not can_review(actor.role, bulk=True):
            raise PermissionDeniedError(
                "Insufficient permissions to approve/reject messages",
                role=actor.role.value,
            )

        results: List[Dict[str, Any]] = []
        success_count = 0
        error_count = 0

        for message_id in message_ids:
            try:
                status = await self._apply_bulk(message_id, action, actor)
                await self.db.commit()
            except (CampaignError, SQLAlchemyError) as e:
                await self.db.rollback()
                error_count += 1
                detail = e.detail if isinstance(e, CampaignError) else str(e)
                results.append({"id": message_id, "success": False, "status": None, "error": detail})
                logger.warning("Bulk item failed", message_id=str(message_id), action=action, error=detail)
                continue

            success_count += 1
            results.append({"id": message_id, "success": True, "status": status, "error": None})

        logger.info(
            "Bulk action complete",
            action=action,
            success_count=success_count,
            error_count=error_count,
        )
        return {
            "action": action,
            "success_count": success_count,
            "error_count": error_count,
            "results": results,
        }

    async def _apply_bulk(self, message_id: uuid.UUID, action: str, actor: Actor) -> Optional[str]:
        if action == "approve":
            message = await self.review(message_id, actor, ApprovalStatus.APPROVED, "Bulk approved", bulk=True)
        elif action == "reject":
            message = await self.review(message_id, actor, ApprovalStatus.REJECTED, "Bulk rejected", bulk=True)
        elif action == "archive":
            message = await self.archive(message_id, actor)
        else:
            await self.delete(message_id, actor)
            return None
        return message.status

    # ============== Versions ==============

    async def add_version(
        self,
        message_id: uuid.UUID,
        profile_id: str,
        content: str,
        actor: Actor,
    ) -> MessageVersion:
        """Store hand-written content for an audience profile."""
        profile = self.registry.get(profile_id)
        if not content.strip():
            raise ValidationError("Version content is required")

        message = await load_message(self.db, message_id)
        version = MessageVersion(
            version_profile=profile.id,
            content=content,
            created_by=actor.user_id,
        )
        message.versions.append(version)
        await self.db.flush()

        self.activity.log(
            message.campaign_id, actor.user_id, ActivityType.VERSION_CREATED,
            f"added {profile.name} version for message",
            message_id=message.id, version_profile=profile.id,
        )
        return version

    async def generate_version(
        self,
        message_id: uuid.UUID,
        profile_id: str,
        actor: Actor,
    ) -> MessageVersion:
        """
        Adapt the message to an audience profile with the LLM and append the result.

        Raises:
            UnknownProfileError: profile_id is not in the registry
            GenerationError: the text-generation call failed; nothing is stored
        """
        profile = self.registry.get(profile_id)
        message = await load_message(self.db, message_id)
        campaign = await load_campaign(self.db, message.campaign_id)

        generated = await self.generator.generate_version(
            CampaignContext.from_campaign(campaign),
            message.content,
            profile,
            Platform(message.platform),
        )

        version = MessageVersion(
            version_profile=profile.id,
            content=generated.content,
            created_by=actor.user_id,
        )
        message.versions.append(version)
        await self.db.flush()

        self.activity.log(
            message.campaign_id, actor.user_id, ActivityType.VERSION_GENERATED,
            f"generated {profile.name} version for message",
            message_id=message.id,
            version_profile=profile.id,
            tokens_used=generated.metadata.get("total_tokens", 0),
        )
        return version

    async def generate_message(
        self,
        campaign_id: uuid.UUID,
        prompt: str,
        profile_id: str,
        platform: Platform,
    ) -> GeneratedContent:
        """Generate fresh content for a campaign without storing anything."""
        if not prompt.strip():
            raise ValidationError("Prompt is required")
        profile = self.registry.get(profile_id)
        campaign = await load_campaign(self.db, campaign_id)
        return await self.generator.generate_message(
            CampaignContext.from_campaign(campaign),
            prompt,
            profile,
            Platform(platform),
        )
