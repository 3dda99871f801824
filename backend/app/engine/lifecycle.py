"""Message lifecycle state machine.

Each status is its own frozen state class carrying only the fields that are
meaningful in that status (``Scheduled.scheduled_for``,
``Published.published_at``, ``ChangesRequested.review_digest``).
``transition`` is pure: it validates an action against the transition table
and its guard, and returns the next state. Persisting the state and appending
Approval / PublishRecord rows is the service layer's job.
"""
import hashlib
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, Optional, Tuple, Union

from app.exceptions import IllegalTransitionError, PermissionDeniedError, ValidationError
from app.models.enums import MessageStatus, UserRole, can_approve_messages, is_admin


class Action(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_CHANGES = "request_changes"
    RESUBMIT = "resubmit"
    SCHEDULE = "schedule"
    UNSCHEDULE = "unschedule"
    PUBLISH = "publish"
    ARCHIVE = "archive"


# ============== States ==============

@dataclass(frozen=True)
class Draft:
    status: ClassVar[MessageStatus] = MessageStatus.DRAFT


@dataclass(frozen=True)
class PendingApproval:
    status: ClassVar[MessageStatus] = MessageStatus.PENDING_APPROVAL


@dataclass(frozen=True)
class Approved:
    status: ClassVar[MessageStatus] = MessageStatus.APPROVED


@dataclass(frozen=True)
class Rejected:
    status: ClassVar[MessageStatus] = MessageStatus.REJECTED


@dataclass(frozen=True)
class ChangesRequested:
    status: ClassVar[MessageStatus] = MessageStatus.CHANGES_REQUESTED
    review_digest: str


@dataclass(frozen=True)
class Scheduled:
    status: ClassVar[MessageStatus] = MessageStatus.SCHEDULED
    scheduled_for: datetime


@dataclass(frozen=True)
class Published:
    status: ClassVar[MessageStatus] = MessageStatus.PUBLISHED
    published_at: datetime


@dataclass(frozen=True)
class Archived:
    status: ClassVar[MessageStatus] = MessageStatus.ARCHIVED


MessageState = Union[
    Draft, PendingApproval, Approved, Rejected, ChangesRequested, Scheduled, Published, Archived
]


# ============== Transition table ==============

TERMINAL_STATUSES: FrozenSet[MessageStatus] = frozenset({
    MessageStatus.PUBLISHED,
    MessageStatus.ARCHIVED,
})

TRANSITIONS: Dict[Tuple[MessageStatus, Action], MessageStatus] = {
    (MessageStatus.DRAFT, Action.SUBMIT): MessageStatus.PENDING_APPROVAL,
    (MessageStatus.PENDING_APPROVAL, Action.APPROVE): MessageStatus.APPROVED,
    (MessageStatus.PENDING_APPROVAL, Action.REJECT): MessageStatus.REJECTED,
    (MessageStatus.PENDING_APPROVAL, Action.REQUEST_CHANGES): MessageStatus.CHANGES_REQUESTED,
    (MessageStatus.CHANGES_REQUESTED, Action.RESUBMIT): MessageStatus.PENDING_APPROVAL,
    (MessageStatus.APPROVED, Action.SCHEDULE): MessageStatus.SCHEDULED,
    (MessageStatus.SCHEDULED, Action.UNSCHEDULE): MessageStatus.APPROVED,
    (MessageStatus.APPROVED, Action.PUBLISH): MessageStatus.PUBLISHED,
    (MessageStatus.SCHEDULED, Action.PUBLISH): MessageStatus.PUBLISHED,
}
TRANSITIONS.update({
    (status, Action.ARCHIVE): MessageStatus.ARCHIVED
    for status in MessageStatus
    if status not in TERMINAL_STATUSES
})

REVIEW_ACTIONS: FrozenSet[Action] = frozenset({
    Action.APPROVE,
    Action.REJECT,
    Action.REQUEST_CHANGES,
})

EDITABLE_STATUSES: FrozenSet[MessageStatus] = frozenset({
    MessageStatus.DRAFT,
    MessageStatus.CHANGES_REQUESTED,
})


@dataclass(frozen=True)
class TransitionContext:
    """Inputs the guards look at."""
    now: datetime
    actor_role: Optional[UserRole] = None
    title: str = ""
    content: str = ""
    scheduled_for: Optional[datetime] = None
    bulk: bool = False


def content_digest(title: str, content: str) -> str:
    """Stable fingerprint of a message's editable content."""
    return hashlib.sha256(f"{title}\x00{content}".encode("utf-8")).hexdigest()


def can_review(role: Optional[UserRole], bulk: bool = False) -> bool:
    """Approver roles review; admins may additionally review in bulk."""
    if role is None:
        return False
    return can_approve_messages(role) or (bulk and is_admin(role))


def allowed_actions(status: MessageStatus) -> Tuple[Action, ...]:
    return tuple(action for (source, action) in TRANSITIONS if source == status)


def ensure_allowed(state: MessageState, action: Action) -> MessageStatus:
    """Return the target status, or raise if the action is not in the table."""
    target = TRANSITIONS.get((state.status, action))
    if target is None:
        raise IllegalTransitionError(state.status, action)
    return target


def transition(state: MessageState, action: Action, ctx: TransitionContext) -> MessageState:
    """Validate ``action`` against the table and its guard; return the next state."""
    target = ensure_allowed(state, action)

    if action == Action.SUBMIT:
        if not ctx.title.strip() or not ctx.content.strip():
            raise ValidationError("Title and content are required before submitting")
        return PendingApproval()

    if action in REVIEW_ACTIONS:
        if not can_review(ctx.actor_role, ctx.bulk):
            raise PermissionDeniedError(
                "Only approvers can review messages",
                role=getattr(ctx.actor_role, "value", ctx.actor_role),
            )
        if target == MessageStatus.APPROVED:
            return Approved()
        if target == MessageStatus.REJECTED:
            return Rejected()
        return ChangesRequested(review_digest=content_digest(ctx.title, ctx.content))

    if action == Action.RESUBMIT:
        if content_digest(ctx.title, ctx.content) == getattr(state, "review_digest", None):
            raise ValidationError("Message must be modified before resubmitting")
        return PendingApproval()

    if action == Action.SCHEDULE:
        if ctx.scheduled_for is None:
            raise ValidationError("A scheduled time is required")
        if ctx.scheduled_for <= ctx.now:
            raise ValidationError("Scheduled time must be in the future")
        return Scheduled(scheduled_for=ctx.scheduled_for)

    if action == Action.UNSCHEDULE:
        return Approved()

    if action == Action.PUBLISH:
        return Published(published_at=ctx.now)

    return Archived()


def state_from_fields(
    status: MessageStatus,
    scheduled_for: Optional[datetime] = None,
    published_at: Optional[datetime] = None,
    review_digest: Optional[str] = None,
) -> MessageState:
    """Rebuild the typed state from flat persisted columns."""
    status = MessageStatus(status)
    if status == MessageStatus.SCHEDULED:
        if scheduled_for is None:
            raise ValueError("SCHEDULED message without scheduled_for")
        return Scheduled(scheduled_for=scheduled_for)
    if status == MessageStatus.PUBLISHED:
        if published_at is None:
            raise ValueError("PUBLISHED message without published_at")
        return Published(published_at=published_at)
    if status == MessageStatus.CHANGES_REQUESTED:
        return ChangesRequested(review_digest=review_digest or "")
    simple = {
        MessageStatus.DRAFT: Draft,
        MessageStatus.PENDING_APPROVAL: PendingApproval,
        MessageStatus.APPROVED: Approved,
        MessageStatus.REJECTED: Rejected,
        MessageStatus.ARCHIVED: Archived,
    }
    return simple[status]()
