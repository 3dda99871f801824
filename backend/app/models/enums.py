"""Enumerations shared by models, engine and schemas."""
from enum import Enum


class Platform(str, Enum):
    EMAIL = "EMAIL"
    FACEBOOK = "FACEBOOK"
    TWITTER = "TWITTER"
    INSTAGRAM = "INSTAGRAM"
    PRESS_RELEASE = "PRESS_RELEASE"
    WEBSITE = "WEBSITE"
    SMS = "SMS"


class MessageStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class ApprovalTier(str, Enum):
    """Risk classification attached by content analysis."""

    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"  # submission marker
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"


class PublishStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class UserRole(str, Enum):
    USER = "USER"
    CANDIDATE = "CANDIDATE"
    CAMPAIGN_MANAGER = "CAMPAIGN_MANAGER"
    COMMUNICATIONS_DIRECTOR = "COMMUNICATIONS_DIRECTOR"
    FIELD_DIRECTOR = "FIELD_DIRECTOR"
    FINANCE_DIRECTOR = "FINANCE_DIRECTOR"
    VOLUNTEER = "VOLUNTEER"
    ADMIN = "ADMIN"


APPROVAL_ROLES = frozenset({
    UserRole.CANDIDATE,
    UserRole.CAMPAIGN_MANAGER,
    UserRole.COMMUNICATIONS_DIRECTOR,
})


def can_approve_messages(role: UserRole) -> bool:
    return role in APPROVAL_ROLES


def can_create_messages(role: UserRole) -> bool:
    # All roles except USER can create messages
    return role != UserRole.USER


def is_admin(role: UserRole) -> bool:
    return role == UserRole.ADMIN
