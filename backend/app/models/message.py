"""Message model and its append-only logs: versions, approvals, publish records."""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin, utcnow
from app.models.enums import MessageStatus

if TYPE_CHECKING:
    from app.models.campaign import Campaign


class Message(Base, UUIDMixin, TimestampMixin):
    """Outbound communication moving through draft → approval → publish."""

    __tablename__ = "messages"

    campaign_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"),
    )
    author_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Content
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)  # HTML
    platform: Mapped[str] = mapped_column(String(50), nullable=False)  # Platform enum value

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(50),
        default=MessageStatus.DRAFT.value,
    )
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(DateTime)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    review_digest: Mapped[Optional[str]] = mapped_column(String(64))  # content fingerprint at changes-request

    # Content analysis
    approval_tier: Mapped[Optional[str]] = mapped_column(String(20))  # GREEN, YELLOW, RED
    approval_analysis: Mapped[Optional[dict]] = mapped_column(JSONType)
    ai_generated: Mapped[bool] = mapped_column(default=False)

    # Optimistic concurrency counter
    lock_version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    campaign: Mapped["Campaign"] = relationship(back_populates="messages")
    versions: Mapped[List["MessageVersion"]] = relationship(
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="MessageVersion.created_at",
        lazy="selectin",
    )
    approvals: Mapped[List["Approval"]] = relationship(
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="Approval.created_at",
        lazy="selectin",
    )
    publish_records: Mapped[List["PublishRecord"]] = relationship(
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="PublishRecord.created_at",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": lock_version}

    __table_args__ = (
        Index("idx_messages_status", "status"),
        Index("idx_messages_campaign", "campaign_id"),
        Index("idx_messages_scheduled", "scheduled_for"),
    )


class MessageVersion(Base, UUIDMixin):
    """Content generated for one audience profile. Never edited."""

    __tablename__ = "message_versions"

    message_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"),
    )
    version_profile: Mapped[str] = mapped_column(String(50), nullable=False)  # AudienceProfile id
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    message: Mapped["Message"] = relationship(back_populates="versions")


class Approval(Base, UUIDMixin):
    """Review decision (or submission marker) on a message. Never edited."""

    __tablename__ = "approvals"

    message_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"),
    )
    status: Mapped[str] = mapped_column(String(50), nullable=False)  # PENDING, APPROVED, REJECTED, CHANGES_REQUESTED
    comments: Mapped[Optional[str]] = mapped_column(Text)
    approved_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    message: Mapped["Message"] = relationship(back_populates="approvals")

    __table_args__ = (
        Index("idx_approvals_message", "message_id"),
    )


class PublishRecord(Base, UUIDMixin):
    """One publish attempt on one platform. Never edited."""

    __tablename__ = "publish_records"

    message_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"),
    )
    platform: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # SUCCESS, FAILED
    external_id: Mapped[Optional[str]] = mapped_column(String(255))  # provider message id
    error: Mapped[Optional[str]] = mapped_column(Text)
    details: Mapped[Optional[dict]] = mapped_column("metadata", JSONType)
    published_by: Mapped[Optional[str]] = mapped_column(String(255))
    # slot a scheduler attempt served; one automatic attempt per slot
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    message: Mapped["Message"] = relationship(back_populates="publish_records")

    __table_args__ = (
        Index("idx_publish_records_message", "message_id"),
        Index("idx_publish_records_status", "status"),
    )
