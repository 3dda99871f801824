"""Activity model - audit trail of user actions within a campaign."""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, UUIDMixin, utcnow

if TYPE_CHECKING:
    from app.models.campaign import Campaign


class Activity(Base, UUIDMixin):
    """Audit trail entry."""

    __tablename__ = "activities"

    campaign_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"),
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)  # MESSAGE_CREATED, MESSAGE_APPROVED, ...
    description: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[dict]] = mapped_column("metadata", JSONType)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    campaign: Mapped["Campaign"] = relationship(back_populates="activities")

    __table_args__ = (
        Index("idx_activities_campaign", "campaign_id"),
        Index("idx_activities_type", "type"),
    )
