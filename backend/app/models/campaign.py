"""Campaign model - owner of messages and source of the candidate profile."""
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.message import Message
    from app.models.activity import Activity


class Campaign(Base, UUIDMixin, TimestampMixin):
    """A candidate's campaign."""

    __tablename__ = "campaigns"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    candidate_name: Mapped[str] = mapped_column(String(255), nullable=False)
    office: Mapped[str] = mapped_column(String(255), nullable=False)

    # Candidate context for the prompt compiler
    key_positions: Mapped[Optional[dict]] = mapped_column(JSONType)  # {"healthcare": "...", ...}
    profile: Mapped[Optional[dict]] = mapped_column(JSONType)  # CandidateProfile

    # Per-platform provider configuration, e.g. {"EMAIL": {"from_email": ..., "from_name": ...}}
    provider_settings: Mapped[Optional[dict]] = mapped_column(JSONType)

    # Relationships
    messages: Mapped[List["Message"]] = relationship(
        back_populates="campaign",
        cascade="all, delete-orphan",
    )
    activities: Mapped[List["Activity"]] = relationship(
        back_populates="campaign",
        cascade="all, delete-orphan",
    )
