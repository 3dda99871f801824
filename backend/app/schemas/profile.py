"""Audience profile and activity schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PromptPreviewResponse(BaseModel):
    """Compiled system prompt for one campaign and audience profile."""
    profile_id: str
    campaign_id: UUID
    prompt: str


class ProfileProblemsResponse(BaseModel):
    valid: bool
    problems: List[str]


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    campaign_id: UUID
    user_id: str
    type: str
    description: str
    # ORM attribute is "details" (Base reserves "metadata"); exposed as "metadata"
    details: Optional[Dict[str, Any]] = Field(
        None,
        validation_alias=AliasChoices("details", "metadata"),
        serialization_alias="metadata",
    )
    created_at: datetime
