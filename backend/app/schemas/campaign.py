"""Campaign and candidate-profile schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============== Candidate Profile ==============
# Every field is optional: profiles are filled in gradually during onboarding,
# and the prompt compiler substitutes generic text for anything missing.

class _ProfileSection(BaseModel):
    model_config = ConfigDict(extra="allow")


class PersonalInfo(_ProfileSection):
    full_name: Optional[str] = None
    preferred_name: Optional[str] = None
    current_residence: Optional[str] = None
    languages: List[str] = Field(default_factory=list)


class PoliticalBackground(_ProfileSection):
    party: Optional[str] = None
    years_in_politics: Optional[int] = None
    political_philosophy: Optional[str] = None


class CampaignDetails(_ProfileSection):
    office: Optional[str] = None
    jurisdiction: Optional[str] = None
    election_date: Optional[str] = None
    campaign_theme: Optional[str] = None
    campaign_slogan: Optional[str] = None


class CommunicationPreferences(_ProfileSection):
    speaking_style: Optional[str] = None  # formal, conversational, inspirational, direct
    key_messages: List[str] = Field(default_factory=list)
    tone_attributes: List[str] = Field(default_factory=list)
    avoid_topics: List[str] = Field(default_factory=list)
    preferred_platforms: List[str] = Field(default_factory=list)


class PolicyPriority(_ProfileSection):
    issue: str
    position: str
    key_points: List[str] = Field(default_factory=list)


class PolicyPositions(_ProfileSection):
    top_priorities: Optional[List[PolicyPriority]] = None


class CandidateProfile(_ProfileSection):
    """Loosely structured record describing the candidate."""
    personal: PersonalInfo = Field(default_factory=PersonalInfo)
    political: PoliticalBackground = Field(default_factory=PoliticalBackground)
    campaign: CampaignDetails = Field(default_factory=CampaignDetails)
    communication: CommunicationPreferences = Field(default_factory=CommunicationPreferences)
    policy_positions: PolicyPositions = Field(default_factory=PolicyPositions)


class CampaignContext(BaseModel):
    """Everything the prompt compiler needs to know about a campaign."""
    candidate_name: str
    office: str
    key_positions: Dict[str, Any] = Field(default_factory=dict)
    profile: CandidateProfile = Field(default_factory=CandidateProfile)

    @classmethod
    def from_campaign(cls, campaign: Any) -> "CampaignContext":
        return cls(
            candidate_name=campaign.candidate_name,
            office=campaign.office,
            key_positions=campaign.key_positions or {},
            profile=CandidateProfile.model_validate(campaign.profile or {}),
        )


# ============== Campaign CRUD ==============

class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    candidate_name: str = Field(..., min_length=1, max_length=255)
    office: str = Field(..., min_length=1, max_length=255)
    key_positions: Dict[str, Any] = Field(default_factory=dict)
    profile: Optional[CandidateProfile] = None
    provider_settings: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    candidate_name: Optional[str] = Field(None, max_length=255)
    office: Optional[str] = Field(None, max_length=255)
    key_positions: Optional[Dict[str, Any]] = None
    profile: Optional[CandidateProfile] = None
    provider_settings: Optional[Dict[str, Dict[str, Any]]] = None


class CampaignResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    candidate_name: str
    office: str
    key_positions: Optional[Dict[str, Any]] = None
    profile: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime
