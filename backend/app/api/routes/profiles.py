"""Audience profile endpoints."""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db
from app.engine.audience_profiles import AudienceProfile, ProfileRegistry, get_profile_registry
from app.engine.prompt_compiler import compile_prompt
from app.schemas.campaign import CampaignContext
from app.schemas.profile import ProfileProblemsResponse, PromptPreviewResponse
from app.services.messages import load_campaign

router = APIRouter()


@router.get("", response_model=List[AudienceProfile])
async def list_profiles(registry: ProfileRegistry = Depends(get_profile_registry)):
    """All audience profiles in catalog order."""
    return list(registry.list_profiles())


@router.get("/validate", response_model=ProfileProblemsResponse)
async def validate_profiles(registry: ProfileRegistry = Depends(get_profile_registry)):
    """Catalog integrity check (duplicate ids, sliders outside 1-10)."""
    problems = registry.validate()
    return ProfileProblemsResponse(valid=not problems, problems=problems)


@router.get("/{profile_id}", response_model=AudienceProfile)
async def get_profile(profile_id: str, registry: ProfileRegistry = Depends(get_profile_registry)):
    return registry.get(profile_id)


@router.get("/{profile_id}/prompt", response_model=PromptPreviewResponse)
async def preview_prompt(
    profile_id: str,
    campaign_id: UUID,
    registry: ProfileRegistry = Depends(get_profile_registry),
    db: AsyncSession = Depends(get_db),
):
    """Show the system prompt a generation call would use for this campaign."""
    profile = registry.get(profile_id)
    campaign = await load_campaign(db, campaign_id)
    return PromptPreviewResponse(
        profile_id=profile.id,
        campaign_id=campaign.id,
        prompt=compile_prompt(CampaignContext.from_campaign(campaign), profile),
    )
