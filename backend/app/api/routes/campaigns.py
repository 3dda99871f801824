"""Campaigns API endpoints."""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_actor, get_db
from app.models.campaign import Campaign
from app.schemas.campaign import CampaignCreate, CampaignResponse, CampaignUpdate
from app.schemas.profile import ActivityResponse
from app.services.activity import ActivityLogger, ActivityType
from app.services.messages import Actor

router = APIRouter()


@router.post("", response_model=CampaignResponse, status_code=201)
async def create_campaign(
    request: CampaignCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Create a campaign with its candidate profile."""
    campaign = Campaign(
        name=request.name,
        candidate_name=request.candidate_name,
        office=request.office,
        key_positions=request.key_positions,
        profile=request.profile.model_dump(exclude_none=True) if request.profile else None,
        provider_settings=request.provider_settings,
    )
    db.add(campaign)
    await db.flush()

    ActivityLogger(db).log(
        campaign.id, actor.user_id, ActivityType.CAMPAIGN_CREATED,
        f'created campaign "{campaign.name}"',
    )
    return campaign


@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Campaign).order_by(Campaign.created_at.desc()))
    return result.scalars().all()


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: UUID, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Campaign).where(Campaign.id == campaign_id))
    campaign = result.scalar_one_or_none()

    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")

    return campaign


@router.patch("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: UUID,
    request: CampaignUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Update campaign details, candidate profile or provider settings."""
    result = await db.execute(select(Campaign).where(Campaign.id == campaign_id))
    campaign = result.scalar_one_or_none()

    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")

    update_data = request.model_dump(exclude_unset=True)
    if request.profile is not None:
        update_data["profile"] = request.profile.model_dump(exclude_none=True)
    for field, value in update_data.items():
        setattr(campaign, field, value)

    await db.flush()
    ActivityLogger(db).log(
        campaign.id, actor.user_id, ActivityType.CAMPAIGN_UPDATED,
        f'updated campaign "{campaign.name}"',
        fields=sorted(update_data),
    )
    return campaign


@router.get("/{campaign_id}/activity", response_model=List[ActivityResponse])
async def list_activity(
    campaign_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """Most recent audit trail entries for a campaign."""
    return await ActivityLogger(db).recent(campaign_id, limit=limit)
