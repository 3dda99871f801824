"""Messages API endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from app.dependencies import get_actor, get_dispatcher, get_message_service
from app.models.enums import ApprovalStatus, MessageStatus, Platform
from app.schemas.message import (
    BulkActionRequest,
    BulkActionResult,
    GeneratedContentResponse,
    GenerateMessageRequest,
    GenerateVersionRequest,
    MessageCreate,
    MessageDetailResponse,
    MessageListResponse,
    MessageResponse,
    MessageUpdate,
    PublishRecordResponse,
    PublishRequest,
    PublishResponse,
    ReviewRequest,
    ScheduleRequest,
    VersionCreate,
    VersionResponse,
)
from app.services.messages import Actor, MessageService
from app.services.publishing import PublishingDispatcher

router = APIRouter()


@router.post("", response_model=MessageDetailResponse, status_code=201)
async def create_message(
    request: MessageCreate,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    """Create a draft message."""
    return await service.create_message(
        campaign_id=request.campaign_id,
        actor=actor,
        title=request.title,
        content=request.content,
        platform=request.platform,
        ai_generated=request.ai_generated,
    )


@router.get("", response_model=MessageListResponse)
async def list_messages(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    campaign_id: Optional[UUID] = None,
    status: Optional[MessageStatus] = None,
    platform: Optional[Platform] = None,
    service: MessageService = Depends(get_message_service),
):
    """List messages with pagination."""
    items, total = await service.list_messages(
        campaign_id=campaign_id,
        status=status,
        platform=platform,
        page=page,
        page_size=page_size,
    )
    return MessageListResponse(
        items=[MessageResponse.model_validate(m) for m in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/bulk", response_model=BulkActionResult)
async def bulk_action(
    request: BulkActionRequest,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    """Apply approve / reject / archive / delete to many messages independently."""
    return await service.bulk_action(request.message_ids, request.action, actor)


@router.post("/generate", response_model=GeneratedContentResponse)
async def generate_message(
    request: GenerateMessageRequest,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    """Generate content for a campaign and audience profile without saving it."""
    generated = await service.generate_message(
        campaign_id=request.campaign_id,
        prompt=request.prompt,
        profile_id=request.version_profile,
        platform=request.platform,
    )
    return GeneratedContentResponse(
        content=generated.content,
        title=generated.title,
        version_profile=generated.profile_id,
        platform=generated.platform,
        metadata=generated.metadata,
    )


@router.get("/{message_id}", response_model=MessageDetailResponse)
async def get_message(
    message_id: UUID,
    service: MessageService = Depends(get_message_service),
):
    """Get message with versions, approvals and publish history."""
    return await service.get_message(message_id)


@router.patch("/{message_id}", response_model=MessageDetailResponse)
async def update_message(
    message_id: UUID,
    request: MessageUpdate,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    """Edit a DRAFT or CHANGES_REQUESTED message."""
    return await service.update_message(
        message_id,
        actor,
        title=request.title,
        content=request.content,
        platform=request.platform,
    )


@router.delete("/{message_id}", status_code=204)
async def delete_message(
    message_id: UUID,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    """Delete a draft. Other statuses are archived instead."""
    await service.delete(message_id, actor)
    return Response(status_code=204)


@router.post("/{message_id}/submit", response_model=MessageDetailResponse)
async def submit_message(
    message_id: UUID,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    return await service.submit(message_id, actor)


@router.post("/{message_id}/approve", response_model=MessageDetailResponse)
async def review_message(
    message_id: UUID,
    request: ReviewRequest,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    """Approve, reject or request changes."""
    return await service.review(message_id, actor, ApprovalStatus(request.status), request.comments)


@router.post("/{message_id}/resubmit", response_model=MessageDetailResponse)
async def resubmit_message(
    message_id: UUID,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    return await service.resubmit(message_id, actor)


@router.post("/{message_id}/schedule", response_model=MessageDetailResponse)
async def schedule_message(
    message_id: UUID,
    request: ScheduleRequest,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    return await service.schedule(message_id, actor, request.scheduled_for)


@router.post("/{message_id}/unschedule", response_model=MessageDetailResponse)
async def unschedule_message(
    message_id: UUID,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    return await service.unschedule(message_id, actor)


@router.post("/{message_id}/archive", response_model=MessageDetailResponse)
async def archive_message(
    message_id: UUID,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    return await service.archive(message_id, actor)


@router.post("/{message_id}/publish", response_model=PublishResponse)
async def publish_message(
    message_id: UUID,
    request: PublishRequest,
    actor: Actor = Depends(get_actor),
    dispatcher: PublishingDispatcher = Depends(get_dispatcher),
):
    """
    Publish an approved or scheduled message.

    A provider failure is not an HTTP error: the response carries
    ``success: false`` and the FAILED publish record.
    """
    result = await dispatcher.publish(message_id, request.platform, request.settings, actor)
    return PublishResponse(
        success=result.success,
        error=result.error,
        publish_record=PublishRecordResponse.model_validate(result.record),
        message=MessageResponse.model_validate(result.message),
    )


@router.get("/{message_id}/versions", response_model=List[VersionResponse])
async def list_versions(
    message_id: UUID,
    service: MessageService = Depends(get_message_service),
):
    message = await service.get_message(message_id)
    return message.versions


@router.post("/{message_id}/versions", response_model=VersionResponse, status_code=201)
async def create_version(
    message_id: UUID,
    request: VersionCreate,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    """Store hand-written content for an audience profile."""
    return await service.add_version(message_id, request.version_profile, request.content, actor)


@router.post("/{message_id}/versions/generate", response_model=VersionResponse, status_code=201)
async def generate_version(
    message_id: UUID,
    request: GenerateVersionRequest,
    actor: Actor = Depends(get_actor),
    service: MessageService = Depends(get_message_service),
):
    """Adapt the message to an audience profile with the LLM and store the version."""
    return await service.generate_version(message_id, request.version_profile, actor)
