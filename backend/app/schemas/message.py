"""Message schemas for request/response validation."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.models.enums import ApprovalStatus, Platform


# ============== Request Schemas ==============

class MessageCreate(BaseModel):
    """Request to create a draft message."""
    campaign_id: UUID
    title: str = Field("", max_length=500)
    content: str = ""  # HTML
    platform: Platform
    ai_generated: bool = False


class MessageUpdate(BaseModel):
    """Request to edit a DRAFT or CHANGES_REQUESTED message."""
    title: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None
    platform: Optional[Platform] = None


class ReviewRequest(BaseModel):
    """Approver decision."""
    status: Literal["APPROVED", "REJECTED", "CHANGES_REQUESTED"]
    comments: Optional[str] = None


class ScheduleRequest(BaseModel):
    scheduled_for: datetime


class PublishRequest(BaseModel):
    """Request to publish to the message's platform."""
    platform: Platform
    settings: Dict[str, Any] = Field(default_factory=dict)  # recipients, reply_to, tags


class BulkActionRequest(BaseModel):
    message_ids: List[UUID] = Field(..., min_length=1)
    action: Literal["approve", "reject", "archive", "delete"]


class VersionCreate(BaseModel):
    """Hand-written content for one audience profile."""
    version_profile: str
    content: str = Field(..., min_length=1)


class GenerateVersionRequest(BaseModel):
    version_profile: str


class GenerateMessageRequest(BaseModel):
    """Free-form generation request; nothing is stored."""
    campaign_id: UUID
    prompt: str = Field(..., min_length=1)
    version_profile: str
    platform: Platform


# ============== Response Schemas ==============

class VersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    message_id: UUID
    version_profile: str
    content: str
    created_by: str
    created_at: datetime


class ApprovalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: ApprovalStatus
    comments: Optional[str] = None
    approved_by: str
    created_at: datetime


class PublishRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    platform: Platform
    status: str  # SUCCESS, FAILED
    external_id: Optional[str] = None
    error: Optional[str] = None
    # ORM attribute is "details" (Base reserves "metadata"); exposed as "metadata"
    details: Optional[Dict[str, Any]] = Field(
        None,
        validation_alias=AliasChoices("details", "metadata"),
        serialization_alias="metadata",
    )
    published_by: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    created_at: datetime


class MessageResponse(BaseModel):
    """Message without its logs (list views)."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    campaign_id: UUID
    author_id: str
    title: str
    content: str
    platform: Platform
    status: str
    approval_tier: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    published_at: Optional[datetime] = None
    ai_generated: bool = False
    lock_version: int
    created_at: datetime
    updated_at: datetime


class MessageDetailResponse(MessageResponse):
    """Message with versions, approvals (newest first) and publish history."""
    approval_analysis: Optional[Dict[str, Any]] = None
    versions: List[VersionResponse] = Field(default_factory=list)
    approvals: List[ApprovalResponse] = Field(default_factory=list)
    publish_records: List[PublishRecordResponse] = Field(default_factory=list)

    @field_validator("approvals")
    @classmethod
    def newest_first(cls, approvals: List[ApprovalResponse]) -> List[ApprovalResponse]:
        return sorted(approvals, key=lambda a: a.created_at, reverse=True)


class MessageListResponse(BaseModel):
    items: List[MessageResponse]
    total: int
    page: int
    page_size: int


class BulkItemResult(BaseModel):
    id: UUID
    success: bool
    status: Optional[str] = None
    error: Optional[str] = None


class BulkActionResult(BaseModel):
    """Per-item outcome of a bulk action; failures never roll back successes."""
    action: str
    success_count: int
    error_count: int
    results: List[BulkItemResult]


class PublishResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    publish_record: PublishRecordResponse
    message: MessageResponse


class GeneratedContentResponse(BaseModel):
    content: str
    title: Optional[str] = None
    version_profile: str
    platform: Platform
    metadata: Dict[str, Any] = Field(default_factory=dict)
