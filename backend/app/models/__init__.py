"""SQLAlchemy models package."""
from app.models.base import Base
from app.models.campaign import Campaign
from app.models.message import Message, MessageVersion, Approval, PublishRecord
from app.models.activity import Activity
from app.models.election import County, CountyElectionResult, CountyDemographic

__all__ = [
    "Base",
    "Campaign",
    "Message",
    "MessageVersion",
    "Approval",
    "PublishRecord",
    "Activity",
    "County",
    "CountyElectionResult",
    "CountyDemographic",
]
