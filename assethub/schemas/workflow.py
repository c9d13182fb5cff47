import uuid
from datetime import datetime
from typing import Optional
from enum import Enum

from pydantic import BaseModel, field_validator


# Enums
class RequestType(str, Enum):
    new = "new"
    replacement = "replacement"
    upgrade = "upgrade"
    transfer = "transfer"


class RequestPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class RequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"
    fulfilled = "fulfilled"
    cancelled = "cancelled"


class RequestDecision(str, Enum):
    approved = "approved"
    denied = "denied"


class IssueType(str, Enum):
    damage = "damage"
    malfunction = "malfunction"
    loss = "loss"
    theft = "theft"
    maintenance = "maintenance"
    other = "other"


class IssueSeverity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class IssueStatus(str, Enum):
    open = "open"
    in_progress = "in_progress"
    resolved = "resolved"
    closed = "closed"
    cancelled = "cancelled"


def _required_text(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("must not be empty")
    return v


# Asset Request Schemas
class AssetRequestCreate(BaseModel):
    request_type: RequestType
    category_id: Optional[uuid.UUID] = None
    title: str
    description: Optional[str] = None
    justification: Optional[str] = None
    priority: RequestPriority = RequestPriority.medium

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        return _required_text(v)


class AssetRequestDecide(BaseModel):
    outcome: RequestDecision
    notes: Optional[str] = None


class AssetRequestFulfill(BaseModel):
    asset_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class AssetRequestResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    request_type: RequestType
    category_id: Optional[uuid.UUID] = None
    title: str
    description: Optional[str] = None
    justification: Optional[str] = None
    priority: RequestPriority
    status: RequestStatus
    admin_notes: Optional[str] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    fulfilled_asset_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Issue Report Schemas
class IssueReportCreate(BaseModel):
    asset_id: uuid.UUID
    issue_type: IssueType
    title: str
    description: str
    severity: IssueSeverity = IssueSeverity.medium

    @field_validator("title", "description")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        return _required_text(v)


class IssueResolve(BaseModel):
    notes: Optional[str] = None


class IssueReportResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    asset_id: uuid.UUID
    issue_type: IssueType
    title: str
    description: str
    severity: IssueSeverity
    status: IssueStatus
    resolution_notes: Optional[str] = None
    resolved_by: Optional[uuid.UUID] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
