import uuid
from datetime import date, datetime
from typing import Optional
from enum import Enum

from pydantic import BaseModel, field_validator, model_validator


# Enums
class AssetStatus(str, Enum):
    available = "available"
    assigned = "assigned"
    in_repair = "in_repair"
    retired = "retired"


class AssignmentAction(str, Enum):
    assigned = "assigned"
    returned = "returned"
    transferred = "transferred"
    sent_to_repair = "sent_to_repair"
    restored = "restored"
    retired = "retired"


class DocumentType(str, Enum):
    invoice = "invoice"
    warranty = "warranty"
    purchase_order = "purchase_order"
    insurance = "insurance"
    manual = "manual"
    other = "other"


class AlertState(str, Enum):
    expired = "expired"
    due_soon = "due_soon"
    none = "none"


# Asset Schemas
class AssetBase(BaseModel):
    name: str
    category_id: uuid.UUID
    department_id: uuid.UUID
    date_purchased: date
    cost: float
    serial_number: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    warranty_expiry: Optional[date] = None
    warranty_notes: Optional[str] = None
    insurance_provider: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    insurance_expiry: Optional[date] = None
    insurance_coverage: Optional[float] = None


class AssetCreate(AssetBase):
    status: AssetStatus = AssetStatus.available
    assigned_to: Optional[uuid.UUID] = None
    notes: Optional[str] = None  # ledger note for an initial assignment

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("cost")
    @classmethod
    def _cost_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("cost must be >= 0")
        return v

    @model_validator(mode="after")
    def _assignment_matches_status(self):
        if (self.status == AssetStatus.assigned) != (self.assigned_to is not None):
            raise ValueError("assigned_to must be set if and only if status is 'assigned'")
        return self


class AssetUpdate(BaseModel):
    """Descriptive fields only; status and assignee change through lifecycle actions."""
    name: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    date_purchased: Optional[date] = None
    cost: Optional[float] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    warranty_expiry: Optional[date] = None
    warranty_notes: Optional[str] = None
    insurance_provider: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    insurance_expiry: Optional[date] = None
    insurance_coverage: Optional[float] = None


class AssetResponse(AssetBase):
    id: uuid.UUID
    status: AssetStatus
    assigned_to: Optional[uuid.UUID] = None
    assigned_date: Optional[datetime] = None
    user_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    warranty_alert: Optional[AlertState] = None
    insurance_alert: Optional[AlertState] = None

    class Config:
        from_attributes = True


class AssetFilters(BaseModel):
    search: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    status: Optional[AssetStatus] = None
    assigned_to: Optional[uuid.UUID] = None
    warranty_expiring: bool = False
    insurance_expiring: bool = False


# Lifecycle action payloads
class AssetAssign(BaseModel):
    user_id: uuid.UUID
    notes: Optional[str] = None


class AssetTransfer(BaseModel):
    user_id: uuid.UUID
    notes: Optional[str] = None


class AssetAction(BaseModel):
    notes: Optional[str] = None


class AssetAssignmentResponse(BaseModel):
    id: uuid.UUID
    asset_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    action: AssignmentAction
    notes: Optional[str] = None
    assigned_by: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True


# Document Schemas
class AssetDocumentCreate(BaseModel):
    name: str
    file_url: str
    file_type: DocumentType = DocumentType.other
    file_size: Optional[int] = None
    mime_type: Optional[str] = None


class AssetDocumentResponse(AssetDocumentCreate):
    id: uuid.UUID
    asset_id: uuid.UUID
    uploaded_by: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True
