import uuid
from datetime import date, datetime
from typing import Optional
from enum import Enum

from pydantic import BaseModel, field_validator


class MaintenanceType(str, Enum):
    scheduled = "scheduled"
    repair = "repair"
    inspection = "inspection"


class MaintenanceStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    overdue = "overdue"  # legacy rows only; overdue is derived from dates


class MaintenanceAlert(str, Enum):
    completed = "completed"
    overdue = "overdue"
    in_progress = "in_progress"
    due_soon = "due_soon"
    scheduled = "scheduled"


class MaintenanceCreate(BaseModel):
    asset_id: uuid.UUID
    maintenance_type: MaintenanceType
    description: Optional[str] = None
    cost: float = 0
    scheduled_date: date
    notes: Optional[str] = None

    @field_validator("cost")
    @classmethod
    def _cost_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("cost must be >= 0")
        return v


class MaintenanceUpdate(BaseModel):
    maintenance_type: Optional[MaintenanceType] = None
    description: Optional[str] = None
    cost: Optional[float] = None
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None


class MaintenanceComplete(BaseModel):
    cost: Optional[float] = None
    notes: Optional[str] = None


class MaintenanceResponse(BaseModel):
    id: uuid.UUID
    asset_id: uuid.UUID
    maintenance_type: MaintenanceType
    description: Optional[str] = None
    cost: float
    scheduled_date: date
    completed_date: Optional[date] = None
    status: MaintenanceStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    alert: Optional[MaintenanceAlert] = None
    days_until: Optional[int] = None

    class Config:
        from_attributes = True
