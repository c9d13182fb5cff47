from datetime import datetime
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel

from .assets import AssetResponse


class MonthlySpend(BaseModel):
    month: str
    spend: float
    assets: int


class AdminDashboardResponse(BaseModel):
    total_users: int
    total_assets: int
    total_categories: int
    total_departments: int
    total_cost: float
    assets_by_category: Dict[str, int]
    assets_by_department: Dict[str, int]
    assets_by_status: Dict[str, int]
    recent_assets: List[AssetResponse]
    monthly_spending: List[MonthlySpend]
    pending_requests: int
    open_issues: int
    warranty_expiring: int
    insurance_expiring: int
    upcoming_maintenance: int
    overdue_maintenance: int


class UserDashboardResponse(BaseModel):
    total_assets: int
    total_value: float
    pending_requests: int
    open_issues: int
    warranty_expiring: int
    insurance_expiring: int


class ActivityType(str, Enum):
    create = "create"
    lifecycle = "lifecycle"


class ActivityItem(BaseModel):
    id: str
    action: str
    description: str
    entity: str
    type: ActivityType
    timestamp: datetime
