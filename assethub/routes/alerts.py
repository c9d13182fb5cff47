from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_actor
from ..schemas.assets import AssetResponse
from ..schemas.dashboard import ActivityItem, AdminDashboardResponse, UserDashboardResponse
from ..schemas.maintenance import MaintenanceResponse
from ..services import alerts, dashboard as dashboard_service
from ..services.maintenance import annotate
from ..services.permissions import ActorContext


router = APIRouter(tags=["alerts"])


# ---------- ALERTS ----------
@router.get("/alerts/warranty", response_model=List[AssetResponse])
def warranty_alerts(
    window_days: Optional[int] = Query(None, description="defaults to ALERT_WINDOW_DAYS"),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """Warranties already expired or expiring within the window, soonest first"""
    rows = alerts.warranty_expiring_assets(db, actor, window_days)
    return [alerts.asset_response(a, window_days=window_days) for a in rows]


@router.get("/alerts/insurance", response_model=List[AssetResponse])
def insurance_alerts(
    window_days: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    rows = alerts.insurance_expiring_assets(db, actor, window_days)
    return [alerts.asset_response(a, window_days=window_days) for a in rows]


@router.get("/alerts/maintenance", response_model=List[MaintenanceResponse])
def maintenance_alerts(
    window_days: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return annotate(alerts.upcoming_maintenance(db, actor, window_days), window_days=window_days)


# ---------- DASHBOARD ----------
@router.get("/dashboard", response_model=Union[AdminDashboardResponse, UserDashboardResponse])
def get_dashboard(db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    """Admin overview or the employee's own summary, depending on role"""
    return dashboard_service.dashboard(db, actor)


@router.get("/activity", response_model=List[ActivityItem])
def get_activity(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """Admin activity log: recent creations and asset lifecycle moves"""
    return dashboard_service.recent_activity(db, actor, limit)
