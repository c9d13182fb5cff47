import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_actor
from ..schemas.maintenance import (
    MaintenanceComplete,
    MaintenanceCreate,
    MaintenanceResponse,
    MaintenanceStatus,
    MaintenanceUpdate,
)
from ..services import maintenance as maintenance_service
from ..services.maintenance import annotate
from ..services.permissions import ActorContext


router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("", response_model=List[MaintenanceResponse])
def list_maintenance(
    status: Optional[MaintenanceStatus] = Query(None, description="overdue is derived from scheduled_date"),
    asset_id: Optional[uuid.UUID] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return annotate(maintenance_service.list_maintenance(db, actor, status, asset_id))


@router.get("/{maintenance_id}", response_model=MaintenanceResponse)
def get_maintenance(maintenance_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return annotate([maintenance_service.get_maintenance(db, actor, maintenance_id)])[0]


@router.post("", response_model=MaintenanceResponse)
def schedule_maintenance(
    payload: MaintenanceCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return annotate([maintenance_service.schedule_maintenance(db, actor, payload)])[0]


@router.put("/{maintenance_id}", response_model=MaintenanceResponse)
def update_maintenance(
    maintenance_id: uuid.UUID,
    payload: MaintenanceUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return annotate([maintenance_service.update_maintenance(db, actor, maintenance_id, payload)])[0]


@router.post("/{maintenance_id}/start", response_model=MaintenanceResponse)
def start_maintenance(maintenance_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return annotate([maintenance_service.start_maintenance(db, actor, maintenance_id)])[0]


@router.post("/{maintenance_id}/complete", response_model=MaintenanceResponse)
def complete_maintenance(
    maintenance_id: uuid.UUID,
    payload: MaintenanceComplete = MaintenanceComplete(),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    record = maintenance_service.complete_maintenance(db, actor, maintenance_id, payload.cost, payload.notes)
    return annotate([record])[0]


@router.delete("/{maintenance_id}")
def delete_maintenance(maintenance_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    maintenance_service.delete_maintenance(db, actor, maintenance_id)
    return {"message": "Maintenance record deleted successfully"}
