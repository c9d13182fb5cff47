import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_actor
from ..schemas.assets import (
    AssetAction,
    AssetAssign,
    AssetAssignmentResponse,
    AssetCreate,
    AssetDocumentCreate,
    AssetDocumentResponse,
    AssetFilters,
    AssetResponse,
    AssetStatus,
    AssetTransfer,
    AssetUpdate,
)
from ..services import asset_lifecycle as lifecycle
from ..services.alerts import asset_response
from ..services.export import assets_to_csv
from ..services.permissions import ActorContext, require_admin


router = APIRouter(prefix="/assets", tags=["assets"])


def _filters(
    search: Optional[str] = Query(None),
    category_id: Optional[uuid.UUID] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    status: Optional[AssetStatus] = Query(None),
    assigned_to: Optional[uuid.UUID] = Query(None),
    warranty_expiring: bool = Query(False),
    insurance_expiring: bool = Query(False),
) -> AssetFilters:
    return AssetFilters(
        search=search,
        category_id=category_id,
        department_id=department_id,
        status=status,
        assigned_to=assigned_to,
        warranty_expiring=warranty_expiring,
        insurance_expiring=insurance_expiring,
    )


# ---------- ASSETS ----------
@router.get("", response_model=List[AssetResponse])
def list_assets(
    filters: AssetFilters = Depends(_filters),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """List assets with filters; employees only see what is assigned to them"""
    rows = lifecycle.list_assets(db, actor, filters, limit=limit, offset=offset)
    return [asset_response(a) for a in rows]


@router.get("/mine", response_model=List[AssetResponse])
def list_my_assets(db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return [asset_response(a) for a in lifecycle.list_my_assets(db, actor)]


@router.get("/export.csv")
def export_assets(
    filters: AssetFilters = Depends(_filters),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """Download the (filtered) asset register as CSV"""
    require_admin(actor)
    content = assets_to_csv(lifecycle.list_assets(db, actor, filters))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="assets.csv"'},
    )


@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(asset_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return asset_response(lifecycle.get_asset(db, actor, asset_id))


@router.post("", response_model=AssetResponse)
def create_asset(payload: AssetCreate, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return asset_response(lifecycle.create_asset(db, actor, payload))


@router.put("/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: uuid.UUID,
    payload: AssetUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return asset_response(lifecycle.update_asset(db, actor, asset_id, payload))


@router.delete("/{asset_id}")
def delete_asset(asset_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    """Hard delete; only for assets without history (retire the rest)"""
    lifecycle.delete_asset(db, actor, asset_id)
    return {"message": "Asset deleted successfully"}


# ---------- LIFECYCLE ----------
@router.post("/{asset_id}/assign", response_model=AssetResponse)
def assign_asset(
    asset_id: uuid.UUID,
    payload: AssetAssign,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return asset_response(lifecycle.assign_asset(db, actor, asset_id, payload.user_id, payload.notes))


@router.post("/{asset_id}/return", response_model=AssetResponse)
def return_asset(
    asset_id: uuid.UUID,
    payload: AssetAction = AssetAction(),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return asset_response(lifecycle.return_asset(db, actor, asset_id, payload.notes))


@router.post("/{asset_id}/transfer", response_model=AssetResponse)
def transfer_asset(
    asset_id: uuid.UUID,
    payload: AssetTransfer,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return asset_response(lifecycle.transfer_asset(db, actor, asset_id, payload.user_id, payload.notes))


@router.post("/{asset_id}/repair", response_model=AssetResponse)
def send_to_repair(
    asset_id: uuid.UUID,
    payload: AssetAction = AssetAction(),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return asset_response(lifecycle.send_to_repair(db, actor, asset_id, payload.notes))


@router.post("/{asset_id}/restore", response_model=AssetResponse)
def restore_from_repair(
    asset_id: uuid.UUID,
    payload: AssetAction = AssetAction(),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return asset_response(lifecycle.restore_from_repair(db, actor, asset_id, payload.notes))


@router.post("/{asset_id}/retire", response_model=AssetResponse)
def retire_asset(
    asset_id: uuid.UUID,
    payload: AssetAction = AssetAction(),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return asset_response(lifecycle.retire_asset(db, actor, asset_id, payload.notes))


@router.get("/{asset_id}/history", response_model=List[AssetAssignmentResponse])
def get_asset_history(asset_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    """Assignment ledger for an asset, newest first"""
    return lifecycle.assignment_history(db, actor, asset_id)


# ---------- DOCUMENTS ----------
@router.get("/{asset_id}/documents", response_model=List[AssetDocumentResponse])
def list_documents(asset_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return lifecycle.list_documents(db, actor, asset_id)


@router.post("/{asset_id}/documents", response_model=AssetDocumentResponse)
def add_document(
    asset_id: uuid.UUID,
    payload: AssetDocumentCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return lifecycle.add_document(db, actor, asset_id, payload)


@router.delete("/{asset_id}/documents/{document_id}")
def delete_document(
    asset_id: uuid.UUID,
    document_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    lifecycle.delete_document(db, actor, asset_id, document_id)
    return {"message": "Document deleted successfully"}
