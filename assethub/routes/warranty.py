import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_actor
from ..schemas.warranty import WarrantyRegisterRequest
from ..services import asset_lifecycle, users as user_service
from ..services.permissions import ActorContext, require_admin
from ..services.warranty_client import WarrantyClient, build_registration


router = APIRouter(prefix="/warranty", tags=["warranty"])


def get_warranty_client() -> WarrantyClient:
    return WarrantyClient()


@router.post("/register")
def register_warranty(
    payload: WarrantyRegisterRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    client: WarrantyClient = Depends(get_warranty_client),
):
    """Register an asset with the warranty provider"""
    require_admin(actor)
    asset = asset_lifecycle.get_asset(db, actor, payload.asset_id)
    registered_by = user_service.get_profile(db, actor)
    return client.register(build_registration(asset, payload, registered_by.email))


@router.get("/check/{asset_id}")
def check_warranty(
    asset_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    client: WarrantyClient = Depends(get_warranty_client),
):
    """Registration status of an asset at the warranty provider"""
    asset = asset_lifecycle.get_asset(db, actor, asset_id)
    return client.check(str(asset.id))
