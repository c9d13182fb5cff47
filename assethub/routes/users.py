import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_actor
from ..schemas.users import ProfileUpdate, UserAdminUpdate, UserResponse
from ..services import users as user_service
from ..services.permissions import ActorContext


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
def get_me(db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return user_service.get_profile(db, actor)


@router.put("/me", response_model=UserResponse)
def update_me(payload: ProfileUpdate, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    """Update own name fields"""
    return user_service.update_profile(db, actor, payload)


@router.get("", response_model=List[UserResponse])
def list_users(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return user_service.list_users(db, actor, search)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return user_service.get_user(db, actor, user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: uuid.UUID,
    payload: UserAdminUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """Admin edit of role, department and names (never on self)"""
    return user_service.update_user(db, actor, user_id, payload)


@router.delete("/{user_id}")
def delete_user(user_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    user_service.delete_user(db, actor, user_id)
    return {"message": "User deleted successfully"}
