import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_actor
from ..schemas.lookups import CategoryResponse, DepartmentResponse, LookupWrite
from ..services import lookups, reference_guard
from ..services.permissions import ActorContext, EntityKind


router = APIRouter(tags=["lookups"])


# ---------- CATEGORIES ----------
@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return lookups.list_lookups(db, actor, EntityKind.category)


@router.post("/categories", response_model=CategoryResponse)
def create_category(payload: LookupWrite, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return lookups.create_lookup(db, actor, EntityKind.category, payload.name)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def rename_category(
    category_id: uuid.UUID,
    payload: LookupWrite,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return lookups.rename_lookup(db, actor, EntityKind.category, category_id, payload.name)


@router.delete("/categories/{category_id}")
def delete_category(category_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    """Delete a category no asset uses"""
    reference_guard.delete_category(db, actor, category_id)
    return {"message": "Category deleted successfully"}


# ---------- DEPARTMENTS ----------
@router.get("/departments", response_model=List[DepartmentResponse])
def list_departments(db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return lookups.list_lookups(db, actor, EntityKind.department)


@router.post("/departments", response_model=DepartmentResponse)
def create_department(payload: LookupWrite, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return lookups.create_lookup(db, actor, EntityKind.department, payload.name)


@router.put("/departments/{department_id}", response_model=DepartmentResponse)
def rename_department(
    department_id: uuid.UUID,
    payload: LookupWrite,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return lookups.rename_lookup(db, actor, EntityKind.department, department_id, payload.name)


@router.delete("/departments/{department_id}")
def delete_department(department_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    """Delete a department with no assets and no users"""
    reference_guard.delete_department(db, actor, department_id)
    return {"message": "Department deleted successfully"}
