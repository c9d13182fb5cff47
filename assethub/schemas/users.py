import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..services.permissions import Role


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    role: Role
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserAdminUpdate(BaseModel):
    role: Optional[Role] = None
    department_id: Optional[uuid.UUID] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
