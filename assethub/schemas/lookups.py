import uuid
from datetime import datetime

from pydantic import BaseModel, field_validator


class LookupWrite(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class DepartmentResponse(CategoryResponse):
    pass
