import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel


class WarrantyRegisterRequest(BaseModel):
    """Provider-specific terms; asset details are filled in from the stored asset."""
    asset_id: uuid.UUID
    warranty_provider: Optional[str] = None
    warranty_type: str = "manufacturer"
    warranty_start: Optional[date] = None
    warranty_expiry: Optional[date] = None
    warranty_duration_months: Optional[int] = None
    warranty_terms: Optional[str] = None
    warranty_contact: Optional[str] = None
    warranty_claim_url: Optional[str] = None
    warranty_notes: Optional[str] = None
