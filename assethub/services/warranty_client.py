"""
Warranty provider API client
Registers assets with the external warranty service and checks their status
"""
from datetime import date
from typing import Any, Dict, Optional

import httpx
import structlog

from ..config import settings
from ..errors import UpstreamRejected, UpstreamUnavailable
from ..models.models import Asset
from ..schemas.warranty import WarrantyRegisterRequest


logger = structlog.get_logger(__name__)


def warranty_duration_months(start: Optional[date], expiry: Optional[date]) -> Optional[int]:
    """Approximate months between two dates using a flat 30-day month."""
    if start is None or expiry is None:
        return None
    return round((expiry - start).days / 30)


def build_registration(asset: Asset, terms: WarrantyRegisterRequest, registered_by_email: str) -> Dict[str, Any]:
    """Assemble the provider's register payload from the stored asset plus caller supplied terms."""
    expiry = terms.warranty_expiry or asset.warranty_expiry
    start = terms.warranty_start or asset.date_purchased
    months = terms.warranty_duration_months or warranty_duration_months(start, expiry)

    def _iso(d: Optional[date]) -> Optional[str]:
        return d.isoformat() if d else None

    return {
        "asset_id": str(asset.id),
        "asset_name": asset.name,
        "serial_number": asset.serial_number or None,
        "category": asset.category.name if asset.category else None,
        "department": asset.department.name if asset.department else None,
        "location": asset.location or None,
        "date_purchased": _iso(asset.date_purchased),
        "cost": float(asset.cost) if asset.cost is not None else None,
        "warranty_provider": terms.warranty_provider or None,
        "warranty_type": terms.warranty_type or "manufacturer",
        "warranty_start": _iso(start),
        "warranty_expiry": _iso(expiry),
        "warranty_duration_months": months or None,
        "warranty_terms": terms.warranty_terms or None,
        "warranty_contact": terms.warranty_contact or None,
        "warranty_claim_url": terms.warranty_claim_url or None,
        "warranty_notes": terms.warranty_notes or asset.warranty_notes or None,
        "registered_by_email": registered_by_email,
    }


class WarrantyClient:
    """Client for the warranty provider REST API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or settings.warranty_api_url).rstrip("/")
        self.api_key = api_key or settings.warranty_api_key
        self.timeout = timeout or settings.warranty_timeout_seconds
        self.transport = transport

        if not self.api_key:
            raise UpstreamUnavailable("Warranty service is not configured")

    def _headers(self) -> Dict[str, str]:
        return {"X-API-Key": self.api_key, "Accept": "application/json"}

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Make HTTP request to the provider; 4xx is passed back, anything else is UpstreamUnavailable"""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error("warranty_request_failed", method=method, endpoint=endpoint, error=str(e))
            raise UpstreamUnavailable("Failed to connect to warranty service") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 500:
            logger.error("warranty_provider_error", endpoint=endpoint, status=response.status_code)
            raise UpstreamUnavailable("Warranty service returned an error")
        if response.status_code >= 400:
            message = data.get("detail") if isinstance(data, dict) else None
            logger.info("warranty_provider_rejected", endpoint=endpoint, status=response.status_code)
            raise UpstreamRejected(response.status_code, message or "Failed to register warranty")
        return data

    def register(self, payload: Dict[str, Any]) -> Any:
        """POST /api/warranty/register"""
        result = self._request("POST", "/api/warranty/register", json=payload)
        logger.info("warranty_registered", asset_id=payload.get("asset_id"))
        return result

    def check(self, asset_id: str) -> Any:
        """GET /api/warranty/check/{asset_id}"""
        return self._request("GET", f"/api/warranty/check/{asset_id}")
