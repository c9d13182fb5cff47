import json
from datetime import date

import httpx
import pytest

from assethub.config import settings
from assethub.errors import UpstreamRejected, UpstreamUnavailable
from assethub.schemas.warranty import WarrantyRegisterRequest
from assethub.services.warranty_client import WarrantyClient, build_registration, warranty_duration_months


def _client(handler) -> WarrantyClient:
    return WarrantyClient(base_url="https://warranty.test/", api_key="k-123", transport=httpx.MockTransport(handler))


def test_duration_months_uses_thirty_day_months():
    assert warranty_duration_months(date(2025, 1, 1), date(2026, 1, 1)) == 12
    assert warranty_duration_months(date(2025, 1, 1), date(2025, 1, 20)) == 1
    assert warranty_duration_months(None, date(2025, 1, 1)) is None


def test_build_registration_fills_from_asset(db, make_asset, category):
    asset = make_asset(serial_number="SN-1", warranty_expiry=date(2027, 1, 10))
    payload = build_registration(
        asset,
        WarrantyRegisterRequest(asset_id=asset.id, warranty_provider="Lenovo"),
        "admin@example.com",
    )
    assert payload["asset_id"] == str(asset.id)
    assert payload["category"] == category.name
    assert payload["warranty_start"] == "2025-01-10"
    assert payload["warranty_expiry"] == "2027-01-10"
    assert payload["warranty_duration_months"] == 24
    assert payload["warranty_type"] == "manufacturer"
    assert payload["registered_by_email"] == "admin@example.com"


def test_register_sends_api_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("X-API-Key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"registration_id": "r-1"})

    result = _client(handler).register({"asset_id": "a-1"})

    assert result == {"registration_id": "r-1"}
    assert seen["url"] == "https://warranty.test/api/warranty/register"
    assert seen["key"] == "k-123"
    assert seen["body"] == {"asset_id": "a-1"}


def test_client_error_is_passed_through():
    def handler(request):
        return httpx.Response(422, json={"detail": "warranty_expiry is in the past"})

    with pytest.raises(UpstreamRejected) as exc:
        _client(handler).check("a-1")

    assert exc.value.status_code == 422
    assert exc.value.message == "warranty_expiry is in the past"


def test_server_error_is_unavailable():
    with pytest.raises(UpstreamUnavailable):
        _client(lambda request: httpx.Response(503, text="down")).check("a-1")


def test_transport_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        _client(handler).register({})


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(settings, "warranty_api_key", None)
    with pytest.raises(UpstreamUnavailable):
        WarrantyClient()


def test_zero_cost_is_sent_as_zero(db, make_asset):
    asset = make_asset(cost=0)
    payload = build_registration(asset, WarrantyRegisterRequest(asset_id=asset.id), "admin@example.com")
    assert payload["cost"] == 0.0
