import csv
import io
from datetime import date
from typing import Iterable, Optional

from ..models.models import Asset
from .alerts import insurance_alert, warranty_alert


COLUMNS = [
    "id",
    "name",
    "serial_number",
    "category",
    "department",
    "status",
    "assigned_to",
    "location",
    "date_purchased",
    "cost",
    "warranty_expiry",
    "warranty_alert",
    "insurance_provider",
    "insurance_policy_number",
    "insurance_expiry",
    "insurance_alert",
]


def _fmt(value) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def assets_to_csv(assets: Iterable[Asset], today: Optional[date] = None) -> str:
    """Render assets as CSV text with the derived expiry badges."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(COLUMNS)
    for a in assets:
        assignee = a.assigned_user.email if a.assigned_user else None
        writer.writerow([
            _fmt(a.id),
            a.name,
            _fmt(a.serial_number),
            a.category.name if a.category else "",
            a.department.name if a.department else "",
            a.status,
            _fmt(assignee),
            _fmt(a.location),
            _fmt(a.date_purchased),
            _fmt(a.cost),
            _fmt(a.warranty_expiry),
            warranty_alert(a, today).value,
            _fmt(a.insurance_provider),
            _fmt(a.insurance_policy_number),
            _fmt(a.insurance_expiry),
            insurance_alert(a, today).value,
        ])
    return buf.getvalue()
