"""Dashboard statistics for the admin overview and the employee home page."""
from collections import Counter
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.models import Asset, AssetAssignment, AssetRequest, Category, Department, IssueReport, User
from ..schemas.dashboard import (
    ActivityItem,
    ActivityType,
    AdminDashboardResponse,
    MonthlySpend,
    UserDashboardResponse,
)
from ..schemas.workflow import IssueStatus, RequestStatus
from .alerts import (
    asset_response,
    current_date,
    insurance_expiring_assets,
    overdue_maintenance,
    upcoming_maintenance,
    warranty_expiring_assets,
)
from .permissions import ActorContext, require_admin


MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
OPEN_ISSUE_STATUSES = (IssueStatus.open.value, IssueStatus.in_progress.value)


def monthly_spending(assets: List[Asset], year: int) -> List[MonthlySpend]:
    """Purchase spend per calendar month of year (by date_purchased)."""
    spend = {m: 0.0 for m in MONTHS}
    count = {m: 0 for m in MONTHS}
    for asset in assets:
        purchased = asset.date_purchased or asset.created_at.date()
        if purchased.year != year:
            continue
        month = MONTHS[purchased.month - 1]
        spend[month] += float(asset.cost or 0)
        count[month] += 1
    return [MonthlySpend(month=m, spend=spend[m], assets=count[m]) for m in MONTHS]


def admin_dashboard(db: Session, actor: ActorContext, today: Optional[date] = None) -> AdminDashboardResponse:
    require_admin(actor)
    today = today or current_date()

    assets = db.query(Asset).order_by(Asset.created_at.desc()).all()
    by_category = Counter(a.category.name if a.category else "Unknown" for a in assets)
    by_department = Counter(a.department.name if a.department else "Unknown" for a in assets)
    by_status = Counter(a.status for a in assets)

    return AdminDashboardResponse(
        total_users=db.query(User).count(),
        total_assets=len(assets),
        total_categories=db.query(Category).count(),
        total_departments=db.query(Department).count(),
        total_cost=sum(float(a.cost or 0) for a in assets),
        assets_by_category=dict(by_category),
        assets_by_department=dict(by_department),
        assets_by_status=dict(by_status),
        recent_assets=[asset_response(a, today) for a in assets[:5]],
        monthly_spending=monthly_spending(assets, today.year),
        pending_requests=db.query(AssetRequest).filter(AssetRequest.status == RequestStatus.pending.value).count(),
        open_issues=db.query(IssueReport).filter(IssueReport.status.in_(OPEN_ISSUE_STATUSES)).count(),
        warranty_expiring=len(warranty_expiring_assets(db, actor, today=today)),
        insurance_expiring=len(insurance_expiring_assets(db, actor, today=today)),
        upcoming_maintenance=len(upcoming_maintenance(db, actor, today=today)),
        overdue_maintenance=len(overdue_maintenance(db, actor, today=today)),
    )


def user_dashboard(db: Session, actor: ActorContext, today: Optional[date] = None) -> UserDashboardResponse:
    today = today or current_date()
    total_assets, total_value = (
        db.query(func.count(Asset.id), func.coalesce(func.sum(Asset.cost), 0))
        .filter(Asset.assigned_to == actor.user_id)
        .one()
    )
    return UserDashboardResponse(
        total_assets=total_assets,
        total_value=float(total_value or 0),
        pending_requests=(
            db.query(AssetRequest)
            .filter(AssetRequest.user_id == actor.user_id, AssetRequest.status == RequestStatus.pending.value)
            .count()
        ),
        open_issues=(
            db.query(IssueReport)
            .filter(IssueReport.user_id == actor.user_id, IssueReport.status.in_(OPEN_ISSUE_STATUSES))
            .count()
        ),
        # Aggregates are scoped to the actor's own assignments
        warranty_expiring=len(warranty_expiring_assets(db, actor, today=today)),
        insurance_expiring=len(insurance_expiring_assets(db, actor, today=today)),
    )


def dashboard(db: Session, actor: ActorContext, today: Optional[date] = None):
    if actor.is_admin:
        return admin_dashboard(db, actor, today)
    return user_dashboard(db, actor, today)


LEDGER_ACTIONS = {
    "assigned": "Asset Assigned",
    "returned": "Asset Returned",
    "transferred": "Asset Transferred",
    "sent_to_repair": "Sent To Repair",
    "restored": "Restored From Repair",
    "retired": "Asset Retired",
}


def _utc_naive(item: ActivityItem) -> datetime:
    # SQLite hands back naive UTC, Postgres aware; compare on one footing
    ts = item.timestamp
    return ts.astimezone(timezone.utc).replace(tzinfo=None) if ts.tzinfo else ts


def recent_activity(db: Session, actor: ActorContext, limit: int = 50) -> List[ActivityItem]:
    """
    Admin activity log, newest first.

    Merges the latest creations of assets, users, categories and departments
    with the assignment ledger; each source contributes at most `limit` rows
    before the merged list is cut to `limit`.
    """
    require_admin(actor)
    items: List[ActivityItem] = []

    for a in db.query(Asset).order_by(Asset.created_at.desc()).limit(limit):
        items.append(ActivityItem(
            id=f"asset-{a.id}", action="Asset Created", description=f"{a.name} was added",
            entity="Asset", type=ActivityType.create, timestamp=a.created_at,
        ))
    for u in db.query(User).order_by(User.created_at.desc()).limit(limit):
        items.append(ActivityItem(
            id=f"user-{u.id}", action="User Registered", description=f"{u.email} joined the platform",
            entity="User", type=ActivityType.create, timestamp=u.created_at,
        ))
    for c in db.query(Category).order_by(Category.created_at.desc()).limit(limit):
        items.append(ActivityItem(
            id=f"category-{c.id}", action="Category Created", description=f'Category "{c.name}" was created',
            entity="Category", type=ActivityType.create, timestamp=c.created_at,
        ))
    for d in db.query(Department).order_by(Department.created_at.desc()).limit(limit):
        items.append(ActivityItem(
            id=f"department-{d.id}", action="Department Created", description=f'Department "{d.name}" was created',
            entity="Department", type=ActivityType.create, timestamp=d.created_at,
        ))

    ledger = (
        db.query(AssetAssignment, Asset.name)
        .join(Asset, Asset.id == AssetAssignment.asset_id)
        .order_by(AssetAssignment.created_at.desc())
        .limit(limit)
    )
    for row, asset_name in ledger:
        items.append(ActivityItem(
            id=f"ledger-{row.id}",
            action=LEDGER_ACTIONS.get(row.action, row.action),
            description=f"{asset_name}: {row.action.replace('_', ' ')}",
            entity="Asset",
            type=ActivityType.lifecycle,
            timestamp=row.created_at,
        ))

    items.sort(key=_utc_naive, reverse=True)
    return items[:limit]
