import os
import uuid
from datetime import date, datetime, timedelta, timezone

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT", "10000/minute")
os.environ.setdefault("WARRANTY_API_KEY", "test-key")

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from assethub.config import settings
from assethub.db import Base, enable_sqlite_foreign_keys, get_db
from assethub.models.models import Asset, Category, Department, Maintenance, User
from assethub.services import events
from assethub.services.permissions import ActorContext


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def today() -> date:
    return date(2025, 6, 15)


# ---------- factories ----------
@pytest.fixture
def make_user(db):
    def _make(role: str = "user", email: str = None, department_id=None) -> User:
        uid = uuid.uuid4()
        user = User(
            id=uid,
            email=email or f"{uid.hex[:8]}@example.com",
            role=role,
            department_id=department_id,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def category(db) -> Category:
    row = Category(name="Laptops")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def department(db) -> Department:
    row = Department(name="IT")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def make_asset(db, category, department):
    def _make(**overrides) -> Asset:
        fields = dict(
            name="ThinkPad T14",
            category_id=category.id,
            department_id=department.id,
            date_purchased=date(2025, 1, 10),
            cost=1200,
            status="available",
        )
        fields.update(overrides)
        asset = Asset(**fields)
        db.add(asset)
        db.commit()
        db.refresh(asset)
        return asset

    return _make


@pytest.fixture
def make_maintenance(db):
    def _make(asset, scheduled_date: date, status: str = "pending", **overrides) -> Maintenance:
        record = Maintenance(
            asset_id=asset.id,
            maintenance_type=overrides.pop("maintenance_type", "scheduled"),
            scheduled_date=scheduled_date,
            status=status,
            cost=overrides.pop("cost", 0),
            **overrides,
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user(role="admin", email="admin@example.com")


@pytest.fixture
def employee(make_user) -> User:
    return make_user(role="user", email="employee@example.com")


@pytest.fixture
def admin_actor(admin) -> ActorContext:
    return ActorContext.from_user(admin)


@pytest.fixture
def employee_actor(employee) -> ActorContext:
    return ActorContext.from_user(employee)


# ---------- events ----------
class RecordingSink:
    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)

    @property
    def names(self):
        return [e.name for e in self.events]


@pytest.fixture
def sink():
    recorder = RecordingSink()
    events.register_sink(recorder)
    yield recorder
    events.unregister_sink(recorder)


# ---------- HTTP ----------
def mint_token(user_id, email: str, expires_in: int = 3600, **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": settings.auth_jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    payload.update(claims)
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {mint_token(user.id, user.email)}"}


@pytest.fixture
def client(engine):
    from assethub.main import app

    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    def _override_get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
