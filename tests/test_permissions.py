import uuid
from types import SimpleNamespace

import pytest

from assethub.errors import Unauthorized
from assethub.models.models import Asset
from assethub.services.permissions import (
    ActorContext,
    EntityKind,
    Operation,
    can_mutate,
    can_view,
    require_mutate,
    scope_query,
)


ADMIN = ActorContext(user_id=uuid.uuid4(), role="admin")
ALICE = ActorContext(user_id=uuid.uuid4(), role="user")
BOB = ActorContext(user_id=uuid.uuid4(), role="user")


def _asset(assigned_to=None, status="available"):
    return SimpleNamespace(id=uuid.uuid4(), assigned_to=assigned_to, status=status)


def test_admin_sees_and_mutates_everything():
    for kind in EntityKind:
        assert can_view(ADMIN, kind, SimpleNamespace(id=uuid.uuid4(), user_id=None, assigned_to=None))
    assert can_mutate(ADMIN, EntityKind.asset, _asset(), Operation.assign)
    assert can_mutate(ADMIN, EntityKind.maintenance, None, Operation.create)
    assert can_mutate(ADMIN, EntityKind.issue_report, SimpleNamespace(user_id=ALICE.user_id), Operation.resolve)


def test_user_sees_only_assets_assigned_to_them():
    assert can_view(ALICE, EntityKind.asset, _asset(assigned_to=ALICE.user_id))
    assert not can_view(ALICE, EntityKind.asset, _asset(assigned_to=BOB.user_id))
    assert not can_view(ALICE, EntityKind.asset, _asset())


def test_user_reads_ledger_and_documents_of_own_assets():
    mine = _asset(assigned_to=ALICE.user_id)
    theirs = _asset(assigned_to=BOB.user_id)
    for kind in (EntityKind.asset_assignment, EntityKind.asset_document):
        assert can_view(ALICE, kind, mine)
        assert not can_view(ALICE, kind, theirs)


def test_lookups_are_read_only_for_users():
    assert can_view(ALICE, EntityKind.category)
    assert can_view(ALICE, EntityKind.department)
    assert not can_mutate(ALICE, EntityKind.category, None, Operation.create)
    assert not can_mutate(ALICE, EntityKind.department, None, Operation.delete)


def test_user_has_no_maintenance_access():
    assert not can_view(ALICE, EntityKind.maintenance)
    assert not can_view(ALICE, EntityKind.maintenance, SimpleNamespace(asset_id=uuid.uuid4()))
    assert not can_mutate(ALICE, EntityKind.maintenance, None, Operation.create)


def test_requests_and_issues_are_owner_scoped():
    own = SimpleNamespace(user_id=ALICE.user_id)
    other = SimpleNamespace(user_id=BOB.user_id)
    for kind in (EntityKind.asset_request, EntityKind.issue_report):
        assert can_view(ALICE, kind, own)
        assert not can_view(ALICE, kind, other)
        assert can_mutate(ALICE, kind, own, Operation.create)
        assert not can_mutate(ALICE, kind, other, Operation.create)
    assert not can_mutate(ALICE, EntityKind.asset_request, own, Operation.decide)
    assert not can_mutate(ALICE, EntityKind.issue_report, own, Operation.resolve)


def test_only_requester_cancels_a_request():
    own = SimpleNamespace(user_id=ALICE.user_id)
    assert can_mutate(ALICE, EntityKind.asset_request, own, Operation.cancel)
    assert not can_mutate(BOB, EntityKind.asset_request, own, Operation.cancel)
    assert not can_mutate(ADMIN, EntityKind.asset_request, own, Operation.cancel)


def test_profile_updates_and_admin_self_protection():
    alice_row = SimpleNamespace(id=ALICE.user_id)
    admin_row = SimpleNamespace(id=ADMIN.user_id)

    assert can_mutate(ALICE, EntityKind.user, alice_row, Operation.update_profile)
    assert not can_mutate(ALICE, EntityKind.user, SimpleNamespace(id=BOB.user_id), Operation.update_profile)
    assert not can_mutate(ALICE, EntityKind.user, alice_row, Operation.update)

    assert can_mutate(ADMIN, EntityKind.user, alice_row, Operation.update)
    assert can_mutate(ADMIN, EntityKind.user, alice_row, Operation.delete)
    assert not can_mutate(ADMIN, EntityKind.user, admin_row, Operation.update)
    assert not can_mutate(ADMIN, EntityKind.user, admin_row, Operation.delete)
    assert can_mutate(ADMIN, EntityKind.user, admin_row, Operation.update_profile)


def test_user_creates_only_unassigned_assets():
    draft = SimpleNamespace(status="available", assigned_to=None)
    assigned = SimpleNamespace(status="assigned", assigned_to=ALICE.user_id)
    assert can_mutate(ALICE, EntityKind.asset, draft, Operation.create)
    assert not can_mutate(ALICE, EntityKind.asset, assigned, Operation.create)
    assert can_mutate(ADMIN, EntityKind.asset, assigned, Operation.create)


@pytest.mark.parametrize(
    "operation",
    [Operation.assign, Operation.return_asset, Operation.transfer, Operation.retire, Operation.delete],
)
def test_user_cannot_drive_asset_lifecycle(operation):
    mine = _asset(assigned_to=ALICE.user_id, status="assigned")
    assert not can_mutate(ALICE, EntityKind.asset, mine, operation)
    with pytest.raises(Unauthorized):
        require_mutate(ALICE, EntityKind.asset, mine, operation)


def test_scope_query_rejects_maintenance_lists_for_users(db):
    with pytest.raises(Unauthorized):
        scope_query(ALICE, EntityKind.maintenance, db.query(Asset))


def test_scope_query_leaves_admin_queries_untouched(db):
    query = db.query(Asset)
    assert scope_query(ADMIN, EntityKind.asset, query) is query
