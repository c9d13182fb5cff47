import uuid

import pytest

from assethub.errors import InvalidTransition, NotFound, Unauthorized
from assethub.schemas.workflow import AssetRequestCreate
from assethub.services import request_workflow as requests_wf


def _submit(db, actor, **overrides):
    fields = dict(request_type="new", title="Need a laptop", justification="new hire")
    fields.update(overrides)
    return requests_wf.submit_request(db, actor, AssetRequestCreate(**fields))


def test_submit_defaults(db, employee_actor, sink):
    req = _submit(db, employee_actor)
    assert req.status == "pending"
    assert req.priority == "medium"
    assert req.user_id == employee_actor.user_id
    assert sink.names == ["RequestSubmitted"]


def test_approve_then_owner_cannot_cancel(db, employee_actor, admin_actor):
    req = _submit(db, employee_actor)

    decided = requests_wf.decide_request(db, admin_actor, req.id, "approved", "ok")

    assert decided.status == "approved"
    assert decided.reviewed_by == admin_actor.user_id
    assert decided.admin_notes == "ok"
    assert decided.reviewed_at is not None

    with pytest.raises(InvalidTransition) as exc:
        requests_wf.cancel_request(db, employee_actor, req.id)
    assert exc.value.current_state == "approved"


def test_second_decision_fails(db, employee_actor, admin_actor):
    req = _submit(db, employee_actor)
    requests_wf.decide_request(db, admin_actor, req.id, "approved")

    with pytest.raises(InvalidTransition):
        requests_wf.decide_request(db, admin_actor, req.id, "approved")
    with pytest.raises(InvalidTransition):
        requests_wf.decide_request(db, admin_actor, req.id, "denied")


def test_employee_cannot_decide(db, employee_actor):
    req = _submit(db, employee_actor)
    with pytest.raises(Unauthorized):
        requests_wf.decide_request(db, employee_actor, req.id, "approved")


def test_cancel_only_by_owner_while_pending(db, employee_actor, admin_actor, make_user):
    from assethub.services.permissions import ActorContext

    req = _submit(db, employee_actor)
    stranger = ActorContext.from_user(make_user())

    with pytest.raises(Unauthorized):
        requests_wf.cancel_request(db, stranger, req.id)
    with pytest.raises(Unauthorized):
        requests_wf.cancel_request(db, admin_actor, req.id)

    assert requests_wf.cancel_request(db, employee_actor, req.id).status == "cancelled"
    with pytest.raises(InvalidTransition):
        requests_wf.cancel_request(db, employee_actor, req.id)


def test_fulfill_requires_approval(db, employee_actor, admin_actor, make_asset):
    req = _submit(db, employee_actor)
    asset = make_asset()

    with pytest.raises(InvalidTransition):
        requests_wf.fulfill_request(db, admin_actor, req.id, asset.id)

    requests_wf.decide_request(db, admin_actor, req.id, "approved")
    done = requests_wf.fulfill_request(db, admin_actor, req.id, asset.id)
    assert done.status == "fulfilled"
    assert done.fulfilled_asset_id == asset.id


def test_fulfill_with_unknown_asset(db, employee_actor, admin_actor):
    req = _submit(db, employee_actor)
    requests_wf.decide_request(db, admin_actor, req.id, "approved")
    with pytest.raises(NotFound):
        requests_wf.fulfill_request(db, admin_actor, req.id, uuid.uuid4())


def test_listing_is_scoped(db, employee_actor, admin_actor, make_user):
    from assethub.services.permissions import ActorContext

    other = ActorContext.from_user(make_user())
    mine = _submit(db, employee_actor)
    _submit(db, other, title="Monitor")

    assert [r.id for r in requests_wf.list_requests(db, employee_actor)] == [mine.id]
    assert len(requests_wf.list_requests(db, admin_actor)) == 2
    assert requests_wf.list_requests(db, admin_actor, "approved") == []
    with pytest.raises(Unauthorized):
        requests_wf.get_request(db, other, mine.id)
