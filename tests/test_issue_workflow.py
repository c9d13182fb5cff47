import pytest

from assethub.errors import Forbidden, InvalidTransition, NotFound, Unauthorized
from assethub.models.models import IssueReport
from assethub.schemas.workflow import IssueReportCreate
from assethub.services import issue_workflow


def _payload(asset, **overrides):
    fields = dict(asset_id=asset.id, issue_type="malfunction", title="Screen flickers", description="Since Monday")
    fields.update(overrides)
    return IssueReportCreate(**fields)


def test_report_on_someone_elses_asset_is_forbidden(db, make_asset, make_user, employee_actor):
    other = make_user()
    asset = make_asset(status="assigned", assigned_to=other.id)

    with pytest.raises(Forbidden):
        issue_workflow.report_issue(db, employee_actor, _payload(asset))

    assert db.query(IssueReport).count() == 0


def test_report_on_unassigned_asset_is_forbidden(db, make_asset, employee_actor):
    asset = make_asset()
    with pytest.raises(Forbidden):
        issue_workflow.report_issue(db, employee_actor, _payload(asset))


def test_forbidden_is_an_authorization_error(db, make_asset, employee_actor):
    asset = make_asset()
    with pytest.raises(Unauthorized):
        issue_workflow.report_issue(db, employee_actor, _payload(asset))


def test_assignee_reports_issue(db, make_asset, employee, employee_actor, sink):
    asset = make_asset(status="assigned", assigned_to=employee.id)

    issue = issue_workflow.report_issue(db, employee_actor, _payload(asset))

    assert issue.status == "open"
    assert issue.severity == "medium"
    assert issue.user_id == employee.id
    assert sink.names == ["IssueReported"]


def test_report_on_missing_asset(db, make_asset, employee_actor):
    asset = make_asset()
    payload = _payload(asset)
    db.delete(asset)
    db.commit()
    with pytest.raises(NotFound):
        issue_workflow.report_issue(db, employee_actor, payload)


def test_resolution_flow(db, make_asset, employee, employee_actor, admin_actor):
    asset = make_asset(status="assigned", assigned_to=employee.id)
    issue = issue_workflow.report_issue(db, employee_actor, _payload(asset))

    assert issue_workflow.start_work(db, admin_actor, issue.id).status == "in_progress"
    with pytest.raises(InvalidTransition):
        issue_workflow.start_work(db, admin_actor, issue.id)

    resolved = issue_workflow.resolve_issue(db, admin_actor, issue.id, "Replaced cable")
    assert resolved.status == "resolved"
    assert resolved.resolved_by == admin_actor.user_id
    assert resolved.resolution_notes == "Replaced cable"
    assert resolved.resolved_at is not None

    for action in (issue_workflow.close_issue, issue_workflow.resolve_issue):
        with pytest.raises(InvalidTransition):
            action(db, admin_actor, issue.id)
    with pytest.raises(InvalidTransition):
        issue_workflow.cancel_issue(db, admin_actor, issue.id)


def test_close_sets_resolution_fields(db, make_asset, employee, employee_actor, admin_actor):
    asset = make_asset(status="assigned", assigned_to=employee.id)
    issue = issue_workflow.report_issue(db, employee_actor, _payload(asset))

    closed = issue_workflow.close_issue(db, admin_actor, issue.id, "duplicate")
    assert closed.status == "closed"
    assert closed.resolution_notes == "duplicate"


def test_only_admin_moves_issues(db, make_asset, employee, employee_actor):
    asset = make_asset(status="assigned", assigned_to=employee.id)
    issue = issue_workflow.report_issue(db, employee_actor, _payload(asset))

    for action in (issue_workflow.start_work, issue_workflow.cancel_issue):
        with pytest.raises(Unauthorized):
            action(db, employee_actor, issue.id)


def test_list_issues_scoped(db, make_asset, employee, employee_actor, admin_actor):
    asset = make_asset(status="assigned", assigned_to=employee.id)
    issue = issue_workflow.report_issue(db, employee_actor, _payload(asset))
    issue_workflow.cancel_issue(db, admin_actor, issue.id)

    assert [i.id for i in issue_workflow.list_issues(db, employee_actor)] == [issue.id]
    assert issue_workflow.list_issues(db, admin_actor, "open") == []
    assert len(issue_workflow.list_issues(db, admin_actor, "cancelled")) == 1
