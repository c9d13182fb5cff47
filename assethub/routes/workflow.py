import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_actor
from ..schemas.workflow import (
    AssetRequestCreate,
    AssetRequestDecide,
    AssetRequestFulfill,
    AssetRequestResponse,
    IssueReportCreate,
    IssueReportResponse,
    IssueResolve,
    IssueStatus,
    RequestStatus,
)
from ..services import issue_workflow, request_workflow
from ..services.permissions import ActorContext


router = APIRouter(tags=["workflow"])


# ---------- ASSET REQUESTS ----------
@router.get("/requests", response_model=List[AssetRequestResponse])
def list_requests(
    status: Optional[RequestStatus] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """Admins see every request, employees their own"""
    return request_workflow.list_requests(db, actor, status)


@router.get("/requests/{request_id}", response_model=AssetRequestResponse)
def get_request(request_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return request_workflow.get_request(db, actor, request_id)


@router.post("/requests", response_model=AssetRequestResponse)
def submit_request(payload: AssetRequestCreate, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return request_workflow.submit_request(db, actor, payload)


@router.post("/requests/{request_id}/decide", response_model=AssetRequestResponse)
def decide_request(
    request_id: uuid.UUID,
    payload: AssetRequestDecide,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return request_workflow.decide_request(db, actor, request_id, payload.outcome, payload.notes)


@router.post("/requests/{request_id}/cancel", response_model=AssetRequestResponse)
def cancel_request(request_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return request_workflow.cancel_request(db, actor, request_id)


@router.post("/requests/{request_id}/fulfill", response_model=AssetRequestResponse)
def fulfill_request(
    request_id: uuid.UUID,
    payload: AssetRequestFulfill = AssetRequestFulfill(),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return request_workflow.fulfill_request(db, actor, request_id, payload.asset_id, payload.notes)


# ---------- ISSUE REPORTS ----------
@router.get("/issues", response_model=List[IssueReportResponse])
def list_issues(
    status: Optional[IssueStatus] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return issue_workflow.list_issues(db, actor, status)


@router.get("/issues/{issue_id}", response_model=IssueReportResponse)
def get_issue(issue_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return issue_workflow.get_issue(db, actor, issue_id)


@router.post("/issues", response_model=IssueReportResponse)
def report_issue(payload: IssueReportCreate, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    """Report a problem with an asset currently assigned to the caller"""
    return issue_workflow.report_issue(db, actor, payload)


@router.post("/issues/{issue_id}/start", response_model=IssueReportResponse)
def start_issue(issue_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return issue_workflow.start_work(db, actor, issue_id)


@router.post("/issues/{issue_id}/resolve", response_model=IssueReportResponse)
def resolve_issue(
    issue_id: uuid.UUID,
    payload: IssueResolve = IssueResolve(),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return issue_workflow.resolve_issue(db, actor, issue_id, payload.notes)


@router.post("/issues/{issue_id}/close", response_model=IssueReportResponse)
def close_issue(
    issue_id: uuid.UUID,
    payload: IssueResolve = IssueResolve(),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return issue_workflow.close_issue(db, actor, issue_id, payload.notes)


@router.post("/issues/{issue_id}/cancel", response_model=IssueReportResponse)
def cancel_issue(issue_id: uuid.UUID, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return issue_workflow.cancel_issue(db, actor, issue_id)
