# (c) Copyright Datacraft, 2026
"""Approval workflow API endpoints."""
import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ledgerflow.core.db.engine import get_db
from ledgerflow.core.services.approval_engine import ApprovalEngine
from .db.orm import ApprovalRequest
from .dependencies import build_engine
from .exceptions import ApprovalError
from . import schema

router = APIRouter(
	prefix="/approvals",
	tags=["approvals"],
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
	"validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
	"conflict": status.HTTP_409_CONFLICT,
	"not_found": status.HTTP_404_NOT_FOUND,
	"no_applicable_workflow": status.HTTP_404_NOT_FOUND,
	"unresolvable": status.HTTP_424_FAILED_DEPENDENCY,
	"unsupported": status.HTTP_400_BAD_REQUEST,
}


def get_approval_engine(db: Session = Depends(get_db)) -> ApprovalEngine:
	"""Get approval engine instance."""
	return build_engine(db)


def get_tenant_id(x_tenant_id: Annotated[str, Header()]) -> str:
	return x_tenant_id


Engine = Annotated[ApprovalEngine, Depends(get_approval_engine)]
TenantID = Annotated[str, Depends(get_tenant_id)]


def _http_error(error: ApprovalError) -> HTTPException:
	return HTTPException(
		status_code=ERROR_STATUS_CODES.get(error.kind, status.HTTP_400_BAD_REQUEST),
		detail=error.to_dict(),
	)


def _workflow_info(definition: schema.WorkflowDefinition) -> schema.WorkflowInfo:
	return schema.WorkflowInfo.model_validate(definition.model_dump())


def _request_detail(request: ApprovalRequest) -> schema.ApprovalRequestDetail:
	plan = schema.RequestPlan.model_validate(request.plan)
	info = schema.ApprovalRequestInfo.model_validate(request)
	return schema.ApprovalRequestDetail(
		**info.model_dump(),
		assignments=[
			schema.StepAssignmentInfo.model_validate(a) for a in request.assignments
		],
		outcomes=plan.outcomes,
		skipped_steps=plan.skipped_steps,
	)


# ============================================================================
# Workflow definitions
# ============================================================================

@router.post("/companies/{company_id}/workflows", status_code=status.HTTP_201_CREATED)
def create_workflow(
	company_id: str,
	body: schema.WorkflowDefinitionBase,
	tenant_id: TenantID,
	engine: Engine,
	x_user_id: Annotated[str | None, Header()] = None,
) -> schema.WorkflowDefinition:
	"""Create an approval workflow scoped to one company."""
	payload = {**body.model_dump(), "tenant_id": tenant_id, "company_id": company_id}
	try:
		return engine.create_workflow(payload, created_by=x_user_id)
	except ApprovalError as e:
		raise _http_error(e)


@router.get("/workflows")
def list_workflows(
	tenant_id: TenantID,
	engine: Engine,
	company_id: str | None = None,
	entity_type: schema.EntityType | None = None,
	active_only: bool = False,
) -> schema.WorkflowListResponse:
	"""List approval workflows."""
	definitions = engine.list_workflows(
		tenant_id,
		company_id=company_id,
		entity_type=entity_type,
		active_only=active_only,
	)
	return schema.WorkflowListResponse(
		items=[_workflow_info(d) for d in definitions],
		total=len(definitions),
	)


@router.get("/workflows/{workflow_id}")
def get_workflow(
	workflow_id: UUID,
	tenant_id: TenantID,
	engine: Engine,
) -> schema.WorkflowDefinition:
	try:
		return engine.get_workflow(tenant_id, workflow_id)
	except ApprovalError as e:
		raise _http_error(e)


@router.put("/workflows/{workflow_id}")
def update_workflow(
	workflow_id: UUID,
	body: schema.WorkflowDefinitionUpdate,
	tenant_id: TenantID,
	engine: Engine,
) -> schema.WorkflowDefinition:
	"""Replace a workflow; requests already in flight are unaffected."""
	try:
		return engine.update_workflow(tenant_id, workflow_id, body)
	except ApprovalError as e:
		raise _http_error(e)


@router.post("/workflows/{workflow_id}/deactivate")
def deactivate_workflow(
	workflow_id: UUID,
	tenant_id: TenantID,
	engine: Engine,
) -> schema.WorkflowDefinition:
	try:
		return engine.deactivate_workflow(tenant_id, workflow_id)
	except ApprovalError as e:
		raise _http_error(e)


# ============================================================================
# Approval requests
# ============================================================================

@router.post("/requests", status_code=status.HTTP_201_CREATED)
def submit_for_approval(
	body: schema.SubmitForApprovalRequest,
	tenant_id: TenantID,
	engine: Engine,
) -> schema.ApprovalRequestDetail:
	"""Submit an entity for approval."""
	try:
		request = engine.submit_for_approval(
			tenant_id,
			body.company_id,
			body.entity_type,
			body.entity_id,
			entity_sub_type=body.entity_sub_type,
			requested_by=body.requested_by,
			metadata=body.metadata,
		)
	except ApprovalError as e:
		raise _http_error(e)
	return _request_detail(request)


@router.get("/requests")
def list_requests(
	tenant_id: TenantID,
	engine: Engine,
	company_id: str | None = None,
	entity_type: schema.EntityType | None = None,
	status: str | None = None,
	requested_by: str | None = None,
	page: int = 1,
	page_size: int = 20,
) -> schema.ApprovalRequestListResponse:
	"""List approval requests, newest first."""
	try:
		return engine.list_requests(
			tenant_id,
			company_id=company_id,
			entity_type=entity_type,
			status=status,
			requested_by=requested_by,
			page=page,
			page_size=page_size,
		)
	except ApprovalError as e:
		raise _http_error(e)


@router.get("/requests/{request_id}")
def get_request(
	request_id: UUID,
	tenant_id: TenantID,
	engine: Engine,
) -> schema.ApprovalRequestDetail:
	try:
		request = engine.get_request(tenant_id, request_id)
	except ApprovalError as e:
		raise _http_error(e)
	return _request_detail(request)


@router.post("/requests/{request_id}/actions")
def process_action(
	request_id: UUID,
	body: schema.ActionRequest,
	tenant_id: TenantID,
	engine: Engine,
) -> schema.ApprovalRequestDetail:
	"""Approve, reject or escalate a pending assignment."""
	try:
		request = engine.process_action(
			tenant_id,
			request_id,
			body.assignment_id,
			body.action,
			comments=body.comments,
			escalation_reason=body.escalation_reason,
		)
	except ApprovalError as e:
		raise _http_error(e)
	return _request_detail(request)


@router.post("/requests/{request_id}/reassign")
def reassign_escalated(
	request_id: UUID,
	body: schema.ReassignRequest,
	tenant_id: TenantID,
	engine: Engine,
) -> schema.ApprovalRequestDetail:
	"""Hand an escalated request to a named approver."""
	try:
		request = engine.reassign_escalated(
			tenant_id,
			request_id,
			body.user_id,
			assigned_by=body.assigned_by,
			comments=body.comments,
		)
	except ApprovalError as e:
		raise _http_error(e)
	return _request_detail(request)


@router.get("/entities/{entity_type}/{entity_id}/requests")
def list_requests_for_entity(
	entity_type: schema.EntityType,
	entity_id: str,
	tenant_id: TenantID,
	engine: Engine,
) -> list[schema.ApprovalRequestInfo]:
	requests = engine.list_requests_for_entity(tenant_id, entity_type, entity_id)
	return [schema.ApprovalRequestInfo.model_validate(r) for r in requests]


@router.get("/pending")
def list_pending_assignments(
	user_id: str,
	tenant_id: TenantID,
	engine: Engine,
) -> list[schema.StepAssignmentInfo]:
	"""Pending assignments for an approver."""
	assignments = engine.list_pending_assignments(tenant_id, user_id)
	return [schema.StepAssignmentInfo.model_validate(a) for a in assignments]


@router.get("/stats")
def approval_stats(
	tenant_id: TenantID,
	engine: Engine,
	company_id: str | None = None,
	since: datetime | None = None,
	until: datetime | None = None,
) -> schema.ApprovalStats:
	return engine.approval_stats(tenant_id, company_id=company_id, since=since, until=until)
