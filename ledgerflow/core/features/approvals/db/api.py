# (c) Copyright Datacraft, 2026
"""Approval workflows database API."""
import uuid
from datetime import datetime
from typing import Iterable

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session, selectinload

from ledgerflow.core.utils.tz import utc_now
from ..schema import (
	WorkflowDefinition,
	WorkflowDefinitionCreate,
	WorkflowDefinitionUpdate,
	EntityType,
)
from .orm import (
	ApprovalWorkflow,
	ApprovalRequest,
	StepAssignment,
	AssignmentStatus,
	RequestStatus,
)


def to_definition(workflow: ApprovalWorkflow) -> WorkflowDefinition:
	"""Validate a stored workflow row into an immutable definition."""
	return WorkflowDefinition(
		id=workflow.id,
		tenant_id=workflow.tenant_id,
		company_id=workflow.company_id,
		name=workflow.name,
		description=workflow.description,
		entity_type=workflow.entity_type,
		entity_sub_type=workflow.entity_sub_type,
		is_active=workflow.is_active,
		priority=workflow.priority,
		version=workflow.version,
		steps=workflow.steps,
		conditions=workflow.conditions or [],
		auto_approval=workflow.auto_approval,
		escalation_rules=workflow.escalation_rules or [],
		created_at=workflow.created_at,
		updated_at=workflow.updated_at,
	)


def _body_columns(data: WorkflowDefinitionCreate | WorkflowDefinitionUpdate) -> dict:
	dumped = data.model_dump(mode="json")
	return {
		"name": dumped["name"],
		"description": dumped["description"],
		"entity_type": dumped["entity_type"],
		"entity_sub_type": dumped["entity_sub_type"],
		"is_active": dumped["is_active"],
		"priority": dumped["priority"],
		"steps": dumped["steps"],
		"conditions": dumped["conditions"],
		"auto_approval": dumped["auto_approval"],
		"escalation_rules": dumped["escalation_rules"],
	}


def create_workflow(
	session: Session,
	data: WorkflowDefinitionCreate,
	created_by: str | None = None,
) -> ApprovalWorkflow:
	"""Create a new workflow definition."""
	now = utc_now()
	workflow = ApprovalWorkflow(
		tenant_id=data.tenant_id,
		company_id=data.company_id,
		version=1,
		created_by=created_by,
		created_at=now,
		updated_at=now,
		**_body_columns(data),
	)
	session.add(workflow)
	session.flush()
	return workflow


def get_workflow(
	session: Session,
	tenant_id: str,
	workflow_id: uuid.UUID,
) -> ApprovalWorkflow | None:
	"""Get workflow by ID within a tenant."""
	stmt = select(ApprovalWorkflow).where(
		and_(
			ApprovalWorkflow.id == workflow_id,
			ApprovalWorkflow.tenant_id == tenant_id,
		)
	)
	return session.scalar(stmt)


def list_workflows(
	session: Session,
	tenant_id: str,
	company_id: str | None = None,
	entity_type: EntityType | None = None,
	active_only: bool = False,
) -> list[ApprovalWorkflow]:
	"""List workflows for a tenant."""
	stmt = select(ApprovalWorkflow).where(ApprovalWorkflow.tenant_id == tenant_id)
	if company_id:
		stmt = stmt.where(ApprovalWorkflow.company_id == company_id)
	if entity_type:
		stmt = stmt.where(ApprovalWorkflow.entity_type == EntityType(entity_type).value)
	if active_only:
		stmt = stmt.where(ApprovalWorkflow.is_active.is_(True))
	stmt = stmt.order_by(ApprovalWorkflow.name.asc())
	return list(session.scalars(stmt))


def list_active_definitions(
	session: Session,
	tenant_id: str,
	company_id: str,
	entity_type: EntityType,
) -> list[WorkflowDefinition]:
	"""Active definitions in one (tenant, company, entity type) scope."""
	workflows = list_workflows(
		session,
		tenant_id=tenant_id,
		company_id=company_id,
		entity_type=entity_type,
		active_only=True,
	)
	return [to_definition(w) for w in workflows]


def update_workflow(
	session: Session,
	tenant_id: str,
	workflow_id: uuid.UUID,
	data: WorkflowDefinitionUpdate,
) -> ApprovalWorkflow | None:
	"""Replace the body of a workflow and bump its version."""
	workflow = get_workflow(session, tenant_id, workflow_id)
	if not workflow:
		return None

	for key, value in _body_columns(data).items():
		setattr(workflow, key, value)
	workflow.version = workflow.version + 1
	workflow.updated_at = utc_now()

	session.flush()
	return workflow


def deactivate_workflow(
	session: Session,
	tenant_id: str,
	workflow_id: uuid.UUID,
) -> ApprovalWorkflow | None:
	"""Soft-deactivate a workflow; requests keep referencing it."""
	workflow = get_workflow(session, tenant_id, workflow_id)
	if not workflow:
		return None

	workflow.is_active = False
	workflow.updated_at = utc_now()

	session.flush()
	return workflow


def get_request(
	session: Session,
	tenant_id: str,
	request_id: uuid.UUID,
	for_update: bool = False,
) -> ApprovalRequest | None:
	"""Get approval request with its assignment history."""
	stmt = (
		select(ApprovalRequest)
		.options(selectinload(ApprovalRequest.assignments))
		.where(
			and_(
				ApprovalRequest.id == request_id,
				ApprovalRequest.tenant_id == tenant_id,
			)
		)
	)
	if for_update:
		stmt = stmt.with_for_update()
	return session.scalar(stmt)


def find_open_request(
	session: Session,
	tenant_id: str,
	entity_type: str,
	entity_id: str,
	open_statuses: Iterable[str],
) -> ApprovalRequest | None:
	stmt = select(ApprovalRequest).where(
		and_(
			ApprovalRequest.tenant_id == tenant_id,
			ApprovalRequest.entity_type == entity_type,
			ApprovalRequest.entity_id == entity_id,
			ApprovalRequest.status.in_(list(open_statuses)),
		)
	).limit(1)
	return session.scalar(stmt)


def list_requests_for_entity(
	session: Session,
	tenant_id: str,
	entity_type: str,
	entity_id: str,
) -> list[ApprovalRequest]:
	"""Every request ever raised for one entity, newest first."""
	stmt = (
		select(ApprovalRequest)
		.options(selectinload(ApprovalRequest.assignments))
		.where(
			and_(
				ApprovalRequest.tenant_id == tenant_id,
				ApprovalRequest.entity_type == entity_type,
				ApprovalRequest.entity_id == entity_id,
			)
		)
		.order_by(ApprovalRequest.requested_at.desc())
	)
	return list(session.scalars(stmt))


def list_pending_assignments(
	session: Session,
	tenant_id: str,
	user_id: str,
) -> list[StepAssignment]:
	"""Pending tasks for an approver."""
	stmt = (
		select(StepAssignment)
		.join(ApprovalRequest, StepAssignment.request_id == ApprovalRequest.id)
		.where(
			and_(
				ApprovalRequest.tenant_id == tenant_id,
				StepAssignment.user_id == user_id,
				StepAssignment.status == AssignmentStatus.PENDING.value,
			)
		)
		.order_by(StepAssignment.assigned_at.asc())
	)
	return list(session.scalars(stmt))


def list_overdue_assignments(
	session: Session,
	now: datetime,
	tenant_id: str | None = None,
) -> list[tuple[str, uuid.UUID, uuid.UUID]]:
	"""(tenant_id, request_id, assignment_id) of pending assignments past due."""
	stmt = (
		select(ApprovalRequest.tenant_id, StepAssignment.request_id, StepAssignment.id)
		.join(ApprovalRequest, StepAssignment.request_id == ApprovalRequest.id)
		.where(
			and_(
				StepAssignment.status == AssignmentStatus.PENDING.value,
				ApprovalRequest.status == RequestStatus.PENDING.value,
				StepAssignment.due_at.is_not(None),
				StepAssignment.due_at < now,
			)
		)
		.order_by(StepAssignment.due_at.asc())
	)
	if tenant_id:
		stmt = stmt.where(ApprovalRequest.tenant_id == tenant_id)
	return [tuple(row) for row in session.execute(stmt)]


def _request_scope(
	stmt,
	tenant_id: str,
	company_id: str | None = None,
	since: datetime | None = None,
	until: datetime | None = None,
):
	stmt = stmt.where(ApprovalRequest.tenant_id == tenant_id)
	if company_id:
		stmt = stmt.where(ApprovalRequest.company_id == company_id)
	if since:
		stmt = stmt.where(ApprovalRequest.requested_at >= since)
	if until:
		stmt = stmt.where(ApprovalRequest.requested_at <= until)
	return stmt


def list_requests(
	session: Session,
	tenant_id: str,
	company_id: str | None = None,
	entity_type: str | None = None,
	status: str | None = None,
	requested_by: str | None = None,
	page: int = 1,
	page_size: int = 20,
) -> tuple[list[ApprovalRequest], int]:
	"""One page of requests, newest first, and the total matching count."""
	filters = []
	if entity_type:
		filters.append(ApprovalRequest.entity_type == entity_type)
	if status:
		filters.append(ApprovalRequest.status == status)
	if requested_by:
		filters.append(ApprovalRequest.requested_by == requested_by)

	count_stmt = _request_scope(
		select(func.count(ApprovalRequest.id)), tenant_id, company_id
	).where(*filters)
	total = session.scalar(count_stmt) or 0

	stmt = (
		_request_scope(select(ApprovalRequest), tenant_id, company_id)
		.where(*filters)
		.order_by(ApprovalRequest.requested_at.desc(), ApprovalRequest.id)
		.offset((page - 1) * page_size)
		.limit(page_size)
	)
	return list(session.scalars(stmt)), total


def count_requests_by_status(
	session: Session,
	tenant_id: str,
	company_id: str | None = None,
	since: datetime | None = None,
	until: datetime | None = None,
) -> dict[str, int]:
	stmt = _request_scope(
		select(ApprovalRequest.status, func.count(ApprovalRequest.id)),
		tenant_id, company_id, since, until,
	).group_by(ApprovalRequest.status)
	return {status: count for status, count in session.execute(stmt)}


def count_requests_by_entity_type(
	session: Session,
	tenant_id: str,
	company_id: str | None = None,
	since: datetime | None = None,
	until: datetime | None = None,
) -> dict[str, int]:
	stmt = _request_scope(
		select(ApprovalRequest.entity_type, func.count(ApprovalRequest.id)),
		tenant_id, company_id, since, until,
	).group_by(ApprovalRequest.entity_type)
	return {entity_type: count for entity_type, count in session.execute(stmt)}


def list_resolution_times(
	session: Session,
	tenant_id: str,
	company_id: str | None = None,
	since: datetime | None = None,
	until: datetime | None = None,
) -> list[tuple[datetime, datetime]]:
	"""(requested_at, resolved_at) of every approved or rejected request."""
	stmt = _request_scope(
		select(ApprovalRequest.requested_at, ApprovalRequest.approved_at, ApprovalRequest.rejected_at),
		tenant_id, company_id, since, until,
	).where(
		ApprovalRequest.status.in_([
			RequestStatus.APPROVED.value,
			RequestStatus.REJECTED.value,
		])
	)
	return [
		(requested_at, approved_at or rejected_at)
		for requested_at, approved_at, rejected_at in session.execute(stmt)
		if (approved_at or rejected_at) is not None
	]
