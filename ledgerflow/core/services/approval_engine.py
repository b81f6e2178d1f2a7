# (c) Copyright Datacraft, 2026
"""Approval engine: request lifecycle, step advancement and actions."""
import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime, timedelta
from decimal import Decimal
from functools import partial
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ledgerflow.core.config import Settings, get_settings
from ledgerflow.core.features.approvals.cache import WorkflowCache
from ledgerflow.core.features.approvals.collaborators import (
	ApproverDirectory,
	EntityCallback,
	LoggingNotifier,
	Notifier,
)
from ledgerflow.core.features.approvals.conditions import evaluate, flatten_attributes
from ledgerflow.core.features.approvals.db import api
from ledgerflow.core.features.approvals.db.orm import (
	ApprovalRequest,
	AssignmentStatus,
	RequestStatus,
	StepAssignment,
)
from ledgerflow.core.features.approvals.exceptions import (
	ApprovalError,
	Conflict,
	NotFound,
	Unresolvable,
	Unsupported,
	ValidationError,
)
from ledgerflow.core.features.approvals.resolver import ApproverResolver
from ledgerflow.core.features.approvals.schema import (
	ApprovalAction,
	ApprovalRequestInfo,
	ApprovalRequestListResponse,
	ApprovalStats,
	EntityType,
	EscalationRule,
	RequestPlan,
	SkippedStep,
	StepDefinition,
	StepOutcome,
	WorkflowDefinition,
	WorkflowDefinitionCreate,
	WorkflowDefinitionUpdate,
)
from ledgerflow.core.features.approvals.selector import select_workflow
from ledgerflow.core.utils.tz import utc_now

logger = logging.getLogger(__name__)

# Statuses that block a new submission for the same entity
OPEN_REQUEST_STATUSES = (RequestStatus.PENDING.value, RequestStatus.ESCALATED.value)
MAX_PAGE_SIZE = 100


def _validation_message(error: PydanticValidationError) -> str:
	return "; ".join(
		f"{'.'.join(str(part) for part in err['loc']) or 'definition'}: {err['msg']}"
		for err in error.errors()
	)


def _json_compatible(value: Any) -> Any:
	"""Normalize entity metadata so it survives a JSON column unchanged."""
	if isinstance(value, Mapping):
		return {str(k): _json_compatible(v) for k, v in value.items()}
	if isinstance(value, (list, tuple, set, frozenset)):
		return [_json_compatible(v) for v in value]
	if isinstance(value, Decimal):
		return int(value) if value == value.to_integral_value() else float(value)
	if isinstance(value, (datetime, date)):
		return value.isoformat()
	if isinstance(value, UUID):
		return str(value)
	return value


def _as_uuid(value: UUID | str, what: str) -> UUID:
	if isinstance(value, UUID):
		return value
	try:
		return UUID(str(value))
	except ValueError:
		raise NotFound(f"{what} not found: {value}")


class ApprovalEngine:
	"""
	State machine over approval requests and their step assignments.

	Every public mutation runs in one transaction on ``db``: it either
	commits completely or rolls back and raises an ``ApprovalError``.
	Notifications and the entity callback run only after commit.
	"""

	def __init__(
		self,
		db: Session,
		directory: ApproverDirectory,
		notifier: Notifier | None = None,
		entity_callback: EntityCallback | None = None,
		workflow_cache: WorkflowCache | None = None,
		settings: Settings | None = None,
	):
		self.db = db
		self.settings = settings or get_settings()
		self.resolver = ApproverResolver(
			directory,
			fallback_role=self.settings.approval_fallback_role,
			escalation_roles=self.settings.escalation_roles,
		)
		self.notifier = notifier or LoggingNotifier()
		self.entity_callback = entity_callback
		self.workflow_cache = workflow_cache
		self._deferred: list[tuple[str, Callable[[], None]]] = []

	# ------------------------------------------------------------------
	# Workflow administration
	# ------------------------------------------------------------------

	def create_workflow(
		self,
		definition: WorkflowDefinitionCreate | dict,
		created_by: str | None = None,
	) -> WorkflowDefinition:
		"""Validate and store a workflow definition."""
		data = self._validate(WorkflowDefinitionCreate, definition)
		workflow = api.create_workflow(self.db, data, created_by=created_by)
		self.db.commit()
		self._invalidate_cache(data.tenant_id)

		logger.info(
			f"Created workflow {workflow.id} '{workflow.name}' for "
			f"{workflow.entity_type} in company {workflow.company_id}"
		)
		return api.to_definition(workflow)

	def update_workflow(
		self,
		tenant_id: str,
		workflow_id: UUID | str,
		definition: WorkflowDefinitionUpdate | dict,
	) -> WorkflowDefinition:
		"""Replace a workflow body; in-flight requests keep their snapshot."""
		data = self._validate(WorkflowDefinitionUpdate, definition)
		workflow = api.update_workflow(
			self.db, tenant_id, _as_uuid(workflow_id, "Workflow"), data
		)
		if workflow is None:
			self.db.rollback()
			raise NotFound(f"Workflow not found: {workflow_id}")
		self.db.commit()
		self._invalidate_cache(tenant_id)

		logger.info(f"Updated workflow {workflow.id} to version {workflow.version}")
		return api.to_definition(workflow)

	def deactivate_workflow(self, tenant_id: str, workflow_id: UUID | str) -> WorkflowDefinition:
		workflow = api.deactivate_workflow(
			self.db, tenant_id, _as_uuid(workflow_id, "Workflow")
		)
		if workflow is None:
			self.db.rollback()
			raise NotFound(f"Workflow not found: {workflow_id}")
		self.db.commit()
		self._invalidate_cache(tenant_id)

		logger.info(f"Deactivated workflow {workflow.id}")
		return api.to_definition(workflow)

	def get_workflow(self, tenant_id: str, workflow_id: UUID | str) -> WorkflowDefinition:
		workflow = api.get_workflow(self.db, tenant_id, _as_uuid(workflow_id, "Workflow"))
		if workflow is None:
			raise NotFound(f"Workflow not found: {workflow_id}")
		return api.to_definition(workflow)

	def list_workflows(
		self,
		tenant_id: str,
		company_id: str | None = None,
		entity_type: EntityType | str | None = None,
		active_only: bool = False,
	) -> list[WorkflowDefinition]:
		if entity_type is not None:
			entity_type = self._entity_type(entity_type)
		workflows = api.list_workflows(
			self.db,
			tenant_id,
			company_id=company_id,
			entity_type=entity_type,
			active_only=active_only,
		)
		return [api.to_definition(w) for w in workflows]

	# ------------------------------------------------------------------
	# Request lifecycle
	# ------------------------------------------------------------------

	def submit_for_approval(
		self,
		tenant_id: str,
		company_id: str,
		entity_type: EntityType | str,
		entity_id: str,
		entity_sub_type: str | None = None,
		requested_by: str | None = None,
		metadata: Mapping[str, Any] | None = None,
	) -> ApprovalRequest:
		"""
		Create an approval request for an entity.

		Raises:
			Conflict: a pending or escalated request already exists
			NoApplicableWorkflow: no active workflow matches
			Unresolvable: a required step has no resolvable approver
		"""
		entity_type = self._entity_type(entity_type)
		metadata = _json_compatible(metadata or {})
		attrs = flatten_attributes(metadata)

		try:
			existing = api.find_open_request(
				self.db, tenant_id, entity_type.value, entity_id, OPEN_REQUEST_STATUSES
			)
			if existing is not None:
				raise Conflict(
					f"{entity_type.value} {entity_id} already has an open approval "
					f"request {existing.id} ({existing.status})"
				)

			definition = select_workflow(
				self._candidates(tenant_id, company_id, entity_type),
				tenant_id,
				company_id,
				entity_type,
				entity_sub_type,
				attrs,
			)
			plan = self._build_plan(definition, attrs)

			request = ApprovalRequest(
				tenant_id=tenant_id,
				company_id=company_id,
				entity_type=entity_type.value,
				entity_id=entity_id,
				entity_sub_type=entity_sub_type,
				workflow_id=definition.id,
				status=RequestStatus.PENDING.value,
				current_step=1 if plan.steps else 0,
				total_steps=len(plan.steps),
				completed_steps=0,
				requested_by=requested_by,
				requested_at=utc_now(),
				entity_metadata=metadata,
				plan=plan.model_dump(mode="json"),
			)
			self.db.add(request)
			self.db.flush()

			logger.info(
				f"Created approval request {request.id} for {entity_type.value} "
				f"{entity_id} using workflow {definition.id} "
				f"({request.total_steps} applicable steps, {len(plan.skipped_steps)} skipped)"
			)

			if definition.auto_approval or not plan.steps:
				self._auto_approve_request(request, plan, definition)
			else:
				self._advance(request, plan, attrs)

			self.db.commit()
		except IntegrityError as e:
			self._abort()
			raise Conflict(
				f"{entity_type.value} {entity_id} already has a pending approval request"
			) from e
		except ApprovalError:
			self._abort()
			raise
		except SQLAlchemyError:
			self._abort()
			raise

		self._run_deferred()
		return request

	def process_action(
		self,
		tenant_id: str,
		request_id: UUID | str,
		assignment_id: UUID | str,
		action: ApprovalAction | str,
		comments: str | None = None,
		escalation_reason: str | None = None,
	) -> ApprovalRequest:
		"""
		Apply approve, reject or escalate to one pending assignment.

		The assignment transitions out of ``pending`` with a compare-and-set,
		so of two concurrent calls on the same assignment exactly one wins.

		Raises:
			NotFound: unknown request or assignment
			Conflict: assignment or request is no longer pending
			Unsupported: escalate on a step without escalation rules
			Unresolvable: the next approver or escalation target cannot be resolved
		"""
		action = self._action(action)
		request_id = _as_uuid(request_id, "Approval request")
		assignment_id = _as_uuid(assignment_id, "Assignment")

		try:
			request = api.get_request(self.db, tenant_id, request_id, for_update=True)
			if request is None:
				raise NotFound(f"Approval request not found: {request_id}")

			assignment = next(
				(a for a in request.assignments if a.id == assignment_id), None
			)
			if assignment is None:
				raise NotFound(
					f"Assignment {assignment_id} not found on request {request_id}"
				)
			if request.is_terminal:
				raise Conflict(f"Approval request {request_id} is already {request.status}")
			if request.status != RequestStatus.PENDING.value:
				raise Conflict(
					f"Approval request {request_id} is {request.status} and awaits reassignment"
				)
			if assignment.status != AssignmentStatus.PENDING.value:
				raise Conflict(f"Assignment {assignment_id} is already {assignment.status}")

			plan = RequestPlan.model_validate(request.plan)

			if action == ApprovalAction.APPROVE:
				self._approve(request, plan, assignment, comments)
			elif action == ApprovalAction.REJECT:
				self._reject(request, assignment, comments)
			else:
				self._escalate(request, plan, assignment, comments, escalation_reason)

			self.db.commit()
		except IntegrityError as e:
			self._abort()
			raise Conflict(f"Concurrent update on approval request {request_id}") from e
		except ApprovalError:
			self._abort()
			raise
		except SQLAlchemyError:
			self._abort()
			raise

		logger.info(
			f"Processed {action.value} on assignment {assignment_id}; request "
			f"{request_id} is {request.status} at step {request.current_step}/{request.total_steps}"
		)
		self._run_deferred()
		return request

	def reassign_escalated(
		self,
		tenant_id: str,
		request_id: UUID | str,
		user_id: str,
		assigned_by: str | None = None,
		comments: str | None = None,
	) -> ApprovalRequest:
		"""Manually resolve an escalated request by assigning its current step."""
		request_id = _as_uuid(request_id, "Approval request")

		try:
			request = api.get_request(self.db, tenant_id, request_id, for_update=True)
			if request is None:
				raise NotFound(f"Approval request not found: {request_id}")
			if request.status != RequestStatus.ESCALATED.value:
				raise Conflict(
					f"Only escalated requests can be reassigned; "
					f"{request_id} is {request.status}"
				)

			plan = RequestPlan.model_validate(request.plan)
			step = plan.step_at(request.current_step)
			last_sequence = max(
				(a.sequence for a in request.assignments if a.step_id == step.id),
				default=-1,
			)

			request.status = RequestStatus.PENDING.value
			if comments:
				request.comments = comments
			self._assign(
				request, plan, step, user_id,
				sequence=last_sequence + 1,
				event="reassigned",
				track_due=False,
			)
			self.db.commit()
		except IntegrityError as e:
			self._abort()
			raise Conflict(f"Could not reopen approval request {request_id}") from e
		except ApprovalError:
			self._abort()
			raise
		except SQLAlchemyError:
			self._abort()
			raise

		logger.info(
			f"Reassigned escalated request {request_id} to {user_id}"
			f"{f' by {assigned_by}' if assigned_by else ''}"
		)
		self._run_deferred()
		return request

	# ------------------------------------------------------------------
	# Queries
	# ------------------------------------------------------------------

	def get_request(self, tenant_id: str, request_id: UUID | str) -> ApprovalRequest:
		request = api.get_request(
			self.db, tenant_id, _as_uuid(request_id, "Approval request")
		)
		if request is None:
			raise NotFound(f"Approval request not found: {request_id}")
		return request

	def list_pending_assignments(self, tenant_id: str, user_id: str) -> list[StepAssignment]:
		return api.list_pending_assignments(self.db, tenant_id, user_id)

	def list_requests_for_entity(
		self,
		tenant_id: str,
		entity_type: EntityType | str,
		entity_id: str,
	) -> list[ApprovalRequest]:
		entity_type = self._entity_type(entity_type)
		return api.list_requests_for_entity(self.db, tenant_id, entity_type.value, entity_id)

	def list_requests(
		self,
		tenant_id: str,
		company_id: str | None = None,
		entity_type: EntityType | str | None = None,
		status: RequestStatus | str | None = None,
		requested_by: str | None = None,
		page: int = 1,
		page_size: int = 20,
	) -> ApprovalRequestListResponse:
		"""Filtered listing of requests, newest first, one page at a time."""
		if page < 1:
			raise ValidationError(f"page must be at least 1, got {page}")
		if not 1 <= page_size <= MAX_PAGE_SIZE:
			raise ValidationError(
				f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}"
			)
		if entity_type is not None:
			entity_type = self._entity_type(entity_type).value
		if status is not None:
			try:
				status = RequestStatus(status).value
			except ValueError:
				raise ValidationError(f"Unknown request status: {status}")

		requests, total = api.list_requests(
			self.db,
			tenant_id,
			company_id=company_id,
			entity_type=entity_type,
			status=status,
			requested_by=requested_by,
			page=page,
			page_size=page_size,
		)
		return ApprovalRequestListResponse(
			items=[ApprovalRequestInfo.model_validate(r) for r in requests],
			total=total,
			page=page,
			page_size=page_size,
			total_pages=(total + page_size - 1) // page_size,
		)

	def approval_stats(
		self,
		tenant_id: str,
		company_id: str | None = None,
		since: datetime | None = None,
		until: datetime | None = None,
	) -> ApprovalStats:
		"""Dashboard figures over requests submitted in ``[since, until]``."""
		scope = {"company_id": company_id, "since": since, "until": until}
		counts = api.count_requests_by_status(self.db, tenant_id, **scope)
		total = sum(counts.values())
		approved = counts.get(RequestStatus.APPROVED.value, 0)

		durations = [
			(resolved_at - requested_at).total_seconds()
			for requested_at, resolved_at in api.list_resolution_times(self.db, tenant_id, **scope)
		]
		return ApprovalStats(
			total=total,
			pending=counts.get(RequestStatus.PENDING.value, 0),
			approved=approved,
			rejected=counts.get(RequestStatus.REJECTED.value, 0),
			escalated=counts.get(RequestStatus.ESCALATED.value, 0),
			cancelled=counts.get(RequestStatus.CANCELLED.value, 0),
			approval_rate=(approved / total * 100) if total > 0 else 0.0,
			average_processing_seconds=sum(durations) / len(durations) if durations else 0.0,
			by_entity_type=api.count_requests_by_entity_type(self.db, tenant_id, **scope),
		)

	# ------------------------------------------------------------------
	# Step advancement
	# ------------------------------------------------------------------

	def _build_plan(self, definition: WorkflowDefinition, attrs: Mapping[str, Any]) -> RequestPlan:
		applicable: list[StepDefinition] = []
		skipped: list[SkippedStep] = []
		for step in definition.ordered_steps():
			if evaluate(step.conditions, attrs):
				applicable.append(step)
			else:
				skipped.append(SkippedStep(step_id=step.id, name=step.name, order=step.order))

		applicable_ids = {step.id for step in applicable}
		return RequestPlan(
			workflow_id=definition.id,
			workflow_version=definition.version,
			steps=applicable,
			skipped_steps=skipped,
			escalation_rules=[
				rule for rule in definition.escalation_rules
				if rule.step_id in applicable_ids
			],
		)

	def _auto_approve_request(
		self,
		request: ApprovalRequest,
		plan: RequestPlan,
		definition: WorkflowDefinition,
	) -> None:
		reason = (
			f"workflow '{definition.name}' auto-approval"
			if definition.auto_approval
			else "no applicable steps"
		)
		for step in plan.steps:
			self._record_outcome(request, plan, step, "auto_approved", reason)
		request.current_step = request.total_steps
		request.completed_steps = request.total_steps
		self._resolve(request, RequestStatus.APPROVED, comments=f"Auto-approved: {reason}")

	def _advance(
		self,
		request: ApprovalRequest,
		plan: RequestPlan,
		attrs: Mapping[str, Any],
	) -> None:
		"""Walk forward from ``current_step`` until a step needs a human or none remain."""
		while True:
			step = plan.step_at(request.current_step)
			try:
				resolution = self.resolver.resolve(step, request.company_id, attrs)
			except Unresolvable as e:
				if step.is_required:
					raise
				logger.warning(f"Skipping optional step '{step.name}': {e.message}")
				self._record_outcome(request, plan, step, "skipped", e.message)
			else:
				if not resolution.auto_approve:
					self._assign(request, plan, step, resolution.user_id)
					return
				self._record_outcome(request, plan, step, "auto_approved", resolution.reason)
				logger.info(
					f"Auto-approved step '{step.name}' of request {request.id}: "
					f"{resolution.reason}"
				)

			request.completed_steps += 1
			if request.current_step >= request.total_steps:
				self._resolve(request, RequestStatus.APPROVED)
				return
			request.current_step += 1

	def _assign(
		self,
		request: ApprovalRequest,
		plan: RequestPlan,
		step: StepDefinition,
		user_id: str,
		sequence: int = 0,
		event: str = "assigned",
		track_due: bool = True,
	) -> StepAssignment:
		now = utc_now()
		hours = self._escalation_hours(step, plan.rules_for_step(step.id), sequence) if track_due else None

		assignment = StepAssignment(
			step_id=step.id,
			step_name=step.name,
			step_order=step.order,
			sequence=sequence,
			user_id=user_id,
			status=AssignmentStatus.PENDING.value,
			assigned_at=now,
			due_at=now + timedelta(hours=hours) if hours else None,
		)
		request.assignments.append(assignment)
		self.db.flush()

		self._defer_notification(user_id, request, step.name, event)
		logger.info(
			f"Assigned step '{step.name}' of request {request.id} to {user_id} ({event})"
		)
		return assignment

	def _escalation_hours(
		self,
		step: StepDefinition,
		rules: list[EscalationRule],
		sequence: int,
	) -> float | None:
		"""Hours before the sweep escalates; None when the step cannot escalate."""
		if not rules:
			return None
		if step.escalation_hours:
			return step.escalation_hours
		rule = rules[min(sequence, len(rules) - 1)]
		return rule.escalation_hours or self.settings.default_escalation_hours

	def _claim(
		self,
		assignment: StepAssignment,
		status: AssignmentStatus,
		comments: str | None,
		**values: Any,
	) -> None:
		"""Compare-and-set the assignment out of ``pending``."""
		result = self.db.execute(
			update(StepAssignment)
			.where(
				StepAssignment.id == assignment.id,
				StepAssignment.status == AssignmentStatus.PENDING.value,
			)
			.values(
				status=status.value,
				completed_at=utc_now(),
				comments=comments,
				**values,
			)
		)
		if result.rowcount != 1:
			raise Conflict(f"Assignment {assignment.id} was already processed")

	def _approve(
		self,
		request: ApprovalRequest,
		plan: RequestPlan,
		assignment: StepAssignment,
		comments: str | None,
	) -> None:
		self._claim(assignment, AssignmentStatus.APPROVED, comments)
		request.completed_steps += 1

		if request.current_step >= request.total_steps:
			self._resolve(request, RequestStatus.APPROVED)
			return

		request.current_step += 1
		self._advance(request, plan, flatten_attributes(request.entity_metadata or {}))

	def _reject(
		self,
		request: ApprovalRequest,
		assignment: StepAssignment,
		comments: str | None,
	) -> None:
		self._claim(assignment, AssignmentStatus.REJECTED, comments)
		request.completed_steps += 1
		self._resolve(request, RequestStatus.REJECTED, comments=comments)

	def _escalate(
		self,
		request: ApprovalRequest,
		plan: RequestPlan,
		assignment: StepAssignment,
		comments: str | None,
		escalation_reason: str | None,
	) -> None:
		rules = plan.rules_for_step(assignment.step_id)
		if not rules:
			raise Unsupported(
				f"Step '{assignment.step_name}' has no escalation rule"
			)

		level = assignment.sequence
		if level >= len(rules):
			self._claim(
				assignment,
				AssignmentStatus.ESCALATED,
				comments,
				escalation_reason=escalation_reason,
			)
			request.status = RequestStatus.ESCALATED.value
			request.escalated_at = utc_now()
			if request.requested_by:
				self._defer_notification(
					request.requested_by, request, assignment.step_name, "escalation_exhausted"
				)
			logger.warning(
				f"Escalation chain exhausted for step '{assignment.step_name}' "
				f"of request {request.id}; request needs manual resolution"
			)
			return

		rule = rules[level]
		target = self.resolver.resolve_escalation(rule, request.company_id)
		self._claim(
			assignment,
			AssignmentStatus.ESCALATED,
			comments,
			escalated_to=target,
			escalation_reason=escalation_reason,
		)

		step = plan.step_by_id(assignment.step_id)
		if step is None:
			raise NotFound(f"Step {assignment.step_id} missing from request plan")
		self._assign(request, plan, step, target, sequence=level + 1, event="escalated")

		if rule.notification_channels:
			logger.info(
				f"Escalation of request {request.id} requested channels "
				f"{', '.join(rule.notification_channels)}"
			)

	def _record_outcome(
		self,
		request: ApprovalRequest,
		plan: RequestPlan,
		step: StepDefinition,
		outcome: str,
		reason: str,
	) -> None:
		plan.outcomes.append(
			StepOutcome(
				step_id=step.id,
				name=step.name,
				order=step.order,
				outcome=outcome,
				reason=reason,
				at=utc_now(),
			)
		)
		request.plan = plan.model_dump(mode="json")

	def _resolve(
		self,
		request: ApprovalRequest,
		status: RequestStatus,
		comments: str | None = None,
	) -> None:
		now = utc_now()
		request.status = status.value
		if status == RequestStatus.APPROVED:
			request.approved_at = now
		else:
			request.rejected_at = now
		if comments:
			request.comments = comments

		if self.entity_callback is not None:
			self._deferred.append((
				f"entity callback for {request.entity_type} {request.entity_id}",
				partial(
					self.entity_callback.on_approval_resolved,
					request.entity_type,
					request.entity_id,
					status.value,
				),
			))
		if request.requested_by:
			self._defer_notification(request.requested_by, request, None, status.value)

		logger.info(
			f"Approval request {request.id} for {request.entity_type} "
			f"{request.entity_id} {status.value}"
		)

	# ------------------------------------------------------------------
	# Helpers
	# ------------------------------------------------------------------

	def _defer_notification(
		self,
		user_id: str,
		request: ApprovalRequest,
		step_name: str | None,
		event: str,
	) -> None:
		self._deferred.append((
			f"{event} notification to {user_id}",
			partial(
				self.notifier.notify,
				user_id,
				request.id,
				step_name,
				event=event,
				entity_type=request.entity_type,
				entity_id=request.entity_id,
			),
		))

	def _run_deferred(self) -> None:
		deferred, self._deferred = self._deferred, []
		for label, effect in deferred:
			try:
				effect()
			except Exception as e:
				logger.warning(f"Failed to deliver {label}: {e}")

	def _abort(self) -> None:
		self._deferred.clear()
		self.db.rollback()

	def _candidates(
		self,
		tenant_id: str,
		company_id: str,
		entity_type: EntityType,
	) -> list[WorkflowDefinition]:
		if self.workflow_cache is not None:
			return self.workflow_cache.get_candidates(self.db, tenant_id, company_id, entity_type)
		return api.list_active_definitions(self.db, tenant_id, company_id, entity_type)

	def _invalidate_cache(self, tenant_id: str) -> None:
		if self.workflow_cache is not None:
			self.workflow_cache.invalidate(tenant_id)

	@staticmethod
	def _validate(model: type[BaseModel], payload: Any):
		if isinstance(payload, model):
			return payload
		try:
			return model.model_validate(payload)
		except PydanticValidationError as e:
			raise ValidationError(_validation_message(e)) from e

	@staticmethod
	def _entity_type(value: EntityType | str) -> EntityType:
		try:
			return EntityType(value)
		except ValueError:
			raise ValidationError(f"Unknown entity type: {value}")

	@staticmethod
	def _action(value: ApprovalAction | str) -> ApprovalAction:
		try:
			return ApprovalAction(value)
		except ValueError:
			raise ValidationError(f"Unknown approval action: {value}")
