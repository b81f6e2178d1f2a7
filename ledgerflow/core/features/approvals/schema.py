# (c) Copyright Datacraft, 2026
"""Approval workflow Pydantic schemas."""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union
from uuid import UUID, uuid4

from pydantic import (
	BaseModel,
	ConfigDict,
	Field,
	StrictBool,
	StrictFloat,
	StrictInt,
	StrictStr,
	model_validator,
)


class EntityType(str, Enum):
	JOURNAL_ENTRY = "journal_entry"
	INVOICE = "invoice"
	PURCHASE_ORDER = "purchase_order"
	EXPENSE = "expense"
	BILL = "bill"
	DOCUMENT = "document"
	RECURRING_INVOICE = "recurring_invoice"


class WorkflowPriority(str, Enum):
	LOW = "low"
	MEDIUM = "medium"
	HIGH = "high"
	CRITICAL = "critical"


PRIORITY_RANK = {
	WorkflowPriority.LOW: 0,
	WorkflowPriority.MEDIUM: 1,
	WorkflowPriority.HIGH: 2,
	WorkflowPriority.CRITICAL: 3,
}


class ApproverType(str, Enum):
	USER = "user"
	ROLE = "role"
	DEPARTMENT = "department"
	AMOUNT_BASED = "amount_based"


class LogicalOperator(str, Enum):
	AND = "AND"
	OR = "OR"


class EscalationTarget(str, Enum):
	MANAGER = "manager"
	DIRECTOR = "director"
	CEO = "ceo"
	SPECIFIC_USER = "specific_user"


class ApprovalAction(str, Enum):
	APPROVE = "approve"
	REJECT = "reject"
	ESCALATE = "escalate"


# ============================================================================
# Conditions
# ============================================================================

ScalarValue = StrictBool | StrictInt | StrictFloat | StrictStr
ComparableValue = StrictInt | StrictFloat | Decimal | date


class _ConditionBase(BaseModel):
	model_config = ConfigDict(frozen=True)

	field: str = Field(min_length=1)
	logical_operator: LogicalOperator | None = None


class EqualsCondition(_ConditionBase):
	operator: Literal["equals"] = "equals"
	value: ScalarValue


class GreaterThanCondition(_ConditionBase):
	operator: Literal["greater_than"] = "greater_than"
	value: ComparableValue


class LessThanCondition(_ConditionBase):
	operator: Literal["less_than"] = "less_than"
	value: ComparableValue


class ContainsCondition(_ConditionBase):
	"""Substring match on strings, membership on collections."""
	operator: Literal["contains"] = "contains"
	value: ScalarValue


class InCondition(_ConditionBase):
	operator: Literal["in"] = "in"
	value: list[ScalarValue] = Field(min_length=1)


Condition = Annotated[
	Union[
		EqualsCondition,
		GreaterThanCondition,
		LessThanCondition,
		ContainsCondition,
		InCondition,
	],
	Field(discriminator="operator"),
]


def _check_condition_chain(conditions: list, where: str) -> None:
	if conditions and conditions[-1].logical_operator is not None:
		raise ValueError(
			f"{where}: last condition must not carry a logical_operator"
		)


# ============================================================================
# Workflow definitions
# ============================================================================

class StepDefinition(BaseModel):
	"""One stage within a workflow."""
	model_config = ConfigDict(frozen=True)

	id: str = Field(default_factory=lambda: uuid4().hex, min_length=1)
	name: str = Field(min_length=1)
	order: int = Field(ge=1)
	approver_type: ApproverType
	approver_id: str | None = None
	role: str | None = None
	department: str | None = None
	amount_threshold: Decimal | None = Field(default=None, ge=0)
	is_required: bool = True
	escalation_hours: float | None = Field(default=None, gt=0)
	auto_approve: bool = False
	conditions: list[Condition] = []

	@model_validator(mode="after")
	def check_approver(self) -> "StepDefinition":
		populated = {
			name
			for name in ("approver_id", "role", "department", "amount_threshold")
			if getattr(self, name) is not None
		}
		expected = {
			ApproverType.USER: "approver_id",
			ApproverType.ROLE: "role",
			ApproverType.DEPARTMENT: "department",
			ApproverType.AMOUNT_BASED: "amount_threshold",
		}[self.approver_type]
		if populated != {expected}:
			raise ValueError(
				f"step '{self.name}': approver_type '{self.approver_type.value}' "
				f"requires exactly '{expected}' to be set"
			)
		_check_condition_chain(self.conditions, f"step '{self.name}'")
		return self


class EscalationRule(BaseModel):
	model_config = ConfigDict(frozen=True)

	step_id: str = Field(min_length=1)
	escalation_hours: float | None = Field(default=None, gt=0)
	escalate_to: EscalationTarget
	escalate_to_user_id: str | None = None
	notification_channels: list[str] = []

	@model_validator(mode="after")
	def check_target(self) -> "EscalationRule":
		if self.escalate_to == EscalationTarget.SPECIFIC_USER:
			if not self.escalate_to_user_id:
				raise ValueError("specific_user escalation requires escalate_to_user_id")
		elif self.escalate_to_user_id is not None:
			raise ValueError(
				f"escalate_to_user_id is only valid for specific_user, "
				f"not '{self.escalate_to.value}'"
			)
		return self


class WorkflowDefinitionBase(BaseModel):
	"""Routing rule body shared by create/update and the read model."""
	name: str = Field(min_length=1)
	description: str | None = None
	entity_type: EntityType
	entity_sub_type: str | None = None
	is_active: bool = True
	priority: WorkflowPriority = WorkflowPriority.MEDIUM
	steps: list[StepDefinition] = Field(min_length=1)
	conditions: list[Condition] = []
	auto_approval: bool = False
	escalation_rules: list[EscalationRule] = []

	@model_validator(mode="after")
	def check_structure(self):
		orders = sorted(step.order for step in self.steps)
		if orders != list(range(1, len(self.steps) + 1)):
			raise ValueError(
				f"step orders must be unique and contiguous from 1, got {orders}"
			)

		step_ids = [step.id for step in self.steps]
		if len(set(step_ids)) != len(step_ids):
			raise ValueError("step ids must be unique")

		unknown = {rule.step_id for rule in self.escalation_rules} - set(step_ids)
		if unknown:
			raise ValueError(
				f"escalation rules reference unknown steps: {sorted(unknown)}"
			)

		_check_condition_chain(self.conditions, "workflow")
		return self

	def ordered_steps(self) -> list[StepDefinition]:
		return sorted(self.steps, key=lambda step: step.order)

	def rules_for_step(self, step_id: str) -> list[EscalationRule]:
		return [rule for rule in self.escalation_rules if rule.step_id == step_id]


class WorkflowDefinitionCreate(WorkflowDefinitionBase):
	"""Schema for creating a workflow definition."""
	tenant_id: str = Field(min_length=1)
	company_id: str = Field(min_length=1)


class WorkflowDefinitionUpdate(WorkflowDefinitionBase):
	"""Schema for replacing the body of a workflow definition."""


class WorkflowDefinition(WorkflowDefinitionBase):
	"""Validated, immutable snapshot of a stored workflow."""
	model_config = ConfigDict(frozen=True)

	id: UUID
	tenant_id: str
	company_id: str
	version: int = 1
	created_at: datetime | None = None
	updated_at: datetime | None = None


# ============================================================================
# Request plan (definition snapshot held by each request)
# ============================================================================

class SkippedStep(BaseModel):
	step_id: str
	name: str
	order: int


class StepOutcome(BaseModel):
	"""Per-step outcome that produced no assignment row."""
	step_id: str
	name: str
	order: int
	outcome: Literal["auto_approved", "skipped"]
	reason: str
	at: datetime


class RequestPlan(BaseModel):
	workflow_id: UUID
	workflow_version: int
	steps: list[StepDefinition]
	skipped_steps: list[SkippedStep] = []
	escalation_rules: list[EscalationRule] = []
	outcomes: list[StepOutcome] = []

	def step_at(self, position: int) -> StepDefinition:
		"""Step at a 1-based position in the applicable sequence."""
		return self.steps[position - 1]

	def step_by_id(self, step_id: str) -> StepDefinition | None:
		return next((step for step in self.steps if step.id == step_id), None)

	def rules_for_step(self, step_id: str) -> list[EscalationRule]:
		return [rule for rule in self.escalation_rules if rule.step_id == step_id]


# ============================================================================
# API payloads
# ============================================================================

class WorkflowInfo(BaseModel):
	id: UUID
	name: str
	entity_type: EntityType
	entity_sub_type: str | None = None
	company_id: str
	is_active: bool
	priority: WorkflowPriority
	version: int
	updated_at: datetime | None = None


class WorkflowListResponse(BaseModel):
	items: list[WorkflowInfo]
	total: int


class SubmitForApprovalRequest(BaseModel):
	company_id: str
	entity_type: EntityType
	entity_id: str
	entity_sub_type: str | None = None
	requested_by: str
	metadata: dict[str, Any] = {}


class ActionRequest(BaseModel):
	assignment_id: UUID
	action: ApprovalAction
	comments: str | None = None
	escalation_reason: str | None = None


class ReassignRequest(BaseModel):
	user_id: str
	assigned_by: str | None = None
	comments: str | None = None


class StepAssignmentInfo(BaseModel):
	id: UUID
	request_id: UUID
	step_id: str
	step_name: str
	step_order: int
	sequence: int
	user_id: str
	status: str
	assigned_at: datetime
	due_at: datetime | None = None
	completed_at: datetime | None = None
	comments: str | None = None
	escalated_to: str | None = None
	escalation_reason: str | None = None

	model_config = ConfigDict(from_attributes=True)


class ApprovalRequestInfo(BaseModel):
	id: UUID
	tenant_id: str
	company_id: str
	entity_type: EntityType
	entity_id: str
	entity_sub_type: str | None = None
	workflow_id: UUID
	status: str
	current_step: int
	total_steps: int
	completed_steps: int
	requested_by: str | None = None
	requested_at: datetime
	approved_at: datetime | None = None
	rejected_at: datetime | None = None
	comments: str | None = None

	model_config = ConfigDict(from_attributes=True)


class ApprovalRequestDetail(ApprovalRequestInfo):
	assignments: list[StepAssignmentInfo] = []
	outcomes: list[StepOutcome] = []
	skipped_steps: list[SkippedStep] = []


class ApprovalRequestListResponse(BaseModel):
	items: list[ApprovalRequestInfo]
	total: int
	page: int
	page_size: int
	total_pages: int


class ApprovalStats(BaseModel):
	total: int
	pending: int
	approved: int
	rejected: int
	escalated: int
	cancelled: int
	approval_rate: float
	# Mean time from submission to approval or rejection
	average_processing_seconds: float = 0.0
	by_entity_type: dict[str, int] = {}
