# (c) Copyright Datacraft, 2026
"""Approval workflow ORM models."""
import uuid
from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import (
	JSON,
	Boolean,
	CheckConstraint,
	ForeignKey,
	Index,
	Integer,
	String,
	Text,
	UniqueConstraint,
	text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerflow.core.db.base import Base
from ledgerflow.core.db.types import UTCDateTime
from ledgerflow.core.utils.tz import utc_now


class RequestStatus(str, Enum):
	PENDING = "pending"
	APPROVED = "approved"
	REJECTED = "rejected"
	ESCALATED = "escalated"
	CANCELLED = "cancelled"


TERMINAL_REQUEST_STATUSES = frozenset({
	RequestStatus.APPROVED.value,
	RequestStatus.REJECTED.value,
	RequestStatus.CANCELLED.value,
})


class AssignmentStatus(str, Enum):
	PENDING = "pending"
	APPROVED = "approved"
	REJECTED = "rejected"
	ESCALATED = "escalated"


class ApprovalWorkflow(Base):
	"""Workflow definition; steps, conditions and escalation rules are JSON."""
	__tablename__ = "approval_workflows"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
	tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
	company_id: Mapped[str] = mapped_column(String(64), nullable=False)

	name: Mapped[str] = mapped_column(String(255), nullable=False)
	description: Mapped[str | None] = mapped_column(Text)
	entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
	entity_sub_type: Mapped[str | None] = mapped_column(String(100))

	is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
	priority: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
	version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

	steps: Mapped[list] = mapped_column(JSON, nullable=False)
	conditions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
	auto_approval: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	escalation_rules: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

	created_by: Mapped[str | None] = mapped_column(String(64))
	created_at: Mapped[datetime] = mapped_column(
		UTCDateTime(), default=utc_now, nullable=False
	)
	updated_at: Mapped[datetime] = mapped_column(
		UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
	)

	requests: Mapped[list["ApprovalRequest"]] = relationship(
		"ApprovalRequest", back_populates="workflow"
	)

	__table_args__ = (
		Index(
			"idx_approval_workflows_scope",
			"tenant_id", "company_id", "entity_type", "is_active",
		),
	)

	def __repr__(self) -> str:
		return f"ApprovalWorkflow({self.id=}, {self.name=}, {self.entity_type=})"


class ApprovalRequest(Base):
	"""One approval instance for one entity."""
	__tablename__ = "approval_requests"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
	tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
	company_id: Mapped[str] = mapped_column(String(64), nullable=False)

	entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
	entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
	entity_sub_type: Mapped[str | None] = mapped_column(String(100))

	workflow_id: Mapped[UUID] = mapped_column(
		ForeignKey("approval_workflows.id", ondelete="RESTRICT"), nullable=False, index=True
	)
	status: Mapped[str] = mapped_column(
		String(20), default=RequestStatus.PENDING.value, nullable=False
	)

	# Positions in the applicable step sequence
	current_step: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
	total_steps: Mapped[int] = mapped_column(Integer, nullable=False)
	completed_steps: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

	requested_by: Mapped[str | None] = mapped_column(String(64))
	requested_at: Mapped[datetime] = mapped_column(
		UTCDateTime(), default=utc_now, nullable=False
	)
	approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
	rejected_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
	escalated_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
	comments: Mapped[str | None] = mapped_column(Text)

	entity_metadata: Mapped[dict] = mapped_column("metadata", JSON, default=dict, nullable=False)
	plan: Mapped[dict] = mapped_column(JSON, nullable=False)

	workflow: Mapped["ApprovalWorkflow"] = relationship(
		"ApprovalWorkflow", back_populates="requests"
	)
	assignments: Mapped[list["StepAssignment"]] = relationship(
		"StepAssignment",
		back_populates="request",
		order_by="[StepAssignment.step_order, StepAssignment.sequence]",
	)

	@property
	def is_terminal(self) -> bool:
		return self.status in TERMINAL_REQUEST_STATUSES

	def __repr__(self) -> str:
		return (
			f"ApprovalRequest({self.id=}, {self.entity_type=}, {self.entity_id=}, "
			f"{self.status=}, {self.current_step=}/{self.total_steps=})"
		)

	__table_args__ = (
		CheckConstraint(
			"completed_steps >= 0 AND completed_steps <= current_step "
			"AND current_step <= total_steps",
			name="ck_approval_requests_step_balance",
		),
		# At most one pending request per entity
		Index(
			"uq_approval_requests_pending_entity",
			"tenant_id", "entity_type", "entity_id",
			unique=True,
			postgresql_where=text("status = 'pending'"),
			sqlite_where=text("status = 'pending'"),
		),
		Index("idx_approval_requests_entity", "tenant_id", "entity_type", "entity_id"),
		Index("idx_approval_requests_company_status", "tenant_id", "company_id", "status"),
	)


class StepAssignment(Base):
	"""Task given to one approver for one step; escalation appends a new row."""
	__tablename__ = "approval_step_assignments"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
	request_id: Mapped[UUID] = mapped_column(
		ForeignKey("approval_requests.id", ondelete="CASCADE"), nullable=False, index=True
	)
	step_id: Mapped[str] = mapped_column(String(64), nullable=False)
	step_name: Mapped[str] = mapped_column(String(255), nullable=False)
	step_order: Mapped[int] = mapped_column(Integer, nullable=False)
	# 0 for the original assignment, n for the n-th escalation of the step
	sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

	user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
	status: Mapped[str] = mapped_column(
		String(20), default=AssignmentStatus.PENDING.value, nullable=False
	)

	assigned_at: Mapped[datetime] = mapped_column(
		UTCDateTime(), default=utc_now, nullable=False
	)
	due_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
	completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

	comments: Mapped[str | None] = mapped_column(Text)
	escalated_to: Mapped[str | None] = mapped_column(String(64))
	escalation_reason: Mapped[str | None] = mapped_column(Text)

	request: Mapped["ApprovalRequest"] = relationship(
		"ApprovalRequest", back_populates="assignments"
	)

	def __repr__(self) -> str:
		return (
			f"StepAssignment({self.id=}, {self.step_id=}, {self.sequence=}, "
			f"{self.user_id=}, {self.status=})"
		)

	__table_args__ = (
		UniqueConstraint(
			"request_id", "step_id", "sequence",
			name="uq_step_assignments_sequence",
		),
		Index(
			"uq_step_assignments_pending_step",
			"request_id", "step_id",
			unique=True,
			postgresql_where=text("status = 'pending'"),
			sqlite_where=text("status = 'pending'"),
		),
		Index("idx_step_assignments_due", "status", "due_at"),
	)
