# (c) Copyright Datacraft, 2026
from .orm import (
	ApprovalWorkflow,
	ApprovalRequest,
	StepAssignment,
	RequestStatus,
	AssignmentStatus,
	TERMINAL_REQUEST_STATUSES,
)

__all__ = [
	"ApprovalWorkflow",
	"ApprovalRequest",
	"StepAssignment",
	"RequestStatus",
	"AssignmentStatus",
	"TERMINAL_REQUEST_STATUSES",
]
