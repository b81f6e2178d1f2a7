# (c) Copyright Datacraft, 2026
"""Multi-step approval workflows for accounting entities."""
from .exceptions import (
	ApprovalError,
	Conflict,
	NoApplicableWorkflow,
	NotFound,
	Unresolvable,
	Unsupported,
	ValidationError,
)
from .schema import ApprovalAction, EntityType

__all__ = [
	"ApprovalAction",
	"ApprovalError",
	"Conflict",
	"EntityType",
	"NoApplicableWorkflow",
	"NotFound",
	"Unresolvable",
	"Unsupported",
	"ValidationError",
]
