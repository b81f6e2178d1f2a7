# (c) Copyright Datacraft, 2026
"""Error taxonomy for the approval engine."""


class ApprovalError(Exception):
	"""Base class for approval engine errors."""
	kind: str = "approval_error"

	def __init__(self, message: str):
		super().__init__(message)
		self.message = message

	def to_dict(self) -> dict:
		return {"kind": self.kind, "message": self.message}


class ValidationError(ApprovalError):
	"""Malformed workflow, step or condition definition."""
	kind = "validation_error"


class Conflict(ApprovalError):
	"""Duplicate pending request, processed assignment or finished request."""
	kind = "conflict"


class NotFound(ApprovalError):
	"""Unknown request, assignment or workflow."""
	kind = "not_found"


class NoApplicableWorkflow(ApprovalError):
	"""No active workflow matches the submitted entity."""
	kind = "no_applicable_workflow"


class Unresolvable(ApprovalError):
	"""No approver could be resolved; retry once directory data is fixed."""
	kind = "unresolvable"


class Unsupported(ApprovalError):
	"""Action not available for this step."""
	kind = "unsupported"
