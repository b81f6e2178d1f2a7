# (c) Copyright Datacraft, 2026
"""Resolve the concrete approver for a workflow step."""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from .collaborators import ApproverDirectory
from .exceptions import Unresolvable
from .schema import ApproverType, EscalationRule, EscalationTarget, StepDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Resolution:
	"""Either an approver to assign or an automatic approval."""
	user_id: str | None = None
	auto_approve: bool = False
	reason: str = ""

	@classmethod
	def assign(cls, user_id: str, reason: str) -> "Resolution":
		return cls(user_id=user_id, reason=reason)

	@classmethod
	def auto(cls, reason: str) -> "Resolution":
		return cls(auto_approve=True, reason=reason)


def _amount(attrs: Mapping[str, Any]) -> Decimal | None:
	value = attrs.get("amount")
	if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
		return None
	return Decimal(str(value))


class ApproverResolver:
	"""
	Read-only approver resolution.

	``amount_based`` steps auto-approve below their threshold and otherwise
	route to ``fallback_role``. A missing or non-numeric amount never
	auto-approves.
	"""

	def __init__(
		self,
		directory: ApproverDirectory,
		fallback_role: str,
		escalation_roles: Mapping[str, str] | None = None,
	):
		self.directory = directory
		self.fallback_role = fallback_role
		self.escalation_roles = dict(escalation_roles or {})

	def resolve(
		self,
		step: StepDefinition,
		company_id: str,
		attrs: Mapping[str, Any],
	) -> Resolution:
		if step.auto_approve:
			return Resolution.auto(f"step '{step.name}' is configured to auto-approve")

		if step.approver_type == ApproverType.USER:
			return Resolution.assign(step.approver_id, "explicit user")

		if step.approver_type == ApproverType.ROLE:
			return self._lookup(company_id, step, role=step.role)

		if step.approver_type == ApproverType.DEPARTMENT:
			return self._lookup(company_id, step, department=step.department)

		amount = _amount(attrs)
		if amount is not None and amount < step.amount_threshold:
			return Resolution.auto(
				f"amount {amount} below threshold {step.amount_threshold}"
			)
		return self._lookup(company_id, step, role=self.fallback_role)

	def _lookup(
		self,
		company_id: str,
		step: StepDefinition,
		role: str | None = None,
		department: str | None = None,
	) -> Resolution:
		user_id = self.directory.resolve_approver(
			company_id, role=role, department=department
		)
		target = f"role '{role}'" if role is not None else f"department '{department}'"
		if not user_id:
			raise Unresolvable(
				f"No approver found for {target} in company {company_id} "
				f"(step '{step.name}')"
			)
		return Resolution.assign(user_id, target)

	def resolve_escalation(self, rule: EscalationRule, company_id: str) -> str:
		"""User id an escalation rule points at."""
		if rule.escalate_to == EscalationTarget.SPECIFIC_USER:
			return rule.escalate_to_user_id

		role = self.escalation_roles.get(rule.escalate_to.value, rule.escalate_to.value)
		user_id = self.directory.resolve_approver(company_id, role=role)
		if not user_id:
			raise Unresolvable(
				f"No escalation target found for '{rule.escalate_to.value}' "
				f"(role '{role}') in company {company_id}"
			)
		return user_id
