# (c) Copyright Datacraft, 2026
"""Time-based escalation of overdue step assignments."""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from ledgerflow.core.services.approval_engine import ApprovalEngine
from ledgerflow.core.utils.tz import ensure_utc, utc_now
from .db import api
from .exceptions import ApprovalError, Conflict
from .schema import ApprovalAction

logger = logging.getLogger(__name__)


class EscalationMonitor:
	"""
	Escalates every pending assignment whose due time has passed.

	Each escalation is an independent ``process_action`` call, so a failure
	on one request never affects the others. Assignments that were acted on
	between the scan and the escalation surface as ``Conflict`` and are
	skipped.
	"""

	def __init__(self, engine: ApprovalEngine):
		self.engine = engine

	def sweep(
		self,
		now: datetime | None = None,
		tenant_id: str | None = None,
	) -> list[UUID]:
		now = ensure_utc(now) or utc_now()
		overdue = api.list_overdue_assignments(self.engine.db, now, tenant_id=tenant_id)

		escalated: list[UUID] = []
		for request_tenant, request_id, assignment_id in overdue:
			try:
				self.engine.process_action(
					request_tenant,
					request_id,
					assignment_id,
					ApprovalAction.ESCALATE,
					escalation_reason=(
						f"No action before the escalation deadline "
						f"(checked at {now.isoformat()})"
					),
				)
			except Conflict:
				logger.info(f"Assignment {assignment_id} was processed concurrently; skipping")
			except ApprovalError as e:
				logger.warning(
					f"Could not escalate assignment {assignment_id} "
					f"of request {request_id}: {e.kind}: {e.message}"
				)
			except SQLAlchemyError as e:
				logger.warning(
					f"Database error escalating assignment {assignment_id} "
					f"of request {request_id}: {e}"
				)
			else:
				escalated.append(assignment_id)

		logger.info(
			f"Escalation sweep complete: {len(overdue)} overdue, "
			f"{len(escalated)} escalated"
		)
		return escalated
