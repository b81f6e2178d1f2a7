# (c) Copyright Datacraft, 2026
"""Celery tasks for approval escalation."""
import logging

from celery import shared_task

from ledgerflow.core.db.engine import SessionLocal
from .dependencies import build_engine
from .escalation import EscalationMonitor

logger = logging.getLogger(__name__)


@shared_task(name="approvals.escalation_sweep")
def escalate_overdue_assignments(tenant_id: str | None = None) -> dict:
	"""
	Celery beat task escalating pending assignments past their due time.

	Scheduled every ``escalation_sweep_interval_seconds``.
	"""
	logger.info("Starting approval escalation sweep")

	with SessionLocal() as session:
		monitor = EscalationMonitor(build_engine(session))
		escalated = monitor.sweep(tenant_id=tenant_id)

	stats = {
		"escalated": len(escalated),
		"assignment_ids": [str(assignment_id) for assignment_id in escalated],
	}
	logger.info(f"Approval escalation sweep complete: {stats}")
	return stats
