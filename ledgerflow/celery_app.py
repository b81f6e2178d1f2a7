# (c) Copyright Datacraft, 2026
from celery import Celery

from ledgerflow.core.config import get_settings

settings = get_settings()

app = Celery(
	"ledgerflow",
	broker=settings.celery_broker_url,
	include=["ledgerflow.core.features.approvals.tasks"],
)

app.conf.beat_schedule = {
	"approvals-escalation-sweep": {
		"task": "approvals.escalation_sweep",
		"schedule": float(settings.escalation_sweep_interval_seconds),
	},
}
app.conf.timezone = "UTC"
