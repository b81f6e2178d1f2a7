# (c) Copyright Datacraft, 2026
"""Process-wide wiring of approval engine collaborators."""
import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ledgerflow.core.config import Settings, get_settings
from ledgerflow.core.services.approval_engine import ApprovalEngine
from .cache import WorkflowCache
from .collaborators import (
	ApproverDirectory,
	EntityCallback,
	EntityCallbackRegistry,
	LoggingNotifier,
	Notifier,
	StaticDirectory,
)

logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
	directory: ApproverDirectory = field(default_factory=StaticDirectory)
	notifier: Notifier = field(default_factory=LoggingNotifier)
	entity_callback: EntityCallback = field(default_factory=EntityCallbackRegistry)
	workflow_cache: WorkflowCache | None = None


_collaborators: Collaborators | None = None


def configure_collaborators(
	directory: ApproverDirectory | None = None,
	notifier: Notifier | None = None,
	entity_callback: EntityCallback | None = None,
	settings: Settings | None = None,
) -> Collaborators:
	"""Install the collaborators used by every engine built for a request."""
	global _collaborators

	settings = settings or get_settings()
	collaborators = Collaborators(
		workflow_cache=WorkflowCache() if settings.workflow_cache_enabled else None,
	)
	if directory is not None:
		collaborators.directory = directory
	if notifier is not None:
		collaborators.notifier = notifier
	if entity_callback is not None:
		collaborators.entity_callback = entity_callback

	_collaborators = collaborators
	logger.info(
		f"Approval collaborators configured: directory={type(collaborators.directory).__name__}, "
		f"notifier={type(collaborators.notifier).__name__}, "
		f"cache={'on' if collaborators.workflow_cache is not None else 'off'}"
	)
	return collaborators


def get_collaborators() -> Collaborators:
	if _collaborators is None:
		return configure_collaborators()
	return _collaborators


def build_engine(db: Session, settings: Settings | None = None) -> ApprovalEngine:
	collaborators = get_collaborators()
	return ApprovalEngine(
		db,
		directory=collaborators.directory,
		notifier=collaborators.notifier,
		entity_callback=collaborators.entity_callback,
		workflow_cache=collaborators.workflow_cache,
		settings=settings,
	)
