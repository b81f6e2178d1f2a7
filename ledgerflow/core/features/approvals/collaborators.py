# (c) Copyright Datacraft, 2026
"""
External collaborators consumed by the approval engine.

The engine talks to the identity directory, the notification service and
the owning entity only through these protocols.
"""
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Protocol
from uuid import UUID

from .schema import EntityType

logger = logging.getLogger(__name__)


class ApproverDirectory(Protocol):
	def resolve_approver(
		self,
		company_id: str,
		*,
		role: str | None = None,
		department: str | None = None,
	) -> str | None:
		"""First active user holding the role (or heading the department), or None."""
		...


class Notifier(Protocol):
	def notify(
		self,
		user_id: str,
		request_id: UUID,
		step_name: str | None,
		*,
		event: str,
		entity_type: str,
		entity_id: str,
	) -> None:
		...


class EntityCallback(Protocol):
	def on_approval_resolved(
		self,
		entity_type: str,
		entity_id: str,
		final_status: str,
	) -> None:
		...


class StaticDirectory:
	"""
	Directory backed by plain mappings.

	Example:
		StaticDirectory(
			roles={"acme": {"manager": ["u-1", "u-2"]}},
			departments={"acme": {"sales": ["u-7"]}},
		)
	"""

	def __init__(
		self,
		roles: dict[str, dict[str, list[str]]] | None = None,
		departments: dict[str, dict[str, list[str]]] | None = None,
	):
		self.roles = roles or {}
		self.departments = departments or {}

	def resolve_approver(
		self,
		company_id: str,
		*,
		role: str | None = None,
		department: str | None = None,
	) -> str | None:
		if role is not None:
			users = self.roles.get(company_id, {}).get(role, [])
		elif department is not None:
			users = self.departments.get(company_id, {}).get(department, [])
		else:
			users = []
		return users[0] if users else None


class LoggingNotifier:
	"""Notifier that only logs; used until a delivery service is wired in."""

	def notify(
		self,
		user_id: str,
		request_id: UUID,
		step_name: str | None,
		*,
		event: str,
		entity_type: str,
		entity_id: str,
	) -> None:
		logger.info(
			f"Notification [{event}]: user={user_id} request={request_id} "
			f"step={step_name!r} entity={entity_type}/{entity_id}"
		)


ResolvedHandler = Callable[[str, str], None]


class EntityCallbackRegistry:
	"""
	Dispatch terminal outcomes to per-entity-type handlers.

	Handlers receive ``(entity_id, final_status)``; entity types without
	a handler are logged and ignored.
	"""

	def __init__(self):
		self._handlers: dict[EntityType, list[ResolvedHandler]] = defaultdict(list)

	def register(self, entity_type: EntityType | str, handler: ResolvedHandler) -> None:
		self._handlers[EntityType(entity_type)].append(handler)

	def on_approval_resolved(
		self,
		entity_type: str,
		entity_id: str,
		final_status: str,
	) -> None:
		handlers = self._handlers.get(EntityType(entity_type), [])
		if not handlers:
			logger.debug(f"No resolution handler for {entity_type}")
			return
		for handler in handlers:
			handler(entity_id, final_status)
