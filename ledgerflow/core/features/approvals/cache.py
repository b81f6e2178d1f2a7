# (c) Copyright Datacraft, 2026
"""In-process cache of active workflow definitions."""
import logging
import threading

from sqlalchemy.orm import Session

from .db import api
from .schema import EntityType, WorkflowDefinition

logger = logging.getLogger(__name__)

ScopeKey = tuple[str, str, EntityType]


class WorkflowCache:
	"""
	Active definitions keyed by (tenant, company, entity type).

	The owner creates one cache at startup and the approval engine
	invalidates the affected tenant on every administrative write.
	Entries are immutable ``WorkflowDefinition`` snapshots.
	"""

	def __init__(self):
		self._entries: dict[ScopeKey, list[WorkflowDefinition]] = {}
		self._lock = threading.Lock()

	def get_candidates(
		self,
		session: Session,
		tenant_id: str,
		company_id: str,
		entity_type: EntityType,
	) -> list[WorkflowDefinition]:
		key = (tenant_id, company_id, EntityType(entity_type))
		with self._lock:
			cached = self._entries.get(key)
		if cached is not None:
			return cached

		definitions = api.list_active_definitions(session, *key)
		with self._lock:
			self._entries[key] = definitions
		logger.debug(f"Cached {len(definitions)} workflow definitions for {key}")
		return definitions

	def invalidate(self, tenant_id: str | None = None) -> None:
		"""Drop one tenant's entries, or everything when no tenant is given."""
		with self._lock:
			if tenant_id is None:
				self._entries.clear()
			else:
				for key in [k for k in self._entries if k[0] == tenant_id]:
					del self._entries[key]
		logger.debug(f"Workflow cache invalidated (tenant={tenant_id})")

	def __len__(self) -> int:
		with self._lock:
			return len(self._entries)
