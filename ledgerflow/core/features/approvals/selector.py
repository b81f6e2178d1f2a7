# (c) Copyright Datacraft, 2026
"""Choose the single workflow definition that applies to an entity."""
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from ledgerflow.core.utils.tz import ensure_utc
from .conditions import evaluate
from .exceptions import NoApplicableWorkflow
from .schema import EntityType, PRIORITY_RANK, WorkflowDefinition

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def candidate_matches(
	definition: WorkflowDefinition,
	tenant_id: str,
	company_id: str,
	entity_type: EntityType,
	entity_sub_type: str | None,
) -> bool:
	"""Scope filter; an unset sub type on the definition is a wildcard."""
	if not definition.is_active:
		return False
	if definition.tenant_id != tenant_id or definition.company_id != company_id:
		return False
	if definition.entity_type != entity_type:
		return False
	if definition.entity_sub_type is None:
		return True
	return definition.entity_sub_type == entity_sub_type


def _rank(definition: WorkflowDefinition, entity_sub_type: str | None) -> tuple:
	exact = definition.entity_sub_type is not None and definition.entity_sub_type == entity_sub_type
	return (
		PRIORITY_RANK[definition.priority],
		1 if exact else 0,
		ensure_utc(definition.updated_at) or _EPOCH,
	)


def select_workflow(
	definitions: Iterable[WorkflowDefinition],
	tenant_id: str,
	company_id: str,
	entity_type: EntityType | str,
	entity_sub_type: str | None,
	attrs: Mapping[str, Any],
) -> WorkflowDefinition:
	"""
	Pick the applicable workflow.

	Candidates are filtered by scope and workflow-level conditions, then
	ranked by priority, exact sub type over wildcard, and most recent update.

	Raises:
		NoApplicableWorkflow: if nothing matches
	"""
	entity_type = EntityType(entity_type)

	candidates = [
		definition
		for definition in definitions
		if candidate_matches(definition, tenant_id, company_id, entity_type, entity_sub_type)
		and evaluate(definition.conditions, attrs)
	]

	if not candidates:
		raise NoApplicableWorkflow(
			f"No active workflow for {entity_type.value}"
			f"{'/' + entity_sub_type if entity_sub_type else ''} "
			f"in company {company_id}"
		)

	selected = max(candidates, key=lambda d: _rank(d, entity_sub_type))
	logger.debug(
		f"Selected workflow {selected.id} ({selected.name}) "
		f"from {len(candidates)} candidates"
	)
	return selected
