# (c) Copyright Datacraft, 2026
"""Tests for the workflow definition cache."""
from unittest.mock import patch

from ledgerflow.core.features.approvals.cache import WorkflowCache
from ledgerflow.core.features.approvals.db import api

TENANT = "tenant-1"
COMPANY = "acme"


def test_candidates_are_loaded_once_per_scope(engine, workflow_data, db_session):
    engine.create_workflow(workflow_data())
    cache = WorkflowCache()

    with patch.object(api, "list_active_definitions", wraps=api.list_active_definitions) as loader:
        first = cache.get_candidates(db_session, TENANT, COMPANY, "invoice")
        second = cache.get_candidates(db_session, TENANT, COMPANY, "invoice")
        cache.get_candidates(db_session, TENANT, COMPANY, "bill")

    assert first is second
    assert [d.name for d in first] == ["Invoice approval"]
    assert loader.call_count == 2
    assert len(cache) == 2


def test_invalidate_single_tenant():
    cache = WorkflowCache()
    with patch.object(api, "list_active_definitions", return_value=[]):
        cache.get_candidates(None, "tenant-1", COMPANY, "invoice")
        cache.get_candidates(None, "tenant-2", COMPANY, "invoice")

    cache.invalidate("tenant-1")
    assert len(cache) == 1

    cache.invalidate()
    assert len(cache) == 0


def test_engine_invalidates_on_administrative_writes(engine, workflow_data, submit):
    first = engine.create_workflow(workflow_data())
    request = submit(engine, entity_id="inv-1")
    assert request.workflow_id == first.id

    second = engine.create_workflow(workflow_data(name="Priority invoices", priority="high"))
    request = submit(engine, entity_id="inv-2")
    assert request.workflow_id == second.id

    engine.deactivate_workflow(TENANT, second.id)
    request = submit(engine, entity_id="inv-3")
    assert request.workflow_id == first.id
