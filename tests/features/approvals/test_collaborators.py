# (c) Copyright Datacraft, 2026
"""Tests for the default collaborator implementations."""
from unittest.mock import MagicMock

import pytest

from ledgerflow.core.config import Settings
from ledgerflow.core.features.approvals import dependencies
from ledgerflow.core.features.approvals.collaborators import (
    EntityCallbackRegistry,
    LoggingNotifier,
    StaticDirectory,
)


def test_static_directory_first_match_wins():
    directory = StaticDirectory(
        roles={"acme": {"manager": ["u-1", "u-2"]}},
        departments={"acme": {"sales": ["u-7"]}},
    )

    assert directory.resolve_approver("acme", role="manager") == "u-1"
    assert directory.resolve_approver("acme", department="sales") == "u-7"
    assert directory.resolve_approver("acme", role="ceo") is None
    assert directory.resolve_approver("globex", role="manager") is None


def test_callback_registry_dispatches_by_entity_type():
    registry = EntityCallbackRegistry()
    invoices = MagicMock()
    bills = MagicMock()
    registry.register("invoice", invoices)
    registry.register("bill", bills)

    registry.on_approval_resolved("invoice", "inv-1", "approved")
    registry.on_approval_resolved("expense", "exp-1", "rejected")

    invoices.assert_called_once_with("inv-1", "approved")
    bills.assert_not_called()


def test_callback_registry_rejects_unknown_entity_type():
    with pytest.raises(ValueError):
        EntityCallbackRegistry().register("spaceship", MagicMock())


def test_configure_collaborators(monkeypatch):
    monkeypatch.setattr(dependencies, "_collaborators", None)
    directory = StaticDirectory()

    collaborators = dependencies.configure_collaborators(
        directory=directory,
        settings=Settings(_env_file=None, log_config=None, workflow_cache_enabled=False),
    )

    assert dependencies.get_collaborators() is collaborators
    assert collaborators.directory is directory
    assert isinstance(collaborators.notifier, LoggingNotifier)
    assert collaborators.workflow_cache is None

    engine = dependencies.build_engine(MagicMock())
    assert engine.workflow_cache is None
    assert engine.resolver.directory is directory
