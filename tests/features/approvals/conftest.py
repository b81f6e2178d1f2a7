# (c) Copyright Datacraft, 2026
"""Shared fixtures for approval engine tests."""
import pytest
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ledgerflow.core.config import Settings
from ledgerflow.core.db.base import Base
from ledgerflow.core.features.approvals.cache import WorkflowCache
from ledgerflow.core.features.approvals.collaborators import StaticDirectory
from ledgerflow.core.features.approvals.db import orm  # noqa: F401
from ledgerflow.core.services.approval_engine import ApprovalEngine

TENANT = "tenant-1"
COMPANY = "acme"


@pytest.fixture
def db_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'approvals.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        db_url="sqlite://",
        log_config=None,
        approval_fallback_role="finance_director",
        default_escalation_hours=None,
    )


@pytest.fixture
def directory():
    return StaticDirectory(
        roles={
            COMPANY: {
                "manager": ["mgr-1", "mgr-2"],
                "finance_director": ["fd-1"],
                "director": ["dir-1"],
                "ceo": ["ceo-1"],
            }
        },
        departments={COMPANY: {"sales": ["sales-head"]}},
    )


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def entity_callback():
    return MagicMock()


@pytest.fixture
def make_engine(directory, notifier, entity_callback, settings):
    """Build an engine bound to a given session with the shared collaborators."""
    def _make(session, **overrides):
        options = {
            "directory": directory,
            "notifier": notifier,
            "entity_callback": entity_callback,
            "settings": settings,
        }
        options.update(overrides)
        return ApprovalEngine(session, **options)

    return _make


@pytest.fixture
def engine(make_engine, db_session):
    return make_engine(db_session, workflow_cache=WorkflowCache())


@pytest.fixture
def workflow_data():
    """
    Two-step invoice workflow: a manager review followed by an
    amount-based finance review with a 1000 threshold.
    """
    def _build(**overrides):
        data = {
            "tenant_id": TENANT,
            "company_id": COMPANY,
            "name": "Invoice approval",
            "entity_type": "invoice",
            "steps": [
                {
                    "id": "manager-review",
                    "name": "Manager review",
                    "order": 1,
                    "approver_type": "role",
                    "role": "manager",
                },
                {
                    "id": "finance-review",
                    "name": "Finance review",
                    "order": 2,
                    "approver_type": "amount_based",
                    "amount_threshold": 1000,
                },
            ],
        }
        data.update(overrides)
        return data

    return _build


@pytest.fixture
def submit():
    def _submit(engine, entity_id="inv-1", amount=500, **metadata):
        return engine.submit_for_approval(
            TENANT,
            COMPANY,
            "invoice",
            entity_id,
            requested_by="clerk-1",
            metadata={"amount": amount, **metadata},
        )

    return _submit
