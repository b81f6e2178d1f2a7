# (c) Copyright Datacraft, 2026
"""Tests for manual and time-based escalation."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from ledgerflow.core.config import Settings
from ledgerflow.core.features.approvals.db import api
from ledgerflow.core.features.approvals.escalation import EscalationMonitor
from ledgerflow.core.features.approvals.exceptions import Conflict, Unsupported
from ledgerflow.core.utils.tz import ensure_utc, utc_now

TENANT = "tenant-1"
COMPANY = "acme"


@pytest.fixture
def escalating_workflow(workflow_data):
    """Manager review that escalates to a director after 24 hours."""
    def _build(rules=None, **step_overrides):
        data = workflow_data()
        data["steps"][0].update({"escalation_hours": 24, **step_overrides})
        data["escalation_rules"] = rules or [
            {"step_id": "manager-review", "escalate_to": "director"},
        ]
        return data

    return _build


def test_assignment_due_time_follows_escalation_hours(engine, escalating_workflow, submit):
    engine.create_workflow(escalating_workflow())

    request = submit(engine)
    [assignment] = request.assignments

    assert assignment.due_at - assignment.assigned_at == timedelta(hours=24)


def test_steps_without_rules_have_no_due_time(engine, workflow_data, submit):
    data = workflow_data()
    data["steps"][0]["escalation_hours"] = 24
    engine.create_workflow(data)

    request = submit(engine)

    assert request.assignments[0].due_at is None


def test_default_escalation_hours(make_engine, db_session, escalating_workflow, submit):
    engine = make_engine(
        db_session,
        settings=Settings(_env_file=None, log_config=None, default_escalation_hours=48),
    )
    engine.create_workflow(escalating_workflow(escalation_hours=None))

    [assignment] = submit(engine).assignments

    assert assignment.due_at - assignment.assigned_at == timedelta(hours=48)


def test_sweep_escalates_overdue_assignment(engine, escalating_workflow, submit, notifier):
    engine.create_workflow(escalating_workflow())
    request = submit(engine)
    [original] = request.assignments
    monitor = EscalationMonitor(engine)

    assert monitor.sweep(now=utc_now() + timedelta(hours=23)) == []

    escalated = monitor.sweep(now=utc_now() + timedelta(hours=25))

    assert escalated == [original.id]
    request = engine.get_request(TENANT, request.id)
    assert request.status == "pending"
    assert request.current_step == 1
    assert original.status == "escalated"
    assert original.escalated_to == "dir-1"
    assert "escalation deadline" in original.escalation_reason
    replacement = request.assignments[-1]
    assert replacement.user_id == "dir-1"
    assert replacement.step_id == original.step_id
    assert replacement.sequence == 1
    assert replacement.status == "pending"
    assert notifier.notify.call_args.kwargs["event"] == "escalated"


def test_sweep_never_escalates_the_same_assignment_twice(engine, escalating_workflow, submit):
    engine.create_workflow(escalating_workflow())
    request = submit(engine)
    original_id = request.assignments[0].id
    monitor = EscalationMonitor(engine)

    first = monitor.sweep(now=utc_now() + timedelta(hours=25))
    second = monitor.sweep(now=utc_now() + timedelta(hours=25))

    assert first == [original_id]
    assert original_id not in second
    with pytest.raises(Conflict):
        engine.process_action(TENANT, request.id, original_id, "escalate")


def test_escalation_chain_then_exhaustion(engine, escalating_workflow, submit, notifier):
    engine.create_workflow(escalating_workflow(rules=[
        {"step_id": "manager-review", "escalate_to": "director"},
        {"step_id": "manager-review", "escalate_to": "ceo", "escalation_hours": 12},
    ]))
    request = submit(engine)
    monitor = EscalationMonitor(engine)
    start = utc_now()

    monitor.sweep(now=start + timedelta(hours=25))
    monitor.sweep(now=start + timedelta(hours=50))
    request = engine.get_request(TENANT, request.id)

    assert [a.user_id for a in request.assignments] == ["mgr-1", "dir-1", "ceo-1"]
    assert request.status == "pending"

    exhausted = monitor.sweep(now=start + timedelta(hours=75))
    request = engine.get_request(TENANT, request.id)

    assert len(exhausted) == 1
    assert request.status == "escalated"
    assert request.escalated_at is not None
    assert [a.status for a in request.assignments] == ["escalated"] * 3
    assert notifier.notify.call_args.kwargs["event"] == "escalation_exhausted"
    assert monitor.sweep(now=start + timedelta(hours=100)) == []


def test_escalated_request_blocks_resubmission(engine, escalating_workflow, submit):
    engine.create_workflow(escalating_workflow())
    submit(engine)
    monitor = EscalationMonitor(engine)
    start = utc_now()
    monitor.sweep(now=start + timedelta(hours=25))
    monitor.sweep(now=start + timedelta(hours=50))

    with pytest.raises(Conflict):
        submit(engine)


def test_reassign_escalated_request(engine, escalating_workflow, submit):
    engine.create_workflow(escalating_workflow())
    request = submit(engine)
    monitor = EscalationMonitor(engine)
    start = utc_now()
    monitor.sweep(now=start + timedelta(hours=25))
    monitor.sweep(now=start + timedelta(hours=50))

    request = engine.reassign_escalated(TENANT, request.id, "cfo-1", assigned_by="admin")

    assert request.status == "pending"
    reassigned = request.assignments[-1]
    assert (reassigned.user_id, reassigned.sequence, reassigned.due_at) == ("cfo-1", 2, None)

    request = engine.process_action(TENANT, request.id, reassigned.id, "approve")
    assert request.status == "approved"
    assert request.completed_steps == 2


def test_reassign_requires_escalated_request(engine, escalating_workflow, submit):
    engine.create_workflow(escalating_workflow())
    request = submit(engine)

    with pytest.raises(Conflict):
        engine.reassign_escalated(TENANT, request.id, "cfo-1")


def test_manual_escalation_to_specific_user(engine, escalating_workflow, submit):
    engine.create_workflow(escalating_workflow(rules=[
        {"step_id": "manager-review", "escalate_to": "specific_user", "escalate_to_user_id": "cfo-1"},
    ]))
    request = submit(engine)
    [original] = request.assignments

    request = engine.process_action(
        TENANT, request.id, original.id, "escalate",
        comments="out of office", escalation_reason="approver on leave",
    )

    assert original.status == "escalated"
    assert original.escalation_reason == "approver on leave"
    assert request.assignments[-1].user_id == "cfo-1"
    assert request.status == "pending"


def test_escalation_without_rule_is_unsupported(engine, workflow_data, submit):
    engine.create_workflow(workflow_data())
    request = submit(engine)
    assignment_id = request.assignments[0].id

    with pytest.raises(Unsupported):
        engine.process_action(TENANT, request.id, assignment_id, "escalate")

    request = engine.get_request(TENANT, request.id)
    assert request.assignments[0].status == "pending"


def test_unresolvable_escalation_target_is_left_pending(engine, escalating_workflow, submit, directory, caplog):
    engine.create_workflow(escalating_workflow(rules=[
        {"step_id": "manager-review", "escalate_to": "ceo"},
    ]))
    del directory.roles[COMPANY]["ceo"]
    request = submit(engine)

    assert EscalationMonitor(engine).sweep(now=utc_now() + timedelta(hours=25)) == []

    request = engine.get_request(TENANT, request.id)
    assert [a.status for a in request.assignments] == ["pending"]
    assert "unresolvable" in caplog.text


def test_sweep_can_be_limited_to_a_tenant(engine, escalating_workflow, submit):
    engine.create_workflow(escalating_workflow())
    request = submit(engine)
    monitor = EscalationMonitor(engine)
    later = utc_now() + timedelta(hours=25)

    assert monitor.sweep(now=later, tenant_id="tenant-2") == []
    assert monitor.sweep(now=later, tenant_id=TENANT) == [request.assignments[0].id]


def test_due_times_survive_storage(engine, escalating_workflow, submit, db_session):
    engine.create_workflow(escalating_workflow())
    request = submit(engine)
    db_session.expire_all()

    stored = engine.get_request(TENANT, request.id).assignments[0]

    assert ensure_utc(stored.due_at) > utc_now() + timedelta(hours=23)


def test_ensure_utc_converts_offsets():
    pacific = timezone(timedelta(hours=-8))

    converted = ensure_utc(datetime(2026, 1, 1, 4, 0, tzinfo=pacific))

    assert converted.tzinfo is timezone.utc
    assert converted.hour == 12
    assert ensure_utc(datetime(2026, 1, 1, 4, 0)).tzinfo is timezone.utc
    assert ensure_utc(None) is None


def test_sweep_clock_in_another_zone(engine, escalating_workflow, submit):
    engine.create_workflow(escalating_workflow())
    request = submit(engine)
    pacific = timezone(timedelta(hours=-8))
    monitor = EscalationMonitor(engine)

    assert monitor.sweep(now=(utc_now() + timedelta(hours=23)).astimezone(pacific)) == []
    assert monitor.sweep(now=(utc_now() + timedelta(hours=25)).astimezone(pacific)) == [
        request.assignments[0].id
    ]


def test_sweep_continues_after_database_error(engine, escalating_workflow, submit, monkeypatch, caplog):
    engine.create_workflow(escalating_workflow())
    failing_id = submit(engine, entity_id="inv-1").id
    healthy = submit(engine, entity_id="inv-2")
    healthy_assignment_id = healthy.assignments[0].id
    original_get_request = api.get_request

    def flaky_get_request(session, tenant_id, request_id, **kwargs):
        if request_id == failing_id:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return original_get_request(session, tenant_id, request_id, **kwargs)

    monkeypatch.setattr(api, "get_request", flaky_get_request)

    escalated = EscalationMonitor(engine).sweep(now=utc_now() + timedelta(hours=25))

    assert escalated == [healthy_assignment_id]
    assert "Database error escalating" in caplog.text
