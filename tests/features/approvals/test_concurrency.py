# (c) Copyright Datacraft, 2026
"""Tests for concurrent actions on the same assignment."""
import pytest

from ledgerflow.core.features.approvals.db.orm import ApprovalRequest, StepAssignment
from ledgerflow.core.features.approvals.exceptions import Conflict

TENANT = "tenant-1"


@pytest.fixture
def pending_request(session_factory, make_engine, workflow_data, submit):
    with session_factory() as session:
        engine = make_engine(session)
        engine.create_workflow(workflow_data())
        request = submit(engine, amount=5000)
        return request.id, request.assignments[0].id


def test_racing_approvals_only_one_wins(session_factory, make_engine, pending_request):
    request_id, assignment_id = pending_request

    with session_factory() as first, session_factory() as second:
        engine_a = make_engine(first)
        engine_b = make_engine(second)
        # both callers have read the request while the assignment was pending
        engine_a.get_request(TENANT, request_id)
        engine_b.get_request(TENANT, request_id)

        engine_a.process_action(TENANT, request_id, assignment_id, "approve")

        with pytest.raises(Conflict):
            engine_b.process_action(TENANT, request_id, assignment_id, "approve")

    with session_factory() as session:
        request = session.get(ApprovalRequest, request_id)
        assignment = session.get(StepAssignment, assignment_id)

        assert request.completed_steps == 1
        assert request.current_step == 2
        assert assignment.status == "approved"
        assert len(request.assignments) == 2


def test_losing_reject_leaves_winner_untouched(session_factory, make_engine, pending_request, entity_callback):
    request_id, assignment_id = pending_request

    with session_factory() as first, session_factory() as second:
        engine_a = make_engine(first)
        engine_b = make_engine(second)
        engine_a.get_request(TENANT, request_id)
        engine_b.get_request(TENANT, request_id)

        engine_a.process_action(TENANT, request_id, assignment_id, "approve")

        with pytest.raises(Conflict):
            engine_b.process_action(TENANT, request_id, assignment_id, "reject")

    with session_factory() as session:
        request = session.get(ApprovalRequest, request_id)

        assert request.status == "pending"
        assert request.rejected_at is None
    entity_callback.on_approval_resolved.assert_not_called()
