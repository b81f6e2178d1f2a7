# (c) Copyright Datacraft, 2026
"""Tests for workflow definition validation."""
import pytest
from pydantic import ValidationError

from ledgerflow.core.features.approvals.schema import (
    EscalationRule,
    StepDefinition,
    WorkflowDefinitionCreate,
)


def step(**overrides):
    data = {"name": "Review", "order": 1, "approver_type": "user", "approver_id": "u-1"}
    data.update(overrides)
    return data


def workflow(**overrides):
    data = {
        "tenant_id": "tenant-1",
        "company_id": "acme",
        "name": "Bills",
        "entity_type": "bill",
        "steps": [step(id="s1")],
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize(
    "overrides",
    [
        {"approver_type": "user", "approver_id": None},
        {"approver_type": "role", "approver_id": None},
        {"approver_type": "department", "approver_id": None},
        {"approver_type": "amount_based", "approver_id": None},
        {"approver_type": "role", "role": "manager"},
    ],
)
def test_step_requires_exactly_the_approver_field(overrides):
    with pytest.raises(ValidationError):
        StepDefinition.model_validate(step(**overrides))


def test_step_with_matching_approver_field():
    parsed = StepDefinition.model_validate(
        step(approver_type="amount_based", approver_id=None, amount_threshold="2500.50")
    )

    assert str(parsed.amount_threshold) == "2500.50"
    assert parsed.is_required is True
    assert parsed.id


def test_step_orders_must_be_contiguous():
    with pytest.raises(ValidationError, match="contiguous"):
        WorkflowDefinitionCreate.model_validate(
            workflow(steps=[step(id="s1", order=1), step(id="s3", order=3)])
        )


def test_step_orders_must_be_unique():
    with pytest.raises(ValidationError):
        WorkflowDefinitionCreate.model_validate(
            workflow(steps=[step(id="s1", order=1), step(id="s2", order=1)])
        )


def test_workflow_needs_at_least_one_step():
    with pytest.raises(ValidationError):
        WorkflowDefinitionCreate.model_validate(workflow(steps=[]))


def test_escalation_rule_must_reference_a_step():
    with pytest.raises(ValidationError, match="unknown steps"):
        WorkflowDefinitionCreate.model_validate(
            workflow(escalation_rules=[{"step_id": "missing", "escalate_to": "manager"}])
        )


def test_specific_user_escalation_requires_user():
    with pytest.raises(ValidationError):
        EscalationRule(step_id="s1", escalate_to="specific_user")

    rule = EscalationRule(step_id="s1", escalate_to="specific_user", escalate_to_user_id="cfo")
    assert rule.escalate_to_user_id == "cfo"


def test_unknown_condition_operator_rejected():
    with pytest.raises(ValidationError):
        WorkflowDefinitionCreate.model_validate(
            workflow(conditions=[{"field": "amount", "operator": "between", "value": 5}])
        )


def test_in_condition_requires_a_collection():
    with pytest.raises(ValidationError):
        WorkflowDefinitionCreate.model_validate(
            workflow(conditions=[{"field": "region", "operator": "in", "value": "EU"}])
        )


def test_trailing_logical_operator_rejected():
    with pytest.raises(ValidationError, match="last condition"):
        WorkflowDefinitionCreate.model_validate(
            workflow(conditions=[
                {"field": "amount", "operator": "greater_than", "value": 5, "logical_operator": "AND"},
            ])
        )


def test_ordered_steps_sorts_by_order():
    parsed = WorkflowDefinitionCreate.model_validate(
        workflow(steps=[step(id="b", order=2, name="Second"), step(id="a", order=1, name="First")])
    )

    assert [s.id for s in parsed.ordered_steps()] == ["a", "b"]
