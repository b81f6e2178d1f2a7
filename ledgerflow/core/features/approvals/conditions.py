# (c) Copyright Datacraft, 2026
"""
Rule evaluation for workflow and step conditions.

Conditions are typed at definition time (see ``schema.Condition``), so
evaluation never parses or coerces free-form expressions. Any attribute
that is missing or of an incompatible type makes the condition false.
"""
import logging
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from .schema import (
	Condition,
	ContainsCondition,
	EqualsCondition,
	GreaterThanCondition,
	InCondition,
	LessThanCondition,
	LogicalOperator,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def evaluate(conditions: Sequence[Condition], attrs: Mapping[str, Any]) -> bool:
	"""
	Fold a condition list left to right.

	Each condition's ``logical_operator`` joins it with the next one;
	a missing operator between two conditions means AND. There is no
	precedence beyond declaration order: ``a OR b AND c`` is ``(a OR b) AND c``.

	Examples:
		>>> evaluate([], {"amount": 5})
		True

		>>> evaluate([GreaterThanCondition(field="amount", value=1000)], {"amount": 5000})
		True
	"""
	if not conditions:
		return True

	result = evaluate_one(conditions[0], attrs)
	for previous, condition in zip(conditions, conditions[1:]):
		if previous.logical_operator == LogicalOperator.OR:
			result = result or evaluate_one(condition, attrs)
		else:
			result = result and evaluate_one(condition, attrs)
	return result


def evaluate_one(condition: Condition, attrs: Mapping[str, Any]) -> bool:
	actual = attrs.get(condition.field, _MISSING)
	if actual is _MISSING or actual is None:
		return False

	if isinstance(condition, EqualsCondition):
		return _same_kind(actual, condition.value) and actual == condition.value
	if isinstance(condition, GreaterThanCondition):
		ordered = _ordered_pair(actual, condition.value)
		return ordered is not None and ordered[0] > ordered[1]
	if isinstance(condition, LessThanCondition):
		ordered = _ordered_pair(actual, condition.value)
		return ordered is not None and ordered[0] < ordered[1]
	if isinstance(condition, ContainsCondition):
		return _contains(actual, condition.value)
	if isinstance(condition, InCondition):
		return any(
			_same_kind(actual, candidate) and actual == candidate
			for candidate in condition.value
		)

	logger.warning(f"Unknown condition type: {type(condition).__name__}")
	return False


def _is_number(value: Any) -> bool:
	return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _same_kind(left: Any, right: Any) -> bool:
	"""Equality is only meaningful between values of the same kind."""
	if isinstance(left, bool) or isinstance(right, bool):
		return isinstance(left, bool) and isinstance(right, bool)
	if _is_number(left) and _is_number(right):
		return True
	if isinstance(left, str) and isinstance(right, str):
		return True
	return False


def _ordered_pair(actual: Any, expected: Any) -> tuple[Any, Any] | None:
	if _is_number(actual) and _is_number(expected):
		return actual, expected

	if isinstance(expected, date):
		if isinstance(actual, datetime):
			actual = actual.date()
		elif isinstance(actual, str):
			try:
				actual = date.fromisoformat(actual[:10])
			except ValueError:
				return None
		if isinstance(actual, date):
			return actual, expected

	return None


def _contains(actual: Any, needle: Any) -> bool:
	if isinstance(actual, str):
		return isinstance(needle, str) and needle in actual
	if isinstance(actual, (list, tuple, set, frozenset)):
		return any(_same_kind(item, needle) and item == needle for item in actual)
	return False


def flatten_attributes(context: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
	"""
	Flatten nested entity metadata into dot-notation names.

	{"customer": {"region": "EU"}} -> {"customer": {...}, "customer.region": "EU"}

	This lets conditions address nested values with ``field="customer.region"``.
	"""
	flattened = {}

	for key, value in context.items():
		full_key = f"{prefix}.{key}" if prefix else str(key)
		flattened[full_key] = value

		if isinstance(value, Mapping):
			flattened.update(flatten_attributes(value, full_key))

	return flattened
