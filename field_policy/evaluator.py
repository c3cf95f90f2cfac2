"""Policy evaluation engine.

Deterministic, fail-closed rule matching:
1. Deny-by-default
2. Any applicable deny rule vetoes the request (short-circuit)
3. Otherwise any applicable allow rule grants it

Evaluation never raises. Missing data, malformed rules and type
mismatches all make the affected condition or rule a non-match.
"""

from collections.abc import Mapping
from typing import Any, Iterator, List, Optional

from .fields import MISSING, get_attribute, matches_field_pattern, resolve
from .types import (
    ANY_SUBJECT, CheckRequest, Condition, DecisionResult, Effect, Operator,
    Rule, RuleSet
)

_SEQUENCES = (list, tuple)
_UNSTRUCTURED = (str, bytes, bytearray, int, float, bool, type(None), list, tuple)


def _operator_of(condition: Condition) -> Optional[Operator]:
    try:
        return Operator(getattr(condition, "operator", None))
    except ValueError:
        return None


def _strict_equal(left: Any, right: Any) -> bool:
    """Equality that keeps booleans apart from numbers (True != 1)."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _element_matches(element: Any, expected: Any) -> bool:
    """Array membership test for in/nin.

    Structured elements (mappings or plain objects) match a structured
    expected value when they contain every key/value pair of it; extra
    keys are ignored.
    """
    if isinstance(expected, Mapping) and not isinstance(element, _UNSTRUCTURED):
        for key, value in expected.items():
            actual = get_attribute(element, key)
            if actual is MISSING or not _strict_equal(actual, value):
                return False
        return True
    return _strict_equal(element, expected)


def evaluate_condition(condition: Condition, data: Any) -> bool:
    """Evaluate a single condition against the request data.

    Missing fields: returns False (safe default)
    """
    field_value = resolve(data, getattr(condition, "field", None))

    if field_value is MISSING:
        return False

    op = _operator_of(condition)
    target = getattr(condition, "value", None)

    try:
        if op == Operator.EQ:
            return _strict_equal(field_value, target)
        elif op == Operator.NE:
            return not _strict_equal(field_value, target)
        elif op == Operator.GT:
            return bool(field_value > target)
        elif op == Operator.GTE:
            return bool(field_value >= target)
        elif op == Operator.LT:
            return bool(field_value < target)
        elif op == Operator.LTE:
            return bool(field_value <= target)
        elif op == Operator.IN:
            return isinstance(field_value, _SEQUENCES) and any(
                _element_matches(item, target) for item in field_value
            )
        elif op == Operator.NIN:
            return isinstance(field_value, _SEQUENCES) and not any(
                _element_matches(item, target) for item in field_value
            )
        elif op == Operator.SIZE:
            return isinstance(field_value, _SEQUENCES) and _strict_equal(len(field_value), target)
    except (TypeError, ValueError):
        # Type mismatch = condition doesn't match
        return False

    return False


def _subject_matches(pattern: Any, subject: Any) -> bool:
    if isinstance(pattern, str):
        return pattern == ANY_SUBJECT
    if not isinstance(pattern, Mapping):
        return False
    for key, expected in pattern.items():
        actual = get_attribute(subject, key)
        if actual is MISSING or not _strict_equal(actual, expected):
            return False
    return True


def _exact(rule_value: Any, requested: Any) -> bool:
    return isinstance(rule_value, str) and isinstance(requested, str) and rule_value == requested


def _fields_match(patterns: Any, requested_field: str) -> bool:
    if not isinstance(patterns, _SEQUENCES):
        return False
    return any(matches_field_pattern(pattern, requested_field) for pattern in patterns)


def _conditions_hold(conditions: Any, data: Any) -> bool:
    if conditions is None:
        return True
    if not isinstance(conditions, _SEQUENCES):
        return False
    return all(
        isinstance(condition, Condition) and evaluate_condition(condition, data)
        for condition in conditions
    )


def rule_applies(rule: Rule, request: CheckRequest) -> bool:
    """Check whether a rule governs the request.

    Subject, action, object and field must all match and every condition
    must hold against the request data.
    """
    try:
        return (
            _subject_matches(rule.subject, request.subject)
            and _exact(rule.action, request.action)
            and _exact(rule.object, request.object)
            and _fields_match(rule.field_patterns, request.field)
            and _conditions_hold(rule.conditions, request.data)
        )
    except AttributeError:
        # Rule built without validation and missing attributes
        return False


def _effect_of(rule: Rule) -> Optional[Effect]:
    try:
        return Effect(getattr(rule, "effect", None))
    except ValueError:
        return None


def _applies_as(rule: Rule, request: CheckRequest, effect: Effect) -> bool:
    return _effect_of(rule) == effect and rule_applies(rule, request)


def _applicable(rule_set: RuleSet, request: CheckRequest, effect: Effect) -> Iterator[int]:
    for index, rule in enumerate(rule_set):
        if _applies_as(rule, request, effect):
            yield index


def check(rule_set: RuleSet, request: CheckRequest) -> bool:
    """Decide a request against a rule set.

    Two passes: an applicable deny rule is final; otherwise the decision
    is whether any allow rule applies. Rule order never changes the
    outcome.
    """
    if any(_applies_as(rule, request, Effect.DENY) for rule in rule_set):
        return False
    return any(_applies_as(rule, request, Effect.ALLOW) for rule in rule_set)


def check_object(rule_set: RuleSet, request: CheckRequest) -> bool:
    """Object-level check: same question for the all-fields wildcard."""
    return check(rule_set, CheckRequest(
        subject=request.subject,
        action=request.action,
        object=request.object,
        field="*",
        data=request.data,
    ))


def explain(rule_set: RuleSet, request: CheckRequest) -> DecisionResult:
    """Evaluate a request and report which rules decided it.

    The deciding rules are the first applicable deny rule, or every
    applicable allow rule when no deny applies.
    """
    for index in _applicable(rule_set, request, Effect.DENY):
        return DecisionResult(
            allowed=False,
            deciding_rules=[index],
            explanation_text=_generate_explanation(rule_set, request, [index], False),
        )

    allowing: List[int] = list(_applicable(rule_set, request, Effect.ALLOW))
    allowed = bool(allowing)
    return DecisionResult(
        allowed=allowed,
        deciding_rules=allowing,
        explanation_text=_generate_explanation(rule_set, request, allowing, allowed),
    )


def _generate_explanation(
    rule_set: RuleSet,
    request: CheckRequest,
    indexes: List[int],
    allowed: bool
) -> str:
    """Generate human-readable explanation of a decision.

    Includes the request scope, the deciding rules with their conditions,
    and the decision.
    """
    parts = [f"{request.action} {request.object}.{request.field}:"]

    if not indexes:
        parts.append("no rule applied (default deny)")
    for index in indexes:
        rule = rule_set[index]
        summary = f"rule #{index} {_effect_of(rule).value}"
        if rule.conditions:
            cond_summaries = [
                f"{cond.field} {_operator_label(cond)} {cond.value!r} (got: {resolve(request.data, cond.field)!r})"
                for cond in rule.conditions
            ]
            summary += f" when {' AND '.join(cond_summaries)}"
        parts.append(summary)

    parts.append(f"→ Decision: {'ALLOW' if allowed else 'DENY'}")

    return "; ".join(parts)


def _operator_label(condition: Condition) -> str:
    op = _operator_of(condition)
    return op.value if op is not None else str(condition.operator)
