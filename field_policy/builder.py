"""Fluent rule set construction.

    rules = (
        RuleSetBuilder()
        .allow({"role": "editor"}).to("read").on("document")
        .fields(["content"])
        .when("metadata.status", "eq", "published")
        .deny({"role": "editor"}).to("read").on("document")
        .fields(["author.email"])
        .build()
    )

Each step validates its input immediately, so a bad field path or
operator raises PolicyValidationError at the call that introduced it.
Several actions passed to ``to()`` expand into one rule per action.
"""

from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from .errors import PolicyValidationError
from .fields import WILDCARD
from .types import ANY_SUBJECT, Condition, Effect, Operator, Rule, RuleSet


def _validation_error(message: str, exc: ValidationError) -> PolicyValidationError:
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    ]
    return PolicyValidationError(message, validation_errors=errors)


class RuleSetBuilder:
    """Collects rules in insertion order and builds an immutable RuleSet."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: List[Rule] = list(rules)

    def allow(self, subject: Any) -> "ActionBuilder":
        return ActionBuilder(self, subject, Effect.ALLOW)

    def deny(self, subject: Any) -> "ActionBuilder":
        return ActionBuilder(self, subject, Effect.DENY)

    def allow_any(self) -> "ActionBuilder":
        return self.allow(ANY_SUBJECT)

    def deny_any(self) -> "ActionBuilder":
        return self.deny(ANY_SUBJECT)

    def add_rule(self, rule: Rule) -> "RuleSetBuilder":
        """Append an already-built rule."""
        if not isinstance(rule, Rule):
            raise PolicyValidationError(f"Expected Rule, got {type(rule).__name__}")
        self._rules.append(rule)
        return self

    def build(self) -> RuleSet:
        return RuleSet(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


class ActionBuilder:
    def __init__(self, builder: RuleSetBuilder, subject: Any, effect: Effect):
        self._builder = builder
        self._subject = subject
        self._effect = effect

    def to(self, action: str, *more_actions: str) -> "ObjectBuilder":
        actions = (action,) + more_actions
        for a in actions:
            if not isinstance(a, str) or not a:
                raise PolicyValidationError(f"Action must be a non-empty string, got {a!r}")
        return ObjectBuilder(self._builder, self._subject, self._effect, actions)


class ObjectBuilder:
    def __init__(self, builder: RuleSetBuilder, subject: Any, effect: Effect, actions: Tuple[str, ...]):
        self._builder = builder
        self._subject = subject
        self._effect = effect
        self._actions = actions

    def on(self, object: str) -> "FieldBuilder":
        if not isinstance(object, str) or not object:
            raise PolicyValidationError(f"Object must be a non-empty string, got {object!r}")
        return FieldBuilder(self._builder, self._subject, self._effect, self._actions, object)


class FieldBuilder:
    def __init__(
        self,
        builder: RuleSetBuilder,
        subject: Any,
        effect: Effect,
        actions: Tuple[str, ...],
        object: str
    ):
        self._builder = builder
        self._subject = subject
        self._effect = effect
        self._actions = actions
        self._object = object

    def fields(self, fields: Sequence[str]) -> "ConditionBuilder":
        if isinstance(fields, str):
            raise PolicyValidationError("fields() takes a list of paths, not a single string")
        return ConditionBuilder(
            self._builder, self._subject, self._effect,
            self._actions, self._object, tuple(fields)
        )

    def all_fields(self) -> "ConditionBuilder":
        return self.fields([WILDCARD])


class ConditionBuilder:
    """Last step: optional conditions, then commit the rule(s)."""

    def __init__(
        self,
        builder: RuleSetBuilder,
        subject: Any,
        effect: Effect,
        actions: Tuple[str, ...],
        object: str,
        fields: Tuple[str, ...]
    ):
        self._builder = builder
        self._subject = subject
        self._effect = effect
        self._actions = actions
        self._object = object
        self._fields = fields
        self._conditions: List[Condition] = []
        self._committed = False
        # Surface bad subjects and field paths here rather than at commit
        self._make_rules()

    def when(
        self,
        field: Union[str, Condition],
        operator: Optional[Union[str, Operator]] = None,
        value: Any = None
    ) -> "ConditionBuilder":
        """Add a condition; all conditions of a rule must hold."""
        if self._committed:
            raise PolicyValidationError("Rule already committed; start a new rule")
        if isinstance(field, Condition):
            condition = field
        else:
            try:
                condition = Condition(field=field, operator=operator, value=value)
            except ValidationError as e:
                raise _validation_error(f"Invalid condition on '{field}'", e) from e
        self._conditions.append(condition)
        return self

    def _make_rules(self) -> List[Rule]:
        rules = []
        for action in self._actions:
            try:
                rules.append(Rule(
                    effect=self._effect,
                    subject=self._subject,
                    action=action,
                    object=self._object,
                    field_patterns=self._fields,
                    conditions=tuple(self._conditions),
                ))
            except ValidationError as e:
                raise _validation_error(
                    f"Invalid {self._effect.value} rule for {action} {self._object}", e
                ) from e
        return rules

    def _commit(self) -> RuleSetBuilder:
        if not self._committed:
            for rule in self._make_rules():
                self._builder.add_rule(rule)
            self._committed = True
        return self._builder

    def and_(self) -> RuleSetBuilder:
        """Commit and return to the builder for the next rule."""
        return self._commit()

    def allow(self, subject: Any) -> ActionBuilder:
        return self._commit().allow(subject)

    def deny(self, subject: Any) -> ActionBuilder:
        return self._commit().deny(subject)

    def allow_any(self) -> ActionBuilder:
        return self._commit().allow_any()

    def deny_any(self) -> ActionBuilder:
        return self._commit().deny_any()

    def build(self) -> RuleSet:
        return self._commit().build()
