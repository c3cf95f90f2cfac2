"""Policy engine type definitions (Pydantic models).

Defines the data structures for conditions, rules, rule sets, check
requests and decision results. Rules and conditions are frozen once
built; rule sets only compose by concatenation.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Literal, Tuple, Union, overload

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .fields import validate_path

# Subject marker matching every subject. A template such as {"role": "*"}
# is an ordinary literal template and is not equivalent.
ANY_SUBJECT = "*"


class Effect(str, Enum):
    """Whether a rule grants or vetoes access."""
    ALLOW = "allow"
    DENY = "deny"


class Operator(str, Enum):
    """Allowed comparison operators."""
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NIN = "nin"
    SIZE = "size"


OPERATOR_VALUES = frozenset(o.value for o in Operator)
EFFECT_VALUES = frozenset(e.value for e in Effect)


def _json_shaped(value: Any) -> Any:
    """Tuples become lists, recursively, matching what a JSON round trip returns."""
    if isinstance(value, (list, tuple)):
        return [_json_shaped(item) for item in value]
    if isinstance(value, dict):
        return {key: _json_shaped(item) for key, item in value.items()}
    return value


class Condition(BaseModel):
    """Single condition: field OP value, tested against the request data."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., description="Dot-separated path into the request data")
    operator: Operator = Field(..., description="Comparison operator")
    value: Any = Field(..., description="Value to compare against")

    @field_validator("field")
    @classmethod
    def validate_field_path(cls, v: str) -> str:
        return validate_path(v)

    @field_validator("value")
    @classmethod
    def normalize_value(cls, v: Any) -> Any:
        return _json_shaped(v)

    @model_validator(mode="after")
    def validate_size_operand(self) -> "Condition":
        if self.operator == Operator.SIZE:
            if isinstance(self.value, bool) or not isinstance(self.value, int) or self.value < 0:
                raise ValueError(
                    f"Operator 'size' requires a non-negative integer, got {self.value!r}"
                )
        return self


class Rule(BaseModel):
    """Allow or deny rule for one (subject, action, object, fields) scope."""
    model_config = ConfigDict(frozen=True)

    effect: Effect
    subject: Union[Literal["*"], Dict[str, Any]] = Field(
        ..., description="ANY_SUBJECT or an attribute template (partial match)"
    )
    action: str = Field(..., min_length=1)
    object: str = Field(..., min_length=1, description="Resource type, exact match")
    field_patterns: Tuple[str, ...] = Field(..., min_length=1)
    conditions: Tuple[Condition, ...] = Field(default_factory=tuple, description="All must match")

    @field_validator("subject")
    @classmethod
    def normalize_subject(cls, v: Any) -> Any:
        return _json_shaped(v)

    @field_validator("field_patterns")
    @classmethod
    def validate_field_patterns(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        for pattern in v:
            validate_path(pattern)
        return v

    @property
    def is_deny(self) -> bool:
        return self.effect == Effect.DENY


class RuleSet(Sequence):
    """Ordered, immutable collection of rules.

    Rule sets never change after construction. ``with_rule`` and ``+``
    return new rule sets.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: Tuple[Rule, ...] = tuple(rules)

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    @overload
    def __getitem__(self, index: int) -> Rule: ...

    @overload
    def __getitem__(self, index: slice) -> "RuleSet": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return RuleSet(self._rules[index])
        return self._rules[index]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __add__(self, other: "RuleSet") -> "RuleSet":
        if not isinstance(other, RuleSet):
            return NotImplemented
        return RuleSet(self._rules + other._rules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return self._rules == other._rules

    __hash__ = None

    def __repr__(self) -> str:
        return f"RuleSet({len(self._rules)} rules)"

    def with_rule(self, rule: Rule) -> "RuleSet":
        return RuleSet(self._rules + (rule,))


@dataclass(frozen=True)
class CheckRequest:
    """One access question: may ``subject`` ``action`` ``object.field``?"""
    subject: Any
    action: str
    object: str
    field: str
    data: Any = None


class DecisionResult(BaseModel):
    """Result of policy evaluation with explanation."""
    allowed: bool
    deciding_rules: List[int] = Field(default_factory=list, description="Indexes into the rule set")
    explanation_text: str = ""
