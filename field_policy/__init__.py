"""field_policy - Field-level ABAC decision engine.

Decides whether a subject may perform an action on one field of a
resource, given declarative allow/deny rules and the resource's data.
Deny-by-default, deny overrides allow, fail-closed on missing data.
"""

from .fields import WILDCARD, MISSING, matches_field_pattern, resolve, safe_get, validate_path
from .types import (
    ANY_SUBJECT, CheckRequest, Condition, DecisionResult, Effect, Operator, Rule, RuleSet
)
from .errors import PolicyError, PolicyValidationError, UnsupportedVersionError
from .config import EngineConfig
from .evaluator import check, check_object, evaluate_condition, explain, rule_applies
from .compiler import (
    DTO_VERSION, compute_rule_set_hash, decode_rule_set, dumps_rule_set,
    encode_rule_set, loads_rule_set, validate_rule_set_dto, validate_structure
)
from .schema import schema_validator
from .builder import RuleSetBuilder
from .engine import PolicyEngine

__version__ = "0.7.0"

__all__ = [
    "WILDCARD",
    "ANY_SUBJECT",
    "MISSING",
    "resolve",
    "safe_get",
    "matches_field_pattern",
    "validate_path",
    "CheckRequest",
    "Condition",
    "DecisionResult",
    "Effect",
    "Operator",
    "Rule",
    "RuleSet",
    "PolicyError",
    "PolicyValidationError",
    "UnsupportedVersionError",
    "EngineConfig",
    "check",
    "check_object",
    "evaluate_condition",
    "explain",
    "rule_applies",
    "DTO_VERSION",
    "compute_rule_set_hash",
    "decode_rule_set",
    "dumps_rule_set",
    "encode_rule_set",
    "loads_rule_set",
    "validate_rule_set_dto",
    "validate_structure",
    "schema_validator",
    "RuleSetBuilder",
    "PolicyEngine",
]
