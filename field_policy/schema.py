"""Strict schema for the rule set DTO (Pydantic models).

Mirrors the transport envelope exactly: unknown keys are rejected and
no type coercion takes place. ``schema_validator`` plugs into
``decode_rule_set(validator=...)`` and ``EngineConfig.validator``.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import PolicyValidationError

# Strict mode only accepts enum instances for Enum fields, so the wire
# values are spelled out as literals.
EffectValue = Literal["allow", "deny"]
OperatorValue = Literal["eq", "ne", "gt", "gte", "lt", "lte", "in", "nin", "size"]


class ConditionSchema(BaseModel):
    """Condition entry: {field, operator, value}."""
    model_config = ConfigDict(extra="forbid", strict=True)

    field: str
    operator: OperatorValue
    value: Any


class RuleSchema(BaseModel):
    """Rule entry; ``conditions`` is omitted for unconditional rules."""
    model_config = ConfigDict(extra="forbid", strict=True)

    effect: EffectValue
    subject: Any
    action: str
    object: str
    fields: List[str] = Field(..., min_length=1)
    conditions: Optional[List[ConditionSchema]] = None


class RuleSetSchema(BaseModel):
    """Versioned envelope: {version: 1, rules: [...]}."""
    model_config = ConfigDict(extra="forbid", strict=True)

    version: Literal[1]
    rules: List[RuleSchema]


def _format_errors(exc: ValidationError) -> List[str]:
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        errors.append(f"{location}: {error.get('msg', 'invalid')}")
    return errors


def schema_validator(dto: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a DTO against the strict schema.

    Returns:
        The DTO unchanged

    Raises:
        PolicyValidationError: listing every schema violation
    """
    try:
        RuleSetSchema.model_validate(dto)
    except ValidationError as e:
        errors = _format_errors(e)
        raise PolicyValidationError(
            f"Rule set failed schema validation ({len(errors)} errors)",
            validation_errors=errors,
        ) from e
    return dto
