"""Rule set codec and validator.

Converts rule sets to and from the versioned transport DTO, validates
structure, computes rule set hashes, and rejects invalid envelopes.

DTO shape::

    {"version": 1,
     "rules": [{"effect", "subject", "action", "object", "fields",
                "conditions"?}, ...]}

``conditions`` is omitted for rules without conditions so that
condition-less rules round-trip byte for byte.
"""

import copy
import hashlib
import json
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .config import Validator
from .errors import PolicyValidationError, UnsupportedVersionError
from .log import get_logger, log_structured
from .types import ANY_SUBJECT, EFFECT_VALUES, OPERATOR_VALUES, Condition, Rule, RuleSet

DTO_VERSION = 1

logger = get_logger("compiler")


# ============== ENCODE ==============

def _wire(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _as_list(value: Any) -> Any:
    return list(value) if isinstance(value, (list, tuple)) else value


def _encode_condition(condition: Condition) -> Dict[str, Any]:
    return {
        "field": getattr(condition, "field", None),
        "operator": _wire(getattr(condition, "operator", None)),
        "value": copy.deepcopy(getattr(condition, "value", None)),
    }


def _encode_rule(rule: Rule) -> Dict[str, Any]:
    entry = {
        "effect": _wire(getattr(rule, "effect", None)),
        "subject": copy.deepcopy(getattr(rule, "subject", None)),
        "action": getattr(rule, "action", None),
        "object": getattr(rule, "object", None),
        "fields": _as_list(getattr(rule, "field_patterns", None)),
    }
    conditions = getattr(rule, "conditions", None)
    if conditions:
        entry["conditions"] = [_encode_condition(c) for c in conditions]
    return entry


def encode_rule_set(rule_set: RuleSet) -> Dict[str, Any]:
    """Convert a rule set to its transport DTO.

    Rule order is preserved verbatim.
    """
    rules = [_encode_rule(rule) for rule in rule_set]
    log_structured(logger, logging.DEBUG, "rule set encoded", rule_count=len(rules))
    return {
        "version": DTO_VERSION,
        "rules": rules,
    }


def dumps_rule_set(rule_set: RuleSet) -> str:
    """Serialize a rule set to compact JSON.

    Key order follows the DTO, so equal rule sets give identical bytes.

    Raises:
        TypeError: if a subject or condition value is not JSON-serializable
    """
    return json.dumps(encode_rule_set(rule_set), separators=(",", ":"))


def compute_rule_set_hash(rule_set: RuleSet) -> str:
    """Compute SHA256 hash of canonical JSON representation.

    Creates a deterministic fingerprint so hosts can tell whether a
    reloaded policy actually changed.

    Returns:
        Hex-encoded SHA256 hash
    """
    # Canonical JSON: sorted keys, no extra whitespace
    canonical = json.dumps(encode_rule_set(rule_set), sort_keys=True, separators=(",", ":"))

    hash_bytes = hashlib.sha256(canonical.encode("utf-8")).digest()
    return hash_bytes.hex()


# ============== DECODE ==============

def _check_envelope(dto: Any) -> None:
    """Top-level checks applied to every decode, validated or not."""
    if not isinstance(dto, Mapping):
        raise PolicyValidationError(
            f"Rule set DTO must be an object, got {type(dto).__name__}"
        )

    version = dto.get("version")
    if type(version) is not int or version != DTO_VERSION:
        raise UnsupportedVersionError(
            f"Unsupported rule set version: {version!r} (expected {DTO_VERSION})",
            version=version,
        )

    if not isinstance(dto.get("rules"), list):
        raise PolicyValidationError("Rule set DTO must contain a 'rules' array")


def validate_structure(dto: Dict[str, Any]) -> Dict[str, Any]:
    """Built-in structural validation of a DTO.

    Checks:
    - effect is "allow" or "deny"
    - subject is "*" or an object
    - action and object are strings
    - fields is an array of strings
    - conditions, when present, are objects with a string field and a
      known operator

    Returns:
        The DTO unchanged

    Raises:
        PolicyValidationError: listing every violation found
    """
    _check_envelope(dto)

    errors: List[str] = []
    for i, rule in enumerate(dto["rules"]):
        where = f"rules.{i}"
        if not isinstance(rule, Mapping):
            errors.append(f"{where}: rule must be an object")
            continue

        effect = rule.get("effect")
        if not isinstance(effect, str) or effect not in EFFECT_VALUES:
            errors.append(f"{where}.effect: must be one of {sorted(EFFECT_VALUES)}")

        subject = rule.get("subject")
        if subject != ANY_SUBJECT and not isinstance(subject, Mapping):
            errors.append(f"{where}.subject: must be '{ANY_SUBJECT}' or an object")

        for key in ("action", "object"):
            if not isinstance(rule.get(key), str):
                errors.append(f"{where}.{key}: must be a string")

        fields = rule.get("fields")
        if not isinstance(fields, list) or not all(isinstance(f, str) for f in fields):
            errors.append(f"{where}.fields: must be an array of strings")

        conditions = rule.get("conditions")
        if conditions is None:
            continue
        if not isinstance(conditions, list):
            errors.append(f"{where}.conditions: must be an array")
            continue
        for j, cond in enumerate(conditions):
            cond_where = f"{where}.conditions.{j}"
            if not isinstance(cond, Mapping):
                errors.append(f"{cond_where}: condition must be an object")
                continue
            if not isinstance(cond.get("field"), str):
                errors.append(f"{cond_where}.field: must be a string")
            op = cond.get("operator")
            if not isinstance(op, str) or op not in OPERATOR_VALUES:
                errors.append(f"{cond_where}.operator: operator '{op}' not allowed")

    if errors:
        raise PolicyValidationError(
            f"Rule set failed validation ({len(errors)} errors)",
            validation_errors=errors,
        )
    return dto


def _run_validator(dto: Dict[str, Any], validator: Validator) -> Dict[str, Any]:
    """Call a validator hook; any failure becomes a PolicyValidationError."""
    try:
        result = validator(dto)
    except PolicyValidationError:
        raise
    except Exception as e:
        raise PolicyValidationError(
            str(e) or "Invalid rule set DTO",
            context={"validator": getattr(validator, "__name__", repr(validator))},
        ) from e

    if result is None:
        return dto
    _check_envelope(result)
    return result


def _rule_input(entry: Mapping) -> Dict[str, Any]:
    data = {
        "effect": entry.get("effect"),
        "subject": entry.get("subject"),
        "action": entry.get("action"),
        "object": entry.get("object"),
        "field_patterns": entry.get("fields"),
    }
    conditions = entry.get("conditions")
    if conditions is not None:
        data["conditions"] = conditions
    return data


def _build_rules(entries: List[Any]) -> List[Rule]:
    """Build validated rules, collecting every error before raising."""
    rules: List[Rule] = []
    errors: List[str] = []

    for i, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            errors.append(f"rules.{i}: rule must be an object")
            continue
        try:
            rules.append(Rule.model_validate(_rule_input(entry)))
        except ValidationError as e:
            for error in e.errors():
                location = ".".join(str(part) for part in error.get("loc", ()))
                errors.append(f"rules.{i}.{location}: {error.get('msg', 'invalid')}")

    if errors:
        raise PolicyValidationError(
            f"Rule set failed validation ({len(errors)} errors)",
            validation_errors=errors,
        )
    return rules


def _construct_condition(entry: Any) -> Any:
    if not isinstance(entry, Mapping):
        return entry
    return Condition.model_construct(
        field=entry.get("field"),
        operator=entry.get("operator"),
        value=entry.get("value"),
    )


def _construct_rule(entry: Any) -> Rule:
    """Build a rule without validation; malformed rules fail closed later."""
    if not isinstance(entry, Mapping):
        return Rule.model_construct()

    conditions = entry.get("conditions")
    if conditions is None:
        conditions = ()
    elif isinstance(conditions, list):
        conditions = tuple(_construct_condition(c) for c in conditions)

    return Rule.model_construct(
        effect=entry.get("effect"),
        subject=entry.get("subject"),
        action=entry.get("action"),
        object=entry.get("object"),
        field_patterns=_as_tuple(entry.get("fields")),
        conditions=conditions,
    )


def _as_tuple(value: Any) -> Any:
    return tuple(value) if isinstance(value, list) else value


def decode_rule_set(
    dto: Any,
    validate: bool = False,
    validator: Optional[Validator] = None
) -> RuleSet:
    """Build a rule set from its transport DTO.

    Args:
        dto: Decoded DTO (e.g. the result of json.loads)
        validate: Run structural validation on every rule
        validator: Validation hook used when ``validate`` is set;
            defaults to validate_structure()

    Returns:
        RuleSet preserving the DTO's rule order

    Raises:
        UnsupportedVersionError: version is not 1
        PolicyValidationError: missing rules array, or (validate=True)
            any malformed rule
    """
    try:
        _check_envelope(dto)
        if validate:
            dto = _run_validator(dto, validator or validate_structure)
            rules = _build_rules(dto["rules"])
        else:
            rules = [_construct_rule(entry) for entry in dto["rules"]]
    except PolicyValidationError as e:
        log_structured(
            logger, logging.WARNING, "rule set rejected",
            error_code=e.error_code, error=e.message,
            validation_errors=e.validation_errors,
        )
        raise

    log_structured(
        logger, logging.DEBUG, "rule set decoded",
        rule_count=len(rules), validated=validate,
    )
    return RuleSet(rules)


def loads_rule_set(
    text: str,
    validate: bool = False,
    validator: Optional[Validator] = None
) -> RuleSet:
    """Parse JSON text and decode it into a rule set.

    Raises:
        PolicyValidationError: invalid JSON, or any decode failure
    """
    try:
        dto = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise PolicyValidationError(f"Invalid JSON: {e}") from e
    return decode_rule_set(dto, validate=validate, validator=validator)


def validate_rule_set_dto(
    dto: Any,
    validator: Optional[Validator] = None
) -> Tuple[bool, str]:
    """Validate a DTO without keeping the result.

    Returns:
        (is_valid, message)
    """
    try:
        rule_set = decode_rule_set(dto, validate=True, validator=validator)
    except PolicyValidationError as e:
        if e.validation_errors:
            return False, f"{e.message}: {'; '.join(e.validation_errors)}"
        return False, e.message

    if not len(rule_set):
        return True, "Valid (no rules defined)"
    return True, "Valid"
