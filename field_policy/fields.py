"""Field path resolution and field pattern matching.

Two distinct uses of dot-separated paths:

- ``resolve()`` walks a data payload to fetch the value a condition tests.
  A ``*`` segment picks element 0 of a sequence.
- ``matches_field_pattern()`` compares a rule's field pattern with the
  concrete field being accessed. A ``*`` segment matches exactly one
  segment at the same position.

All value access goes through resolve() so missing data is handled
gracefully: lookups never raise, they return MISSING.
"""

from collections.abc import Mapping
from typing import Any, List

WILDCARD = "*"
PATH_SEPARATOR = "."

_PRIMITIVES = (str, bytes, bytearray, int, float, bool, type(None))
_SEQUENCES = (list, tuple)


class _Missing:
    """Sentinel for a path that does not resolve to a value."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def split_path(path: str) -> List[str]:
    return path.split(PATH_SEPARATOR)


def validate_path(path: str, allow_wildcards: bool = True) -> str:
    """Check a dotted path at rule-construction time.

    Raises:
        ValueError: empty path, empty segment, or a wildcard where
            wildcards are not allowed
    """
    if not isinstance(path, str):
        raise ValueError(f"Field path must be a string, got {type(path).__name__}")
    if not path:
        raise ValueError("Field path must not be empty")
    if path == WILDCARD:
        if not allow_wildcards:
            raise ValueError("Wildcard field path not allowed here")
        return path
    for segment in split_path(path):
        if not segment:
            raise ValueError(f"Field path '{path}' has an empty segment")
        if segment == WILDCARD and not allow_wildcards:
            raise ValueError(f"Field path '{path}' may not contain wildcards")
    return path


def get_attribute(value: Any, key: str) -> Any:
    """Fetch one named attribute from a mapping or a plain object.

    Mappings are indexed by key; other non-primitive objects (dataclasses,
    pydantic models, ...) expose public attributes. Returns MISSING when
    the attribute is absent.
    """
    if isinstance(value, Mapping):
        return value.get(key, MISSING)
    if isinstance(value, _PRIMITIVES) or isinstance(value, _SEQUENCES):
        return MISSING
    if not isinstance(key, str) or key.startswith("_"):
        return MISSING
    return getattr(value, key, MISSING)


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, _SEQUENCES):
        if segment == WILDCARD:
            return current[0] if current else MISSING
        if segment.isascii() and segment.isdigit():
            index = int(segment)
            return current[index] if index < len(current) else MISSING
        return MISSING
    if segment == WILDCARD:
        return MISSING
    return get_attribute(current, segment)


def resolve(root: Any, path: str) -> Any:
    """Resolve a dot-separated path against a nested value.

    Args:
        root: Data payload (mappings, sequences, objects)
        path: Dot-separated path like "metadata.status" or "comments.*.author"

    Returns:
        The value found, or MISSING if any segment fails to resolve
    """
    if not isinstance(path, str) or not path:
        return MISSING

    current = root
    for segment in split_path(path):
        if current is MISSING:
            return MISSING
        current = _step(current, segment)

    return current


def safe_get(payload: Any, field_path: str, default: Any = None) -> Any:
    """Like resolve(), but maps MISSING to ``default``."""
    value = resolve(payload, field_path)
    return default if value is MISSING else value


def matches_field_pattern(pattern: str, requested_path: str) -> bool:
    """Check whether a rule's field pattern covers the requested field.

    "*" matches every field. Otherwise the segment counts must be equal
    and each non-wildcard segment must equal the requested segment at the
    same position. Matching is exact and case-sensitive.
    """
    if not isinstance(pattern, str) or not isinstance(requested_path, str):
        return False
    if pattern == WILDCARD or pattern == requested_path:
        return True

    pattern_parts = split_path(pattern)
    requested_parts = split_path(requested_path)

    if len(pattern_parts) != len(requested_parts):
        return False

    return all(
        part == WILDCARD or part == requested
        for part, requested in zip(pattern_parts, requested_parts)
    )
