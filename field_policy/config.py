"""Engine configuration."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

# Validator hook: takes a candidate DTO, returns it (possibly normalized)
# or raises PolicyValidationError.
Validator = Callable[[Dict[str, Any]], Dict[str, Any]]


@dataclass
class EngineConfig:
    """Configuration for PolicyEngine.

    validate_on_decode: default for ``PolicyEngine.from_dto(validate=None)``
    validator: validation hook; None selects the built-in structural checks
    log_decisions: emit a debug entry per decision (subjects and data omitted)
    """
    validate_on_decode: bool = False
    validator: Optional[Validator] = None
    log_decisions: bool = False
