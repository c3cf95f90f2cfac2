"""
field_policy/errors.py

Policy errors raised while building or decoding rule sets.
All errors include structured data for logging and debugging.

Evaluation never raises: these errors only come out of rule
construction, the builder and the decode path.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class PolicyError(Exception):
    """Base class for policy errors."""
    message: str
    error_code: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class PolicyValidationError(PolicyError):
    """Rule set or rule failed structural validation."""
    validation_errors: List[str] = field(default_factory=list)

    def __init__(
        self,
        message: str,
        validation_errors: Optional[List[str]] = None,
        error_code: str = "VALIDATION_ERROR",
        **kwargs
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            **kwargs
        )
        self.validation_errors = validation_errors or []

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["validation_errors"] = list(self.validation_errors)
        return base


@dataclass
class UnsupportedVersionError(PolicyValidationError):
    """DTO envelope carries a version this library cannot read."""
    version: Any = None

    def __init__(self, message: str, version: Any = None, **kwargs):
        super().__init__(
            message=message,
            error_code="UNSUPPORTED_VERSION",
            **kwargs
        )
        self.version = version

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["version"] = self.version
        return base
