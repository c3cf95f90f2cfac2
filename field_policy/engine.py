"""
field_policy/engine.py

PolicyEngine: decision API over one immutable rule set.

The engine holds no mutable state besides its rule set reference, so a
single instance can serve concurrent callers. To reload policies, build
a new engine (``with_rule_set``) and swap the reference.
"""

import logging
from typing import Any, Dict, Optional

from . import compiler, evaluator
from .config import EngineConfig, Validator
from .fields import WILDCARD
from .log import get_logger, log_structured
from .types import CheckRequest, DecisionResult, RuleSet

logger = get_logger("engine")


class PolicyEngine:
    """Evaluates access requests against a rule set.

    Deny-by-default; an applicable deny rule overrides every allow rule.
    """

    def __init__(self, rule_set: RuleSet, config: Optional[EngineConfig] = None):
        self._rule_set = rule_set if isinstance(rule_set, RuleSet) else RuleSet(rule_set)
        self.config = config or EngineConfig()

    @property
    def rule_set(self) -> RuleSet:
        return self._rule_set

    def with_rule_set(self, rule_set: RuleSet) -> "PolicyEngine":
        """New engine sharing this engine's config."""
        return PolicyEngine(rule_set, self.config)

    # ============ Decisions ============

    def check(
        self,
        subject: Any,
        action: str,
        object: str,
        field: str,
        data: Any = None
    ) -> bool:
        """Is ``subject`` allowed to ``action`` the ``field`` of ``object``?"""
        request = CheckRequest(subject=subject, action=action, object=object, field=field, data=data)
        allowed = evaluator.check(self._rule_set, request)
        if self.config.log_decisions:
            self._log_decision(request, allowed)
        return allowed

    def check_object(
        self,
        subject: Any,
        action: str,
        object: str,
        data: Any = None
    ) -> bool:
        """Object-level check; only all-fields ("*") rules can grant it."""
        return self.check(subject, action, object, WILDCARD, data)

    def explain(
        self,
        subject: Any,
        action: str,
        object: str,
        field: str,
        data: Any = None
    ) -> DecisionResult:
        request = CheckRequest(subject=subject, action=action, object=object, field=field, data=data)
        result = evaluator.explain(self._rule_set, request)
        if self.config.log_decisions:
            self._log_decision(request, result.allowed, result.deciding_rules)
        return result

    def _log_decision(self, request: CheckRequest, allowed: bool, deciding_rules=None) -> None:
        fields = {
            "action": request.action,
            "object": request.object,
            "field": request.field,
            "allowed": allowed,
        }
        if deciding_rules is not None:
            fields["deciding_rules"] = deciding_rules
        log_structured(logger, logging.DEBUG, "decision", **fields)

    # ============ Serialization ============

    def to_dto(self) -> Dict[str, Any]:
        return compiler.encode_rule_set(self._rule_set)

    def to_json(self) -> str:
        return compiler.dumps_rule_set(self._rule_set)

    @classmethod
    def from_dto(
        cls,
        dto: Any,
        validate: Optional[bool] = None,
        validator: Optional[Validator] = None,
        config: Optional[EngineConfig] = None
    ) -> "PolicyEngine":
        """Build an engine from a transport DTO.

        ``validate`` and ``validator`` default to the config's settings.

        Raises:
            PolicyValidationError: see compiler.decode_rule_set()
        """
        config = config or EngineConfig()
        rule_set = compiler.decode_rule_set(
            dto,
            validate=config.validate_on_decode if validate is None else validate,
            validator=validator or config.validator,
        )
        return cls(rule_set, config)

    @classmethod
    def from_json(
        cls,
        text: str,
        validate: Optional[bool] = None,
        validator: Optional[Validator] = None,
        config: Optional[EngineConfig] = None
    ) -> "PolicyEngine":
        config = config or EngineConfig()
        rule_set = compiler.loads_rule_set(
            text,
            validate=config.validate_on_decode if validate is None else validate,
            validator=validator or config.validator,
        )
        return cls(rule_set, config)

    def __repr__(self) -> str:
        return f"PolicyEngine({len(self._rule_set)} rules)"
