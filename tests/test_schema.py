"""Tests for the strict DTO schema validator."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from field_policy import (
    EngineConfig, PolicyEngine, PolicyValidationError, decode_rule_set, schema_validator
)


@pytest.fixture
def valid_dto():
    return {
        "version": 1,
        "rules": [
            {
                "effect": "allow",
                "subject": {"id": "1"},
                "action": "read",
                "object": "document",
                "fields": ["title"],
                "conditions": [
                    {"field": "status", "operator": "eq", "value": "published"}
                ],
            }
        ],
    }


class TestSchemaValidator:

    def test_valid_dto_returned_unchanged(self, valid_dto):
        assert schema_validator(valid_dto) is valid_dto

    def test_without_conditions(self, valid_dto):
        del valid_dto["rules"][0]["conditions"]
        assert schema_validator(valid_dto) is valid_dto

    @pytest.mark.parametrize("dto", ["not an object", None, 123])
    def test_non_object(self, dto):
        with pytest.raises(PolicyValidationError):
            schema_validator(dto)

    def test_wrong_version(self):
        with pytest.raises(PolicyValidationError):
            schema_validator({"version": 2, "rules": []})

    def test_unknown_key_rejected(self, valid_dto):
        valid_dto["rules"][0]["priority"] = 10
        with pytest.raises(PolicyValidationError) as exc_info:
            schema_validator(valid_dto)
        assert any("priority" in e for e in exc_info.value.validation_errors)

    def test_no_coercion(self, valid_dto):
        valid_dto["rules"][0]["action"] = 5
        with pytest.raises(PolicyValidationError):
            schema_validator(valid_dto)

    def test_invalid_effect(self, valid_dto):
        valid_dto["rules"][0]["effect"] = "invalid"
        with pytest.raises(PolicyValidationError):
            schema_validator(valid_dto)

    def test_invalid_fields(self, valid_dto):
        valid_dto["rules"][0]["fields"] = [123]
        with pytest.raises(PolicyValidationError):
            schema_validator(valid_dto)

    @pytest.mark.parametrize("op", ["eq", "ne", "gt", "gte", "lt", "lte", "in", "nin", "size"])
    def test_every_operator_accepted(self, valid_dto, op):
        valid_dto["rules"][0]["conditions"][0] = {"field": "reviewers", "operator": op, "value": 2}
        assert schema_validator(valid_dto) is valid_dto

    def test_unknown_operator(self, valid_dto):
        valid_dto["rules"][0]["conditions"][0]["operator"] = "regex"
        with pytest.raises(PolicyValidationError):
            schema_validator(valid_dto)


class TestSchemaAsHook:

    def test_decode_with_schema(self, valid_dto):
        rules = decode_rule_set(valid_dto, validate=True, validator=schema_validator)
        assert len(rules) == 1

    def test_decode_rejects_extra_keys(self, valid_dto):
        valid_dto["extra"] = True
        # the built-in structural checks ignore unknown keys, the schema does not
        assert len(decode_rule_set(valid_dto, validate=True)) == 1
        with pytest.raises(PolicyValidationError):
            decode_rule_set(valid_dto, validate=True, validator=schema_validator)

    def test_engine_config_validator(self, valid_dto):
        config = EngineConfig(validate_on_decode=True, validator=schema_validator)
        valid_dto["rules"][0]["effect"] = "invalid"
        with pytest.raises(PolicyValidationError):
            PolicyEngine.from_dto(valid_dto, config=config)

    def test_engine_config_validation_off(self, valid_dto):
        config = EngineConfig(validate_on_decode=False, validator=schema_validator)
        valid_dto["rules"][0]["effect"] = "invalid"
        engine = PolicyEngine.from_dto(valid_dto, config=config)
        assert engine.check({"id": "1"}, "read", "document", "title", {"status": "published"}) is False
