"""Tests for field path resolution and field pattern matching.

Validates:
1. Value lookup through mappings, sequences and objects
2. Wildcard lookup picks element 0
3. Missing data resolves to MISSING, never raises
4. Field pattern matching is positional, exact and case-sensitive
5. Path validation at rule-construction time
"""

import sys
from dataclasses import dataclass
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from field_policy.fields import (
    MISSING, matches_field_pattern, resolve, safe_get, validate_path
)


# ============== FIXTURES ==============

@pytest.fixture
def document():
    return {
        "id": "doc-1",
        "metadata": {"status": "published", "version": 3, "title": None},
        "author": {"id": "u1", "email": "a@example.com"},
        "reviewers": ["alice", "bob"],
        "comments": [
            {"author": "carol", "text": "first"},
            {"author": "dave", "text": "second"},
        ],
    }


@dataclass
class Account:
    id: str
    role: str


# ============== TESTS ==============

class TestResolve:
    """Value lookup for conditions."""

    def test_nested_mapping(self, document):
        assert resolve(document, "metadata.status") == "published"
        assert resolve(document, "author.email") == "a@example.com"

    def test_top_level_value(self, document):
        assert resolve(document, "reviewers") == ["alice", "bob"]

    def test_missing_key(self, document):
        assert resolve(document, "metadata.missing") is MISSING
        assert resolve(document, "nope.deeper") is MISSING

    def test_explicit_none_is_a_value(self, document):
        assert resolve(document, "metadata.title") is None

    def test_path_past_primitive(self, document):
        assert resolve(document, "id.length") is MISSING
        assert resolve(document, "metadata.version.major") is MISSING

    def test_wildcard_selects_first_element(self, document):
        assert resolve(document, "comments.*.author") == "carol"
        assert resolve(document, "reviewers.*") == "alice"

    def test_wildcard_on_mapping_is_missing(self, document):
        assert resolve(document, "metadata.*") is MISSING

    def test_wildcard_on_empty_sequence_is_missing(self):
        assert resolve({"comments": []}, "comments.*.text") is MISSING

    def test_numeric_segment_indexes_sequence(self, document):
        assert resolve(document, "comments.1.text") == "second"
        assert resolve(document, "reviewers.5") is MISSING

    def test_non_numeric_segment_on_sequence(self, document):
        assert resolve(document, "reviewers.first") is MISSING

    def test_object_attributes(self):
        data = {"owner": Account(id="u1", role="editor")}
        assert resolve(data, "owner.role") == "editor"
        assert resolve(data, "owner.missing") is MISSING
        assert resolve(data, "owner.__class__") is MISSING

    def test_none_and_bad_input(self):
        assert resolve(None, "a") is MISSING
        assert resolve({"a": 1}, "") is MISSING
        assert resolve({"a": 1}, None) is MISSING

    def test_safe_get_default(self, document):
        assert safe_get(document, "metadata.status") == "published"
        assert safe_get(document, "metadata.missing") is None
        assert safe_get(document, "metadata.missing", default="n/a") == "n/a"

    def test_missing_is_falsy(self):
        assert not MISSING
        assert repr(MISSING) == "MISSING"


class TestFieldPatterns:
    """Field name matching for rule scopes."""

    def test_star_matches_everything(self):
        assert matches_field_pattern("*", "content")
        assert matches_field_pattern("*", "author.email")
        assert matches_field_pattern("*", "*")

    def test_exact_literal(self):
        assert matches_field_pattern("content", "content")
        assert matches_field_pattern("metadata.title", "metadata.title")

    def test_segment_count_must_match(self):
        assert not matches_field_pattern("metadata", "metadata.title")
        assert not matches_field_pattern("metadata.title", "metadata")

    def test_wildcard_segment(self):
        assert matches_field_pattern("comments.*.text", "comments.0.text")
        assert matches_field_pattern("comments.*.text", "comments.17.text")
        assert not matches_field_pattern("comments.*.text", "comments.0.author")
        assert not matches_field_pattern("comments.*.text", "comments.text")
        assert not matches_field_pattern("comments.*", "comments.0.text")

    def test_no_prefix_or_substring(self):
        assert not matches_field_pattern("meta", "metadata")
        assert not matches_field_pattern("content", "contents")
        assert not matches_field_pattern("author", "author.email")

    def test_case_sensitive(self):
        assert not matches_field_pattern("Content", "content")

    def test_object_level_request(self):
        # check_object asks for "*"; only the all-fields pattern covers it
        assert not matches_field_pattern("content", "*")
        assert not matches_field_pattern("metadata.*", "*")

    def test_non_string_inputs(self):
        assert not matches_field_pattern(None, "content")
        assert not matches_field_pattern("content", 3)


class TestValidatePath:
    """Rule-construction time path checks."""

    def test_valid_paths(self):
        assert validate_path("content") == "content"
        assert validate_path("comments.*.text") == "comments.*.text"
        assert validate_path("*") == "*"

    @pytest.mark.parametrize("path", ["", "a..b", ".a", "a."])
    def test_empty_segments_rejected(self, path):
        with pytest.raises(ValueError):
            validate_path(path)

    def test_wildcards_can_be_forbidden(self):
        with pytest.raises(ValueError):
            validate_path("comments.*", allow_wildcards=False)
        with pytest.raises(ValueError):
            validate_path("*", allow_wildcards=False)

    def test_non_string_rejected(self):
        with pytest.raises(ValueError):
            validate_path(42)
