"""
Unit tests for schema models.

Tests cover:
- AgentPolicy parsing from YAML
- Null and missing sections
- Malformed documents
- ValidationResult helpers
"""

import pytest
from pydantic import ValidationError

from agentgate.errors import MalformedDocumentError
from agentgate.schema import (
    AgentPolicy,
    PolicySpec,
    ToolRule,
    ValidationResult,
    parse_policy_document,
)


# =============================================================================
# AgentPolicy Tests
# =============================================================================


class TestAgentPolicy:
    """Tests for the policy document model."""

    def test_parse_full_document(self, run_query_policy_yaml: str) -> None:
        """All sections are read, apiVersion maps to api_version."""
        doc = parse_policy_document(run_query_policy_yaml)
        assert doc.api_version == "aip.io/v1alpha1"
        assert doc.kind == "AgentPolicy"
        assert doc.metadata.name == "sql-agent"
        assert doc.spec.allowed_tools == ["list_tables"]
        assert len(doc.spec.tool_rules) == 1
        rule = doc.spec.tool_rules[0]
        assert rule.tool == "run_query"
        assert rule.allow_args["database"] == "^(prod|staging)$"
        assert rule.allow_args["query"] == r"^SELECT\s+.*"

    def test_metadata_optional_fields(self, safe_tool_policy_yaml: str) -> None:
        """version and owner are read when present."""
        doc = parse_policy_document(safe_tool_policy_yaml)
        assert doc.metadata.version == "1.2.0"
        assert doc.metadata.owner == "platform-team"

    def test_metadata_defaults(self) -> None:
        """version and owner default to None."""
        doc = AgentPolicy.model_validate({"apiVersion": "v1", "kind": "AgentPolicy"})
        assert doc.metadata.name == ""
        assert doc.metadata.version is None
        assert doc.metadata.owner is None

    def test_numeric_version_coerced_to_text(self) -> None:
        """YAML numbers in string fields become text."""
        doc = parse_policy_document(
            "apiVersion: v1\nkind: AgentPolicy\nmetadata:\n  name: n\n  version: 2\n"
        )
        assert doc.metadata.version == "2"

    def test_populate_by_name(self) -> None:
        """api_version can be set by field name too."""
        doc = AgentPolicy(api_version="v1", kind="AgentPolicy")
        assert doc.api_version == "v1"

    def test_missing_spec_is_empty(self) -> None:
        """A document without spec has an empty rule set."""
        doc = parse_policy_document("apiVersion: v1\nkind: AgentPolicy\n")
        assert doc.spec == PolicySpec()
        assert doc.spec.allowed_tools == []
        assert doc.spec.tool_rules == []
        assert doc.spec.denied_tools == []

    def test_null_sections_are_empty(self) -> None:
        """Keys present with no value are read as empty."""
        doc = parse_policy_document(
            """
apiVersion: v1
kind: AgentPolicy
metadata:
spec:
  allowed_tools:
  tool_rules:
    - tool: fetch_url
      allow_args:
  denied_tools:
"""
        )
        assert doc.metadata.name == ""
        assert doc.spec.allowed_tools == []
        assert doc.spec.denied_tools == []
        assert doc.spec.tool_rules[0].allow_args == {}

    def test_unknown_keys_ignored(self) -> None:
        """Extra keys do not reject the document."""
        doc = parse_policy_document(
            """
apiVersion: v1
kind: AgentPolicy
metadata:
  name: extra
  labels: {team: infra}
spec:
  allowed_tools: [a]
  rate_limits: {a: 10}
"""
        )
        assert doc.spec.allowed_tools == ["a"]

    def test_denied_tools_parsed(self) -> None:
        """denied_tools is kept on the model."""
        doc = parse_policy_document(
            "apiVersion: v1\nkind: AgentPolicy\nspec:\n  denied_tools: [rm_rf]\n"
        )
        assert doc.spec.denied_tools == ["rm_rf"]

    def test_json_document(self) -> None:
        """JSON is valid YAML and parses the same way."""
        doc = parse_policy_document(
            '{"apiVersion": "v1", "kind": "AgentPolicy", "spec": {"allowed_tools": ["a"]}}'
        )
        assert doc.spec.allowed_tools == ["a"]

    def test_bytes_input(self) -> None:
        """Raw bytes are accepted."""
        doc = parse_policy_document(b"apiVersion: v1\nkind: AgentPolicy\n")
        assert doc.kind == "AgentPolicy"

    def test_empty_document(self) -> None:
        """An empty document parses with empty required fields."""
        doc = parse_policy_document("")
        assert doc.api_version == ""
        assert doc.kind == ""

    def test_policy_is_immutable(self, safe_tool_policy_yaml: str) -> None:
        """Documents are frozen."""
        doc = parse_policy_document(safe_tool_policy_yaml)
        with pytest.raises(ValidationError):
            doc.kind = "Other"  # type: ignore[misc]

    def test_tool_rule_requires_tool(self) -> None:
        """A rule without a tool name is invalid."""
        with pytest.raises(ValidationError):
            ToolRule.model_validate({"allow_args": {"a": "b"}})


class TestMalformedDocuments:
    """Structural failures raise MalformedDocumentError."""

    def test_invalid_yaml(self) -> None:
        with pytest.raises(MalformedDocumentError) as exc_info:
            parse_policy_document("spec: [unclosed")
        assert "Invalid YAML" in exc_info.value.message

    def test_top_level_list(self) -> None:
        with pytest.raises(MalformedDocumentError) as exc_info:
            parse_policy_document("- a\n- b\n")
        assert "mapping" in exc_info.value.message

    def test_top_level_scalar(self) -> None:
        with pytest.raises(MalformedDocumentError):
            parse_policy_document("just a string")

    def test_allowed_tools_wrong_type(self) -> None:
        with pytest.raises(MalformedDocumentError):
            parse_policy_document(
                "apiVersion: v1\nkind: AgentPolicy\nspec:\n  allowed_tools: {a: b}\n"
            )

    def test_allow_args_wrong_type(self) -> None:
        with pytest.raises(MalformedDocumentError):
            parse_policy_document(
                """
apiVersion: v1
kind: AgentPolicy
spec:
  tool_rules:
    - tool: t
      allow_args: [a, b]
"""
            )

    def test_rule_without_tool(self) -> None:
        with pytest.raises(MalformedDocumentError):
            parse_policy_document(
                """
apiVersion: v1
kind: AgentPolicy
spec:
  tool_rules:
    - allow_args: {a: b}
"""
            )

    def test_invalid_utf8_bytes(self) -> None:
        with pytest.raises(MalformedDocumentError):
            parse_policy_document(b"apiVersion: \xff\xfe\xfa\n")

    @pytest.mark.parametrize("name", ["on", "off", "yes", "no"])
    def test_unquoted_yaml_boolean_tool_name(self, name: str) -> None:
        """YAML 1.1 reads these as booleans, which are not tool names."""
        with pytest.raises(MalformedDocumentError):
            parse_policy_document(
                f"apiVersion: v1\nkind: AgentPolicy\nspec:\n  allowed_tools: [{name}]\n"
            )

    def test_quoted_yaml_boolean_tool_name(self) -> None:
        doc = parse_policy_document(
            "apiVersion: v1\nkind: AgentPolicy\nspec:\n  allowed_tools: ['on']\n"
        )
        assert doc.spec.allowed_tools == ["on"]


# =============================================================================
# ValidationResult Tests
# =============================================================================


class TestValidationResult:
    """Tests for the decision model."""

    def test_allow(self) -> None:
        result = ValidationResult.allow("ok")
        assert result.allowed is True
        assert result.failed_arg is None
        assert result.failed_pattern is None
        assert result.reason == "ok"

    def test_deny_tool_level(self) -> None:
        result = ValidationResult.deny("not allowed")
        assert result.allowed is False
        assert result.failed_arg is None
        assert result.failed_pattern is None

    def test_deny_argument(self) -> None:
        result = ValidationResult.deny("bad url", failed_arg="url", failed_pattern="^https://")
        assert result.allowed is False
        assert result.failed_arg == "url"
        assert result.failed_pattern == "^https://"

    def test_to_dict(self) -> None:
        result = ValidationResult.deny("bad", failed_arg="a", failed_pattern="p")
        assert result.to_dict() == {
            "allowed": False,
            "failed_arg": "a",
            "failed_pattern": "p",
            "reason": "bad",
        }

    def test_extra_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ValidationResult(allowed=True, extra="x")  # type: ignore[call-arg]

    def test_is_immutable(self) -> None:
        result = ValidationResult.allow("ok")
        with pytest.raises(ValidationError):
            result.allowed = False  # type: ignore[misc]
