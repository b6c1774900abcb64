"""
Schema definitions for agentgate.

This module defines the Pydantic models for the policy document and the
decision output:
- AgentPolicy/PolicyMetadata/PolicySpec/ToolRule: the declared policy
- ValidationResult: the result of an authorization query

Design Decisions:
    - Models are immutable (frozen=True)
    - Unknown keys are ignored so documents carrying extra metadata still load
    - Numbers in string fields are coerced to text (YAML `version: 1.0`)
    - Explicit YAML nulls for collections are read as empty collections
    - Documents are read as YAML 1.1: unquoted on/off/yes/no are booleans,
      so `allowed_tools: [on]` is rejected; quote such tool names
    - Required-field checks (apiVersion, kind) happen in the loader so they
      surface as SchemaViolationError, not as parse errors
"""

from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from agentgate.errors import MalformedDocumentError


POLICY_KIND = "AgentPolicy"


# =============================================================================
# Policy Document Models
# =============================================================================


class PolicyMetadata(BaseModel):
    """
    Identifying information about a policy. Display only, never enforced.

    Attributes:
        name: Human-readable identifier for the agent/policy
        version: Optional version of this policy
        owner: Optional team or person responsible for this policy
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    name: str = Field(default="", description="Human-readable policy name")
    version: str | None = Field(default=None, description="Version of this policy")
    owner: str | None = Field(default=None, description="Responsible team or person")


class ToolRule(BaseModel):
    """
    Argument-level constraints for a single tool.

    Example YAML:

        tool_rules:
          - tool: fetch_url
            allow_args:
              url: "^https://github\\.com/.*"

    Attributes:
        tool: Name of the tool this rule applies to
        allow_args: Argument name -> regex pattern the argument must match
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    tool: str = Field(..., description="Tool the rule applies to")
    allow_args: dict[str, str] = Field(
        default_factory=dict,
        description="Argument name -> regex pattern",
    )

    @field_validator("allow_args", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        """Treat `allow_args:` with no value as no constraints."""
        return {} if v is None else v


class PolicySpec(BaseModel):
    """
    The rule set of a policy.

    Attributes:
        allowed_tools: Tools permitted with any arguments
        tool_rules: Tools permitted only when their constrained arguments match
        denied_tools: Reserved; parsed but not enforced
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    allowed_tools: list[str] = Field(
        default_factory=list,
        description="Tool names permitted without argument constraints",
    )
    tool_rules: list[ToolRule] = Field(
        default_factory=list,
        description="Argument-level rules; declaring one grants the tool",
    )
    denied_tools: list[str] = Field(
        default_factory=list,
        description="Reserved for deny precedence; not enforced",
    )

    @field_validator("allowed_tools", "tool_rules", "denied_tools", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        """Treat an empty YAML key as an empty list."""
        return [] if v is None else v


class AgentPolicy(BaseModel):
    """
    A parsed policy document (agent.yaml).

    Example:

        apiVersion: aip.io/v1alpha1
        kind: AgentPolicy
        metadata:
          name: code-review-agent
        spec:
          allowed_tools:
            - github_get_repo

    Attributes:
        api_version: Schema version tag (YAML key `apiVersion`)
        kind: Document kind, must be "AgentPolicy"
        metadata: Display information
        spec: The rules
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    api_version: str = Field(default="", alias="apiVersion")
    kind: str = Field(default="")
    metadata: PolicyMetadata = Field(default_factory=PolicyMetadata)
    spec: PolicySpec = Field(default_factory=PolicySpec)

    @field_validator("metadata", "spec", mode="before")
    @classmethod
    def null_as_default(cls, v: Any) -> Any:
        """Treat an empty YAML section as a default section."""
        return {} if v is None else v


# =============================================================================
# Decision Models
# =============================================================================


class ValidationResult(BaseModel):
    """
    Result of an authorization query.

    failed_arg and failed_pattern are set only when an argument constraint
    caused the denial. A tool-level denial leaves both as None.

    Attributes:
        allowed: Whether the tool call is permitted
        failed_arg: Name of the argument that failed validation
        failed_pattern: The declared pattern that argument failed to match
        reason: Human-readable explanation of the decision
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool
    failed_arg: str | None = None
    failed_pattern: str | None = None
    reason: str = ""

    @classmethod
    def allow(cls, reason: str) -> "ValidationResult":
        """Create an ALLOW result."""
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(
        cls,
        reason: str,
        failed_arg: str | None = None,
        failed_pattern: str | None = None,
    ) -> "ValidationResult":
        """Create a DENY result."""
        return cls(
            allowed=False,
            failed_arg=failed_arg,
            failed_pattern=failed_pattern,
            reason=reason,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return self.model_dump()


# =============================================================================
# YAML Parsing
# =============================================================================


def parse_policy_document(data: str | bytes) -> AgentPolicy:
    """
    Parse raw policy text into an AgentPolicy.

    YAML is accepted, and therefore JSON as well. Bytes are decoded by the
    YAML reader (UTF-8, or UTF-16 with a BOM). An empty document parses to
    an AgentPolicy with empty fields, which the loader then rejects for the
    missing apiVersion.

    Raises:
        MalformedDocumentError: If the text is not valid YAML, the top level
            is not a mapping, or a field has the wrong shape
    """
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise MalformedDocumentError(detail=f"Invalid YAML: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise MalformedDocumentError(
            detail=f"Top level must be a mapping, got {type(raw).__name__}",
        )

    try:
        return AgentPolicy.model_validate(raw)
    except ValidationError as e:
        raise MalformedDocumentError(detail=str(e)) from e
