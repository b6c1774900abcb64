"""
Exception hierarchy for agentgate.

All agentgate exceptions inherit from AgentGateError, allowing callers to catch
every agentgate-specific exception with a single except clause.

Exception Categories:
    - PolicyLoadError: The policy document could not be turned into a
      compiled policy (malformed, schema violation, bad pattern, unreadable file)
    - PolicyDeniedError: Raised by the opt-in PolicyEngine.check() helper when
      a tool call is denied

Decision-time denials are normally returned as ValidationResult values, not
raised. Load-time errors always propagate to the caller with the offending
field, tool or argument named in the context.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Policy load errors: 1xxx
ERROR_POLICY_LOAD = 1000
ERROR_POLICY_MALFORMED = 1001
ERROR_POLICY_SCHEMA = 1002
ERROR_POLICY_PATTERN = 1003
ERROR_POLICY_FILE = 1004

# Decision errors: 2xxx
ERROR_POLICY_DENIED = 2001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class AgentGateError(Exception):
    """
    Base exception for all agentgate errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Policy Load Errors
# =============================================================================


@dataclass
class PolicyLoadError(AgentGateError):
    """
    Base class for errors raised while loading a policy.

    A load error aborts the whole load. The engine keeps whatever policy it
    had before (or stays unloaded and denies everything).
    """

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Failed to load policy"
        if self.code == 0:
            self.code = ERROR_POLICY_LOAD


@dataclass
class MalformedDocumentError(PolicyLoadError):
    """Raised when the policy text cannot be parsed into a policy document."""

    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Malformed policy document: {self.detail}"
        if self.code == 0:
            self.code = ERROR_POLICY_MALFORMED
        if not self.suggestion:
            self.suggestion = "Check the YAML syntax and the field types of the policy"
        super().__post_init__()
        self.context["detail"] = self.detail


@dataclass
class SchemaViolationError(PolicyLoadError):
    """Raised when a required field is missing or has an unexpected value."""

    field_name: str = ""
    expected: str | None = None
    actual: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.expected is not None:
                self.message = (
                    f"Unexpected {self.field_name} {self.actual!r}, "
                    f"expected {self.expected!r}"
                )
            else:
                self.message = f"Policy missing required field: {self.field_name}"
        if self.code == 0:
            self.code = ERROR_POLICY_SCHEMA
        super().__post_init__()
        self.context.update({
            "field": self.field_name,
            "expected": self.expected,
            "actual": self.actual,
        })


@dataclass
class PatternCompileError(PolicyLoadError):
    """Raised when an argument pattern in a tool rule does not compile."""

    tool: str = ""
    argument: str = ""
    pattern: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Invalid regex for tool {self.tool!r} arg {self.argument!r}: "
                f"{self.underlying_error}"
            )
        if self.code == 0:
            self.code = ERROR_POLICY_PATTERN
        if not self.suggestion:
            self.suggestion = "Fix the pattern in tool_rules; no part of the policy was applied"
        super().__post_init__()
        self.context.update({
            "tool": self.tool,
            "argument": self.argument,
            "pattern": self.pattern,
            "underlying_error": self.underlying_error,
        })


@dataclass
class PolicyFileError(PolicyLoadError):
    """Raised when a policy file cannot be read."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to read policy file {self.path!r}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_POLICY_FILE
        super().__post_init__()
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Decision Errors
# =============================================================================


@dataclass
class PolicyDeniedError(AgentGateError):
    """
    Raised when a tool call is blocked by the policy.

    Only PolicyEngine.check() raises this; is_allowed() returns the denial
    as a ValidationResult instead.

    Attributes:
        tool: Name of the tool that was blocked
        failed_arg: Argument that failed its constraint (None for tool-level denial)
        failed_pattern: The declared pattern the argument failed
        reason: Why the policy denied this call
    """

    tool: str = ""
    failed_arg: str | None = None
    failed_pattern: str | None = None
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Policy denied {self.tool}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_POLICY_DENIED
        self.context.update({
            "tool": self.tool,
            "failed_arg": self.failed_arg,
            "failed_pattern": self.failed_pattern,
            "reason": self.reason,
        })
