"""
Policy loader: turns policy text into an immutable CompiledPolicy.

Loading is all-or-nothing. The document is parsed, the required fields are
checked, every tool name is normalized and every argument pattern is
compiled before anything is returned. Any failure raises a PolicyLoadError
subclass and nothing is returned, so a caller can never install a policy
with a silently skipped rule.

Design Decisions:
    - Tool names are normalized once here (strip + lower); the engine
      applies the same normalize_tool_name() to incoming names
    - Declaring a tool rule grants the tool; this is an explicit union step
    - A tool declared in several rules keeps the last declaration
    - denied_tools is parsed but not enforced
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import re2

from agentgate.errors import PatternCompileError, PolicyFileError, SchemaViolationError
from agentgate.schema import POLICY_KIND, AgentPolicy, parse_policy_document

logger = logging.getLogger(__name__)


def normalize_tool_name(name: str) -> str:
    """Normalize a tool name for matching: strip whitespace, fold case."""
    return name.strip().lower()


# =============================================================================
# Compiled Structures
# =============================================================================


@dataclass(frozen=True)
class CompiledToolRule:
    """
    A ToolRule with its argument patterns compiled.

    Attributes:
        tool: Tool name as declared in the document
        patterns: Argument name -> declared pattern string
        matchers: Argument name -> compiled RE2 pattern
    """

    tool: str
    patterns: Mapping[str, str]
    matchers: Mapping[str, Any]


@dataclass(frozen=True)
class CompiledPolicy:
    """
    Query-ready, read-only form of a policy document.

    Invariant: every key of `rules` is also in `allowed`.

    Attributes:
        document: The parsed policy document
        allowed: Normalized names of every permitted tool
        rules: Normalized tool name -> compiled argument rule
    """

    document: AgentPolicy
    allowed: frozenset[str]
    rules: Mapping[str, CompiledToolRule] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def name(self) -> str:
        """Display name from the document metadata."""
        return self.document.metadata.name

    @property
    def declared_allowed_tools(self) -> list[str]:
        """Copy of the allowed_tools list exactly as declared."""
        return list(self.document.spec.allowed_tools)


# =============================================================================
# Pattern Compilation
# =============================================================================


def compile_pattern(tool: str, argument: str, pattern: str) -> Any:
    """
    Compile one argument pattern with RE2.

    RE2 matches in time linear in the input, so an untrusted argument value
    cannot stall a decision. The dialect is RE2's: `$` is end of text unless
    multiline mode is on, `\\z`, POSIX classes and scoped flags are supported,
    lookarounds and backreferences are not.

    Patterns are searched, not matched: the engine adds no anchors, so a
    pattern that must cover the whole value has to carry `^` and `$`.

    Raises:
        PatternCompileError: If the pattern is not a valid RE2 expression
    """
    try:
        return re2.compile(pattern)
    except re2.error as e:
        raise PatternCompileError(
            tool=tool,
            argument=argument,
            pattern=pattern,
            underlying_error=str(e),
        ) from e


# =============================================================================
# Loading
# =============================================================================


def _check_required_fields(document: AgentPolicy) -> None:
    if not document.api_version:
        raise SchemaViolationError(field_name="apiVersion")
    if document.kind != POLICY_KIND:
        raise SchemaViolationError(
            field_name="kind",
            expected=POLICY_KIND,
            actual=document.kind,
        )


def compile_policy(document: AgentPolicy) -> CompiledPolicy:
    """
    Compile a parsed policy document.

    Raises:
        SchemaViolationError: If apiVersion is empty or kind is wrong
        PatternCompileError: If any argument pattern fails to compile
    """
    _check_required_fields(document)
    spec = document.spec

    allowed = {normalize_tool_name(tool) for tool in spec.allowed_tools}

    rules: dict[str, CompiledToolRule] = {}
    for rule in spec.tool_rules:
        normalized = normalize_tool_name(rule.tool)
        matchers = {
            argument: compile_pattern(rule.tool, argument, pattern)
            for argument, pattern in rule.allow_args.items()
        }
        if normalized in rules:
            logger.warning(
                "Policy %r declares tool_rules for %r more than once; "
                "the last declaration wins",
                document.metadata.name,
                rule.tool,
            )
        rules[normalized] = CompiledToolRule(
            tool=rule.tool,
            patterns=MappingProxyType(dict(rule.allow_args)),
            matchers=MappingProxyType(matchers),
        )

    # Declaring a rule for a tool grants the tool.
    allowed.update(rules)

    if spec.denied_tools:
        logger.warning(
            "Policy %r lists denied_tools %s; denied_tools is not enforced",
            document.metadata.name,
            spec.denied_tools,
        )

    compiled = CompiledPolicy(
        document=document,
        allowed=frozenset(allowed),
        rules=MappingProxyType(rules),
    )
    logger.info(
        "Compiled policy %r: %d allowed tools, %d tool rules",
        compiled.name,
        len(compiled.allowed),
        len(compiled.rules),
    )
    return compiled


def load_policy(data: str | bytes) -> CompiledPolicy:
    """
    Parse and compile policy text.

    Args:
        data: YAML (or JSON) policy text

    Returns:
        The compiled policy

    Raises:
        MalformedDocumentError: If the text cannot be parsed
        SchemaViolationError: If a required field is missing or wrong
        PatternCompileError: If any argument pattern fails to compile
    """
    return compile_policy(parse_policy_document(data))


def load_policy_file(path: Path | str) -> CompiledPolicy:
    """
    Read a policy file and compile it.

    Raises:
        PolicyFileError: If the file cannot be read
        PolicyLoadError: Any error load_policy() raises
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise PolicyFileError(path=str(path), underlying_error=str(e)) from e
    return load_policy(data)
