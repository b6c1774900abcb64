"""
Decision engine for agentgate.

The engine is the security boundary: a proxy asks it about every tool call
before forwarding the call.

Design Principles:
    - Deny-by-default: no loaded policy means every call is denied
    - Fail-closed: any error while evaluating an argument denies the call
    - Predictable: decisions depend only on the installed policy and inputs
    - Explainable: argument denials name the argument and the declared pattern

How it works:
    1. Normalize the tool name (strip + lower)
    2. Tool-level check against the allowed set
    3. No argument rule, or an empty one: allow
    4. Every constrained argument must be present and its canonical text
       must match the pattern (unanchored search)

Concurrency:
    The engine holds one reference to an immutable CompiledPolicy. Loading
    builds a complete new snapshot and rebinds that reference in one
    assignment, so a concurrent is_allowed() sees either the old or the new
    policy. Loads are serialized with a lock; the read path never takes it.
"""

import logging
import math
import threading
from pathlib import Path
from typing import Any, Mapping

from agentgate.errors import PolicyDeniedError
from agentgate.policy.loader import (
    CompiledPolicy,
    load_policy,
    load_policy_file,
    normalize_tool_name,
)
from agentgate.schema import AgentPolicy, ValidationResult

logger = logging.getLogger(__name__)

NO_POLICY_NAME = "<no policy>"


def _float_to_string(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def arg_to_string(value: Any) -> str:
    """
    Convert an argument value to the text its pattern is matched against.

    Examples:
        "hello" -> "hello"
        True    -> "true"
        42      -> "42"
        42.0    -> "42"
        3.14    -> "3.14"
        None    -> "null"
        [1, 2]  -> "[1, 2]"
    """
    # bool before int: bool is an int subclass
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _float_to_string(value)
    if value is None:
        return "null"
    return str(value)


class PolicyEngine:
    """
    Evaluates tool calls against the installed policy.

    Usage:
        engine = PolicyEngine()
        engine.load_file("agent.yaml")
        result = engine.is_allowed("fetch_url", {"url": "https://github.com/x"})
        if not result.allowed:
            # report result.failed_arg / result.failed_pattern

    A failed load raises and leaves the previously installed policy (or the
    unloaded deny-all state) in place.
    """

    def __init__(self, policy: CompiledPolicy | None = None) -> None:
        self._compiled: CompiledPolicy | None = policy
        self._write_lock = threading.Lock()

    # =========================================================================
    # Loading
    # =========================================================================

    def install(self, policy: CompiledPolicy) -> None:
        """Atomically replace the active policy with an already compiled one."""
        with self._write_lock:
            self._compiled = policy
        logger.info(
            "Installed policy %r (%d allowed tools)",
            policy.name,
            len(policy.allowed),
        )

    def load(self, data: str | bytes) -> CompiledPolicy:
        """
        Compile policy text and install it.

        Raises:
            PolicyLoadError: If the policy cannot be compiled; the active
                policy is left untouched
        """
        with self._write_lock:
            compiled = load_policy(data)
            self._compiled = compiled
        logger.info("Loaded policy %r", compiled.name)
        return compiled

    def load_file(self, path: Path | str) -> CompiledPolicy:
        """Read, compile and install a policy file."""
        with self._write_lock:
            compiled = load_policy_file(path)
            self._compiled = compiled
        logger.info("Loaded policy %r from %s", compiled.name, path)
        return compiled

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def is_loaded(self) -> bool:
        return self._compiled is not None

    @property
    def compiled(self) -> CompiledPolicy | None:
        """The active compiled snapshot, or None."""
        return self._compiled

    @property
    def policy(self) -> AgentPolicy | None:
        """The parsed document behind the active policy, or None."""
        compiled = self._compiled
        return compiled.document if compiled is not None else None

    @property
    def policy_name(self) -> str:
        """Name of the loaded policy for logging."""
        compiled = self._compiled
        if compiled is None:
            return NO_POLICY_NAME
        return compiled.name

    @property
    def allowed_tools(self) -> list[str]:
        """Copy of the declared allowed_tools list (empty when unloaded)."""
        compiled = self._compiled
        if compiled is None:
            return []
        return compiled.declared_allowed_tools

    # =========================================================================
    # Decisions
    # =========================================================================

    def is_allowed(
        self,
        tool_name: str,
        arguments: Mapping[str, Any] | None = None,
    ) -> ValidationResult:
        """
        Decide whether a tool call is permitted.

        Never raises. Tool-level denials carry no argument detail; argument
        denials name the argument and its declared pattern.

        Args:
            tool_name: Tool being called (untrusted)
            arguments: Argument name -> value

        Returns:
            ValidationResult with the decision
        """
        compiled = self._compiled
        if compiled is None:
            return ValidationResult.deny("No policy loaded")

        if not isinstance(tool_name, str):
            return ValidationResult.deny("Tool name must be a string")
        if not isinstance(arguments, Mapping):
            arguments = {}

        normalized = normalize_tool_name(tool_name)
        if normalized not in compiled.allowed:
            logger.debug("Denied %r: tool not allowed", tool_name)
            return ValidationResult.deny(f"Tool not allowed: {tool_name}")

        rule = compiled.rules.get(normalized)
        if rule is None or not rule.matchers:
            return ValidationResult.allow(f"Tool allowed: {tool_name}")

        for arg_name, matcher in rule.matchers.items():
            pattern = rule.patterns[arg_name]
            if arg_name not in arguments:
                logger.debug("Denied %r: missing argument %r", tool_name, arg_name)
                return ValidationResult.deny(
                    f"Missing required argument: {arg_name}",
                    failed_arg=arg_name,
                    failed_pattern=pattern,
                )

            try:
                text = arg_to_string(arguments[arg_name])
            except Exception as e:
                return ValidationResult.deny(
                    f"Argument {arg_name} could not be converted to text: {e}",
                    failed_arg=arg_name,
                    failed_pattern=pattern,
                )

            if matcher.search(text) is None:
                logger.debug(
                    "Denied %r: argument %r does not match %r",
                    tool_name,
                    arg_name,
                    pattern,
                )
                return ValidationResult.deny(
                    f"Argument {arg_name} does not match {pattern}",
                    failed_arg=arg_name,
                    failed_pattern=pattern,
                )

        return ValidationResult.allow(f"All argument constraints satisfied for {tool_name}")

    def check(
        self,
        tool_name: str,
        arguments: Mapping[str, Any] | None = None,
    ) -> ValidationResult:
        """
        Like is_allowed(), but raise on denial.

        Raises:
            PolicyDeniedError: If the call is denied
        """
        result = self.is_allowed(tool_name, arguments)
        if not result.allowed:
            raise PolicyDeniedError(
                tool=str(tool_name),
                failed_arg=result.failed_arg,
                failed_pattern=result.failed_pattern,
                reason=result.reason,
            )
        return result
