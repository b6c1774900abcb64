"""
Policy loading and decisions for agentgate.

Key concepts:
    - load_policy(): policy text -> immutable CompiledPolicy, all or nothing
    - PolicyEngine: holds the active CompiledPolicy and answers is_allowed()
    - ValidationResult: the decision, with the failing argument and pattern

The engine is fail-closed: with no policy loaded every call is denied, and a
failed reload keeps the previous policy.
"""

from agentgate.policy.engine import PolicyEngine, arg_to_string
from agentgate.policy.loader import (
    CompiledPolicy,
    CompiledToolRule,
    compile_policy,
    load_policy,
    load_policy_file,
    normalize_tool_name,
)

__all__ = [
    "CompiledPolicy",
    "CompiledToolRule",
    "PolicyEngine",
    "arg_to_string",
    "compile_policy",
    "load_policy",
    "load_policy_file",
    "normalize_tool_name",
]
