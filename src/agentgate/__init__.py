"""
agentgate - Request-time authorization for agent tool calls.

agentgate is the decision point a tool-call proxy consults before forwarding
a call. It provides:
- Declarative AgentPolicy documents (YAML)
- Tool-level allow lists and per-argument regex constraints
- Fail-closed decisions that explain which argument failed and why

Example usage:
    >>> from agentgate import PolicyEngine
    >>> engine = PolicyEngine()
    >>> engine.load_file("agent.yaml")
    >>> engine.is_allowed("fetch_url", {"url": "https://github.com/x"}).allowed
    True

    $ agentgate check fetch_url --policy agent.yaml --arg url=https://github.com/x
"""

__version__ = "0.1.0"
__author__ = "agentgate Contributors"

from agentgate.policy import CompiledPolicy, PolicyEngine, load_policy, load_policy_file
from agentgate.schema import AgentPolicy, ValidationResult

__all__ = [
    "__version__",
    "__author__",
    "AgentPolicy",
    "CompiledPolicy",
    "PolicyEngine",
    "ValidationResult",
    "load_policy",
    "load_policy_file",
]
