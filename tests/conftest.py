"""
Pytest configuration and fixtures for agentgate tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from agentgate.policy import CompiledPolicy, PolicyEngine, load_policy


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def github_policy_yaml() -> str:
    """fetch_url is allowed only for GitHub URLs."""
    return r"""
apiVersion: aip.io/v1alpha1
kind: AgentPolicy
metadata:
  name: gemini-jack-defense
spec:
  tool_rules:
    - tool: fetch_url
      allow_args:
        url: "^https://github\\.com/.*"
"""


@pytest.fixture
def safe_tool_policy_yaml() -> str:
    """Only safe_tool is allowed, with any arguments."""
    return """
apiVersion: aip.io/v1alpha1
kind: AgentPolicy
metadata:
  name: tool-level
  version: "1.2.0"
  owner: platform-team
spec:
  allowed_tools:
    - safe_tool
"""


@pytest.fixture
def run_query_policy_yaml() -> str:
    """run_query constrained on database and query."""
    return r"""
apiVersion: aip.io/v1alpha1
kind: AgentPolicy
metadata:
  name: sql-agent
spec:
  allowed_tools:
    - list_tables
  tool_rules:
    - tool: run_query
      allow_args:
        database: "^(prod|staging)$"
        query: "^SELECT\\s+.*"
"""


@pytest.fixture
def github_policy(github_policy_yaml: str) -> CompiledPolicy:
    return load_policy(github_policy_yaml)


@pytest.fixture
def github_engine(github_policy: CompiledPolicy) -> PolicyEngine:
    return PolicyEngine(github_policy)


@pytest.fixture
def run_query_engine(run_query_policy_yaml: str) -> PolicyEngine:
    engine = PolicyEngine()
    engine.load(run_query_policy_yaml)
    return engine
