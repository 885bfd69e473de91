"""Pytest configuration and fixtures for all tests.

Puts the project root on sys.path and keeps the host environment out of
the pydantic settings, so limits and tracing flags from a developer's shell
never change test outcomes.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

SETTINGS_ENV_VARS = (
    "APP_ENV",
    "MAX_RESEARCHER_ITERATIONS",
    "MAX_RESEARCH_ROUNDS",
    "MAX_CONCURRENT_RESEARCH_UNITS",
    "STRICT_LEDGER",
    "SCOPE_ENABLED",
    "ALLOW_CLARIFICATION",
    "VIEWER_FLUSH_INTERVAL_MS",
    "EVENT_LOG_PATH",
    "LANGCHAIN_TRACING_V2",
    "LANGCHAIN_PROJECT",
)


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
