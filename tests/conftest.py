"""
Pytest fixtures for the Nexus domain package test suite.

Provides:
- Structured logging configured once per session
- Log capture as parsed JSON dicts
- A deterministic clock (2024-01-01 12:00 UTC)
"""

import json
import logging
from io import StringIO

import pytest

from nexus_kernel.clock import DeterministicClock
from nexus_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ``nexus`` logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, sar_manager):
            sar_manager.create_manual(...)
            logs = captured_logs()
            assert any(r["message"] == "sar_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("nexus")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Clock fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()
