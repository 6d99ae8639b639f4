"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

FAKE_SERVER = Path(__file__).parent / "fake_server.py"


def fake_server_config(*flags: str, timeout: float = 5.0) -> dict:
    """Launch configuration for the scripted fake server."""
    return {
        "command": sys.executable,
        "args": ["-u", str(FAKE_SERVER), *flags],
        "timeout": timeout,
    }


@pytest.fixture
def fake_server():
    """Factory for fake server launch configurations."""
    return fake_server_config


@pytest.fixture(autouse=True)
def _no_timeout_env(monkeypatch):
    """Keep the developer's MCP_CLIENT_TIMEOUT out of the tests."""
    monkeypatch.delenv("MCP_CLIENT_TIMEOUT", raising=False)
