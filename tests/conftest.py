"""tests/conftest.py

Pytest configuration and shared fixtures for the clippy test suite.
"""

from __future__ import annotations

# Standard Library
from typing import Any

# Third-Party Libraries
import pytest

# Local Modules
from clippy.chat import ReplyEngine
from clippy.history import Message
from clippy.tools import ToolRegistry
from tests.fakes import EchoTool, FailingTool, ScriptedBackend


@pytest.fixture
def echo_tool() -> EchoTool:
    return EchoTool()


@pytest.fixture
def registry(echo_tool: EchoTool) -> ToolRegistry:
    """Registry with a working and a failing tool."""
    return ToolRegistry([echo_tool, FailingTool()])


@pytest.fixture
def make_engine(registry: ToolRegistry):
    """Factory building a ``ReplyEngine`` over a scripted backend."""

    def _make(backend: ScriptedBackend, **kwargs: Any) -> ReplyEngine:
        kwargs.setdefault("system_prompt", "You are a test assistant.")
        return ReplyEngine(backend, registry, **kwargs)

    return _make


@pytest.fixture
def sample_messages() -> list[Message]:
    """Create a short user/assistant exchange.

    Returns:
        Prior turns ending with a user message.
    """
    return [
        Message.user("Hello!"),
        Message.assistant("Hi there! How can I help you?"),
        Message.user("What's the weather like in Barcelona?"),
    ]
