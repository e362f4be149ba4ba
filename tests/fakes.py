"""tests/fakes.py

Scripted model backend and small tools shared by the test suite.
"""

from __future__ import annotations

# Standard Library
import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

# Third-Party Libraries
from pydantic import BaseModel, Field

# Local Modules
from clippy.backend import Completion
from clippy.errors import CapabilityError
from clippy.history import Message, ToolCall
from clippy.tools import InvocationContext, Tool


class ScriptedBackend:
    """Model backend returning queued completions and recording every call.

    Each script item is a ``Completion``, an exception instance (raised), or a
    callable receiving the messages and returning either of those.  With
    ``repeat_last`` the final item is served forever.
    """

    def __init__(self, *script: Any, repeat_last: bool = False) -> None:
        self.script = list(script)
        self.repeat_last = repeat_last
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        messages: Sequence[Message],
        tools: Sequence[Mapping[str, Any]] = (),
        *,
        model: str | None = None,
    ) -> Completion:
        self.calls.append({"messages": tuple(messages), "tools": list(tools), "model": model})
        if not self.script:
            raise AssertionError("backend called more often than scripted")
        if self.repeat_last and len(self.script) == 1:
            item = self.script[0]
        else:
            item = self.script.pop(0)
        if callable(item):
            item = item(messages)
        if isinstance(item, BaseException):
            raise item
        return item


class EchoArguments(BaseModel):
    text: str = Field(..., description="Text to echo back.")
    delay: float = Field(0.0, ge=0, description="Seconds to wait before answering.")


class EchoTool(Tool):
    name = "echo"
    description = "Echo the given text."
    Arguments = EchoArguments

    def __init__(self) -> None:
        self.seen: list[tuple[InvocationContext, EchoArguments]] = []
        self.finished: list[str] = []

    async def execute(self, context: InvocationContext, arguments: EchoArguments) -> str:
        self.seen.append((context, arguments))
        if arguments.delay:
            await asyncio.sleep(arguments.delay)
        self.finished.append(context.call_id)
        return f"echo: {arguments.text}"


class FailingTool(Tool):
    name = "explode"
    description = "Always fails."

    async def execute(self, context: InvocationContext, arguments: Any) -> str:
        raise CapabilityError("upstream unavailable")


def text(content: str) -> Completion:
    return Completion(content=content)


def calls(*tool_calls: ToolCall, content: str = "") -> Completion:
    return Completion(content=content, tool_calls=tuple(tool_calls))
