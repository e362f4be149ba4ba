"""clippy/history.py

Append-only message history owned by a single reply.

Unlike a rolling window, nothing is ever evicted: the model must always see
the complete, causally ordered exchange, including every tool call the
assistant made and the result that answered it.
"""

from __future__ import annotations

# Standard Library
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    """Author of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """A model-issued request to run one capability.

    Attributes:
        id: Correlation id linking the request to its tool-result message.
        name: Name of the requested capability.
        arguments: Raw arguments, a mapping or JSON text.  Never interpreted
            here; the capability decodes them.
    """

    id: str
    name: str
    arguments: Mapping[str, Any] | str | None = None


@dataclass(frozen=True)
class Message:
    """One turn of a conversation."""

    role: Role
    content: str
    tool_call_id: str | None = None
    tool_calls: tuple[ToolCall, ...] = field(default_factory=tuple)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(Role.USER, content)

    @classmethod
    def assistant(
        cls, content: str, tool_calls: Iterable[ToolCall] = ()
    ) -> Message:
        return cls(Role.ASSISTANT, content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool_result(cls, content: str, tool_call_id: str) -> Message:
        return cls(Role.TOOL, content, tool_call_id=tool_call_id)


class MessageHistory:
    """Ordered, append-only log of the messages sent to the model.

    Invariants enforced on ``append``:

    - only tool-result messages carry a ``tool_call_id`` and they always do;
    - only assistant messages carry ``tool_calls``;
    - a tool result answers a call of the latest assistant message that
      requested tools, and each call is answered exactly once before any
      other message is appended.
    """

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = []
        self._pending: dict[str, ToolCall] = {}
        for message in messages:
            self.append(message)

    def append(self, message: Message) -> None:
        """Append a message after checking the history invariants.

        Args:
            message: The message to append.

        Raises:
            ValueError: If the message would break the history invariants.
        """
        if message.role is Role.TOOL:
            if not message.tool_call_id:
                raise ValueError("tool-result messages require a tool_call_id")
            if message.tool_call_id not in self._pending:
                raise ValueError(
                    f"tool result {message.tool_call_id!r} does not answer a pending tool call"
                )
            del self._pending[message.tool_call_id]
        else:
            if message.tool_call_id is not None:
                raise ValueError(f"{message.role} messages cannot carry a tool_call_id")
            if self._pending:
                raise ValueError(
                    f"{len(self._pending)} tool call(s) still awaiting a result"
                )
            if message.tool_calls:
                if message.role is not Role.ASSISTANT:
                    raise ValueError("only assistant messages can request tool calls")
                pending = {call.id: call for call in message.tool_calls}
                if len(pending) != len(message.tool_calls):
                    raise ValueError("tool call ids must be unique within a turn")
                self._pending = pending

        self._messages.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.append(message)

    @property
    def pending_calls(self) -> tuple[ToolCall, ...]:
        """Tool calls of the latest assistant turn still awaiting a result."""
        return tuple(self._pending.values())

    def tool_results(self) -> list[Message]:
        return [m for m in self._messages if m.role is Role.TOOL]

    def snapshot(self) -> tuple[Message, ...]:
        """Return an immutable copy of the history."""
        return tuple(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]
