"""clippy/backend.py

Model backend boundary: one ``complete`` call per round-trip.

``OllamaBackend`` talks to a local or remote Ollama server through
``ollama.AsyncClient`` and normalises its responses into ``Completion``
objects.  Any transport, HTTP or protocol problem surfaces as
``BackendError``; a response with neither text nor tool calls surfaces as
``MalformedResponseError``.
"""

from __future__ import annotations

# Standard Library
import json
import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

# Third-Party Libraries
import httpx
from ollama import AsyncClient, RequestError, ResponseError

# Local Modules
from clippy.errors import BackendError, MalformedResponseError
from clippy.history import Message, Role, ToolCall

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    """Normalised result of one model round-trip."""

    content: str = ""
    tool_calls: tuple[ToolCall, ...] = field(default_factory=tuple)
    model: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.tool_calls and not self.content.strip()


class ModelBackend(Protocol):
    """Anything able to run one chat completion with tool advertisement."""

    async def complete(
        self,
        messages: Sequence[Message],
        tools: Sequence[Mapping[str, Any]] = (),
        *,
        model: str | None = None,
    ) -> Completion: ...


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a pydantic response object or a plain dict."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _arguments_payload(arguments: Mapping[str, Any] | str | None) -> dict[str, Any]:
    """Ollama expects tool-call arguments as an object, never as text."""
    if isinstance(arguments, Mapping):
        return dict(arguments)
    if isinstance(arguments, str) and arguments.strip():
        try:
            decoded = json.loads(arguments)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


def to_ollama_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Convert history messages into the Ollama chat payload.

    Args:
        messages: History in order.

    Returns:
        List of message dicts ready for ``AsyncClient.chat``.
    """
    payload: list[dict[str, Any]] = []
    call_names: dict[str, str] = {}
    for message in messages:
        entry: dict[str, Any] = {"role": str(message.role), "content": message.content}
        if message.tool_calls:
            entry["tool_calls"] = [
                {
                    "function": {
                        "name": call.name,
                        "arguments": _arguments_payload(call.arguments),
                    }
                }
                for call in message.tool_calls
            ]
            call_names.update({call.id: call.name for call in message.tool_calls})
        if message.role is Role.TOOL and message.tool_call_id:
            entry["tool_call_id"] = message.tool_call_id
            if message.tool_call_id in call_names:
                entry["tool_name"] = call_names[message.tool_call_id]
        payload.append(entry)
    return payload


def parse_tool_calls(raw_calls: Sequence[Any] | None) -> tuple[ToolCall, ...]:
    """Normalise raw tool calls, synthesising correlation ids when missing.

    Ollama does not always return an id per call; a unique one is generated
    so every tool result can still be matched to its request.
    """
    calls: list[ToolCall] = []
    for raw in raw_calls or ():
        function = _field(raw, "function")
        name = _field(function, "name")
        if not name:
            raise MalformedResponseError("tool call without a function name")
        call_id = _field(raw, "id") or f"call_{uuid.uuid4().hex[:12]}"
        calls.append(ToolCall(id=call_id, name=name, arguments=_field(function, "arguments")))
    return tuple(calls)


class OllamaBackend:
    """``ModelBackend`` implementation over ``ollama.AsyncClient``."""

    def __init__(
        self,
        model: str,
        host: str = "http://localhost:11434",
        timeout: float = 120.0,
        client: AsyncClient | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            model: Default model tag for completions.
            host: Ollama API endpoint.
            timeout: Per-request timeout in seconds.
            client: Pre-built client, mainly for tests.
        """
        self.model = model
        self.host = host
        self.client = client or AsyncClient(host=host, timeout=timeout)

    async def complete(
        self,
        messages: Sequence[Message],
        tools: Sequence[Mapping[str, Any]] = (),
        *,
        model: str | None = None,
    ) -> Completion:
        """Run one chat completion.

        Args:
            messages: Full history to send.
            tools: Tool schemas to advertise; empty disables tool calling.
            model: Override the default model for this call.

        Returns:
            The normalised completion.

        Raises:
            BackendError: On transport, HTTP or protocol failures.
            MalformedResponseError: If the response has no usable message.
        """
        model_name = model or self.model
        logger.debug(
            "[backend] model=%s messages=%d tools=%d", model_name, len(messages), len(tools)
        )
        try:
            response = await self.client.chat(
                model=model_name,
                messages=to_ollama_messages(messages),
                tools=[dict(tool) for tool in tools] or None,
                stream=False,
            )
        except ResponseError as exc:
            raise BackendError(
                f"Ollama returned status {exc.status_code}: {exc.error}"
            ) from exc
        except (RequestError, httpx.HTTPError, ConnectionError) as exc:
            raise BackendError(f"Error communicating with Ollama: {exc}") from exc

        raw_message = _field(response, "message")
        if raw_message is None:
            raise MalformedResponseError("response from Ollama has no message")

        completion = Completion(
            content=_field(raw_message, "content") or "",
            tool_calls=parse_tool_calls(_field(raw_message, "tool_calls")),
            model=_field(response, "model") or model_name,
        )
        if completion.is_empty:
            raise MalformedResponseError("empty response from Ollama")
        return completion
