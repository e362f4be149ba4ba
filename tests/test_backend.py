"""tests/test_backend.py

Unit tests for the Ollama backend adapter (clippy/backend.py).
The Ollama client is replaced with an ``AsyncMock``.
"""

from __future__ import annotations

# Standard Library
from unittest.mock import AsyncMock, Mock, patch

# Third-Party Libraries
import httpx
import ollama
import pytest

# Local Modules
from clippy.backend import OllamaBackend, parse_tool_calls, to_ollama_messages
from clippy.errors import BackendError, MalformedResponseError
from clippy.history import Message, ToolCall


def make_backend(response=None, side_effect=None) -> tuple[OllamaBackend, AsyncMock]:
    client = Mock()
    client.chat = AsyncMock(return_value=response, side_effect=side_effect)
    return OllamaBackend(model="qwen2.5:7b-instruct-q4_K_M", client=client), client.chat


class TestOllamaBackend:
    """Test suite for OllamaBackend."""

    @patch("clippy.backend.AsyncClient")
    def test_client_created_from_host(self, mock_client_class: Mock) -> None:
        OllamaBackend(model="m", host="http://ollama:11434", timeout=30)
        mock_client_class.assert_called_once_with(host="http://ollama:11434", timeout=30)

    @pytest.mark.asyncio
    async def test_text_completion(self) -> None:
        backend, chat = make_backend(
            {"model": "qwen2.5", "message": {"role": "assistant", "content": "Hi!"}}
        )

        completion = await backend.complete([Message.user("Hello")])

        assert completion.content == "Hi!"
        assert completion.tool_calls == ()
        chat.assert_awaited_once_with(
            model="qwen2.5:7b-instruct-q4_K_M",
            messages=[{"role": "user", "content": "Hello"}],
            tools=None,
            stream=False,
        )

    @pytest.mark.asyncio
    async def test_tools_and_model_override(self) -> None:
        backend, chat = make_backend({"message": {"content": "ok"}})
        schema = {"type": "function", "function": {"name": "get_today_date"}}

        await backend.complete([Message.user("date?")], [schema], model="tiny")

        kwargs = chat.await_args.kwargs
        assert kwargs["model"] == "tiny"
        assert kwargs["tools"] == [schema]

    @pytest.mark.asyncio
    async def test_tool_calls_from_ollama_response_model(self) -> None:
        response = ollama.ChatResponse(
            model="qwen2.5",
            message=ollama.Message(
                role="assistant",
                content="",
                tool_calls=[
                    ollama.Message.ToolCall(
                        function=ollama.Message.ToolCall.Function(
                            name="get_weather", arguments={"location": "Barcelona"}
                        )
                    )
                ],
            ),
        )
        backend, _ = make_backend(response)

        completion = await backend.complete([Message.user("weather?")])

        (call,) = completion.tool_calls
        assert call.name == "get_weather"
        assert call.arguments == {"location": "Barcelona"}
        assert call.id.startswith("call_")

    @pytest.mark.asyncio
    async def test_response_error_maps_to_backend_error(self) -> None:
        backend, _ = make_backend(side_effect=ollama.ResponseError("model not found", 404))

        with pytest.raises(BackendError, match="status 404"):
            await backend.complete([Message.user("hi")])

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_backend_error(self) -> None:
        backend, _ = make_backend(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(BackendError, match="Error communicating with Ollama"):
            await backend.complete([Message.user("hi")])

    @pytest.mark.asyncio
    async def test_empty_message_is_malformed(self) -> None:
        backend, _ = make_backend({"message": {"role": "assistant", "content": "  "}})
        with pytest.raises(MalformedResponseError):
            await backend.complete([Message.user("hi")])

    @pytest.mark.asyncio
    async def test_missing_message_is_malformed(self) -> None:
        backend, _ = make_backend({"model": "qwen2.5"})
        with pytest.raises(MalformedResponseError):
            await backend.complete([Message.user("hi")])


class TestPayloadConversion:
    def test_tool_exchange_payload(self) -> None:
        messages = [
            Message.system("sys"),
            Message.user("weather?"),
            Message.assistant("", [ToolCall("c1", "get_weather", '{"location": "Paris"}')]),
            Message.tool_result("{}", "c1"),
        ]

        payload = to_ollama_messages(messages)

        assert payload[2]["tool_calls"] == [
            {"function": {"name": "get_weather", "arguments": {"location": "Paris"}}}
        ]
        assert payload[3] == {
            "role": "tool",
            "content": "{}",
            "tool_call_id": "c1",
            "tool_name": "get_weather",
        }

    def test_synthesised_ids_are_unique(self) -> None:
        raw = [{"function": {"name": "get_today_date"}}] * 3
        ids = {call.id for call in parse_tool_calls(raw)}
        assert len(ids) == 3

    def test_provided_ids_are_kept(self) -> None:
        (call,) = parse_tool_calls([{"id": "abc", "function": {"name": "x", "arguments": {}}}])
        assert call.id == "abc"

    def test_call_without_name_is_malformed(self) -> None:
        with pytest.raises(MalformedResponseError):
            parse_tool_calls([{"function": {"arguments": {}}}])
