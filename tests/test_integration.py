"""tests/test_integration.py

Integration tests for clippy components working together.
A mocked Ollama client drives the real reply engine, registry and
capabilities; the weather API is served by ``httpx.MockTransport``.
"""

from __future__ import annotations

# Standard Library
import json
from datetime import datetime
from unittest.mock import AsyncMock, Mock

# Third-Party Libraries
import httpx
import pytest

# Local Modules
from clippy.assistant import Assistant
from clippy.backend import OllamaBackend
from clippy.capabilities import default_registry
from clippy.chat import ReplyEngine
from clippy.config import Settings
from clippy.history import Message


def open_meteo(request: httpx.Request) -> httpx.Response:
    if request.url.host == "geocoding-api.open-meteo.com":
        return httpx.Response(
            200,
            json={"results": [{"name": "Barcelona", "country": "Spain", "latitude": 41.39, "longitude": 2.16}]},
        )
    return httpx.Response(
        200,
        json={
            "daily": {
                "time": ["2025-12-15", "2025-12-16"],
                "weather_code": [0, 3],
                "temperature_2m_max": [16.0, 15.0],
                "temperature_2m_min": [8.0, 9.0],
                "precipitation_probability_max": [0, 10],
                "wind_speed_10m_max": [10.0, 12.0],
            }
        },
    )


class TestIntegration:
    """Integration tests for the reply pipeline."""

    @pytest.mark.asyncio
    async def test_weather_tomorrow_in_barcelona(self) -> None:
        """The model asks for the date and a forecast, then answers."""
        ollama_client = Mock()
        ollama_client.chat = AsyncMock(
            side_effect=[
                {"message": {"content": "Weather tomorrow in Barcelona"}},
                {
                    "message": {
                        "content": "",
                        "tool_calls": [
                            {"function": {"name": "get_today_date", "arguments": {}}},
                            {
                                "function": {
                                    "name": "get_weather",
                                    "arguments": {"location": "Barcelona", "forecast_days": 2},
                                }
                            },
                        ],
                    }
                },
                {"message": {"content": "Tomorrow will be overcast, around 15°C."}},
            ]
        )
        backend = OllamaBackend(model="qwen2.5", client=ollama_client)

        async with httpx.AsyncClient(transport=httpx.MockTransport(open_meteo)) as http:
            engine = ReplyEngine(backend, default_registry(Settings(), http), system_prompt="sys")
            result = await Assistant(backend, engine).start(
                [Message.user("What's the weather tomorrow in Barcelona?")]
            )

        assert result.title == "Weather tomorrow in Barcelona"
        assert result.reply == "Tomorrow will be overcast, around 15°C."

        title_call, first, second = ollama_client.chat.await_args_list
        assert title_call.kwargs["tools"] is None
        assert [t["function"]["name"] for t in first.kwargs["tools"]] == [
            "get_weather",
            "get_today_date",
            "get_holidays",
            "convert_timezone",
        ]

        payload = second.kwargs["messages"]
        assert [m["role"] for m in payload] == ["system", "user", "assistant", "tool", "tool"]
        date_result, weather_result = payload[3], payload[4]
        assert date_result["tool_name"] == "get_today_date"
        assert datetime.fromisoformat(date_result["content"]).tzinfo is not None
        assert weather_result["tool_name"] == "get_weather"
        assert json.loads(weather_result["content"])["forecast"][1]["condition"] == "Overcast"

        requested = [c["function"]["name"] for c in payload[2]["tool_calls"]]
        assert requested == ["get_today_date", "get_weather"]
        assert date_result["tool_call_id"] != weather_result["tool_call_id"]
