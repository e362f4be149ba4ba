"""clippy/config.py

Runtime configuration loaded from environment variables / .env file.

This is the only module that reads the environment.  Everything else
(reply engine, capabilities, backend) receives its configuration explicitly
so it can be exercised with fixtures.
"""

from __future__ import annotations

# Standard Library
from functools import lru_cache

# Third-Party Libraries
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_ROUND_TRIPS: int = 15

DEFAULT_SYSTEM_PROMPT: str = (
    "You are a helpful, concise AI assistant. "
    "Provide accurate, safe, and clear responses."
)

DEFAULT_TITLE_PROMPT: str = (
    "You are a title generator. Extract the main topic from the user's message "
    "and create a short, descriptive title. Do NOT answer the question. "
    "Examples: 'What is the weather like in Barcelona?' → 'Weather in Barcelona'. "
    "Maximum 80 characters, no quotes."
)


class Settings(BaseSettings):
    """Runtime configuration for clippy.

    Attributes:
        ollama_host: Base URL of the Ollama server.
        ollama_model: Model tag used to generate replies.
        ollama_title_model: Model tag used to generate conversation titles.
        ollama_timeout: Seconds before a single model call times out.
        system_prompt: System message prepended to every reply history.
        title_prompt: System message used for title generation.
        max_round_trips: Maximum model/tool alternations for one reply.
        parallel_tool_calls: Run the tool calls of one round-trip concurrently.
        reply_timeout: Optional deadline (seconds) for a whole reply.
        http_timeout: Seconds before a capability HTTP request times out.
        holiday_calendar_url: ICS feed used by the holidays capability.
        geocoding_url: Open-Meteo geocoding endpoint.
        forecast_url: Open-Meteo forecast endpoint.
        api_host: Bind address of the HTTP API.
        api_port: Port of the HTTP API.
        log_level: Root logging level used by the entry points.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    ollama_host: str = Field(
        "http://localhost:11434",
        alias="OLLAMA_HOST",
        description="Base URL of the Ollama server.",
    )
    ollama_model: str = Field(
        "qwen2.5:7b-instruct-q4_K_M",
        alias="OLLAMA_MODEL",
        description="Model tag used for replies; must support tool calling.",
    )
    ollama_title_model: str = Field(
        "",
        alias="OLLAMA_TITLE_MODEL",
        description="Model tag used for titles.  Empty means OLLAMA_MODEL.",
    )
    ollama_timeout: float = Field(120.0, alias="OLLAMA_TIMEOUT")

    system_prompt: str = Field(DEFAULT_SYSTEM_PROMPT, alias="SYSTEM_PROMPT")
    title_prompt: str = Field(DEFAULT_TITLE_PROMPT, alias="TITLE_PROMPT")

    max_round_trips: int = Field(
        DEFAULT_MAX_ROUND_TRIPS,
        ge=1,
        alias="MAX_ROUND_TRIPS",
        description="Maximum model/tool alternations before a reply fails.",
    )
    parallel_tool_calls: bool = Field(True, alias="PARALLEL_TOOL_CALLS")
    reply_timeout: float | None = Field(
        None,
        gt=0,
        alias="REPLY_TIMEOUT",
        description="Deadline in seconds for a whole reply.  Unset means none.",
    )

    http_timeout: float = Field(10.0, alias="HTTP_TIMEOUT")
    holiday_calendar_url: str = Field(
        "https://www.officeholidays.com/ics/spain/catalonia",
        alias="HOLIDAY_CALENDAR_LINK",
    )
    geocoding_url: str = Field(
        "https://geocoding-api.open-meteo.com/v1/search",
        alias="GEOCODING_URL",
    )
    forecast_url: str = Field(
        "https://api.open-meteo.com/v1/forecast",
        alias="FORECAST_URL",
    )

    api_host: str = Field("0.0.0.0", alias="API_HOST")
    api_port: int = Field(8080, alias="API_PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def title_model(self) -> str:
        """Effective title model (falls back to the reply model)."""
        return self.ollama_title_model or self.ollama_model


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings so every entry point shares one instance."""

    return Settings()  # type: ignore[call-arg]
