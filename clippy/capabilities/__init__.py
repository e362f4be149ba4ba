"""Built-in capabilities and the default registry."""

from __future__ import annotations

# Third-Party Libraries
import httpx

# Local Modules
from clippy.capabilities.date import DateTool
from clippy.capabilities.holidays import HolidaysTool
from clippy.capabilities.timezone import TimezoneTool
from clippy.capabilities.weather import WeatherTool
from clippy.config import Settings
from clippy.tools import ToolRegistry

__all__ = [
    "DateTool",
    "HolidaysTool",
    "TimezoneTool",
    "WeatherTool",
    "default_registry",
]


def default_registry(settings: Settings, client: httpx.AsyncClient) -> ToolRegistry:
    """Build the registry of built-in capabilities.

    Args:
        settings: Source of every capability's configuration.
        client: Shared HTTP client; owned and closed by the caller.

    Returns:
        Registry with weather, date, holidays and timezone, in that order.
    """
    return ToolRegistry(
        [
            WeatherTool(
                client,
                geocoding_url=settings.geocoding_url,
                forecast_url=settings.forecast_url,
            ),
            DateTool(),
            HolidaysTool(client, settings.holiday_calendar_url),
            TimezoneTool(),
        ]
    )
