"""clippy/capabilities/weather.py

Current weather and multi-day forecasts from Open-Meteo (no API key required).

The location name is first resolved to coordinates through the Open-Meteo
geocoding endpoint, then the forecast endpoint is queried for either the
current conditions or a daily forecast.
"""

from __future__ import annotations

# Standard Library
import json
import logging
from typing import Any

# Third-Party Libraries
import httpx
from pydantic import BaseModel, Field

# Local Modules
from clippy.errors import CapabilityError
from clippy.tools import InvocationContext, Tool

logger = logging.getLogger(__name__)

MAX_FORECAST_DAYS: int = 10

# WMO Weather Interpretation Codes → human-readable description
_WMO_CODES: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Icy fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Slight showers",
    81: "Moderate showers",
    82: "Violent showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

_CURRENT_FIELDS: list[str] = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "wind_speed_10m",
    "weather_code",
    "precipitation",
]

_DAILY_FIELDS: list[str] = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
    "wind_speed_10m_max",
]


def describe_weather_code(code: int) -> str:
    return _WMO_CODES.get(code, f"Unknown (WMO {code})")


def _to_fahrenheit(celsius: float) -> float:
    return round(celsius * 9 / 5 + 32, 1)


class WeatherArguments(BaseModel):
    location: str = Field(
        ...,
        min_length=1,
        description=(
            "City name or location query (e.g. 'Barcelona', 'Paris, France')."
        ),
    )
    forecast_days: int | None = Field(
        None,
        ge=0,
        description=(
            "Number of days of forecast (1-10). Omit or set to 0 for current "
            "weather only. Use this when the user asks about future weather."
        ),
    )


class WeatherTool(Tool):
    """Weather capability backed by the Open-Meteo APIs."""

    name = "get_weather"
    description = (
        "Get current weather or multi-day forecast for a given location. "
        "Use forecast_days for future weather predictions (1-10 days)."
    )
    Arguments = WeatherArguments

    def __init__(
        self,
        client: httpx.AsyncClient,
        geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search",
        forecast_url: str = "https://api.open-meteo.com/v1/forecast",
    ) -> None:
        self.client = client
        self.geocoding_url = geocoding_url
        self.forecast_url = forecast_url

    async def execute(self, context: InvocationContext, arguments: WeatherArguments) -> str:
        place = await self._geocode(arguments.location)
        if arguments.forecast_days:
            days = min(arguments.forecast_days, MAX_FORECAST_DAYS)
            return await self._forecast(place, days)
        return await self._current(place)

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CapabilityError(
                f"weather API returned status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CapabilityError(f"failed to fetch weather: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise CapabilityError("failed to decode weather response") from exc

    async def _geocode(self, location: str) -> dict[str, Any]:
        data = await self._get_json(
            self.geocoding_url,
            {"name": location, "count": 1, "language": "en", "format": "json"},
        )
        results: list[dict[str, Any]] = data.get("results") or []
        if not results:
            raise CapabilityError(f"Location not found: {location}")
        geo = results[0]
        return {
            "latitude": geo["latitude"],
            "longitude": geo["longitude"],
            "label": f"{geo.get('name', location)}, {geo.get('country', '')}".strip(", "),
        }

    async def _current(self, place: dict[str, Any]) -> str:
        data = await self._get_json(
            self.forecast_url,
            {
                "latitude": place["latitude"],
                "longitude": place["longitude"],
                "current": ",".join(_CURRENT_FIELDS),
                "temperature_unit": "celsius",
                "wind_speed_unit": "kmh",
                "timezone": "auto",
            },
        )
        current: dict[str, Any] = data.get("current", {})
        temp_c: float = current.get("temperature_2m", 0.0)
        feels_c: float = current.get("apparent_temperature", 0.0)

        output: dict[str, Any] = {
            "location": place["label"],
            "local_time": current.get("time", ""),
            "condition": describe_weather_code(int(current.get("weather_code", 0))),
            "temperature_c": round(temp_c, 1),
            "temperature_f": _to_fahrenheit(temp_c),
            "feels_like_c": round(feels_c, 1),
            "feels_like_f": _to_fahrenheit(feels_c),
            "humidity_pct": current.get("relative_humidity_2m", 0),
            "wind_speed_kmh": round(current.get("wind_speed_10m", 0.0), 1),
            "precipitation_mm": current.get("precipitation", 0.0),
            "source": "Open-Meteo (open-meteo.com)",
        }
        return json.dumps(output, indent=2, ensure_ascii=False)

    async def _forecast(self, place: dict[str, Any], days: int) -> str:
        data = await self._get_json(
            self.forecast_url,
            {
                "latitude": place["latitude"],
                "longitude": place["longitude"],
                "daily": ",".join(_DAILY_FIELDS),
                "forecast_days": days,
                "temperature_unit": "celsius",
                "wind_speed_unit": "kmh",
                "timezone": "auto",
            },
        )
        daily: dict[str, list[Any]] = data.get("daily", {})
        dates: list[str] = daily.get("time", [])

        def column(key: str, index: int, default: Any = None) -> Any:
            values = daily.get(key) or []
            return values[index] if index < len(values) else default

        forecast = [
            {
                "date": date,
                "condition": describe_weather_code(int(column("weather_code", i, 0) or 0)),
                "max_temperature_c": column("temperature_2m_max", i),
                "min_temperature_c": column("temperature_2m_min", i),
                "chance_of_rain_pct": column("precipitation_probability_max", i),
                "max_wind_kmh": column("wind_speed_10m_max", i),
            }
            for i, date in enumerate(dates)
        ]
        output: dict[str, Any] = {
            "location": place["label"],
            "days": len(forecast),
            "forecast": forecast,
            "source": "Open-Meteo (open-meteo.com)",
        }
        return json.dumps(output, indent=2, ensure_ascii=False)
