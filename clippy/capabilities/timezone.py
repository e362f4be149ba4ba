"""clippy/capabilities/timezone.py

Convert a point in time between IANA time zones.
"""

from __future__ import annotations

# Standard Library
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Third-Party Libraries
from pydantic import BaseModel, Field

# Local Modules
from clippy.errors import CapabilityError
from clippy.tools import InvocationContext, Tool

_DISPLAY_FORMAT: str = "%Y-%m-%d %H:%M:%S %Z"


class TimezoneArguments(BaseModel):
    time: str | None = Field(
        None,
        description=(
            "Time in RFC3339 format (e.g., '2025-12-15T14:00:00Z') or 'now' for current time"
        ),
    )
    from_timezone: str = Field(
        ...,
        description="Source timezone in IANA format (e.g., 'America/New_York', 'Europe/Madrid', 'UTC')",
    )
    to_timezone: str = Field(
        ...,
        description="Target timezone in IANA format (e.g., 'America/New_York', 'Europe/Madrid', 'Asia/Tokyo')",
    )


def _load_zone(name: str, label: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise CapabilityError(f"invalid {label} timezone '{name}'") from exc


def _parse_rfc3339(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise CapabilityError(
            f"invalid time format '{value}', expected RFC3339 (e.g., '2025-12-15T14:00:00Z')"
        ) from exc
    if parsed.tzinfo is None:
        raise CapabilityError(
            f"invalid time format '{value}', RFC3339 requires a UTC offset"
        )
    return parsed


def format_offset_difference(hours: float) -> str:
    if hours > 0:
        return f"+{hours:.1f} hours"
    if hours < 0:
        return f"{hours:.1f} hours"
    return "same time"


class TimezoneTool(Tool):
    name = "convert_timezone"
    description = (
        "Convert a time from one timezone to another. Useful for travelers "
        "scheduling across different locations. Supports IANA timezone names "
        "(e.g., 'America/New_York', 'Europe/Madrid', 'Asia/Tokyo')."
    )
    Arguments = TimezoneArguments

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def execute(self, context: InvocationContext, arguments: TimezoneArguments) -> str:
        from_zone = _load_zone(arguments.from_timezone, "source")
        to_zone = _load_zone(arguments.to_timezone, "target")

        if not arguments.time or arguments.time.strip().lower() == "now":
            instant = self.clock()
        else:
            instant = _parse_rfc3339(arguments.time)

        source = instant.astimezone(from_zone)
        target = instant.astimezone(to_zone)

        source_offset = source.utcoffset() or timedelta(0)
        target_offset = target.utcoffset() or timedelta(0)
        difference = (target_offset - source_offset).total_seconds() / 3600.0

        return (
            "Time Conversion:\n"
            f"From: {source.strftime(_DISPLAY_FORMAT)} ({arguments.from_timezone})\n"
            f"To:   {target.strftime(_DISPLAY_FORMAT)} ({arguments.to_timezone})\n"
            f"Time difference: {format_offset_difference(difference)}"
        )
