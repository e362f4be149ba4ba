"""clippy/capabilities/holidays.py

Local bank and public holidays read from an iCalendar (ICS) feed.

Each result line is ``YYYY-MM-DD: Holiday Name``.  The feed URL is passed in
at construction time (``HOLIDAY_CALENDAR_LINK`` in the settings).
"""

from __future__ import annotations

# Standard Library
import logging
from datetime import date, datetime, time

# Third-Party Libraries
import httpx
from icalendar import Calendar
from pydantic import BaseModel, Field

# Local Modules
from clippy.errors import CapabilityError
from clippy.tools import InvocationContext, Tool

logger = logging.getLogger(__name__)

NO_HOLIDAYS_FOUND: str = "No holidays found matching the criteria."


class HolidaysArguments(BaseModel):
    before_date: datetime | None = Field(
        None,
        description=(
            "Optional date in RFC3339 format to get holidays before this date. "
            "If not provided, all holidays will be returned."
        ),
    )
    after_date: datetime | None = Field(
        None,
        description=(
            "Optional date in RFC3339 format to get holidays after this date. "
            "If not provided, all holidays will be returned."
        ),
    )
    max_count: int | None = Field(
        None,
        ge=0,
        description=(
            "Optional maximum number of holidays to return. "
            "If not provided, all holidays will be returned."
        ),
    )


def parse_holidays(ics: bytes | str) -> list[tuple[date, str]]:
    """Extract ``(day, name)`` pairs for all-day events, sorted by day.

    Events without a start date or with a time of day are skipped.

    Args:
        ics: Raw calendar document.

    Returns:
        Holidays in chronological order.

    Raises:
        CapabilityError: If the document is not a valid calendar.
    """
    try:
        calendar = Calendar.from_ical(ics)
    except ValueError as exc:
        raise CapabilityError(f"failed to parse calendar: {exc}") from exc

    holidays: list[tuple[date, str]] = []
    for event in calendar.walk("VEVENT"):
        start = event.get("DTSTART")
        if start is None:
            continue
        if isinstance(start.dt, datetime) or not isinstance(start.dt, date):
            continue
        holidays.append((start.dt, str(event.get("SUMMARY", "")).strip()))
    holidays.sort(key=lambda item: item[0])
    return holidays


def _midnight(day: date, bound: datetime) -> datetime:
    return datetime.combine(day, time(), tzinfo=bound.tzinfo)


def select_holidays(
    holidays: list[tuple[date, str]], arguments: HolidaysArguments
) -> list[str]:
    """Apply the date bounds and count limit, then format each holiday.

    A holiday is compared by its midnight against the bounds, so an
    ``after_date`` later than midnight excludes the holiday on that day.
    """
    selected: list[str] = []
    for day, name in holidays:
        if arguments.max_count and len(selected) >= arguments.max_count:
            break
        before, after = arguments.before_date, arguments.after_date
        if before and _midnight(day, before) > before:
            continue
        if after and _midnight(day, after) < after:
            continue
        selected.append(f"{day.isoformat()}: {name}")
    return selected


class HolidaysTool(Tool):
    name = "get_holidays"
    description = (
        "Gets local bank and public holidays. Each line is a single holiday "
        "in the format 'YYYY-MM-DD: Holiday Name'."
    )
    Arguments = HolidaysArguments

    def __init__(self, client: httpx.AsyncClient, calendar_url: str) -> None:
        self.client = client
        self.calendar_url = calendar_url

    async def execute(self, context: InvocationContext, arguments: HolidaysArguments) -> str:
        holidays = parse_holidays(await self._load_calendar())
        selected = select_holidays(holidays, arguments)
        if not selected:
            return NO_HOLIDAYS_FOUND
        return "\n".join(selected)

    async def _load_calendar(self) -> bytes:
        logger.info("Loading calendar: %s", self.calendar_url)
        try:
            response = await self.client.get(self.calendar_url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CapabilityError(f"failed to load holiday calendar: {exc}") from exc
        return response.content
