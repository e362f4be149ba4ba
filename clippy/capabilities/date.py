"""clippy/capabilities/date.py

Today's date and time in RFC 3339 format.
"""

from __future__ import annotations

# Standard Library
from collections.abc import Callable
from datetime import datetime

# Local Modules
from clippy.tools import InvocationContext, NoArguments, Tool


def _local_now() -> datetime:
    return datetime.now().astimezone()


class DateTool(Tool):
    name = "get_today_date"
    description = "Get today's date and time in RFC3339 format"

    def __init__(self, clock: Callable[[], datetime] = _local_now) -> None:
        self.clock = clock

    async def execute(self, context: InvocationContext, arguments: NoArguments) -> str:
        return self.clock().isoformat(timespec="seconds")
