"""General utility functions and helpers."""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import datetime
from typing import Optional, TypeVar

import pytz

logger = logging.getLogger(__name__)

T = TypeVar("T")


def ensure_timezone_aware(dt: datetime, default_tz: Optional[str] = None) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to check
        default_tz: Timezone used to localize naive datetimes (UTC if omitted)

    Returns:
        Timezone-aware datetime
    """
    if dt.tzinfo is not None:
        return dt

    tz = pytz.timezone(default_tz) if default_tz else pytz.utc
    return tz.localize(dt)


def get_timezone_aware_now(user_timezone: Optional[str] = None) -> datetime:
    """Get current datetime with timezone awareness.

    Args:
        user_timezone: Optional timezone string (e.g., 'Europe/Zurich'). Defaults to UTC.

    Returns:
        Current datetime in the requested timezone
    """
    utc_now = datetime.now(pytz.utc)
    if user_timezone is None:
        return utc_now

    try:
        return utc_now.astimezone(pytz.timezone(user_timezone))
    except pytz.UnknownTimeZoneError as e:
        logger.warning(f"Invalid timezone '{user_timezone}', falling back to UTC: {e}")
        return utc_now


def parse_iso_datetime(dt_string: Optional[str]) -> Optional[datetime]:
    """Parse ISO datetime string into a timezone-aware datetime.

    Args:
        dt_string: ISO datetime string, may end with 'Z'

    Returns:
        Parsed datetime or None if parsing fails
    """
    if not dt_string:
        return None

    try:
        return ensure_timezone_aware(datetime.fromisoformat(dt_string.replace("Z", "+00:00")))
    except ValueError:
        logger.warning(f"Failed to parse datetime: {dt_string}")
        return None


async def with_timeout(awaitable: Awaitable[T], timeout: float) -> T:
    """Await a coroutine under a fixed time budget.

    Args:
        awaitable: Coroutine or awaitable to run
        timeout: Budget in seconds

    Returns:
        Result of the awaitable

    Raises:
        asyncio.TimeoutError: If the budget expires first; the awaitable is cancelled
    """
    return await asyncio.wait_for(awaitable, timeout=timeout)
