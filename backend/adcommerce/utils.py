"""
Shared utility functions.
"""

import asyncio
import logging
import math
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Awaitable, Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 30

_LEADING_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_LEADING_INTEGER = re.compile(r"^[+-]?(?:(0[xX][0-9a-fA-F]+)|\d+)")
_WHITESPACE = re.compile(r"\s+")


def safe_error_detail(exc: Exception, fallback: str = "An internal error occurred. Please try again later.") -> str:
    """
    Return a sanitized error message safe for client consumption.
    Logs the real exception detail server-side.
    """
    logger.error(f"Operation failed: {exc}", exc_info=True)
    return fallback


def safe_float(value: Any) -> float:
    """
    Parse an upstream numeric value leniently.

    Accepts numbers and numeric strings with trailing junk ("12.5 TL" -> 12.5).
    Anything unparseable, empty, NaN or infinite becomes 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        match = _LEADING_NUMBER.match(str(value).strip())
        if not match:
            return 0.0
        try:
            result = float(match.group(0))
        except ValueError:
            return 0.0
    return result if math.isfinite(result) else 0.0


def safe_int(value: Any) -> int:
    """
    Parse an upstream integer leniently. Strings keep only their leading
    integer ("12.9" -> 12, "1e3" -> 1, "0x10" -> 16). Invalid -> 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else 0
    match = _LEADING_INTEGER.match(str(value).strip())
    if not match:
        return 0
    digits = match.group(0)
    return int(digits, 16) if match.group(1) else int(digits)


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """
    Run awaitables concurrently like asyncio.gather, but when one fails the
    others are cancelled and awaited before the error propagates.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def clean_token(token: str) -> str:
    """Strip pasted tokens of surrounding and embedded whitespace/newlines."""
    return _WHITESPACE.sub("", (token or "").strip())


def token_preview(token: str) -> str:
    return f"{token[:10]}... (len={len(token)})"


# ── Date helpers ──────────────────────────────────────────────────────

def default_date_range(today: Optional[date] = None) -> tuple[date, date]:
    """Default reporting window: the last 30 days up to today."""
    today = today or date.today()
    return today - timedelta(days=DEFAULT_RANGE_DAYS), today


def resolve_date_range(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> tuple[date, date]:
    """
    Resolve (start, end) from ISO date strings, falling back to the default
    window when either is missing. Raises ValueError on malformed or inverted dates.
    """
    if not start_date or not end_date:
        return default_date_range()
    s = date.fromisoformat(start_date)
    e = date.fromisoformat(end_date)
    if s > e:
        raise ValueError(f"start_date {start_date} is after end_date {end_date}")
    return s, e


def date_to_unix_timestamp(day: date, end_of_day: bool = False, tz: str = "UTC") -> int:
    """Unix seconds for 00:00:00 (or 23:59:59 when end_of_day) of `day` in timezone `tz`."""
    clock = time(23, 59, 59) if end_of_day else time(0, 0, 0)
    return int(datetime.combine(day, clock, tzinfo=ZoneInfo(tz)).timestamp())
