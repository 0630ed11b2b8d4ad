from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

import dateparser

from candlelit.booking.models import Venue


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a remote timestamp into a naive wall-clock datetime.

    Open hours are wall-clock values, so any timezone on the input is dropped
    rather than converted.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1]
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = dateparser.parse(text, settings={"RETURN_AS_TIMEZONE_AWARE": False})
    if parsed is None:
        return None
    return parsed.replace(tzinfo=None)


def remote_weekday(moment: datetime) -> int:
    # Remote weekdays count from Sunday = 0.
    return (moment.weekday() + 1) % 7


def is_window_open(start: datetime, end: datetime, venue: Venue) -> bool:
    start_hour = _fractional_hour(start)
    end_hour = _fractional_hour(end)
    weekday = remote_weekday(start)

    for open_time_range in venue.open_time_ranges:
        if weekday not in open_time_range.week_days:
            continue
        for hours in open_time_range.ranges:
            open_start = _parse_clock(hours.start_at)
            open_end = _parse_clock(hours.end_at)
            if open_start is None or open_end is None:
                continue
            if open_start <= start_hour and open_end >= end_hour:
                return True
    return False


def is_venue_free(
    venue_id: int,
    start_time: str,
    end_time: str,
    venues: Sequence[Venue],
) -> bool:
    venue = find_venue(venues, venue_id)
    if venue is None:
        return False

    start = parse_timestamp(start_time)
    end = parse_timestamp(end_time)
    if start is None or end is None:
        return False

    if not is_window_open(start, end, venue):
        return False

    for busy in venue.busy_times():
        busy_start = parse_timestamp(busy.start_at)
        busy_end = parse_timestamp(busy.end_at)
        if busy_start is None or busy_end is None:
            continue
        # Only a window edge landing inside a busy interval counts; a window
        # enclosing the whole busy interval passes.
        if busy_start <= start < busy_end or busy_start < end <= busy_end:
            return False
    return True


def find_venue(venues: Sequence[Venue], venue_id: int) -> Venue | None:
    for venue in venues:
        if venue.id == venue_id:
            return venue
    return None


def _fractional_hour(moment: datetime) -> float:
    return moment.hour + moment.minute / 60


def _parse_clock(value: str) -> float | None:
    parts = value.strip().split(":")
    try:
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 else 0
    except ValueError:
        return None
    return hour + minute / 60
