from datetime import datetime, timezone

from candlelit.booking.availability import (
    is_venue_free,
    is_window_open,
    parse_timestamp,
    remote_weekday,
)
from candlelit.booking.models import OpenHours, OpenTimeRange, TimeRange, Venue


MONDAY = 1


def _venue(venue_id=1, week_days=(MONDAY,), ranges=(("09:00", "12:00"),), occupied=(), preallocated=()):
    return Venue(
        id=venue_id,
        name=f"B1{venue_id:02d}",
        building="B",
        floor="1",
        open_time_ranges=[
            OpenTimeRange(
                week_days=list(week_days),
                ranges=[OpenHours(start_at=start, end_at=end) for start, end in ranges],
            )
        ],
        occupied_times=[TimeRange(start_at=start, end_at=end) for start, end in occupied],
        preallocated_times=[TimeRange(start_at=start, end_at=end) for start, end in preallocated],
    )


def test_remote_weekday_counts_from_sunday():
    assert remote_weekday(datetime(2024, 5, 5, 10, 0)) == 0
    assert remote_weekday(datetime(2024, 5, 6, 10, 0)) == MONDAY
    assert remote_weekday(datetime(2024, 5, 11, 10, 0)) == 6


def test_window_inside_open_hours_is_open():
    venue = _venue()
    assert is_window_open(datetime(2024, 5, 6, 9, 30), datetime(2024, 5, 6, 11, 0), venue) is True


def test_window_starting_before_opening_is_closed():
    venue = _venue()
    assert is_window_open(datetime(2024, 5, 6, 8, 0), datetime(2024, 5, 6, 10, 0), venue) is False


def test_window_on_unlisted_weekday_is_closed():
    venue = _venue(week_days=(2, 3, 4))
    assert is_window_open(datetime(2024, 5, 6, 9, 30), datetime(2024, 5, 6, 11, 0), venue) is False


def test_window_matches_any_of_several_ranges_on_the_same_day():
    venue = Venue(
        id=1,
        name="A201",
        building="A",
        floor="2",
        open_time_ranges=[
            OpenTimeRange(week_days=[MONDAY], ranges=[OpenHours(start_at="08:00", end_at="10:00")]),
            OpenTimeRange(week_days=[MONDAY], ranges=[OpenHours(start_at="13:30", end_at="17:00")]),
        ],
    )
    assert is_window_open(datetime(2024, 5, 6, 14, 0), datetime(2024, 5, 6, 15, 30), venue) is True
    assert is_window_open(datetime(2024, 5, 6, 9, 0), datetime(2024, 5, 6, 14, 0), venue) is False


def test_window_exactly_on_open_hour_bounds_is_open():
    venue = _venue()
    assert is_window_open(datetime(2024, 5, 6, 9, 0), datetime(2024, 5, 6, 12, 0), venue) is True


def test_malformed_open_hours_never_match():
    venue = _venue(ranges=(("morning", "12:00"),))
    assert is_window_open(datetime(2024, 5, 6, 9, 30), datetime(2024, 5, 6, 11, 0), venue) is False


def test_unknown_venue_is_not_free():
    venues = [_venue(venue_id=1)]
    assert is_venue_free(99, "2024-05-06 09:30", "2024-05-06 10:00", venues) is False


def test_unparseable_window_is_not_free():
    venues = [_venue()]
    assert is_venue_free(1, "", "2024-05-06 10:00", venues) is False


def test_window_starting_inside_busy_interval_conflicts():
    venues = [_venue(occupied=[("2024-05-06 10:00", "2024-05-06 11:00")])]
    assert is_venue_free(1, "2024-05-06 10:30", "2024-05-06 10:45", venues) is False


def test_window_ending_inside_busy_interval_conflicts():
    venues = [_venue(occupied=[("2024-05-06 10:00", "2024-05-06 11:00")])]
    assert is_venue_free(1, "2024-05-06 09:30", "2024-05-06 10:30", venues) is False


def test_window_enclosing_busy_interval_is_accepted():
    venues = [_venue(occupied=[("2024-05-06 10:00", "2024-05-06 11:00")])]
    assert is_venue_free(1, "2024-05-06 09:00", "2024-05-06 12:00", venues) is True


def test_back_to_back_windows_do_not_conflict():
    venues = [_venue(occupied=[("2024-05-06 10:00", "2024-05-06 11:00")])]
    assert is_venue_free(1, "2024-05-06 11:00", "2024-05-06 11:30", venues) is True
    assert is_venue_free(1, "2024-05-06 09:30", "2024-05-06 10:00", venues) is True


def test_preallocated_times_count_as_busy():
    venues = [_venue(preallocated=[("2024-05-06 10:00", "2024-05-06 11:00")])]
    assert is_venue_free(1, "2024-05-06 10:15", "2024-05-06 10:45", venues) is False


def test_duplicate_busy_intervals_are_harmless():
    busy = ("2024-05-06 10:00", "2024-05-06 11:00")
    venues = [_venue(occupied=[busy], preallocated=[busy])]
    assert is_venue_free(1, "2024-05-06 11:00", "2024-05-06 12:00", venues) is True
    assert is_venue_free(1, "2024-05-06 10:30", "2024-05-06 11:30", venues) is False


def test_busy_interval_with_seconds_is_compared_as_timestamp():
    venues = [_venue(occupied=[("2024-05-06 10:00:00", "2024-05-06 11:00:00")])]
    assert is_venue_free(1, "2024-05-06 10:30", "2024-05-06 10:45", venues) is False


def test_parse_timestamp_drops_timezone_and_keeps_wall_clock():
    parsed = parse_timestamp("2024-05-06T10:00:00+08:00")
    assert parsed == datetime(2024, 5, 6, 10, 0)
    assert parse_timestamp(datetime(2024, 5, 6, 10, 0, tzinfo=timezone.utc)).tzinfo is None


def test_parse_timestamp_rejects_empty_and_non_string_values():
    assert parse_timestamp("   ") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp(12) is None
