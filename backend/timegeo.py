"""
Singapore civil-time calendar math and geographic helpers

Every boundary used for pricing (night cutover, business hours, peak
windows, the free-parking window) is defined in the fixed UTC+8 civil
calendar. Aware datetimes are converted to it; naive datetimes are read
as SGT wall-clock time, never as host-local time.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Callable, Mapping, NamedTuple, Optional, Sequence, Tuple

from geopy.distance import great_circle

SGT = timezone(timedelta(hours=8), "SGT")

WALKING_SPEED_KMH = 5.0

Coordinate = Tuple[float, float]
DayFilter = Callable[[date], bool]


class DailyWindow(NamedTuple):
    """Window recurring every civil day, in minutes after midnight"""
    start_minute: int
    end_minute: int

    @property
    def wraps_midnight(self) -> bool:
        return self.end_minute <= self.start_minute


NIGHT_WINDOW = DailyWindow(22 * 60 + 30, 7 * 60)
BUSINESS_HOURS_WINDOW = DailyWindow(7 * 60, 17 * 60)
FREE_PARKING_WINDOW = DailyWindow(7 * 60, 22 * 60 + 30)


class DayClass(str, Enum):
    """Days of the week a recurring window applies to"""
    DAILY = "daily"
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    MON_TO_SAT = "mon_to_sat"

    def accepts(self, day: date) -> bool:
        weekday = day.weekday()
        if self is DayClass.WEEKDAY:
            return weekday < 5
        if self is DayClass.WEEKEND:
            return weekday >= 5
        if self is DayClass.MON_TO_SAT:
            return weekday < 6
        return True


@dataclass(frozen=True)
class PeakWindow:
    """Facility-specific surcharge period"""
    day_class: DayClass
    start_hour: float
    end_hour: float

    @property
    def window(self) -> DailyWindow:
        return DailyWindow(int(round(self.start_hour * 60)), int(round(self.end_hour * 60)))


class NightBoundaries(NamedTuple):
    night_start: datetime
    night_end: datetime
    free_window_start: datetime

    def contains(self, instant: datetime) -> bool:
        return self.night_start <= to_sgt(instant) < self.night_end


def to_sgt(instant: datetime) -> datetime:
    """Express an instant in Singapore civil time"""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=SGT)
    return instant.astimezone(SGT)


def minute_of_day(instant: datetime) -> float:
    local = to_sgt(instant)
    return local.hour * 60 + local.minute + local.second / 60 + local.microsecond / 60_000_000


def at_minute(day: date, minute: float) -> datetime:
    """SGT instant `minute` minutes after midnight of `day`"""
    return datetime.combine(day, time(0), tzinfo=SGT) + timedelta(minutes=minute)


def to_hours(span: timedelta) -> float:
    return span.total_seconds() / 3600


def recurring_window_overlap(
    start: datetime,
    end: datetime,
    window: DailyWindow,
    day_filter: Optional[DayFilter] = None,
) -> timedelta:
    """
    Total overlap of [start, end) with a window recurring every civil day.

    The window opening on each SGT day touched by the interval is checked,
    including the day before `start` so that windows wrapping past midnight
    are seen. `day_filter` is applied to the day on which the window opens.
    """
    start, end = to_sgt(start), to_sgt(end)
    total = timedelta(0)
    if end <= start:
        return total

    day = start.date() - timedelta(days=1)
    while day <= end.date():
        if day_filter is None or day_filter(day):
            opens = at_minute(day, window.start_minute)
            closes = at_minute(day, window.end_minute)
            if window.wraps_midnight:
                closes += timedelta(days=1)
            overlap = min(end, closes) - max(start, opens)
            if overlap > timedelta(0):
                total += overlap
        day += timedelta(days=1)
    return total


def is_night(instant: datetime) -> bool:
    minute = minute_of_day(instant)
    return minute >= NIGHT_WINDOW.start_minute or minute < NIGHT_WINDOW.end_minute


def night_boundaries(instant: datetime) -> NightBoundaries:
    """
    Night period containing or immediately following `instant`.

    Before 07:00 the instant still belongs to the previous evening's night.
    `free_window_start` is 07:00 of the instant's own civil day.
    """
    local = to_sgt(instant)
    today = local.date()
    if minute_of_day(local) < NIGHT_WINDOW.end_minute:
        night_start = at_minute(today - timedelta(days=1), NIGHT_WINDOW.start_minute)
        night_end = at_minute(today, NIGHT_WINDOW.end_minute)
    else:
        night_start = at_minute(today, NIGHT_WINDOW.start_minute)
        night_end = at_minute(today + timedelta(days=1), NIGHT_WINDOW.end_minute)
    return NightBoundaries(night_start, night_end, at_minute(today, FREE_PARKING_WINDOW.start_minute))


def night_overlap(start: datetime, end: datetime) -> timedelta:
    return recurring_window_overlap(start, end, NIGHT_WINDOW)


def business_hours_overlap(start: datetime, end: datetime) -> timedelta:
    """Overlap with Monday-Saturday 07:00-17:00"""
    return recurring_window_overlap(start, end, BUSINESS_HOURS_WINDOW, DayClass.MON_TO_SAT.accepts)


def peak_window_overlap(
    facility_id: Optional[str],
    start: datetime,
    end: datetime,
    peak_windows: Mapping[str, Sequence[PeakWindow]],
) -> timedelta:
    total = timedelta(0)
    for peak in peak_windows.get(facility_id or "", ()):
        total += recurring_window_overlap(start, end, peak.window, peak.day_class.accepts)
    return total


def is_free_eligible_day(instant: datetime, calendar) -> bool:
    """Sundays and public holidays"""
    day = to_sgt(instant).date()
    return day.weekday() == 6 or calendar.is_public_holiday(day)


def is_weekend_or_holiday(instant: datetime, calendar) -> bool:
    day = to_sgt(instant).date()
    return day.weekday() >= 5 or calendar.is_public_holiday(day)


def free_window_overlap(start: datetime, end: datetime, calendar) -> timedelta:
    """Overlap with 07:00-22:30 on Sundays and public holidays"""
    return recurring_window_overlap(
        start, end, FREE_PARKING_WINDOW,
        lambda day: day.weekday() == 6 or calendar.is_public_holiday(day),
    )


def split_day_night(start: datetime, duration_hours: float) -> Tuple[float, float]:
    """(day_hours, night_hours) of a session, rounded to two decimals"""
    end = to_sgt(start) + timedelta(hours=duration_hours)
    night_hours = min(to_hours(night_overlap(start, end)), duration_hours)
    return round(duration_hours - night_hours, 2), round(night_hours, 2)


# Geography

def parse_location(location: Optional[str]) -> Optional[Coordinate]:
    """Parse a DataMall "LAT LNG" string; zero or unparsable parts give None"""
    if not location or not isinstance(location, str):
        return None
    parts = location.split()
    if len(parts) < 2:
        return None
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)) or lat == 0 or lng == 0:
        return None
    if not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
        return None
    return lat, lng


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in kilometres"""
    return great_circle(a, b).km


def walk_minutes(distance: float) -> int:
    # Display proxy only; not validated against real walking paths
    return int(round(distance / WALKING_SPEED_KMH * 60))
