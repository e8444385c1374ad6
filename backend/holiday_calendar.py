"""
Public holiday oracle used to gate free-parking days and weekend mall bands
"""
from datetime import date
from functools import lru_cache
from typing import Iterable, Protocol

import holidays

from config import get_settings
from logging_config import get_logger

logger = get_logger(__name__)


class HolidayCalendar(Protocol):
    def is_public_holiday(self, day: date) -> bool:
        ...


class StaticHolidayCalendar:
    """Calendar over an explicit set of dates"""

    def __init__(self, dates: Iterable[date] = ()):
        self.dates = frozenset(dates)

    def is_public_holiday(self, day: date) -> bool:
        return day in self.dates


class SingaporeHolidayCalendar:
    """Gazetted Singapore public holidays plus any configured extra dates"""

    def __init__(self, extra_dates: Iterable[date] = ()):
        self._holidays = holidays.country_holidays("SG")
        self.extra_dates = frozenset(extra_dates)

    def is_public_holiday(self, day: date) -> bool:
        return day in self.extra_dates or day in self._holidays


@lru_cache()
def default_calendar() -> SingaporeHolidayCalendar:
    """Calendar built once from settings"""
    settings = get_settings()
    extra = []
    for raw in settings.extra_public_holidays:
        try:
            extra.append(date.fromisoformat(raw))
        except ValueError:
            logger.warning(f"Ignoring malformed public holiday date: {raw!r}")
    return SingaporeHolidayCalendar(extra)
