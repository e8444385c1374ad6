"""
Tests for mall tariff matching and pricing
"""
import pytest
from datetime import date, datetime

from holiday_calendar import StaticHolidayCalendar
from mall_rates import (
    NIGHT_BAND,
    WEEKDAY_BAND,
    WEEKEND_BAND,
    first_hour_then_half_hour,
    match_mall_entry,
    resolve_mall_override,
    select_band,
)
from models import Facility
from rate_catalog import DEFAULT_CATALOG, MALL_TARIFF_SOURCE, build_mall_entries
from timegeo import SGT

MONDAY = date(2026, 10, 19)
SATURDAY = date(2026, 10, 24)


def sgt(day, hour, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=SGT)


def entry(key):
    return next(e for e in DEFAULT_CATALOG.mall_entries if e.key == key)


@pytest.fixture
def jurong_point():
    return Facility(id="JPT", name="Jurong Point", agency_code="LTA", lat=1.3398, lng=103.7066, available_lots=120)


@pytest.fixture
def nearby_hdb():
    """Unnamed HDB carpark inside the Jurong Point geofence"""
    return Facility(id="J99", name="Blk 638 Jurong West", agency_code="HDB", lat=1.3400, lng=103.7070)


class TestMatching:
    """Test alias and geofence matching"""

    def test_alias_in_name(self, jurong_point):
        assert match_mall_entry(jurong_point).key == "jurong_point"

    def test_alias_in_id(self):
        facility = Facility(id="JP2", name="Carpark JP2", agency_code="LTA", lat=1.34, lng=103.70)
        assert match_mall_entry(facility).key == "jurong_point"

    def test_geofence_with_destination(self, nearby_hdb):
        assert match_mall_entry(nearby_hdb, "Jurong Point Shopping Centre").key == "jurong_point"

    def test_geofence_needs_destination(self, nearby_hdb):
        assert match_mall_entry(nearby_hdb, "") is None
        assert match_mall_entry(nearby_hdb, "Pioneer MRT") is None

    def test_outside_geofence(self):
        far = Facility(id="W1", name="Blk 1 Woodlands", agency_code="HDB", lat=1.3500, lng=103.7500)
        assert match_mall_entry(far, "Jurong Point") is None

    def test_first_match_wins(self):
        first, second = (dict(MALL_TARIFF_SOURCE[0]), dict(MALL_TARIFF_SOURCE[1]))
        first.update(key="plaza_a", aliases=["plaza"])
        second.update(key="plaza_b", aliases=["plaza"])
        catalog = DEFAULT_CATALOG.with_mall_entries(build_mall_entries([first, second]))

        facility = Facility(id="P1", name="The Plaza", agency_code="LTA", lat=1.30, lng=103.80)
        assert match_mall_entry(facility, catalog=catalog).key == "plaza_a"


class TestBandSelection:
    """Test weekday, weekend/PH and night band selection"""

    def test_weekday(self):
        name, band = select_band(entry("jurong_point").tariff, sgt(MONDAY, 10), StaticHolidayCalendar())
        assert name == WEEKDAY_BAND
        assert band.first_hour == 1.50

    def test_weekend(self):
        name, band = select_band(entry("jurong_point").tariff, sgt(SATURDAY, 10), StaticHolidayCalendar())
        assert name == WEEKEND_BAND
        assert band.first_hour == 1.80

    def test_public_holiday_uses_weekend_band(self):
        calendar = StaticHolidayCalendar([MONDAY])
        name, _ = select_band(entry("jurong_point").tariff, sgt(MONDAY, 10), calendar)
        assert name == WEEKEND_BAND

    def test_night(self):
        name, band = select_band(entry("jurong_point").tariff, sgt(MONDAY, 23), StaticHolidayCalendar())
        assert name == NIGHT_BAND
        assert band.first_hour == 1.20

    def test_after_day_window(self):
        name, _ = select_band(entry("jurong_point").tariff, sgt(MONDAY, 22), StaticHolidayCalendar())
        assert name == NIGHT_BAND

    def test_band_specific_day_window(self):
        tariff = entry("causeway_point").tariff
        assert select_band(tariff, sgt(SATURDAY, 7, 30), StaticHolidayCalendar())[0] == NIGHT_BAND
        assert select_band(tariff, sgt(SATURDAY, 22, 15), StaticHolidayCalendar())[0] == WEEKEND_BAND
        assert select_band(tariff, sgt(MONDAY, 7, 30), StaticHolidayCalendar())[0] == WEEKDAY_BAND


class TestPricing:
    """Test first-hour-then-half-hour pricing"""

    @pytest.mark.parametrize("duration,expected", [
        (0.5, 1.50),
        (1.0, 1.50),
        (1.25, 2.25),
        (1.5, 2.25),
        (2.0, 3.00),
        (3.75, 6.00),
    ])
    def test_first_hour_then_half_hour(self, duration, expected):
        band = entry("jurong_point").tariff.weekday
        assert first_hour_then_half_hour(duration, band) == pytest.approx(expected)

    def test_override(self, jurong_point):
        result = resolve_mall_override(jurong_point, "", 2, sgt(MONDAY, 10), calendar=StaticHolidayCalendar())

        assert result.cost == 3.0
        assert result.rate_per_hour == 1.5
        assert result.rate_source == "official"
        assert result.mall_key == "jurong_point"
        assert result.cap_label == "Jurong Point published rates"
        assert not result.is_night_rate
        assert result.day_hours == 2.0

    def test_override_at_night(self, jurong_point):
        result = resolve_mall_override(jurong_point, "", 2, sgt(MONDAY, 23), calendar=StaticHolidayCalendar())

        assert result.cost == 2.4
        assert result.is_night_rate
        assert result.night_hours == 2.0

    def test_no_override(self):
        facility = Facility(id="A1", name="Blk 1 Tampines", agency_code="HDB", lat=1.35, lng=103.94)
        assert resolve_mall_override(facility, "", 2, sgt(MONDAY, 10), calendar=StaticHolidayCalendar()) is None
