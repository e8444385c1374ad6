"""
Tests for recommendation banner selection
"""
import pytest
from datetime import datetime

from cost_engine import compute_cost
from holiday_calendar import StaticHolidayCalendar
from models import Facility, RecommendationKind, ScoredFacility
from recommendations import select_recommendation
from timegeo import SGT


def at(day, hour, minute=0):
    return datetime(2026, 10, day, hour, minute, tzinfo=SGT)


MONDAY = 19
SUNDAY = 25


def scored(facility_id, agency, start, duration, name=None):
    """Priced facility as the ranking pass would produce it"""
    facility = Facility(id=facility_id, name=name or f"Blk {facility_id}", agency_code=agency,
                        lat=1.35, lng=103.75, available_lots=20)
    pricing = compute_cost(agency, duration, False, start, facility_id, calendar=StaticHolidayCalendar())
    return ScoredFacility(facility=facility, pricing=pricing, is_central=False, distance_km=0.3,
                          walk_minutes=4, score=70, is_free_today=pricing.free_day_applied)


def recommend(facilities, start, duration=2):
    return select_recommendation(facilities, start, duration, calendar=StaticHolidayCalendar())


class TestFreeDay:
    """Test the free parking banner"""

    def test_free_day(self):
        start = at(SUNDAY, 10)
        result = recommend([scored("BE3", "HDB", start, 2), scored("A1", "HDB", start, 2)], start)

        assert result.kind is RecommendationKind.FREE_DAY
        assert result.free_count == 1
        assert "1 carpark " in result.message

    def test_plural(self):
        start = at(SUNDAY, 10)
        result = recommend([scored("BE3", "HDB", start, 2), scored("J8", "HDB", start, 2)], start)

        assert result.free_count == 2
        assert "2 carparks" in result.message


class TestEveningSoon:
    """Test the wait-for-night-rates banner"""

    def test_worth_waiting(self):
        start = at(MONDAY, 22)
        result = recommend([scored("U1", "URA", start, 8, name="Downtown Lot")], start, 8)

        assert result.kind is RecommendationKind.EVENING_SOON
        assert result.wait_minutes == 30
        assert result.saving == 1.2
        assert result.facility_id == "U1"
        assert "Downtown Lot" in result.message

    def test_wait_rounds_up(self):
        start = at(MONDAY, 22, 10).replace(second=30)
        result = recommend([scored("U1", "URA", start, 8)], start, 8)

        assert result.kind is RecommendationKind.EVENING_SOON
        assert result.wait_minutes == 20

    def test_saving_too_small(self):
        start = at(MONDAY, 22)
        assert recommend([scored("A1", "HDB", start, 2)], start) is None

    def test_too_early(self):
        start = at(MONDAY, 21, 50)
        assert recommend([scored("U1", "URA", start, 8)], start, 8) is None

    def test_mall_tariffs_ignored(self):
        start = at(MONDAY, 22)
        assert recommend([scored("M1", "LTA", start, 8)], start, 8) is None


class TestNightActive:
    """Test the night rates banner"""

    @pytest.mark.parametrize("hour", [23, 3])
    def test_night(self, hour):
        result = recommend([], at(MONDAY, hour))

        assert result.kind is RecommendationKind.NIGHT_ACTIVE
        assert result.night_cap == 5.0
        assert "$5" in result.message

    def test_cutover_instant(self):
        assert recommend([], at(MONDAY, 22, 30)).kind is RecommendationKind.NIGHT_ACTIVE


class TestMallMorning:
    """Test the early mall banner"""

    def test_before_ten(self):
        start = at(MONDAY, 8)
        result = recommend([scored("M1", "LTA", start, 2), scored("A1", "HDB", start, 2)], start)

        assert result.kind is RecommendationKind.MALL_MORNING
        assert result.mall_count == 1

    def test_after_ten(self):
        start = at(MONDAY, 10)
        assert recommend([scored("M1", "LTA", start, 2)], start) is None


class TestNoBanner:

    def test_ordinary_daytime(self):
        start = at(MONDAY, 14)
        assert recommend([scored("A1", "HDB", start, 2)], start) is None

    def test_empty_daytime(self):
        assert recommend([], at(MONDAY, 14)) is None
