"""
Tests for time-aware cost calculation
"""
import pytest
from datetime import date, datetime, timedelta, timezone

from cost_engine import FREE_DAY_RATE_LABEL, compute_cost
from holiday_calendar import StaticHolidayCalendar
from rate_catalog import MAX_DURATION_HOURS, Agency
from timegeo import SGT

MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 25)


def sgt(day, hour, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=SGT)


@pytest.fixture
def calendar():
    """Calendar without public holidays"""
    return StaticHolidayCalendar()


def cost(agency, duration, start, central=False, facility_id=None, calendar=None):
    return compute_cost(agency, duration, central, start, facility_id, calendar=calendar or StaticHolidayCalendar())


class TestStandardTariff:
    """Test HDB half-hour pricing"""

    def test_weekday_daytime(self):
        result = cost("HDB", 2, sgt(MONDAY, 10))

        assert result.cost == 2.4
        assert result.rate_per_hour == 1.2
        assert result.day_hours == 2.0
        assert result.night_hours == 0.0
        assert not result.cap_applied
        assert not result.is_night_rate
        assert result.rate_source == "estimate"
        assert result.cap_label == "$12/day cap, $5 night cap"

    def test_session_crossing_night_cutover(self):
        result = cost("HDB", 3, sgt(MONDAY, 21, 30))

        assert result.day_hours == 1.0
        assert result.night_hours == 2.0
        assert result.cost == 3.6
        assert result.is_night_rate

    def test_night_cap(self):
        result = cost("HDB", 8.5, sgt(MONDAY, 22, 30))

        assert result.cost == 5.0
        assert result.night_cap_applied
        assert result.cap_applied

    def test_day_cap(self):
        result = cost("HDB", 12, sgt(MONDAY, 7))

        assert result.cost == 12.0
        assert result.cap_applied
        assert not result.night_cap_applied

    def test_central_business_hours(self):
        result = cost("HDB", 2, sgt(MONDAY, 10), central=True)

        assert result.cost == 4.8
        assert result.rate_per_hour == 2.4
        assert result.cap_label.startswith("$20/day cap")

    def test_central_straddling_business_hours(self):
        assert cost("HDB", 2, sgt(MONDAY, 16), central=True).cost == 3.6

    def test_central_on_sunday_uses_standard_rate(self):
        result = cost("HDB", 2, sgt(SUNDAY, 10), central=True)

        assert result.cost == 2.4
        assert result.rate_per_hour == 1.2

    def test_premium_flat(self):
        result = cost("URA", 2, sgt(MONDAY, 10))

        assert result.cost == 4.8
        assert result.rate_per_hour == 2.4

    def test_aware_start_is_converted(self):
        utc_start = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)
        assert cost("HDB", 3, utc_start) == cost("HDB", 3, datetime(2026, 10, 19, 10, 0))


class TestDurationClamping:
    """Test that unusable durations are clamped into the billable range"""

    @pytest.mark.parametrize("duration", [None, 0, -2])
    def test_clamped(self, duration):
        result = cost("HDB", duration, sgt(MONDAY, 10))

        assert result.cost == 0.6
        assert result.day_hours == 0.5

    @pytest.mark.parametrize("duration", [float("inf"), 1e12])
    def test_unbounded_priced_as_longest_session(self, duration):
        result = cost("HDB", duration, sgt(MONDAY, 10), central=True, facility_id="HLM")

        assert result == cost("HDB", MAX_DURATION_HOURS, sgt(MONDAY, 10), central=True, facility_id="HLM")
        assert result.day_hours + result.night_hours == pytest.approx(MAX_DURATION_HOURS, abs=0.01)

    def test_unbounded_mall_tariff(self):
        result = cost("LTA", float("inf"), sgt(MONDAY, 10))

        assert result.cost == 30.0
        assert result.day_hours == MAX_DURATION_HOURS


class TestUnknownAgency:
    """Test fallback pricing for unrecognised agencies"""

    def test_priced_as_non_central_standard(self):
        result = cost("XYZ", 2, sgt(MONDAY, 10), central=True)
        assert result == cost(Agency.STANDARD, 2, sgt(MONDAY, 10))


class TestMallTariff:
    """Test the hourly mall default tariff"""

    def test_hourly(self):
        result = cost("LTA", 2, sgt(MONDAY, 10))

        assert result.cost == 6.0
        assert result.rate_per_hour == 3.0
        assert result.day_hours == 2.0
        assert result.night_hours == 0.0

    def test_day_cap_without_night_distinction(self):
        result = cost("LTA", 12, sgt(MONDAY, 20))

        assert result.cost == 30.0
        assert result.cap_applied
        assert result.night_hours == 0.0
        assert not result.is_night_rate


class TestPeakSurcharge:
    """Test facility peak windows"""

    def test_surcharge(self):
        result = cost("HDB", 2, sgt(MONDAY, 8), central=True, facility_id="HLM")

        assert result.cost == 6.0
        assert "peak" in result.rate_label

    def test_surcharge_added_after_caps(self):
        result = cost("HDB", 12, sgt(MONDAY, 7), central=True, facility_id="HLM")

        assert result.cap_applied
        assert result.cost == 22.4

    def test_no_surcharge_outside_peak_days(self):
        assert cost("HDB", 2, sgt(SUNDAY, 8), central=True, facility_id="HLM").cost == 2.4


class TestFreeParkingDays:
    """Test free parking on Sundays and public holidays"""

    def test_sunday_free(self):
        result = cost("HDB", 2, sgt(SUNDAY, 10), facility_id="BE3")

        assert result.cost == 0.0
        assert result.free_day_applied
        assert result.rate_label == FREE_DAY_RATE_LABEL
        assert result.day_hours == 2.0

    def test_not_eligible_facility(self):
        result = cost("HDB", 2, sgt(SUNDAY, 10), facility_id="A1")

        assert result.cost == 2.4
        assert not result.free_day_applied

    def test_monday_not_free(self):
        assert cost("HDB", 2, sgt(MONDAY, 10), facility_id="BE3").cost == 2.4

    def test_public_holiday(self):
        calendar = StaticHolidayCalendar([MONDAY])
        result = cost("HDB", 2, sgt(MONDAY, 10), facility_id="BE3", calendar=calendar)

        assert result.cost == 0.0
        assert result.free_day_applied

    def test_partial_free_pays_from_cutover(self):
        result = cost("HDB", 2.5, sgt(SUNDAY, 21), facility_id="BE3")
        from_cutover = cost("HDB", 1, sgt(SUNDAY, 22, 30), facility_id="BE3")

        assert result.cost == from_cutover.cost == 1.2
        assert result.free_day_applied
        assert result.cap_label.endswith("(partial free)")
        assert result.day_hours == 1.5
        assert result.night_hours == 1.0

    def test_session_ending_at_cutover_is_free(self):
        result = cost("HDB", 1, sgt(SUNDAY, 21, 30), facility_id="BE3")

        assert result.cost == 0.0
        assert result.free_day_applied
        assert result.rate_label == FREE_DAY_RATE_LABEL

    def test_start_before_free_window(self):
        result = cost("HDB", 2, sgt(SUNDAY, 6), facility_id="BE3")

        assert result.cost == 2.4
        assert not result.free_day_applied

    def test_start_at_cutover_is_paid(self):
        result = cost("HDB", 1, sgt(SUNDAY, 22, 30), facility_id="BE3")

        assert result.cost == 1.2
        assert not result.free_day_applied


class TestInvariants:
    """Properties that hold for every session"""

    @pytest.mark.parametrize("agency", ["HDB", "URA", "LTA"])
    @pytest.mark.parametrize("hour", [0, 6, 7, 12, 17, 21, 22, 23])
    @pytest.mark.parametrize("duration", [0.5, 1.75, 3, 10, 30])
    def test_hours_sum_to_duration(self, agency, hour, duration):
        result = cost(agency, duration, sgt(MONDAY, hour))
        assert result.day_hours + result.night_hours == pytest.approx(duration, abs=0.01)
        assert result.cost >= 0

    @pytest.mark.parametrize("central", [False, True])
    @pytest.mark.parametrize("hour", [7, 15, 21])
    def test_cost_never_decreases_with_duration(self, central, hour):
        costs = [cost("HDB", d / 2, sgt(MONDAY, hour), central=central).cost for d in range(1, 30)]
        assert costs == sorted(costs)

    def test_pure_recomputation(self):
        start = sgt(MONDAY, 21, 30)
        assert cost("HDB", 3, start) == cost("HDB", 3, start)
