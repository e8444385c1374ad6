"""
Time-aware parking cost calculation

Decomposes a session into night, business-hour, peak and free-window
sub-periods and applies each agency's caps. Every call is a pure
recomputation from its arguments; the only notion of time is the
supplied start instant.
"""
from datetime import datetime, timedelta
from typing import Optional, Union

from holiday_calendar import HolidayCalendar, default_calendar
from logging_config import get_logger
from models import CostResult
from rate_catalog import (
    DEFAULT_CATALOG,
    PEAK_SURCHARGE_PER_HOUR,
    Agency,
    AgencyTariff,
    BillingUnit,
    RateCatalog,
    clamp_duration,
    format_amount,
    parse_agency,
    round_currency,
)
from timegeo import (
    business_hours_overlap,
    free_window_overlap,
    is_free_eligible_day,
    night_boundaries,
    night_overlap,
    peak_window_overlap,
    split_day_night,
    to_hours,
    to_sgt,
)

logger = get_logger(__name__)

FREE_DAY_RATE_LABEL = "Free (Sun/PH 7am-10:30pm)"
FREE_DAY_CAP_LABEL = "Free parking scheme"
PARTIAL_FREE_SUFFIX = " (partial free)"


def compute_cost(
    agency: Union[Agency, str],
    duration_hours: Optional[float],
    is_central: bool,
    start_instant: datetime,
    facility_id: Optional[str] = None,
    *,
    catalog: RateCatalog = DEFAULT_CATALOG,
    calendar: Optional[HolidayCalendar] = None,
) -> CostResult:
    """
    Price a session at a facility using its agency's default tariff.

    Unknown agencies are priced as a non-central standard facility.
    Free-day-eligible facilities are free between 07:00 and 22:30 on
    Sundays and public holidays; a session crossing 22:30 pays only for
    the part from the cutover onward.
    """
    agency_class, known = parse_agency(agency)
    if not known:
        logger.warning(f"Unknown agency {agency!r}, pricing as non-central standard",
                       extra={"facility_id": facility_id})
        is_central = False

    duration = clamp_duration(duration_hours)
    tariff = catalog.tariff_for(agency_class)

    if tariff.billing is BillingUnit.HOUR:
        return _hourly_cost(tariff, duration)

    calendar = calendar or default_calendar()
    if catalog.is_free_day_eligible(facility_id) and is_free_eligible_day(start_instant, calendar):
        free = _free_day_cost(tariff, duration, is_central, start_instant, facility_id, catalog, calendar)
        if free is not None:
            return free

    return _half_hour_cost(tariff, duration, is_central, start_instant, facility_id, catalog)


def _hourly_cost(tariff: AgencyTariff, duration: float) -> CostResult:
    raw_cost = duration * tariff.rate
    return CostResult(
        cost=round_currency(min(raw_cost, tariff.day_cap)),
        rate_per_hour=tariff.rate,
        rate_label=f"${tariff.rate:.2f}/hr",
        cap_label=f"{format_amount(tariff.day_cap)}/day cap",
        cap_applied=raw_cost > tariff.day_cap,
        day_hours=round(duration, 2),
        night_hours=0.0,
    )


def _half_hour_cost(
    tariff: AgencyTariff,
    duration: float,
    is_central: bool,
    start_instant: datetime,
    facility_id: Optional[str],
    catalog: RateCatalog,
) -> CostResult:
    start = to_sgt(start_instant)
    end = start + timedelta(hours=duration)

    night_hours = min(to_hours(night_overlap(start, end)), duration)
    day_hours = duration - night_hours

    if is_central:
        # Business hours never overlap the night period
        business_hours = min(to_hours(business_hours_overlap(start, end)), day_hours)
        raw_day = business_hours * tariff.central_hourly_rate + (day_hours - business_hours) * tariff.hourly_rate
        day_cap = tariff.central_day_cap
        rate_per_hour = tariff.central_hourly_rate if business_hours > 0 else tariff.hourly_rate
        rate_label = (
            f"${tariff.central_rate:.2f}/30min (7am-5pm Mon-Sat), "
            f"${tariff.rate:.2f}/30min otherwise"
        )
    else:
        raw_day = day_hours * tariff.hourly_rate
        day_cap = tariff.day_cap
        rate_per_hour = tariff.hourly_rate
        rate_label = f"${tariff.rate:.2f}/30min"

    raw_night = night_hours * tariff.hourly_rate
    day_cost = min(raw_day, day_cap)
    night_cost = min(raw_night, tariff.night_cap)

    # Peak windows lie inside 07:00-22:30, so the surcharge never touches night hours
    peak_hours = to_hours(peak_window_overlap(facility_id, start, end, catalog.peak_windows))
    surcharge = peak_hours * PEAK_SURCHARGE_PER_HOUR
    if peak_hours > 0:
        rate_label += f" + ${PEAK_SURCHARGE_PER_HOUR:.2f}/hr peak"

    day_cap_applied = raw_day > day_cap
    night_cap_applied = raw_night > tariff.night_cap

    return CostResult(
        cost=round_currency(day_cost + night_cost + surcharge),
        rate_per_hour=rate_per_hour,
        rate_label=rate_label,
        cap_label=f"{format_amount(day_cap)}/day cap, {format_amount(tariff.night_cap)} night cap",
        cap_applied=day_cap_applied or night_cap_applied,
        night_cap_applied=night_cap_applied,
        is_night_rate=night_hours > 0,
        day_hours=round(day_hours, 2),
        night_hours=round(night_hours, 2),
    )


def _free_day_cost(
    tariff: AgencyTariff,
    duration: float,
    is_central: bool,
    start_instant: datetime,
    facility_id: Optional[str],
    catalog: RateCatalog,
    calendar: HolidayCalendar,
) -> Optional[CostResult]:
    """None when the session does not start inside the free window"""
    start = to_sgt(start_instant)
    bounds = night_boundaries(start)
    cutover = bounds.night_start
    if not (bounds.free_window_start <= start < cutover):
        return None

    day_hours, night_hours = split_day_night(start, duration)
    end = start + timedelta(hours=duration)

    if free_window_overlap(start, end, calendar) >= end - start:
        return CostResult(
            cost=0.0,
            rate_per_hour=0.0,
            rate_label=FREE_DAY_RATE_LABEL,
            cap_label=FREE_DAY_CAP_LABEL,
            day_hours=day_hours,
            night_hours=night_hours,
            free_day_applied=True,
        )

    # Only the part from the cutover onward is paid
    paid = _half_hour_cost(tariff, to_hours(end - cutover), is_central, cutover, facility_id, catalog)
    logger.debug(f"Partial free-day session, paying {paid.cost} from {cutover.isoformat()}",
                 extra={"facility_id": facility_id})
    return paid.model_copy(update={
        "cap_label": paid.cap_label + PARTIAL_FREE_SUFFIX,
        "day_hours": day_hours,
        "night_hours": night_hours,
        "free_day_applied": True,
    })
