"""
Recommendation banner selection

Rules are evaluated in priority order and the first match wins:
free-day, imminent night-rate change, night period, then mall-heavy
early mornings.
"""
import math
from datetime import datetime, timedelta
from typing import List, Optional

from cost_engine import compute_cost
from holiday_calendar import HolidayCalendar, default_calendar
from logging_config import get_logger
from models import Recommendation, RecommendationKind, ScoredFacility
from rate_catalog import DEFAULT_CATALOG, Agency, RateCatalog, format_amount, round_currency
from timegeo import minute_of_day, night_boundaries, to_sgt

logger = get_logger(__name__)

# How long before the 22:30 cutover a "wait for night rates" banner may show
RATE_CHANGE_LEAD_MINUTES = 30
# Smallest saving worth asking the driver to wait for
EVENING_SAVING_THRESHOLD = 0.50
# Mall banners only before 10:00
MALL_MORNING_CUTOFF_MINUTE = 10 * 60


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def select_recommendation(
    scored: List[ScoredFacility],
    start_instant: datetime,
    duration_hours: Optional[float],
    *,
    catalog: RateCatalog = DEFAULT_CATALOG,
    calendar: Optional[HolidayCalendar] = None,
) -> Optional[Recommendation]:
    now = to_sgt(start_instant)
    bounds = night_boundaries(now)
    in_night = bounds.contains(now)

    free_count = sum(1 for s in scored if s.is_free_today)
    if free_count:
        return Recommendation(
            kind=RecommendationKind.FREE_DAY,
            message=f"Free parking today at {_plural(free_count, 'carpark')} until 10:30pm",
            free_count=free_count,
        )

    until_cutover = bounds.night_start - now
    if not in_night and timedelta(0) < until_cutover <= timedelta(minutes=RATE_CHANGE_LEAD_MINUTES):
        recommendation = _evening_soon(scored, bounds.night_start, until_cutover, duration_hours,
                                       catalog, calendar)
        if recommendation is not None:
            return recommendation

    if in_night:
        night_cap = catalog.tariff_for(Agency.STANDARD).night_cap
        return Recommendation(
            kind=RecommendationKind.NIGHT_ACTIVE,
            message=f"Night rates in effect: HDB carparks capped at {format_amount(night_cap)} until 7am",
            night_cap=night_cap,
        )

    mall_count = sum(1 for s in scored if s.is_mall_tariff)
    if minute_of_day(now) < MALL_MORNING_CUTOFF_MINUTE and mall_count:
        return Recommendation(
            kind=RecommendationKind.MALL_MORNING,
            message=f"{_plural(mall_count, 'mall carpark')} nearby; mall rates are lowest before 10am",
            mall_count=mall_count,
        )

    return None


def _evening_soon(
    scored: List[ScoredFacility],
    cutover: datetime,
    until_cutover: timedelta,
    duration_hours: Optional[float],
    catalog: RateCatalog,
    calendar: Optional[HolidayCalendar],
) -> Optional[Recommendation]:
    # Quotes the cheapest non-mall facility, whatever its rank
    candidates = [s for s in scored if not s.is_mall_tariff]
    if not candidates:
        return None

    cheapest = min(candidates, key=lambda s: s.pricing.cost)
    later = compute_cost(
        cheapest.facility.agency_code, duration_hours, cheapest.is_central, cutover,
        cheapest.facility.id, catalog=catalog, calendar=calendar or default_calendar(),
    )
    saving = round_currency(cheapest.pricing.cost - later.cost)
    if saving <= EVENING_SAVING_THRESHOLD:
        return None

    wait_minutes = math.ceil(until_cutover.total_seconds() / 60)
    logger.debug(f"Suggesting a {wait_minutes} min wait to save {saving}",
                 extra={"facility_id": cheapest.facility.id})
    return Recommendation(
        kind=RecommendationKind.EVENING_SOON,
        message=(
            f"Night rates start in {wait_minutes} min: wait to save "
            f"${saving:.2f} at {cheapest.facility.name}"
        ),
        wait_minutes=wait_minutes,
        saving=saving,
        facility_id=cheapest.facility.id,
    )
