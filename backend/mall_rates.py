"""
Mall-specific tariff overrides

A facility is matched to a mall tariff entry by alias, or by geofence when
the user is heading to that mall. Entries are tried in catalog order and the
first match wins; aliases can be ambiguous, and no attempt is made to pick
a "better" match.
"""
import math
from datetime import datetime
from typing import Optional, Tuple

from holiday_calendar import HolidayCalendar, default_calendar
from logging_config import get_logger
from models import CostResult, Facility
from rate_catalog import (
    DEFAULT_CATALOG,
    MallBand,
    MallTariff,
    MallTariffEntry,
    RateCatalog,
    clamp_duration,
    normalize_alias,
    round_currency,
)
from timegeo import distance_km, is_night, is_weekend_or_holiday, minute_of_day, split_day_night

logger = get_logger(__name__)

NIGHT_BAND = "night"
WEEKDAY_BAND = "weekday"
WEEKEND_BAND = "weekend_or_ph"


def match_mall_entry(
    facility: Facility,
    destination_name: str = "",
    catalog: RateCatalog = DEFAULT_CATALOG,
) -> Optional[MallTariffEntry]:
    """First catalog entry matching by alias, or by geofence plus destination name"""
    haystacks = [normalize_alias(v) for v in (facility.id, facility.name, facility.area)]
    destination = normalize_alias(destination_name)

    for entry in catalog.mall_entries:
        aliases = entry.normalized_aliases
        if any(alias in text for alias in aliases for text in haystacks if text):
            return entry

        fence = entry.geofence
        if fence is None or not destination:
            continue
        inside = distance_km(facility.coordinate, (fence.lat, fence.lng)) * 1000 <= fence.radius_m
        if inside and any(alias in destination for alias in aliases):
            return entry

    return None


def select_band(tariff: MallTariff, start_instant: datetime, calendar: HolidayCalendar) -> Tuple[str, MallBand]:
    """Night period first, then the weekday or weekend/PH band inside its day window"""
    if is_night(start_instant):
        return NIGHT_BAND, tariff.night

    if is_weekend_or_holiday(start_instant, calendar):
        name, band = WEEKEND_BAND, tariff.weekend_or_ph
    else:
        name, band = WEEKDAY_BAND, tariff.weekday

    day_start = tariff.day_start_mins if band.day_start_mins is None else band.day_start_mins
    day_end = tariff.day_end_mins if band.day_end_mins is None else band.day_end_mins
    if day_start <= minute_of_day(start_instant) < day_end:
        return name, band
    return NIGHT_BAND, tariff.night


def first_hour_then_half_hour(duration_hours: float, band: MallBand) -> float:
    if duration_hours <= 1:
        return band.first_hour
    half_hours = math.ceil(round((duration_hours - 1) * 2, 6))
    return band.first_hour + half_hours * band.per_half_hour


def resolve_mall_override(
    facility: Facility,
    destination_name: str,
    duration_hours: Optional[float],
    start_instant: datetime,
    *,
    catalog: RateCatalog = DEFAULT_CATALOG,
    calendar: Optional[HolidayCalendar] = None,
) -> Optional[CostResult]:
    """Mall tariff price for the facility, or None to use the agency default"""
    entry = match_mall_entry(facility, destination_name, catalog)
    if entry is None:
        return None

    duration = clamp_duration(duration_hours)
    band_name, band = select_band(entry.tariff, start_instant, calendar or default_calendar())
    day_hours, night_hours = split_day_night(start_instant, duration)

    logger.debug(f"Mall tariff {entry.key} ({band_name}) applied",
                 extra={"facility_id": facility.id})

    return CostResult(
        cost=round_currency(first_hour_then_half_hour(duration, band)),
        rate_per_hour=band.per_half_hour * 2,
        rate_label=band.rate_label,
        cap_label=entry.tariff.cap_label,
        is_night_rate=band_name == NIGHT_BAND,
        day_hours=day_hours,
        night_hours=night_hours,
        rate_source="official",
        mall_key=entry.key,
    )
