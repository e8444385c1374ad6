"""
Multi-factor scoring, ranking and badge assignment

Tuning constants:
    MAX_COST_FOR_SCORE    cost at which the cost factor reaches zero
    DISTANCE_CEILING_KM   distance at which the distance factor reaches zero
    AVAILABILITY_CEILING  free lots that earn a full availability factor
    FREE_SCORE_BLEND      share of a free-today facility's score fixed at 100;
                          the rest is its normal score with cost taken as zero
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Union

from cost_engine import compute_cost
from exceptions import CatalogConfigurationError
from holiday_calendar import HolidayCalendar, default_calendar
from logging_config import get_logger
from mall_rates import resolve_mall_override
from models import (
    DEFAULT_RADIUS_KM,
    Badge,
    Facility,
    Priority,
    ScoredFacility,
    parse_priority,
)
from rate_catalog import DEFAULT_CATALOG, RateCatalog, clamp_duration
from timegeo import Coordinate, distance_km, walk_minutes

logger = get_logger(__name__)

MAX_COST_FOR_SCORE = 30.0
DISTANCE_CEILING_KM = 2.0
AVAILABILITY_CEILING = 50
FREE_SCORE_BLEND = 0.60


class WeightProfile(NamedTuple):
    cost: float
    distance: float
    availability: float


WEIGHT_PROFILES: Dict[Priority, WeightProfile] = {
    Priority.CHEAPEST: WeightProfile(cost=0.60, distance=0.20, availability=0.20),
    Priority.CLOSEST: WeightProfile(cost=0.20, distance=0.60, availability=0.20),
    Priority.BALANCED: WeightProfile(cost=0.35, distance=0.35, availability=0.30),
    Priority.BEST_VALUE: WeightProfile(cost=0.45, distance=0.30, availability=0.25),
}


def validate_weight_profiles(profiles: Mapping[Priority, WeightProfile]) -> None:
    problems = [f"{p.value}: no weight profile" for p in Priority if p not in profiles]
    for priority, weights in profiles.items():
        if any(w < 0 for w in weights):
            problems.append(f"{priority.value}: negative weight")
        if abs(sum(weights) - 1.0) > 1e-9:
            problems.append(f"{priority.value}: weights sum to {sum(weights):.3f}, expected 1")
    if problems:
        raise CatalogConfigurationError("weight profiles", problems)


validate_weight_profiles(WEIGHT_PROFILES)


def _weighted(cost: float, distance: float, available_lots: int, weights: WeightProfile) -> float:
    cost_score = max(0.0, 1 - cost / MAX_COST_FOR_SCORE) * 100
    distance_score = (1 - min(distance / DISTANCE_CEILING_KM, 1.0)) * 100
    availability_score = min(max(available_lots, 0) / AVAILABILITY_CEILING, 1.0) * 100
    return (
        cost_score * weights.cost
        + distance_score * weights.distance
        + availability_score * weights.availability
    )


def score(
    cost: float,
    distance: float,
    available_lots: int,
    priority: Union[Priority, str] = Priority.BALANCED,
    free_today: bool = False,
) -> int:
    """0-100 score; free-today facilities get a blend that favours them without forcing them first"""
    weights = WEIGHT_PROFILES[parse_priority(priority)]
    if free_today:
        as_free = _weighted(0.0, distance, available_lots, weights)
        raw = FREE_SCORE_BLEND * 100 + (1 - FREE_SCORE_BLEND) * as_free
    else:
        raw = _weighted(cost, distance, available_lots, weights)
    return int(round(min(max(raw, 0.0), 100.0)))


def assign_badges(ranked: List[ScoredFacility]) -> List[ScoredFacility]:
    """BEST_MATCH to the top entry, then CHEAPEST and NEAREST to unbadged minima"""
    if not ranked:
        return ranked

    best = ranked[0]
    best.badge = Badge.BEST_MATCH

    cheapest = min(ranked, key=lambda s: s.pricing.cost)
    if cheapest is not best and cheapest.badge is None:
        cheapest.badge = Badge.CHEAPEST

    nearest = min(ranked, key=lambda s: s.distance_km)
    if nearest is not best and nearest.badge is None:
        nearest.badge = Badge.NEAREST

    return ranked


def rank_facilities(
    raw_facilities: Iterable[Union[Dict[str, Any], Facility]],
    destination: Coordinate,
    duration_hours: Optional[float],
    priority: Union[Priority, str],
    radius_km: Optional[float],
    start_instant: datetime,
    destination_name: str = "",
    *,
    catalog: RateCatalog = DEFAULT_CATALOG,
    calendar: Optional[HolidayCalendar] = None,
) -> List[ScoredFacility]:
    """
    Price, score, sort and badge every eligible facility near the destination.

    Facilities with unparsable coordinates, non-car lot types or beyond the
    radius are dropped. Equal scores keep their input order.
    """
    priority = parse_priority(priority)
    duration = clamp_duration(duration_hours)
    radius = radius_km if radius_km and radius_km > 0 else DEFAULT_RADIUS_KM
    calendar = calendar or default_calendar()

    scored: List[ScoredFacility] = []
    for record in raw_facilities:
        facility = record if isinstance(record, Facility) else Facility.from_record(record)
        if facility is None:
            logger.debug("Dropping facility with unusable location")
            continue
        if not facility.is_car_lot:
            continue

        distance = distance_km(destination, facility.coordinate)
        if distance > radius:
            continue

        is_central = facility.agency_known and catalog.is_central(
            facility.id, facility.area, facility.lat, facility.lng
        )
        pricing = resolve_mall_override(
            facility, destination_name, duration, start_instant, catalog=catalog, calendar=calendar
        )
        if pricing is None:
            pricing = compute_cost(
                facility.agency_code, duration, is_central, start_instant, facility.id,
                catalog=catalog, calendar=calendar,
            )

        free_today = pricing.free_day_applied
        scored.append(ScoredFacility(
            facility=facility,
            pricing=pricing,
            is_central=is_central,
            distance_km=round(distance, 2),
            walk_minutes=walk_minutes(distance),
            score=score(pricing.cost, distance, facility.available_lots, priority, free_today),
            is_free_today=free_today,
        ))

    ranked = sorted(scored, key=lambda s: s.score, reverse=True)
    return assign_badges(ranked)
