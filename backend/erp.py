"""
Coarse Electronic Road Pricing (ERP) estimate

Looks up the destination's ERP-prone zone and checks whether the trip in
or out falls in a weekday peak window. Typical single-direction charges
only; not a live gantry rate lookup.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

from pydantic import BaseModel

from rate_catalog import round_currency
from timegeo import Coordinate, distance_km, minute_of_day, to_sgt

INBOUND_WINDOW = (7 * 60 + 30, 10 * 60)
OUTBOUND_WINDOW = (17 * 60, 20 * 60)

# Fallback for central-area facilities outside every zone circle
CENTRAL_FALLBACK = (1.20, 1.00)


@dataclass(frozen=True)
class ErpZone:
    key: str
    lat: float
    lng: float
    radius_km: float
    inbound: float
    outbound: float
    confidence: str


ERP_ZONES: Tuple[ErpZone, ...] = (
    ErpZone("cbd-marina", 1.285, 103.852, 2.1, 3.0, 3.5, "high"),
    ErpZone("orchard", 1.304, 103.832, 1.2, 2.5, 2.8, "medium"),
    ErpZone("bugis-cityhall", 1.298, 103.855, 1.4, 2.6, 3.0, "medium"),
)


class ErpEstimate(BaseModel):
    inbound: float
    outbound: float
    total: float
    confidence: str
    note: str
    inbound_likely: bool
    outbound_likely: bool
    zone: Optional[str] = None


def find_zone(destination: Coordinate) -> Optional[ErpZone]:
    """Nearest zone whose circle contains the destination"""
    best, best_km = None, None
    for zone in ERP_ZONES:
        km = distance_km(destination, (zone.lat, zone.lng))
        if km <= zone.radius_km and (best_km is None or km < best_km):
            best, best_km = zone, km
    return best


def _in_window(instant: datetime, window: Tuple[int, int]) -> bool:
    local = to_sgt(instant)
    return local.weekday() < 5 and window[0] <= minute_of_day(local) <= window[1]


def estimate_erp_cost(
    destination: Coordinate,
    start_instant: datetime,
    duration_hours: float,
    is_central: bool = False,
) -> ErpEstimate:
    end = to_sgt(start_instant) + timedelta(hours=duration_hours)
    inbound_likely = _in_window(start_instant, INBOUND_WINDOW)
    outbound_likely = _in_window(end, OUTBOUND_WINDOW)
    zone = find_zone(destination)

    inbound = outbound = 0.0
    confidence = "low"
    note = "No ERP expected for this timing/destination."

    if zone is not None:
        inbound = zone.inbound if inbound_likely else 0.0
        outbound = zone.outbound if outbound_likely else 0.0
        confidence = zone.confidence
        if inbound or outbound:
            note = "Estimated by destination ERP zone and peak-hour windows."
    elif is_central:
        inbound = CENTRAL_FALLBACK[0] if inbound_likely else 0.0
        outbound = CENTRAL_FALLBACK[1] if outbound_likely else 0.0
        if inbound or outbound:
            note = "Estimated from central-area peak-hour exposure."

    return ErpEstimate(
        inbound=round_currency(inbound),
        outbound=round_currency(outbound),
        total=round_currency(inbound + outbound),
        confidence=confidence,
        note=note,
        inbound_likely=inbound_likely,
        outbound_likely=outbound_likely,
        zone=zone.key if zone else None,
    )
