"""
Domain models for the parking cost and ranking engine
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from logging_config import get_logger
from rate_catalog import Agency, DEFAULT_AGENCY_CODE, clamp_duration, parse_agency
from timegeo import SGT, Coordinate, parse_location, to_sgt

logger = get_logger(__name__)

CAR_LOT_TYPE = "C"
DEFAULT_RADIUS_KM = 2.0


class Priority(str, Enum):
    """User-selected ranking profile"""
    CHEAPEST = "cheapest"
    CLOSEST = "closest"
    BALANCED = "balanced"
    BEST_VALUE = "best_value"


def parse_priority(value: Any) -> Priority:
    """Unknown priority keys fall back to BALANCED"""
    if isinstance(value, Priority):
        return value
    try:
        return Priority(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown priority {value!r}, using balanced weights")
        return Priority.BALANCED


class Badge(str, Enum):
    BEST_MATCH = "BEST_MATCH"
    CHEAPEST = "CHEAPEST"
    NEAREST = "NEAREST"


class RecommendationKind(str, Enum):
    FREE_DAY = "FREE_DAY"
    EVENING_SOON = "EVENING_SOON"
    NIGHT_ACTIVE = "NIGHT_ACTIVE"
    MALL_MORNING = "MALL_MORNING"


def _row_get(row: Dict[str, Any], keys: Iterable[str]) -> Optional[Any]:
    for k in keys:
        if k in row and row[k] not in (None, ""):
            return row[k]
    return None


def _try_parse_int(value: Any) -> int:
    if value is None:
        return 0
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return 0


class Facility(BaseModel):
    """Car park as reported by the availability source"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    agency_code: str = DEFAULT_AGENCY_CODE
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    available_lots: int = 0
    area: Optional[str] = None
    lot_type: Optional[str] = None

    @property
    def agency(self) -> Agency:
        return parse_agency(self.agency_code)[0]

    @property
    def agency_known(self) -> bool:
        return parse_agency(self.agency_code)[1]

    @property
    def coordinate(self) -> Coordinate:
        return self.lat, self.lng

    @property
    def is_car_lot(self) -> bool:
        return not self.lot_type or self.lot_type == CAR_LOT_TYPE

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Optional["Facility"]:
        """
        Build a facility from a DataMall availability record.

        Accepts the DataMall keys (CarParkID, Development, Agency, Location,
        AvailableLots, LotType, Area) or their snake_case equivalents.
        Records whose location is missing, zero or unparsable give None.
        """
        location = parse_location(_row_get(record, ["Location", "location", "coordinate"]))
        if location is None:
            return None

        facility_id = str(_row_get(record, ["CarParkID", "id", "carpark_id"]) or "")
        name = _row_get(record, ["Development", "name"])
        lot_type = _row_get(record, ["LotType", "lot_type"])
        area = _row_get(record, ["Area", "area"])

        return cls(
            id=facility_id,
            name=str(name) if name is not None else f"Carpark {facility_id}",
            agency_code=str(_row_get(record, ["Agency", "agency"]) or DEFAULT_AGENCY_CODE),
            lat=location[0],
            lng=location[1],
            available_lots=_try_parse_int(_row_get(record, ["AvailableLots", "available_lots"])),
            area=str(area) if area is not None else None,
            lot_type=str(lot_type) if lot_type is not None else None,
        )


class PricingContext(BaseModel):
    """Per-request pricing inputs shared by every facility in a ranking pass"""
    model_config = ConfigDict(frozen=True)

    destination_lat: float = Field(..., ge=-90, le=90)
    destination_lng: float = Field(..., ge=-180, le=180)
    destination_name: str = ""
    start: datetime = Field(default_factory=lambda: datetime.now(SGT))
    duration_hours: float
    priority: Priority = Priority.BALANCED
    radius_km: float = DEFAULT_RADIUS_KM

    @field_validator('duration_hours', mode='before')
    @classmethod
    def clamp_duration_hours(cls, v):
        return clamp_duration(None if v is None else float(v))

    @field_validator('priority', mode='before')
    @classmethod
    def fallback_priority(cls, v):
        return parse_priority(v)

    @field_validator('radius_km', mode='before')
    @classmethod
    def default_radius(cls, v):
        if v is None or float(v) <= 0:
            return DEFAULT_RADIUS_KM
        return v

    @field_validator('start')
    @classmethod
    def start_in_sgt(cls, v: datetime) -> datetime:
        return to_sgt(v)

    @property
    def destination(self) -> Coordinate:
        return self.destination_lat, self.destination_lng


class CostResult(BaseModel):
    """Priced session for one facility"""
    cost: float
    rate_per_hour: float
    rate_label: str
    cap_label: str
    cap_applied: bool = False
    night_cap_applied: bool = False
    is_night_rate: bool = False
    day_hours: float
    night_hours: float
    free_day_applied: bool = False
    rate_source: str = "estimate"
    mall_key: Optional[str] = None


class ScoredFacility(BaseModel):
    """Facility with its price, distance, score and badge for one ranking pass"""
    facility: Facility
    pricing: CostResult
    is_central: bool
    distance_km: float
    walk_minutes: int
    score: int = Field(..., ge=0, le=100)
    badge: Optional[Badge] = None
    is_free_today: bool = False

    @property
    def id(self) -> str:
        return self.facility.id

    @property
    def cost(self) -> float:
        return self.pricing.cost

    @property
    def is_mall_tariff(self) -> bool:
        return self.facility.agency is Agency.MALL or self.pricing.mall_key is not None


class Recommendation(BaseModel):
    """Banner shown above the ranked list"""
    kind: RecommendationKind
    message: str
    free_count: Optional[int] = None
    wait_minutes: Optional[int] = None
    saving: Optional[float] = None
    facility_id: Optional[str] = None
    night_cap: Optional[float] = None
    mall_count: Optional[int] = None
