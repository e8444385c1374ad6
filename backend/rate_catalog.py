"""
Static, versioned parking rate catalog

The single source of truth for monetary rules: agency tariffs, the
central-area classification, facility peak windows, free-parking-day
eligibility and mall tariffs. Read-only at run time and validated before
the engine is put into service.
"""
import json
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from exceptions import CatalogConfigurationError
from logging_config import get_logger
from timegeo import DayClass, FREE_PARKING_WINDOW, PeakWindow

logger = get_logger(__name__)

CATALOG_VERSION = "2026.10"

# Shortest billable session; missing or non-positive durations are clamped to it
MIN_DURATION_HOURS = 0.5

# Longest priced session; infinite or larger durations are clamped to it
MAX_DURATION_HOURS = 24.0 * 30

# Added per hour spent inside a facility's peak window, after caps
PEAK_SURCHARGE_PER_HOUR = 0.60


class Agency(str, Enum):
    """Tariff class of the operating agency"""
    STANDARD = "standard"
    PREMIUM_FLAT = "premium-flat"
    MALL = "mall"


# DataMall agency codes
AGENCY_CODES: Dict[str, Agency] = {
    "HDB": Agency.STANDARD,
    "URA": Agency.PREMIUM_FLAT,
    "LTA": Agency.MALL,
}

DEFAULT_AGENCY_CODE = "HDB"


def parse_agency(value) -> Tuple[Agency, bool]:
    """Resolve an agency code or class name; unknown values map to STANDARD"""
    if isinstance(value, Agency):
        return value, True
    text = str(value or DEFAULT_AGENCY_CODE).strip()
    if text.upper() in AGENCY_CODES:
        return AGENCY_CODES[text.upper()], True
    try:
        return Agency(text.lower()), True
    except ValueError:
        return Agency.STANDARD, False


def clamp_duration(duration_hours: Optional[float]) -> float:
    if duration_hours is None or duration_hours != duration_hours or duration_hours <= 0:
        return MIN_DURATION_HOURS
    return min(float(duration_hours), MAX_DURATION_HOURS)


def round_currency(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_amount(value: float) -> str:
    """$12 for whole dollars, $12.50 otherwise"""
    if float(value).is_integer():
        return f"${value:.0f}"
    return f"${value:.2f}"


def normalize_alias(value) -> str:
    return re.sub(r"[^a-z0-9]", "", str(value or "").lower())


class BillingUnit(str, Enum):
    HALF_HOUR = "half_hour"
    HOUR = "hour"


@dataclass(frozen=True)
class AgencyTariff:
    """
    Default tariff of an agency class.

    Half-hour tariffs carry a night cap and the premium rate and day cap
    used for central-area facilities during business hours. Hourly tariffs
    have a single day cap and no night distinction.
    """
    billing: BillingUnit
    rate: float
    day_cap: float
    night_cap: Optional[float] = None
    central_rate: Optional[float] = None
    central_day_cap: Optional[float] = None

    @property
    def hourly_rate(self) -> float:
        return self.rate * 2 if self.billing is BillingUnit.HALF_HOUR else self.rate

    @property
    def central_hourly_rate(self) -> float:
        return (self.central_rate or self.rate) * 2


@dataclass(frozen=True)
class CentralBounds:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


# Mall tariffs

class MallBand(BaseModel):
    """One "first hour then per half hour" rate band"""
    model_config = ConfigDict(frozen=True)

    first_hour: float = Field(..., ge=0)
    per_half_hour: float = Field(..., ge=0)
    rate_label: str = Field(..., min_length=1)
    day_start_mins: Optional[int] = Field(None, ge=0, le=1440)
    day_end_mins: Optional[int] = Field(None, ge=0, le=1440)


class Geofence(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    radius_m: float = Field(default=800, gt=0)


class MallTariff(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["first_hour_then_half_hour"] = "first_hour_then_half_hour"
    day_start_mins: int = Field(default=420, ge=0, le=1440)
    day_end_mins: int = Field(default=1320, ge=0, le=1440)
    weekday: MallBand
    weekend_or_ph: MallBand
    night: MallBand
    cap_label: str = Field(..., min_length=1)
    source_url: str = ""
    last_verified_at: Optional[str] = None


class MallTariffEntry(BaseModel):
    """Mall-specific tariff overriding the agency default"""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    aliases: Tuple[str, ...] = Field(..., min_length=1)
    geofence: Optional[Geofence] = None
    tariff: MallTariff

    @property
    def normalized_aliases(self) -> Tuple[str, ...]:
        return tuple(a for a in (normalize_alias(x) for x in self.aliases) if a)


def build_mall_entries(raw_entries: Iterable[dict]) -> Tuple[MallTariffEntry, ...]:
    """Parse raw mall tariff records, failing loudly on the first bad entry"""
    entries = []
    for index, raw in enumerate(raw_entries):
        try:
            entries.append(MallTariffEntry.model_validate(raw))
        except ValidationError as e:
            key = raw.get("key") if isinstance(raw, dict) else None
            problems = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise CatalogConfigurationError(key or f"mall entry #{index}", problems) from e
    return tuple(entries)


def load_mall_entries(path: str) -> Tuple[MallTariffEntry, ...]:
    """Read extra mall tariff entries from a JSON array file"""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogConfigurationError(path, [f"unreadable mall catalog: {e}"]) from e
    if not isinstance(raw, list):
        raise CatalogConfigurationError(path, ["mall catalog must be a JSON array"])
    return build_mall_entries(raw)


@dataclass(frozen=True)
class RateCatalog:
    version: str
    agency_tariffs: Mapping[Agency, AgencyTariff]
    central_facility_ids: FrozenSet[str]
    central_areas: FrozenSet[str]
    central_bounds: CentralBounds
    peak_windows: Mapping[str, Tuple[PeakWindow, ...]]
    free_day_facility_ids: FrozenSet[str]
    mall_entries: Tuple[MallTariffEntry, ...] = field(default_factory=tuple)

    def tariff_for(self, agency: Agency) -> AgencyTariff:
        return self.agency_tariffs[agency]

    def is_central(self, facility_id: str, area: Optional[str], lat: float, lng: float) -> bool:
        """Contractual id membership, area tag, or the central bounding box"""
        if facility_id in self.central_facility_ids:
            return True
        if area and area in self.central_areas:
            return True
        return self.central_bounds.contains(lat, lng)

    def is_free_day_eligible(self, facility_id: Optional[str]) -> bool:
        return bool(facility_id) and facility_id in self.free_day_facility_ids

    def with_mall_entries(self, entries: Iterable[MallTariffEntry]) -> "RateCatalog":
        return replace(self, mall_entries=self.mall_entries + tuple(entries))


AGENCY_TARIFFS: Dict[Agency, AgencyTariff] = {
    Agency.STANDARD: AgencyTariff(
        billing=BillingUnit.HALF_HOUR, rate=0.60, day_cap=12.0, night_cap=5.0,
        central_rate=1.20, central_day_cap=20.0,
    ),
    Agency.PREMIUM_FLAT: AgencyTariff(
        billing=BillingUnit.HALF_HOUR, rate=1.20, day_cap=20.0, night_cap=5.0,
        central_rate=1.20, central_day_cap=20.0,
    ),
    Agency.MALL: AgencyTariff(billing=BillingUnit.HOUR, rate=3.00, day_cap=30.0),
}

# Billed at the central rate by contract, wherever they sit
CENTRAL_FACILITY_IDS = frozenset({
    "ACB", "BBB", "BRB1", "CY", "DUXM", "HLM", "KAB", "KAM",
    "KAS", "PRM", "SLS", "SR1", "SR2", "TPM", "UCS", "WCB",
})

CENTRAL_AREAS = frozenset({"Marina", "Orchard", "HarbFront"})

CENTRAL_BOUNDS = CentralBounds(min_lat=1.27, max_lat=1.31, min_lng=103.82, max_lng=103.87)

PEAK_WINDOWS: Dict[str, Tuple[PeakWindow, ...]] = {
    "HLM": (
        PeakWindow(DayClass.WEEKDAY, 8, 10),
        PeakWindow(DayClass.WEEKDAY, 17, 19),
    ),
    "KAM": (PeakWindow(DayClass.MON_TO_SAT, 12, 14),),
    "TPM": (PeakWindow(DayClass.DAILY, 18, 21),),
    "SR2": (PeakWindow(DayClass.WEEKEND, 11, 20),),
}

FREE_DAY_FACILITY_IDS = frozenset({
    "AM14", "AM16", "BE3", "BE3R", "BJ55", "BM29",
    "HE12", "J8", "PM24", "T47", "TM39", "Y49",
})

MALL_TARIFF_SOURCE: List[dict] = [
    {
        "key": "jurong_point",
        "display_name": "Jurong Point",
        "aliases": ["jurongpoint", "jurongpointshoppingcentre", "jp1", "jp2"],
        "geofence": {"lat": 1.3397, "lng": 103.7067, "radius_m": 800},
        "tariff": {
            "day_start_mins": 420,
            "day_end_mins": 1320,
            "weekday": {"first_hour": 1.50, "per_half_hour": 0.75, "rate_label": "$1.50 first hr, $0.75/30min"},
            "weekend_or_ph": {"first_hour": 1.80, "per_half_hour": 0.90, "rate_label": "$1.80 first hr, $0.90/30min"},
            "night": {"first_hour": 1.20, "per_half_hour": 0.60, "rate_label": "$1.20 first hr, $0.60/30min"},
            "cap_label": "Jurong Point published rates",
        },
    },
    {
        "key": "causeway_point",
        "display_name": "Causeway Point",
        "aliases": ["causewaypoint", "causeway point shopping centre"],
        "geofence": {"lat": 1.4360, "lng": 103.7860, "radius_m": 600},
        "tariff": {
            "day_start_mins": 420,
            "day_end_mins": 1320,
            "weekday": {"first_hour": 1.40, "per_half_hour": 0.70, "rate_label": "$1.40 first hr, $0.70/30min"},
            "weekend_or_ph": {
                "first_hour": 1.60, "per_half_hour": 0.80, "rate_label": "$1.60 first hr, $0.80/30min",
                "day_start_mins": 480, "day_end_mins": 1380,
            },
            "night": {"first_hour": 1.00, "per_half_hour": 0.50, "rate_label": "$1.00 first hr, $0.50/30min"},
            "cap_label": "Causeway Point published rates",
        },
    },
]


def validate_catalog(catalog: RateCatalog) -> RateCatalog:
    """Check cross-field consistency; raises CatalogConfigurationError"""
    problems = []

    for agency in Agency:
        tariff = catalog.agency_tariffs.get(agency)
        if tariff is None:
            problems.append(f"agency {agency.value}: no default tariff")
            continue
        if tariff.rate < 0 or tariff.day_cap <= 0:
            problems.append(f"agency {agency.value}: rate and day cap must be positive")
        if tariff.billing is BillingUnit.HALF_HOUR and None in (
            tariff.night_cap, tariff.central_rate, tariff.central_day_cap
        ):
            problems.append(f"agency {agency.value}: half-hour tariff needs night cap and central rates")

    # Peak hours must stay clear of the night period
    for facility_id, windows in catalog.peak_windows.items():
        for peak in windows:
            window = peak.window
            if not (FREE_PARKING_WINDOW.start_minute <= window.start_minute < window.end_minute
                    <= FREE_PARKING_WINDOW.end_minute):
                problems.append(
                    f"peak window {facility_id} {peak.start_hour}-{peak.end_hour}: must lie within 07:00-22:30"
                )

    seen_keys = set()
    for entry in catalog.mall_entries:
        if entry.key in seen_keys:
            problems.append(f"mall {entry.key}: duplicate key")
        seen_keys.add(entry.key)
        if not entry.normalized_aliases:
            problems.append(f"mall {entry.key}: no usable alias")
        tariff = entry.tariff
        if tariff.day_start_mins >= tariff.day_end_mins:
            problems.append(f"mall {entry.key}: day window start must precede end")
        for name in ("weekday", "weekend_or_ph"):
            band = getattr(tariff, name)
            start = tariff.day_start_mins if band.day_start_mins is None else band.day_start_mins
            end = tariff.day_end_mins if band.day_end_mins is None else band.day_end_mins
            if start >= end:
                problems.append(f"mall {entry.key}: {name} day window start must precede end")

    if problems:
        raise CatalogConfigurationError(f"catalog {catalog.version}", problems)
    return catalog


def load_catalog(mall_catalog_path: Optional[str] = None) -> RateCatalog:
    """Default catalog plus any mall entries from `mall_catalog_path`, validated"""
    catalog = DEFAULT_CATALOG
    if mall_catalog_path:
        extra = load_mall_entries(mall_catalog_path)
        logger.info(f"Loaded {len(extra)} mall tariff entries from {mall_catalog_path}")
        catalog = catalog.with_mall_entries(extra)
    return validate_catalog(catalog)


DEFAULT_CATALOG = validate_catalog(RateCatalog(
    version=CATALOG_VERSION,
    agency_tariffs=AGENCY_TARIFFS,
    central_facility_ids=CENTRAL_FACILITY_IDS,
    central_areas=CENTRAL_AREAS,
    central_bounds=CENTRAL_BOUNDS,
    peak_windows=PEAK_WINDOWS,
    free_day_facility_ids=FREE_DAY_FACILITY_IDS,
    mall_entries=build_mall_entries(MALL_TARIFF_SOURCE),
))
