# ParkSmart SG Backend Service

from fastapi import FastAPI, Query, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from pydantic import BaseModel
from typing import List, Optional, Dict, Any
from datetime import datetime
import uuid

from config import get_settings
from logging_config import setup_logging, get_logger
from exceptions import (
    ParkSmartException,
    ValidationException,
    exception_handler,
    generic_exception_handler
)
from cache import cache
from services import LTADataMallClient, OneMapClient
from monitoring import MetricsMiddleware, metrics_endpoint, record_ranking
from holiday_calendar import HolidayCalendar, default_calendar
from rate_catalog import MAX_DURATION_HOURS, RateCatalog, load_catalog
from models import CostResult, PricingContext, Recommendation, ScoredFacility
from cost_engine import compute_cost
from scoring import rank_facilities
from recommendations import select_recommendation
from erp import ErpEstimate, estimate_erp_cost
from timegeo import SGT

settings = get_settings()
setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate the rate catalog before serving; a bad catalog aborts startup"""
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")

    app.state.catalog = load_catalog(settings.mall_catalog_path)
    app.state.calendar = default_calendar()
    cache.clear_expired()

    logger.info(
        f"Rate catalog {app.state.catalog.version} loaded with "
        f"{len(app.state.catalog.mall_entries)} mall tariffs"
    )
    logger.info(f"Environment: {'DEBUG' if settings.debug else 'PRODUCTION'}")
    logger.info(f"Cache backend: {cache.backend}")

    yield

    logger.info(f"Shutting down {settings.api_title}")


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    openapi_url=f"{settings.api_prefix}/openapi.json"
)

app.add_exception_handler(ParkSmartException, exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_credentials,
    allow_methods=settings.cors_methods,
    allow_headers=settings.cors_headers,
)

if settings.enable_compression:
    app.add_middleware(GZipMiddleware, minimum_size=1000)

app.middleware("http")(MetricsMiddleware())


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID for tracing"""
    request_id = str(uuid.uuid4())

    logger.info(
        f"Request started: {request.method} {request.url.path}",
        extra={"request_id": request_id}
    )

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    logger.info(
        f"Request completed: {response.status_code}",
        extra={"request_id": request_id}
    )

    return response


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    timestamp: datetime
    version: str
    cache_status: str
    catalog_version: str


class CarparkSearchResponse(BaseModel):
    """Ranked carparks for one destination and session"""
    carparks: List[ScoredFacility]
    total: int
    recommendation: Optional[Recommendation] = None
    erp: ErpEstimate
    start: datetime
    duration_hours: float
    priority: str
    catalog_version: str


# Dependency injection
def get_catalog(request: Request) -> RateCatalog:
    return request.app.state.catalog


def get_calendar(request: Request) -> HolidayCalendar:
    return request.app.state.calendar


@app.get("/", tags=["General"])
async def root():
    """Root endpoint"""
    return {
        "message": settings.api_title,
        "version": settings.api_version,
        "docs": f"{settings.api_prefix}/docs"
    }


@app.get(
    f"{settings.api_prefix}/health",
    response_model=HealthResponse,
    tags=["General"]
)
async def health_check(catalog: RateCatalog = Depends(get_catalog)):
    """Health check endpoint with cache and catalog status"""
    cache_status = "healthy" if cache.set("health_check", "ok", ttl=5) and cache.get("health_check") == "ok" else "degraded"

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(SGT),
        version=settings.api_version,
        cache_status=cache_status,
        catalog_version=catalog.version
    )


@app.get(
    f"{settings.api_prefix}/carparks",
    response_model=CarparkSearchResponse,
    tags=["Parking"],
    summary="Rank carparks near a destination",
    description="Price every nearby carpark for the session, score, badge and pick a recommendation"
)
async def search_carparks(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    duration: Optional[float] = Query(default=None, le=MAX_DURATION_HOURS, description="Session length in hours"),
    priority: str = Query(default=settings.default_priority),
    radius: Optional[float] = Query(default=None, gt=0, le=settings.max_radius_km, description="Search radius in km"),
    start: Optional[datetime] = Query(default=None, description="Session start; naive values are SGT"),
    destination: str = Query(default="", max_length=200, description="Destination name, used for mall matching"),
    catalog: RateCatalog = Depends(get_catalog),
    calendar: HolidayCalendar = Depends(get_calendar)
) -> CarparkSearchResponse:
    context = PricingContext(
        destination_lat=lat,
        destination_lng=lng,
        destination_name=destination,
        start=start or datetime.now(SGT),
        duration_hours=settings.default_duration_hours if duration is None else duration,
        priority=priority,
        radius_km=radius or settings.default_radius_km
    )

    logger.info(
        f"Carpark search near {lat}, {lng}",
        extra={"priority": context.priority.value, "duration_hours": context.duration_hours}
    )

    async with LTADataMallClient() as client:
        records = await client.get_carpark_availability()

    ranked = rank_facilities(
        records,
        context.destination,
        context.duration_hours,
        context.priority,
        context.radius_km,
        context.start,
        context.destination_name,
        catalog=catalog,
        calendar=calendar
    )
    recommendation = select_recommendation(
        ranked, context.start, context.duration_hours, catalog=catalog, calendar=calendar
    )
    erp = estimate_erp_cost(
        context.destination,
        context.start,
        context.duration_hours,
        is_central=catalog.central_bounds.contains(lat, lng)
    )

    record_ranking(
        context.priority.value,
        len(ranked),
        recommendation.kind.value if recommendation else None
    )

    return CarparkSearchResponse(
        carparks=ranked,
        total=len(ranked),
        recommendation=recommendation,
        erp=erp,
        start=context.start,
        duration_hours=context.duration_hours,
        priority=context.priority.value,
        catalog_version=catalog.version
    )


@app.get(
    f"{settings.api_prefix}/cost",
    response_model=CostResult,
    tags=["Parking"],
    summary="Price a single session"
)
async def get_cost(
    agency: str = Query(default="HDB", description="HDB, URA, LTA or a tariff class name"),
    duration: float = Query(..., le=MAX_DURATION_HOURS, description="Session length in hours"),
    central: bool = Query(default=False),
    start: Optional[datetime] = Query(default=None),
    facility_id: Optional[str] = Query(default=None, max_length=20),
    catalog: RateCatalog = Depends(get_catalog),
    calendar: HolidayCalendar = Depends(get_calendar)
) -> CostResult:
    return compute_cost(
        agency,
        duration,
        central,
        start or datetime.now(SGT),
        facility_id,
        catalog=catalog,
        calendar=calendar
    )


@app.get(
    f"{settings.api_prefix}/geocode",
    tags=["Geocoding"],
    summary="Search for a destination"
)
async def geocode(q: str = Query(..., min_length=1, max_length=200)) -> Dict[str, Any]:
    if not q.strip():
        raise ValidationException("q", "Query cannot be blank")

    async with OneMapClient() as client:
        results = await client.search(q.strip())

    return {"results": results}


@app.delete(
    f"{settings.api_prefix}/cache",
    tags=["Admin"],
    summary="Clear cache",
    include_in_schema=settings.debug
)
async def clear_cache(
    pattern: str = Query(default="*", description="Cache key pattern to clear")
) -> Dict[str, Any]:
    deleted = cache.delete(pattern)
    logger.info(f"Cleared {deleted} cache entries with pattern: {pattern}")

    return {
        "status": "success",
        "deleted": deleted,
        "pattern": pattern
    }


app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], include_in_schema=False)


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    return JSONResponse(
        status_code=404,
        content={
            "error": {
                "message": "Resource not found",
                "path": str(request.url.path)
            }
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "message": "Validation failed",
                "details": jsonable_encoder(exc.errors())
            }
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
        log_level=settings.log_level.lower()
    )
