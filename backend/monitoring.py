"""
Application monitoring and metrics
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from functools import wraps
import time
from fastapi import Request, Response
from logging_config import get_logger

logger = get_logger(__name__)

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration',
    ['method', 'endpoint']
)

active_requests = Gauge(
    'http_requests_active',
    'Active HTTP requests'
)

ranking_passes = Counter(
    'ranking_passes_total',
    'Carpark ranking passes',
    ['priority']
)

ranked_facilities = Histogram(
    'ranked_facilities',
    'Carparks returned per ranking pass',
    buckets=(0, 1, 5, 10, 20, 50, 100, 250)
)

recommendations_emitted = Counter(
    'recommendations_total',
    'Recommendation banners emitted',
    ['kind']
)

cache_hits = Counter(
    'cache_hits_total',
    'Cache hit count',
    ['cache_type']
)

cache_misses = Counter(
    'cache_misses_total',
    'Cache miss count',
    ['cache_type']
)

external_api_calls = Counter(
    'external_api_calls_total',
    'External API calls',
    ['api', 'status']
)

external_api_duration = Histogram(
    'external_api_duration_seconds',
    'External API call duration',
    ['api']
)


class MetricsMiddleware:
    """HTTP middleware collecting request metrics"""

    async def __call__(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        active_requests.inc()

        try:
            response = await call_next(request)

            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)
            request_count.labels(
                method=request.method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=endpoint
            ).observe(time.perf_counter() - start_time)

            return response

        finally:
            active_requests.dec()


def record_ranking(priority: str, count: int, recommendation_kind=None) -> None:
    ranking_passes.labels(priority=priority).inc()
    ranked_facilities.observe(count)
    if recommendation_kind is not None:
        recommendations_emitted.labels(kind=recommendation_kind).inc()


def track_external_api(api_name: str):
    """Decorator to track external API calls"""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.perf_counter()

            try:
                result = await func(*args, **kwargs)
                external_api_calls.labels(api=api_name, status='success').inc()
                return result

            except Exception:
                external_api_calls.labels(api=api_name, status='error').inc()
                raise

            finally:
                external_api_duration.labels(api=api_name).observe(time.perf_counter() - start_time)

        return wrapper
    return decorator


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
