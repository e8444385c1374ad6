"""
External API clients: LTA DataMall carpark availability and OneMap geocoding
"""
import httpx
from typing import List, Dict, Any, Optional
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from circuitbreaker import circuit, CircuitBreakerError
from logging_config import get_logger
from exceptions import ExternalAPIException
from config import get_settings
from cache import cached
from monitoring import track_external_api

logger = get_logger(__name__)
settings = get_settings()


class BaseAPIClient:
    """Base class for API clients with common patterns"""

    service_name = "upstream"

    def __init__(self, base_url: str, timeout: int = 30, headers: Optional[Dict[str, str]] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.headers = headers or {}
        self.client = None

    async def __aenter__(self):
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.headers,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10)
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.aclose()
            self.client = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(httpx.RequestError),
        reraise=True
    )
    @circuit(failure_threshold=5, recovery_timeout=60)
    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """Make HTTP request with retry and circuit breaker"""
        if not self.client:
            raise RuntimeError("Client not initialized. Use async context manager.")

        response = await self.client.request(method, endpoint, **kwargs)
        response.raise_for_status()
        return response

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """Send a request, turning transport and HTTP failures into ExternalAPIException"""
        try:
            return await self._send(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as e:
            logger.error(f"{self.service_name} HTTP error {e.response.status_code}: {e.response.text[:200]}")
            raise ExternalAPIException(self.service_name, f"HTTP {e.response.status_code}", 502)
        except (httpx.RequestError, CircuitBreakerError) as e:
            logger.error(f"{self.service_name} request error: {e}")
            raise ExternalAPIException(self.service_name, str(e), 503)


class LTADataMallClient(BaseAPIClient):
    """Carpark availability from LTA DataMall, paginated by $skip"""

    service_name = "lta_datamall"

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.lta_api_key
        self.page_size = settings.lta_page_size
        super().__init__(
            base_url=settings.lta_base_url,
            timeout=settings.lta_timeout,
            headers={"AccountKey": self.api_key or "", "accept": "application/json"}
        )

    @cached(prefix="carpark_availability", ttl=settings.availability_cache_ttl)
    @track_external_api("lta_datamall")
    async def get_carpark_availability(self) -> List[Dict[str, Any]]:
        """
        Fetch every carpark availability record.

        Records carry CarParkID, Area, Development, Location ("lat lng"),
        AvailableLots, LotType and Agency.
        """
        if not self.api_key:
            raise ExternalAPIException(self.service_name, "LTA_API_KEY not configured", 503)

        records: List[Dict[str, Any]] = []
        skip = 0
        while True:
            params = {"$skip": skip} if skip else None
            response = await self._request("GET", "/CarParkAvailabilityv2", params=params)
            page = response.json().get("value", []) or []
            records.extend(page)
            if len(page) < self.page_size:
                break
            skip += self.page_size

        logger.info(f"Retrieved {len(records)} carpark availability records from DataMall")
        return records


class OneMapClient(BaseAPIClient):
    """Destination search via OneMap"""

    service_name = "onemap"

    def __init__(self):
        super().__init__(
            base_url=settings.onemap_base_url,
            timeout=settings.onemap_timeout,
            headers={"accept": "application/json"}
        )

    @cached(prefix="geocode", ttl=3600)
    @track_external_api("onemap")
    async def search(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        params = {
            "searchVal": query,
            "returnGeom": "Y",
            "getAddrDetails": "Y",
            "pageNum": 1
        }
        response = await self._request("GET", "/api/common/elastic/search", params=params)

        results = []
        for row in (response.json().get("results") or [])[:limit]:
            try:
                lat, lng = float(row.get("LATITUDE")), float(row.get("LONGITUDE"))
            except (TypeError, ValueError):
                continue
            results.append({
                "name": row.get("SEARCHVAL"),
                "address": row.get("ADDRESS"),
                "lat": lat,
                "lng": lng,
                "postal_code": row.get("POSTAL"),
                "building": row.get("BUILDING"),
            })

        logger.info(f"Geocoded {query!r} to {len(results)} results")
        return results
