from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from fittrack.core.cache import cache_key, get_cache, set_cache
from fittrack.core.config import settings
from fittrack.core.logger import get_logger
from fittrack.exceptions.errors import ExternalServiceError

logger = get_logger("statistics_client")


class StatisticsClient:
    """
    Base for the public statistics APIs.

    One short-lived httpx.AsyncClient per request; ``transport`` lets tests
    swap in an httpx.MockTransport. Responses are cached in Redis when it is
    configured.
    """

    provider = "statistics"

    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ {self.provider} API returned {e.response.status_code} for {url}")
            raise ExternalServiceError(f"{self.provider} API error: HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"❌ {self.provider} API request to {url} failed: {e}")
            raise ExternalServiceError(f"Failed to reach the {self.provider} API")
        except ValueError:
            raise ExternalServiceError(f"{self.provider} API returned malformed JSON")

    async def cached(self, key_parts: tuple, loader: Callable[[], Awaitable[Any]]) -> Any:
        key = cache_key(self.provider.lower().replace(" ", "-"), *key_parts)
        hit = await get_cache(key)
        if hit is not None:
            logger.debug(f"Cache hit for {key}")
            return hit
        value = await loader()
        await set_cache(key, value)
        return value
