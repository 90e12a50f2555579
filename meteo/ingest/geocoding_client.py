"""Nominatim geocoding API client."""

import logging

from meteo.config.schema import DEFAULT_USER_AGENT, NOMINATIM_BASE_URL
from meteo.errors import ResolutionError
from meteo.ingest.retry import get_with_retry

logger = logging.getLogger(__name__)


class GeocodingClient:
    def __init__(
        self,
        base_url: str = NOMINATIM_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    def search(self, query: str, limit: int = 10) -> list[dict]:
        """Return raw candidate rows for a free-text place query.

        Rows come back in Nominatim's relevance order.
        """
        url = f"{self.base_url}/search"
        params = {
            "q": query,
            "format": "json",
            "addressdetails": 1,
            "limit": limit,
        }
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        resp = get_with_retry(
            url,
            params=params,
            headers=headers,
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_base_delay=self.retry_base_delay,
            label="Nominatim",
        )
        data = resp.json()
        if not isinstance(data, list):
            raise ResolutionError(f"Unexpected geocoding payload: {type(data).__name__}")
        logger.debug("Nominatim returned %d rows for %r", len(data), query)
        return data
