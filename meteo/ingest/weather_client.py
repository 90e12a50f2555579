"""WeatherAPI.com client for forecast and current conditions."""

import logging

from meteo.config.schema import WEATHER_API_BASE_URL
from meteo.errors import ConfigurationError
from meteo.ingest.retry import get_with_retry

logger = logging.getLogger(__name__)


class WeatherClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = WEATHER_API_BASE_URL,
        lang: str = "ja",
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
    ):
        if not api_key:
            raise ConfigurationError("WeatherAPI key is empty")
        self.api_key = api_key
        self.base_url = base_url
        self.lang = lang
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    def _get(self, endpoint: str, params: dict) -> dict:
        resp = get_with_retry(
            f"{self.base_url}/{endpoint}",
            params={"key": self.api_key, **params, "lang": self.lang},
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_base_delay=self.retry_base_delay,
            label="WeatherAPI",
        )
        return resp.json()

    def get_forecast(self, query: str, days: int = 3) -> dict:
        """Fetch a multi-day forecast. `query` is "lat,lon" or a place name."""
        return self._get("forecast.json", {"q": query, "days": days})

    def get_current(self, query: str) -> dict:
        """Fetch current conditions only."""
        return self._get("current.json", {"q": query})
