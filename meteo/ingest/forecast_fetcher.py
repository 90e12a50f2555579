"""Forecast fetcher: turns WeatherAPI payloads into forecast models."""

import logging
from datetime import date

import httpx

from meteo.errors import WeatherFetchError
from meteo.ingest.weather_client import WeatherClient
from meteo.models.favorites import CurrentSnapshot
from meteo.models.weather import CurrentConditions, DayDetail, Forecast

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "天気情報を取得できませんでした。"

FORECAST_DAYS = 3


class ForecastFetcher:
    def __init__(self, weather_client: WeatherClient):
        self.weather = weather_client

    def fetch(self, query: str) -> Forecast:
        """Fetch and parse the forecast for "lat,lon" or a place name.

        Raises WeatherFetchError on any transport, HTTP or payload problem.
        """
        try:
            raw = self.weather.get_forecast(query, days=FORECAST_DAYS)
        except httpx.HTTPStatusError as e:
            # The request URL carries the API key; log the status only.
            logger.error(
                "Forecast request for %s failed: HTTP %d",
                query, e.response.status_code,
            )
            raise WeatherFetchError(
                FETCH_FAILED_MESSAGE, e.response.status_code
            ) from e
        except (httpx.RequestError, ValueError) as e:
            logger.error(
                "Forecast request for %s failed: %s", query, type(e).__name__
            )
            raise WeatherFetchError(FETCH_FAILED_MESSAGE) from e

        try:
            return _extract_forecast(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Malformed forecast payload for %s: %s", query, e)
            raise WeatherFetchError(FETCH_FAILED_MESSAGE) from e

    def fetch_current(self, name: str) -> CurrentSnapshot | None:
        """Fetch the current reading for a favorite by name.

        Returns None when the call completes without a usable payload.
        Transport and HTTP errors propagate as httpx exceptions.
        """
        raw = self.weather.get_current(name)
        try:
            current = raw["current"]
            return CurrentSnapshot(
                name=raw["location"]["name"],
                temp_c=float(current["temp_c"]),
                icon_ref=current["condition"]["icon"],
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Unusable current payload for %s", name)
            return None


def _extract_forecast(raw: dict) -> Forecast:
    location = raw["location"]
    current = raw["current"]
    days = tuple(
        _extract_day(fd) for fd in raw.get("forecast", {}).get("forecastday", [])
    )
    if len(days) != FORECAST_DAYS:
        raise ValueError(f"expected {FORECAST_DAYS} forecast days, got {len(days)}")
    lat = location.get("lat")
    lon = location.get("lon")
    return Forecast(
        location_name=location["name"],
        country_name=location.get("country", ""),
        latitude=float(lat) if lat is not None else None,
        longitude=float(lon) if lon is not None else None,
        current=CurrentConditions(
            condition_text=current["condition"]["text"],
            condition_icon=current["condition"]["icon"],
            temp_c=float(current["temp_c"]),
            feels_like_c=float(current.get("feelslike_c", current["temp_c"])),
            humidity_pct=float(current.get("humidity", 0)),
            wind_kph=float(current.get("wind_kph", 0)),
            precip_mm=float(current.get("precip_mm", 0)),
        ),
        days=days,
    )


def _extract_day(fd: dict) -> DayDetail:
    day = fd["day"]
    return DayDetail(
        date=date.fromisoformat(fd["date"]),
        date_epoch=int(fd.get("date_epoch", 0)),
        condition_text=day["condition"]["text"],
        condition_icon=day["condition"]["icon"],
        max_temp_c=float(day["maxtemp_c"]),
        min_temp_c=float(day["mintemp_c"]),
        avg_temp_c=float(day["avgtemp_c"]),
        avg_humidity_pct=float(day["avghumidity"]),
        max_wind_kph=float(day["maxwind_kph"]),
        total_precip_mm=float(day["totalprecip_mm"]),
    )
