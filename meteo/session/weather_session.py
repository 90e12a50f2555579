"""Weather session: the forecast for the active location and its detail panel."""

import logging
from typing import Protocol

from meteo.favorites.store import FavoritesStore
from meteo.models.favorites import FavoriteEntry
from meteo.models.weather import (
    CurrentConditions,
    DayDetail,
    DisplayedDetail,
    Forecast,
)

logger = logging.getLogger(__name__)


class ForecastSource(Protocol):
    def fetch(self, query: str) -> Forecast: ...


class WeatherSession:
    """Forecast for one location plus the currently displayed detail.

    `current` and `forecast_days` are fixed for the life of the session;
    only `displayed` and `is_favorite` change.
    """

    def __init__(
        self,
        forecast: Forecast,
        favorites: FavoritesStore,
        latitude: float | None = None,
        longitude: float | None = None,
    ):
        self.location_name = forecast.location_name
        self.country_name = forecast.country_name
        self.latitude = latitude if latitude is not None else forecast.latitude
        self.longitude = longitude if longitude is not None else forecast.longitude
        self.current: CurrentConditions = forecast.current
        self.forecast_days: tuple[DayDetail, ...] = forecast.days
        self.displayed = DisplayedDetail.from_current(forecast.current)
        self.favorites = favorites
        self.is_favorite = favorites.contains(forecast.location_name)
        self.closed = False

    @classmethod
    def start(
        cls,
        fetcher: ForecastSource,
        favorites: FavoritesStore,
        latitude: float,
        longitude: float,
    ) -> "WeatherSession":
        """Fetch the forecast for coordinates and open a session.

        Raises WeatherFetchError; nothing else is touched on failure.
        """
        forecast = fetcher.fetch(f"{latitude},{longitude}")
        logger.info(
            "Session started for %s (%s,%s)", forecast.location_name, latitude, longitude
        )
        return cls(forecast, favorites, latitude, longitude)

    @classmethod
    def start_by_name(
        cls, fetcher: ForecastSource, favorites: FavoritesStore, name: str
    ) -> "WeatherSession":
        forecast = fetcher.fetch(name)
        logger.info("Session started for %s by name", forecast.location_name)
        return cls(forecast, favorites)

    def select_day(self, index: int) -> DisplayedDetail:
        if not 0 <= index < len(self.forecast_days):
            raise IndexError(f"No forecast day {index}")
        self.displayed = DisplayedDetail.from_day(index, self.forecast_days[index])
        return self.displayed

    def show_current(self) -> DisplayedDetail:
        self.displayed = DisplayedDetail.from_current(self.current)
        return self.displayed

    def mark_favorite(self) -> bool:
        """Pin this location using its current conditions.

        Returns False if it was already a favorite.
        """
        if self.is_favorite:
            return False
        self.favorites.add(
            FavoriteEntry(
                name=self.location_name,
                last_known_temp_c=self.current.temp_c,
                icon_ref=self.current.condition_icon,
                latitude=self.latitude,
                longitude=self.longitude,
            )
        )
        self.is_favorite = True
        return True

    def sync_favorite(self) -> None:
        """Re-read favorite membership after an outside change."""
        self.is_favorite = self.favorites.contains(self.location_name)

    def close(self) -> None:
        self.closed = True
