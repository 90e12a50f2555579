"""Wiring of clients, storage and the view state machine from config."""

import logging
import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from meteo.config.loader import resolve_api_key
from meteo.config.schema import MeteoConfig
from meteo.favorites.scheduler import Scheduler
from meteo.favorites.store import FavoritesStore
from meteo.ingest.forecast_fetcher import ForecastFetcher
from meteo.ingest.geocoding_client import GeocodingClient
from meteo.ingest.weather_client import WeatherClient
from meteo.search.resolver import SearchResolver
from meteo.storage.database import connect, run_migrations
from meteo.storage.kv_repo import SqliteKeyValueStore
from meteo.view.state_machine import ViewStateMachine

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    config: MeteoConfig
    conn: sqlite3.Connection
    favorites: FavoritesStore
    machine: ViewStateMachine

    def close(self) -> None:
        self.favorites.stop()
        self.conn.close()


def build_context(
    config: MeteoConfig,
    db_path: str | Path,
    environ: Mapping[str, str] | None = None,
    scheduler: Scheduler | None = None,
) -> AppContext:
    """Build the full object graph and load favorites.

    Raises ConfigurationError when the weather API key is missing.
    """
    api_key = resolve_api_key(config, environ)

    weather = WeatherClient(
        api_key=api_key,
        base_url=config.weather.base_url,
        lang=config.weather.lang,
        timeout=config.weather.timeout,
        max_retries=config.weather.max_retries,
        retry_base_delay=config.weather.retry_base_delay,
    )
    fetcher = ForecastFetcher(weather)
    geocoder = GeocodingClient(
        base_url=config.geocoding.base_url,
        user_agent=config.geocoding.user_agent,
        timeout=config.geocoding.timeout,
        max_retries=config.geocoding.max_retries,
        retry_base_delay=config.geocoding.retry_base_delay,
    )
    resolver = SearchResolver(geocoder, limit=config.geocoding.limit)

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = connect(db_path)
    run_migrations(conn)
    favorites = FavoritesStore(
        SqliteKeyValueStore(conn),
        fetcher,
        storage_key=config.favorites.storage_key,
        max_workers=config.favorites.max_workers,
        scheduler=scheduler,
        refresh_interval_seconds=config.favorites.refresh_interval_minutes * 60,
    )
    favorites.load()

    machine = ViewStateMachine(resolver, fetcher, favorites)
    return AppContext(config=config, conn=conn, favorites=favorites, machine=machine)
