"""Shared test fixtures."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from meteo.favorites.scheduler import ManualScheduler
from meteo.favorites.store import FavoritesStore
from meteo.ingest.forecast_fetcher import ForecastFetcher
from meteo.ingest.geocoding_client import GeocodingClient
from meteo.ingest.weather_client import WeatherClient
from meteo.models.weather import Forecast
from meteo.search.resolver import SearchResolver
from meteo.storage.database import connect, run_migrations
from meteo.storage.kv_repo import SqliteKeyValueStore
from meteo.view.state_machine import ViewStateMachine

FIXTURE_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str):
    with open(FIXTURE_DIR / name, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURE_DIR


@pytest.fixture
def tokyo_forecast_raw() -> dict:
    return load_fixture("weatherapi_forecast_tokyo.json")


@pytest.fixture
def tokyo_forecast(tokyo_forecast_raw: dict) -> Forecast:
    client = MagicMock(spec=WeatherClient)
    client.get_forecast.return_value = tokyo_forecast_raw
    return ForecastFetcher(client).fetch("35.68,139.69")


@pytest.fixture
def kv(tmp_path: Path):
    """Key-value store on a migrated temporary SQLite database."""
    conn = connect(tmp_path / "test.db")
    run_migrations(conn)
    yield SqliteKeyValueStore(conn)
    conn.close()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def current_fetcher() -> MagicMock:
    """Fetcher whose fetch_current answers are set per test."""
    return MagicMock(spec=ForecastFetcher)


@pytest.fixture
def store(kv, current_fetcher: MagicMock, scheduler: ManualScheduler) -> FavoritesStore:
    return FavoritesStore(kv, current_fetcher, scheduler=scheduler)


@pytest.fixture
def geocoder() -> MagicMock:
    return MagicMock(spec=GeocodingClient)


@pytest.fixture
def forecast_fetcher(tokyo_forecast: Forecast) -> MagicMock:
    fetcher = MagicMock(spec=ForecastFetcher)
    fetcher.fetch.return_value = tokyo_forecast
    return fetcher


@pytest.fixture
def machine(
    geocoder: MagicMock, forecast_fetcher: MagicMock, store: FavoritesStore
) -> ViewStateMachine:
    return ViewStateMachine(SearchResolver(geocoder), forecast_fetcher, store)


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "weather": {"lang": "en", "timeout": 5.0},
        "favorites": {"refresh_interval_minutes": 15},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path
