"""Pydantic v2 configuration schema with strict validation."""

from pydantic import BaseModel, Field

WEATHER_API_BASE_URL = "https://api.weatherapi.com/v1"
NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"
DEFAULT_USER_AGENT = "meteo-client/0.1.0"


class WeatherConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = WEATHER_API_BASE_URL
    api_key_env: str = "WEATHER_API_KEY"
    lang: str = "ja"
    timeout: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)
    retry_base_delay: float = Field(default=1.0, ge=0.0)


class GeocodingConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = NOMINATIM_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    limit: int = Field(default=10, ge=1, le=50)
    timeout: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)
    retry_base_delay: float = Field(default=1.0, ge=0.0)


class FavoritesConfig(BaseModel):
    model_config = {"extra": "forbid"}

    storage_key: str = "weatherFavorites"
    refresh_interval_minutes: int = Field(default=10, ge=1)
    max_workers: int = Field(default=8, ge=1)


class MeteoConfig(BaseModel):
    model_config = {"extra": "forbid"}

    weather: WeatherConfig = WeatherConfig()
    geocoding: GeocodingConfig = GeocodingConfig()
    favorites: FavoritesConfig = FavoritesConfig()
