"""Forecast and detail-panel models."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class CurrentConditions:
    condition_text: str
    condition_icon: str
    temp_c: float
    feels_like_c: float
    humidity_pct: float
    wind_kph: float
    precip_mm: float


@dataclass(frozen=True)
class DayDetail:
    date: date
    date_epoch: int
    condition_text: str
    condition_icon: str
    max_temp_c: float
    min_temp_c: float
    avg_temp_c: float
    avg_humidity_pct: float
    max_wind_kph: float
    total_precip_mm: float


@dataclass(frozen=True)
class Forecast:
    location_name: str
    country_name: str
    latitude: float | None
    longitude: float | None
    current: CurrentConditions
    days: tuple[DayDetail, ...]


@dataclass(frozen=True)
class FromCurrent:
    """Displayed detail comes from the live current conditions."""


@dataclass(frozen=True)
class FromForecastDay:
    """Displayed detail comes from one forecast day."""

    index: int


DetailSource = FromCurrent | FromForecastDay


@dataclass(frozen=True)
class DisplayedDetail:
    condition_text: str
    condition_icon: str
    temp_c: float
    feels_like_c: float
    humidity_pct: float
    wind_kph: float
    precip_mm: float
    source: DetailSource

    @classmethod
    def from_current(cls, current: CurrentConditions) -> "DisplayedDetail":
        return cls(
            condition_text=current.condition_text,
            condition_icon=current.condition_icon,
            temp_c=current.temp_c,
            feels_like_c=current.feels_like_c,
            humidity_pct=current.humidity_pct,
            wind_kph=current.wind_kph,
            precip_mm=current.precip_mm,
            source=FromCurrent(),
        )

    @classmethod
    def from_day(cls, index: int, day: DayDetail) -> "DisplayedDetail":
        # Daily aggregates carry no feels-like value; avg temp stands in.
        return cls(
            condition_text=day.condition_text,
            condition_icon=day.condition_icon,
            temp_c=day.avg_temp_c,
            feels_like_c=day.avg_temp_c,
            humidity_pct=day.avg_humidity_pct,
            wind_kph=day.max_wind_kph,
            precip_mm=day.total_precip_mm,
            source=FromForecastDay(index),
        )
