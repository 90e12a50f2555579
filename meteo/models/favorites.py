"""Favorite location models and their durable JSON shape."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FavoriteEntry:
    name: str
    last_known_temp_c: float
    icon_ref: str
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "temp": self.last_known_temp_c,
            "icon": self.icon_ref,
        }
        if self.has_coordinates:
            data["lat"] = self.latitude
            data["lon"] = self.longitude
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "FavoriteEntry":
        """Build an entry from its stored form.

        Raises KeyError/TypeError/ValueError on malformed input.
        """
        lat = data.get("lat")
        lon = data.get("lon")
        return cls(
            name=str(data["name"]),
            last_known_temp_c=float(data["temp"]),
            icon_ref=str(data.get("icon", "")),
            latitude=float(lat) if lat is not None else None,
            longitude=float(lon) if lon is not None else None,
        )


@dataclass(frozen=True)
class CurrentSnapshot:
    """Current reading for one favorite, as returned by a refresh fetch."""

    name: str
    temp_c: float
    icon_ref: str
