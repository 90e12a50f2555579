"""Geocoding result models."""

from dataclasses import dataclass
from enum import StrEnum


class AddressType(StrEnum):
    CITY = "city"
    TOWN = "town"
    VILLAGE = "village"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: str | None) -> "AddressType":
        try:
            return cls(raw or "")
        except ValueError:
            return cls.OTHER


POPULATED_PLACE_TYPES = frozenset(
    {AddressType.CITY, AddressType.TOWN, AddressType.VILLAGE}
)


@dataclass(frozen=True)
class Place:
    place_id: str
    display_name: str
    address_type: AddressType
    latitude: float
    longitude: float

    @property
    def is_populated_place(self) -> bool:
        return self.address_type in POPULATED_PLACE_TYPES
