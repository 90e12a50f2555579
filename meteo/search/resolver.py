"""Search resolver: free text to a single place or a list of candidates."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from meteo.errors import ResolutionError
from meteo.models.place import AddressType, Place

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


class PlaceSource(Protocol):
    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> list[dict]: ...


@dataclass(frozen=True)
class Invalid:
    """The query was empty."""


@dataclass(frozen=True)
class NoMatch:
    """No populated place matched the query."""


@dataclass(frozen=True)
class SingleMatch:
    place: Place


@dataclass(frozen=True)
class MultipleMatches:
    places: tuple[Place, ...]


@dataclass(frozen=True)
class ResolutionFailed:
    reason: str


Outcome = Invalid | NoMatch | SingleMatch | MultipleMatches | ResolutionFailed


class SearchResolver:
    def __init__(self, geocoder: PlaceSource, limit: int = DEFAULT_LIMIT):
        self.geocoder = geocoder
        self.limit = limit

    def resolve(self, query_text: str) -> Outcome:
        query = (query_text or "").strip()
        if not query:
            return Invalid()

        try:
            rows = self.geocoder.search(query, limit=self.limit)
        except httpx.HTTPStatusError as e:
            logger.error("Geocoding %r failed: %s", query, e)
            return ResolutionFailed(f"HTTP {e.response.status_code}")
        except (httpx.RequestError, ResolutionError, ValueError) as e:
            logger.error("Geocoding %r failed: %s", query, e)
            return ResolutionFailed(str(e) or type(e).__name__)

        places = [
            p for p in (_parse_place(row) for row in rows)
            if p is not None and p.is_populated_place
        ]
        logger.info(
            "Query %r: %d rows, %d populated places", query, len(rows), len(places)
        )
        if not places:
            return NoMatch()
        if len(places) == 1:
            return SingleMatch(places[0])
        return MultipleMatches(tuple(places))


def _parse_place(row: dict) -> Place | None:
    try:
        return Place(
            place_id=str(row["place_id"]),
            display_name=row.get("display_name", ""),
            address_type=AddressType.parse(row.get("addresstype")),
            latitude=float(row["lat"]),
            longitude=float(row["lon"]),
        )
    except (AttributeError, KeyError, TypeError, ValueError):
        logger.warning("Skipping unparseable geocoding row: %r", row)
        return None
