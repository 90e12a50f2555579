"""Tests for the search resolver with a mocked geocoder."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from meteo.errors import ResolutionError
from meteo.ingest.geocoding_client import GeocodingClient
from meteo.models.place import AddressType
from meteo.search.resolver import (
    Invalid,
    MultipleMatches,
    NoMatch,
    ResolutionFailed,
    SearchResolver,
    SingleMatch,
)

FIXTURE_DIR = Path(__file__).parent.parent / "fixtures"


def _load(name: str) -> list[dict]:
    with open(FIXTURE_DIR / name) as f:
        return json.load(f)


def _row(place_id: int, addresstype: str, name: str = "X") -> dict:
    return {
        "place_id": place_id,
        "display_name": name,
        "lat": "1.0",
        "lon": "2.0",
        "addresstype": addresstype,
    }


@pytest.fixture
def geo() -> MagicMock:
    return MagicMock(spec=GeocodingClient)


class TestResolve:
    @pytest.mark.parametrize("text", ["", "   ", "\t\n"])
    def test_blank_is_invalid_without_network(self, geo: MagicMock, text: str):
        assert SearchResolver(geo).resolve(text) == Invalid()
        geo.search.assert_not_called()

    def test_requests_ten_candidates(self, geo: MagicMock):
        geo.search.return_value = []
        SearchResolver(geo).resolve("  Tokyo ")
        geo.search.assert_called_once_with("Tokyo", limit=10)

    @pytest.mark.parametrize(
        "types", [["province"], ["railway", "park"], ["suburb", "county", "state"]]
    )
    def test_only_non_places_is_no_match(self, geo: MagicMock, types: list[str]):
        geo.search.return_value = [_row(i, t) for i, t in enumerate(types)]
        assert SearchResolver(geo).resolve("Somewhere") == NoMatch()

    def test_empty_result_is_no_match(self, geo: MagicMock):
        geo.search.return_value = []
        assert SearchResolver(geo).resolve("Atlantis") == NoMatch()

    def test_single_city(self, geo: MagicMock):
        geo.search.return_value = _load("nominatim_tokyo.json")

        outcome = SearchResolver(geo).resolve("Tokyo")

        assert isinstance(outcome, SingleMatch)
        assert outcome.place.address_type == AddressType.CITY
        assert outcome.place.latitude == 35.68
        assert outcome.place.longitude == 139.69

    def test_multiple_keep_collaborator_order(self, geo: MagicMock):
        geo.search.return_value = _load("nominatim_springfield.json")

        outcome = SearchResolver(geo).resolve("Springfield")

        assert isinstance(outcome, MultipleMatches)
        assert [p.place_id for p in outcome.places] == ["301", "302", "304"]
        assert [p.address_type for p in outcome.places] == [
            AddressType.CITY, AddressType.CITY, AddressType.TOWN,
        ]

    def test_village_qualifies(self, geo: MagicMock):
        geo.search.return_value = [_row(1, "village"), _row(2, "hamlet")]
        outcome = SearchResolver(geo).resolve("Tiny")
        assert isinstance(outcome, SingleMatch)

    def test_unparseable_row_skipped(self, geo: MagicMock):
        bad = _row(1, "city")
        bad["lat"] = "north"
        geo.search.return_value = [bad, _row(2, "town")]

        outcome = SearchResolver(geo).resolve("Mixed")
        assert isinstance(outcome, SingleMatch)
        assert outcome.place.place_id == "2"

    def test_http_error_is_failure_not_no_match(self, geo: MagicMock):
        request = httpx.Request("GET", "https://x")
        geo.search.side_effect = httpx.HTTPStatusError(
            "boom", request=request, response=httpx.Response(502, request=request)
        )

        outcome = SearchResolver(geo).resolve("Tokyo")
        assert outcome == ResolutionFailed("HTTP 502")

    def test_transport_error_is_failure(self, geo: MagicMock):
        geo.search.side_effect = httpx.ConnectError("dns failure")
        outcome = SearchResolver(geo).resolve("Tokyo")
        assert isinstance(outcome, ResolutionFailed)
        assert "dns failure" in outcome.reason

    def test_bad_payload_is_failure(self, geo: MagicMock):
        geo.search.side_effect = ResolutionError("Unexpected geocoding payload: dict")
        assert isinstance(SearchResolver(geo).resolve("Tokyo"), ResolutionFailed)

    def test_undecodable_body_is_failure(self, geo: MagicMock):
        geo.search.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
        assert isinstance(SearchResolver(geo).resolve("Tokyo"), ResolutionFailed)
