"""View state machine: search, disambiguation, weather detail and favorites.

Every transition goes through one lock. Network calls run outside it and
carry a request token; a result is applied only if no newer request has
started since, so a late response never overwrites newer state.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from meteo.errors import InputError, WeatherFetchError
from meteo.favorites.store import FavoritesStore
from meteo.models.place import Place
from meteo.search.resolver import (
    Invalid,
    MultipleMatches,
    NoMatch,
    ResolutionFailed,
    SearchResolver,
    SingleMatch,
)
from meteo.session.weather_session import ForecastSource, WeatherSession

logger = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "都市名を入力してください"
NO_MATCH_MESSAGE = "見つかりませんでした。より正確な都市名で検索してください。"
SEARCH_FAILED_MESSAGE = "検索中にエラーが発生しました。"
UNKNOWN_FAVORITE_MESSAGE = "お気に入りが見つかりません。"


class ErrorKind(StrEnum):
    INPUT = "input"
    RESOLUTION = "resolution"
    WEATHER = "weather"


@dataclass(frozen=True)
class Browsing:
    """No active session; the favorites list is shown."""


@dataclass(frozen=True)
class Searching:
    """Search box open, no results yet."""


@dataclass(frozen=True)
class Disambiguating:
    candidates: tuple[Place, ...]


@dataclass(frozen=True)
class Loading:
    """A search or forecast request is in flight."""


@dataclass(frozen=True)
class Detail:
    session: WeatherSession = field(compare=False)


@dataclass(frozen=True)
class Error:
    message: str
    kind: ErrorKind


ViewState = Browsing | Searching | Disambiguating | Loading | Detail | Error


class InvalidTransition(InputError):
    """The action is not available in the current view state."""


class ViewStateMachine:
    def __init__(
        self,
        resolver: SearchResolver,
        fetcher: ForecastSource,
        favorites: FavoritesStore,
    ):
        self.resolver = resolver
        self.fetcher = fetcher
        self.favorites = favorites
        self.state: ViewState = Browsing()
        self.search_text = ""
        # Last successfully opened session; kept through a failed reload.
        self.session: WeatherSession | None = None
        self._token = 0
        self._lock = threading.RLock()

    @property
    def request_token(self) -> int:
        return self._token

    # --- Token bookkeeping ---

    def _begin(self) -> int:
        with self._lock:
            self._token += 1
            self.state = Loading()
            return self._token

    def _apply(self, token: int, state: ViewState) -> bool:
        with self._lock:
            if token != self._token:
                logger.debug(
                    "Dropping stale result for request %d (current %d)",
                    token, self._token,
                )
                return False
            self.state = state
            return True

    def _fail(self, token: int, message: str, kind: ErrorKind) -> ViewState:
        self._apply(token, Error(message, kind))
        return self.state

    # --- Search ---

    def open_search(self) -> ViewState:
        with self._lock:
            if not isinstance(self.state, (Browsing, Searching, Error)):
                raise InvalidTransition(f"Cannot open search from {self.state}")
            self.state = Searching()
            return self.state

    def submit(self, text: str) -> ViewState:
        """Resolve a query; a single match goes straight to the forecast."""
        with self._lock:
            self.search_text = text
        token = self._begin()

        outcome = self.resolver.resolve(text)
        if isinstance(outcome, Invalid):
            return self._fail(token, EMPTY_QUERY_MESSAGE, ErrorKind.INPUT)
        if isinstance(outcome, NoMatch):
            return self._fail(token, NO_MATCH_MESSAGE, ErrorKind.RESOLUTION)
        if isinstance(outcome, ResolutionFailed):
            logger.warning("Search for %r failed: %s", text, outcome.reason)
            return self._fail(token, SEARCH_FAILED_MESSAGE, ErrorKind.RESOLUTION)
        if isinstance(outcome, MultipleMatches):
            self._apply(token, Disambiguating(outcome.places))
            return self.state

        assert isinstance(outcome, SingleMatch)
        if token != self._token:
            return self.state
        place = outcome.place
        return self._load(
            token,
            lambda: WeatherSession.start(
                self.fetcher, self.favorites, place.latitude, place.longitude
            ),
        )

    def pick(self, index: int) -> ViewState:
        """Choose one of the disambiguation candidates."""
        with self._lock:
            if not isinstance(self.state, Disambiguating):
                raise InvalidTransition(f"Cannot pick a candidate from {self.state}")
            candidates = self.state.candidates
            if not 0 <= index < len(candidates):
                raise IndexError(f"No candidate {index}")
            place = candidates[index]
            token = self._begin()

        return self._load(
            token,
            lambda: WeatherSession.start(
                self.fetcher, self.favorites, place.latitude, place.longitude
            ),
        )

    # --- Favorites ---

    def pick_favorite(self, name: str) -> ViewState:
        """Open the forecast for a favorite.

        Uses stored coordinates when the entry has them, else the name.
        """
        with self._lock:
            if not isinstance(self.state, (Browsing, Searching, Error)):
                raise InvalidTransition(f"Cannot open a favorite from {self.state}")
            token = self._begin()

        entry = self.favorites.get(name)
        if entry is None:
            return self._fail(token, UNKNOWN_FAVORITE_MESSAGE, ErrorKind.RESOLUTION)
        if entry.has_coordinates:
            assert entry.latitude is not None and entry.longitude is not None
            lat, lon = entry.latitude, entry.longitude
            return self._load(
                token,
                lambda: WeatherSession.start(self.fetcher, self.favorites, lat, lon),
            )
        return self._load(
            token,
            lambda: WeatherSession.start_by_name(self.fetcher, self.favorites, name),
        )

    def add_favorite(self) -> bool:
        session = self._require_detail()
        return session.mark_favorite()

    def remove_favorite(self, name: str) -> ViewState:
        removed = self.favorites.remove(name)
        with self._lock:
            if removed and self.session is not None:
                if self.session.location_name == name and isinstance(self.state, Detail):
                    return self.back()
                self.session.sync_favorite()
            return self.state

    # --- Detail ---

    def select_day(self, index: int) -> ViewState:
        session = self._require_detail()
        with self._lock:
            session.select_day(index)
            return self.state

    def show_current(self) -> ViewState:
        session = self._require_detail()
        with self._lock:
            session.show_current()
            return self.state

    def back(self) -> ViewState:
        """Return to the favorites list, discarding the session."""
        with self._lock:
            self._token += 1
            if self.session is not None:
                self.session.close()
            self.session = None
            self.search_text = ""
            self.state = Browsing()
            return self.state

    def _require_detail(self) -> WeatherSession:
        with self._lock:
            if not isinstance(self.state, Detail):
                raise InvalidTransition(f"No weather detail shown in {self.state}")
            return self.state.session

    def _load(
        self, token: int, open_session: Callable[[], WeatherSession]
    ) -> ViewState:
        try:
            session = open_session()
        except WeatherFetchError as e:
            return self._fail(token, str(e), ErrorKind.WEATHER)

        with self._lock:
            if not self._apply(token, Detail(session)):
                session.close()
                return self.state
            if self.session is not None and self.session is not session:
                self.session.close()
            self.session = session
            return self.state
