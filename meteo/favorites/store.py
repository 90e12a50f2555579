"""Favorites store: durable favorite locations with periodic refresh.

The store owns the only copy of the favorites collection. Every mutation
and every refresh rewrites the complete collection to the key-value store
under one lock, so overlapping refreshes are last-write-wins.

Refresh policy: an entry whose fetch errors or returns no usable payload
keeps its previous values. Names are never rewritten by a refresh.
"""

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

import httpx

from meteo.errors import PersistenceError
from meteo.favorites.scheduler import Cancellable, Scheduler
from meteo.models.common import utc_now_iso
from meteo.models.favorites import CurrentSnapshot, FavoriteEntry
from meteo.models.reporting import RefreshReport
from meteo.storage.kv_repo import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "weatherFavorites"
DEFAULT_REFRESH_INTERVAL = 10 * 60


class CurrentConditionsSource(Protocol):
    def fetch_current(self, name: str) -> CurrentSnapshot | None: ...


class FavoritesStore:
    def __init__(
        self,
        kv: KeyValueStore,
        fetcher: CurrentConditionsSource,
        storage_key: str = STORAGE_KEY,
        max_workers: int = 8,
        scheduler: Scheduler | None = None,
        refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL,
    ):
        self.kv = kv
        self.fetcher = fetcher
        self.storage_key = storage_key
        self.max_workers = max_workers
        self.scheduler = scheduler
        self.refresh_interval_seconds = refresh_interval_seconds
        self.last_report: RefreshReport | None = None
        self._entries: list[FavoriteEntry] = []
        self._lock = threading.RLock()
        self._timer: Cancellable | None = None

    # --- Reads ---

    @property
    def entries(self) -> list[FavoriteEntry]:
        with self._lock:
            return list(self._entries)

    def get(self, name: str) -> FavoriteEntry | None:
        with self._lock:
            for entry in self._entries:
                if entry.name == name:
                    return entry
        return None

    def contains(self, name: str) -> bool:
        return self.get(name) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # --- Persistence ---

    def load(self) -> list[FavoriteEntry]:
        """Load favorites from durable storage.

        Unreadable or corrupt data is treated as "no favorites yet".
        """
        entries = self._read()
        with self._lock:
            self._entries = entries
        logger.info("Loaded %d favorites", len(entries))
        return list(entries)

    def _read(self) -> list[FavoriteEntry]:
        try:
            raw = self.kv.get(self.storage_key)
        except PersistenceError:
            logger.exception("Failed to read favorites, starting empty")
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise TypeError(f"expected a list, got {type(data).__name__}")
            parsed = [FavoriteEntry.from_json(item) for item in data]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Corrupt favorites blob, starting empty: %s", e)
            return []

        entries: list[FavoriteEntry] = []
        seen: set[str] = set()
        for entry in parsed:
            if entry.name in seen:
                continue
            seen.add(entry.name)
            entries.append(entry)
        return entries

    def _save(self) -> None:
        """Write the full collection. Caller holds the lock."""
        blob = json.dumps([e.to_json() for e in self._entries], ensure_ascii=False)
        try:
            self.kv.set(self.storage_key, blob)
        except PersistenceError:
            logger.exception("Failed to persist %d favorites", len(self._entries))

    # --- Mutations ---

    def add(self, entry: FavoriteEntry) -> bool:
        """Add an entry. Returns False (and changes nothing) if the name exists."""
        with self._lock:
            if any(e.name == entry.name for e in self._entries):
                return False
            self._entries.append(entry)
            self._save()
        logger.info("Added favorite %s", entry.name)
        self._size_changed()
        return True

    def remove(self, name: str) -> bool:
        """Remove an entry by name. Returns False if it was not present."""
        with self._lock:
            remaining = [e for e in self._entries if e.name != name]
            if len(remaining) == len(self._entries):
                return False
            self._entries = remaining
            self._save()
        logger.info("Removed favorite %s", name)
        self._size_changed()
        return True

    def _size_changed(self) -> None:
        if self.scheduler is not None:
            self.scheduler.call_soon(self.refresh_all)

    # --- Refresh ---

    def refresh_all(self) -> list[FavoriteEntry]:
        """Re-fetch current conditions for every favorite and persist the result.

        Fetches run concurrently; the new collection is built only after all
        of them have finished.
        """
        start = time.monotonic()
        snapshot = self.entries
        results: dict[str, CurrentSnapshot] = {}

        if snapshot:
            workers = min(self.max_workers, len(snapshot))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                fetched = list(pool.map(self._fetch_one, snapshot))
            for entry, current in zip(snapshot, fetched):
                if current is not None:
                    results[entry.name] = current

        with self._lock:
            # Entries removed while fetching stay removed; added ones are kept.
            self._entries = [
                _apply_snapshot(e, results.get(e.name)) for e in self._entries
            ]
            self._save()
            refreshed = list(self._entries)

        failed_names = [e.name for e in snapshot if e.name not in results]
        self.last_report = RefreshReport(
            total=len(snapshot),
            refreshed=len(results),
            failed=len(failed_names),
            failed_names=failed_names,
            duration_seconds=round(time.monotonic() - start, 3),
            finished_at=utc_now_iso(),
        )
        if failed_names:
            logger.warning(
                "Refreshed %d/%d favorites, kept stale values for %s",
                len(results), len(snapshot), failed_names,
            )
        else:
            logger.info("Refreshed %d favorites", len(results))
        return refreshed

    def _fetch_one(self, entry: FavoriteEntry) -> CurrentSnapshot | None:
        try:
            return self.fetcher.fetch_current(entry.name)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Failed to refresh favorite %s: HTTP %d",
                entry.name, e.response.status_code,
            )
            return None
        except httpx.RequestError as e:
            logger.warning(
                "Failed to refresh favorite %s: %s", entry.name, type(e).__name__
            )
            return None
        except Exception:
            logger.exception("Failed to refresh favorite %s", entry.name)
            return None

    # --- Timer ---

    def start(self, scheduler: Scheduler | None = None) -> None:
        """Refresh once now and then on the fixed interval until `stop`."""
        if scheduler is not None:
            self.scheduler = scheduler
        if self.scheduler is None:
            raise ValueError("FavoritesStore.start needs a scheduler")
        self.stop()
        self.scheduler.call_soon(self.refresh_all)
        self._timer = self.scheduler.call_every(
            self.refresh_interval_seconds, self.refresh_all
        )

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def _apply_snapshot(
    entry: FavoriteEntry, current: CurrentSnapshot | None
) -> FavoriteEntry:
    if current is None:
        return entry
    return FavoriteEntry(
        name=entry.name,
        last_known_temp_c=current.temp_c,
        icon_ref=current.icon_ref,
        latitude=entry.latitude,
        longitude=entry.longitude,
    )
