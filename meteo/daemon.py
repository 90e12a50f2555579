"""Favorites refresh daemon: re-fetches every favorite on a fixed interval.

Runs in the foreground with no view attached, keeping the stored favorites
fresh for the next time the client starts.

Usage:
    python -m meteo daemon                 # every 10 minutes (default)
    python -m meteo daemon --interval 300
    python -m meteo daemon --stop          # stop running daemon
    python -m meteo daemon --status
"""

import json
import logging
import os
import signal
import sys
import time
from datetime import UTC, datetime
from pathlib import Path

from meteo.favorites.store import DEFAULT_REFRESH_INTERVAL, FavoritesStore
from meteo.ingest.retry import quiet_http_logging

logger = logging.getLogger(__name__)

MAX_BACKOFF = 3600
PID_DIR = Path("data")
PID_FILE = PID_DIR / "daemon.pid"
STATE_FILE = PID_DIR / "daemon_state.json"
LOG_DIR = Path("logs")
MAX_LOG_FILES = 100
STOP_TIMEOUT = 60
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _read_pid() -> int | None:
    try:
        return int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        return None


def _is_alive(pid: int) -> bool:
    """True if a process with this pid exists (or we may not signal it)."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class RefreshDaemon:
    """Calls FavoritesStore.refresh_all until stopped by a signal.

    A cycle in which every favorite failed counts as a failure and doubles
    the wait before the next one, capped at MAX_BACKOFF.
    """

    def __init__(
        self,
        store: FavoritesStore,
        interval: int = DEFAULT_REFRESH_INTERVAL,
    ):
        self.store = store
        self.interval = interval
        self._running = False
        self._consecutive_failures = 0
        self._total_cycles = 0
        self._total_successes = 0
        self._total_failures = 0
        self._started_at: str | None = None

    def start(self) -> None:
        self._check_not_already_running()
        self._write_pid()
        self._setup_signals()
        quiet_http_logging()
        self._running = True
        self._started_at = datetime.now(UTC).isoformat()

        logger.info(
            "Refresh daemon up: pid=%d favorites=%d interval=%ds",
            os.getpid(), len(self.store), self.interval,
        )
        print(f"Refreshing favorites every {self.interval}s (pid {os.getpid()})")
        print(f"Cycle logs go to {LOG_DIR}/; stop with: python -m meteo daemon --stop")

        try:
            self._loop()
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self._cleanup()

    def _next_wait(self, success: bool) -> int:
        if success:
            self._consecutive_failures = 0
            return self.interval
        self._consecutive_failures += 1
        wait = min(self.interval * 2 ** self._consecutive_failures, MAX_BACKOFF)
        logger.warning(
            "%d failed refresh cycles in a row, next attempt in %ds",
            self._consecutive_failures, wait,
        )
        return wait

    def _loop(self) -> None:
        while self._running:
            began = time.monotonic()
            wait = self._next_wait(self._run_one_refresh())
            self._save_state()

            # Short sleeps so a signal stops the loop promptly.
            deadline = began + wait
            while self._running and time.monotonic() < deadline:
                time.sleep(1)

    def _run_one_refresh(self) -> bool:
        """Refresh every favorite once. Returns False if every fetch failed."""
        self._total_cycles += 1
        cycle = self._total_cycles

        LOG_DIR.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        handler = logging.FileHandler(LOG_DIR / f"refresh_{stamp}.log")
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)

        try:
            logger.info("Refresh cycle %d", cycle)
            self.store.refresh_all()
        except Exception:
            logger.exception("Refresh cycle %d crashed", cycle)
            ok = False
        else:
            report = self.store.last_report
            ok = report is None or not report.all_failed
            if not ok:
                logger.error(
                    "Refresh cycle %d: none of %d favorites could be fetched",
                    cycle, report.total,
                )
        finally:
            logging.getLogger().removeHandler(handler)
            handler.close()
            self._rotate_logs()

        if ok:
            self._total_successes += 1
        else:
            self._total_failures += 1
        return ok

    def _rotate_logs(self) -> None:
        """Delete the oldest cycle logs beyond MAX_LOG_FILES."""
        if not LOG_DIR.exists():
            return
        logs = sorted(LOG_DIR.glob("refresh_*.log"))
        for old in logs[:-MAX_LOG_FILES]:
            old.unlink(missing_ok=True)

    def _setup_signals(self) -> None:
        def _request_stop(signum: int, frame: object) -> None:
            logger.info("Got %s, stopping after this cycle", signal.Signals(signum).name)
            self._running = False

        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, _request_stop)

    def _check_not_already_running(self) -> None:
        pid = _read_pid()
        if pid is None:
            PID_FILE.unlink(missing_ok=True)
            return
        if _is_alive(pid):
            print(f"Refresh daemon already running as pid {pid}; stop it first.")
            sys.exit(1)
        logger.info("Removing stale pid file for %d", pid)
        PID_FILE.unlink(missing_ok=True)

    def _write_pid(self) -> None:
        PID_DIR.mkdir(parents=True, exist_ok=True)
        PID_FILE.write_text(str(os.getpid()))

    def _save_state(self) -> None:
        report = self.store.last_report
        state = {
            "pid": os.getpid(),
            "started_at": self._started_at,
            "interval": self.interval,
            "favorites": len(self.store),
            "total_cycles": self._total_cycles,
            "total_successes": self._total_successes,
            "total_failures": self._total_failures,
            "consecutive_failures": self._consecutive_failures,
            "last_failed_names": report.failed_names if report else [],
            "last_update": datetime.now(UTC).isoformat(),
        }
        PID_DIR.mkdir(parents=True, exist_ok=True)
        STATE_FILE.write_text(json.dumps(state, indent=2, ensure_ascii=False))

    def _cleanup(self) -> None:
        PID_FILE.unlink(missing_ok=True)
        self._save_state()
        summary = (
            f"{self._total_cycles} cycles, {self._total_successes} ok, "
            f"{self._total_failures} failed"
        )
        logger.info("Refresh daemon down: %s", summary)
        print(f"Refresh daemon stopped ({summary})")


def stop_daemon() -> int:
    """Send SIGTERM to the running daemon and wait for it to exit."""
    if not PID_FILE.exists():
        print("No daemon running (no PID file found)")
        return 1
    pid = _read_pid()
    if pid is None:
        print("Unreadable PID file, removing it")
        PID_FILE.unlink(missing_ok=True)
        return 1
    if not _is_alive(pid):
        print(f"Daemon pid {pid} is gone, removing stale files")
        PID_FILE.unlink(missing_ok=True)
        STATE_FILE.unlink(missing_ok=True)
        return 0

    print(f"Sending SIGTERM to pid {pid}")
    os.kill(pid, signal.SIGTERM)
    deadline = time.monotonic() + STOP_TIMEOUT
    while time.monotonic() < deadline:
        time.sleep(1)
        if not _is_alive(pid):
            print("Daemon stopped")
            PID_FILE.unlink(missing_ok=True)
            return 0

    print(f"Daemon still alive after {STOP_TIMEOUT}s, sending SIGKILL")
    os.kill(pid, signal.SIGKILL)
    PID_FILE.unlink(missing_ok=True)
    return 0


_STATUS_FIELDS = (
    ("PID", "pid"),
    ("Interval (s)", "interval"),
    ("Favorites", "favorites"),
    ("Started", "started_at"),
    ("Cycles", "total_cycles"),
    ("Successes", "total_successes"),
    ("Failures", "total_failures"),
    ("Failures in a row", "consecutive_failures"),
    ("Last update", "last_update"),
)


def daemon_status() -> int:
    """Print the last state the daemon saved."""
    if not STATE_FILE.exists():
        print("No daemon state found")
        return 1

    state = json.loads(STATE_FILE.read_text())
    try:
        running = _is_alive(int(state.get("pid")))
    except (TypeError, ValueError):
        running = False

    print(f"Refresh daemon {'running' if running else 'stopped'}")
    for label, key in _STATUS_FIELDS:
        print(f"  {label}: {state.get(key, '?')}")
    stale = state.get("last_failed_names") or []
    if stale:
        print(f"  Stale favorites: {', '.join(stale)}")
    return 0
