"""Tests for the favorites refresh daemon."""

import json
import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from meteo.daemon import RefreshDaemon, daemon_status, stop_daemon
from meteo.favorites.store import FavoritesStore
from meteo.models.reporting import RefreshReport


@pytest.fixture
def tmp_data(tmp_path, monkeypatch):
    """Redirect PID/state files to temp directory."""
    pid_file = tmp_path / "daemon.pid"
    state_file = tmp_path / "daemon_state.json"
    monkeypatch.setattr("meteo.daemon.PID_FILE", pid_file)
    monkeypatch.setattr("meteo.daemon.PID_DIR", tmp_path)
    monkeypatch.setattr("meteo.daemon.STATE_FILE", state_file)
    monkeypatch.setattr("meteo.daemon.LOG_DIR", tmp_path / "logs")
    return {"pid": pid_file, "state": state_file, "dir": tmp_path}


@pytest.fixture
def mock_store() -> MagicMock:
    store = MagicMock(spec=FavoritesStore)
    store.__len__.return_value = 2
    store.last_report = RefreshReport(total=2, refreshed=2)
    return store


class TestRefreshDaemon:
    def test_start_writes_state(self, tmp_data, mock_store):
        daemon = RefreshDaemon(mock_store, interval=1)
        logging.getLogger("httpx").setLevel(logging.NOTSET)

        with patch.object(daemon, "_loop"), patch.object(daemon, "_setup_signals"):
            daemon.start()

        assert tmp_data["state"].exists()
        assert not tmp_data["pid"].exists()
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_prevents_duplicate_start(self, tmp_data, mock_store):
        tmp_data["pid"].write_text(str(os.getpid()))

        daemon = RefreshDaemon(mock_store)
        with pytest.raises(SystemExit):
            daemon._check_not_already_running()

    def test_cleans_stale_pid(self, tmp_data, mock_store):
        tmp_data["pid"].write_text("999999999")

        RefreshDaemon(mock_store)._check_not_already_running()
        assert not tmp_data["pid"].exists()

    def test_saves_state(self, tmp_data, mock_store):
        mock_store.last_report = RefreshReport(
            total=2, refreshed=1, failed=1, failed_names=["Lima"]
        )
        daemon = RefreshDaemon(mock_store, interval=60)
        daemon._total_cycles = 5
        daemon._total_successes = 4
        daemon._total_failures = 1

        daemon._save_state()

        state = json.loads(tmp_data["state"].read_text())
        assert state["total_cycles"] == 5
        assert state["total_failures"] == 1
        assert state["interval"] == 60
        assert state["favorites"] == 2
        assert state["last_failed_names"] == ["Lima"]

    def test_refresh_success(self, tmp_data, mock_store):
        daemon = RefreshDaemon(mock_store, interval=1)

        assert daemon._run_one_refresh() is True
        mock_store.refresh_all.assert_called_once()
        assert daemon._total_successes == 1

    def test_partial_failure_still_success(self, tmp_data, mock_store):
        mock_store.last_report = RefreshReport(total=2, refreshed=1, failed=1)
        assert RefreshDaemon(mock_store)._run_one_refresh() is True

    def test_all_failed(self, tmp_data, mock_store):
        mock_store.last_report = RefreshReport(total=2, refreshed=0, failed=2)
        daemon = RefreshDaemon(mock_store)

        assert daemon._run_one_refresh() is False
        assert daemon._total_failures == 1

    def test_crash_counted(self, tmp_data, mock_store):
        mock_store.refresh_all.side_effect = RuntimeError("boom")
        daemon = RefreshDaemon(mock_store)

        assert daemon._run_one_refresh() is False
        assert daemon._total_failures == 1

    def test_backoff_doubles_and_caps(self, mock_store):
        daemon = RefreshDaemon(mock_store, interval=600)

        assert daemon._next_wait(False) == 1200
        assert daemon._next_wait(False) == 2400
        assert daemon._next_wait(False) == 3600
        assert daemon._next_wait(True) == 600
        assert daemon._consecutive_failures == 0

    def test_log_rotation(self, tmp_data, mock_store):
        log_dir = tmp_data["dir"] / "logs"
        log_dir.mkdir()
        for i in range(110):
            (log_dir / f"refresh_{i:04d}.log").write_text(f"log {i}")

        RefreshDaemon(mock_store)._rotate_logs()

        assert len(list(log_dir.glob("refresh_*.log"))) == 100

    def test_cleanup_removes_pid(self, tmp_data, mock_store):
        daemon = RefreshDaemon(mock_store)
        daemon._write_pid()
        assert tmp_data["pid"].exists()

        daemon._cleanup()
        assert not tmp_data["pid"].exists()


class TestDaemonControl:
    def test_stop_without_pid(self, tmp_data, capsys):
        assert stop_daemon() == 1
        assert "No daemon running" in capsys.readouterr().out

    def test_stop_stale_pid(self, tmp_data):
        tmp_data["pid"].write_text("999999999")
        assert stop_daemon() == 0
        assert not tmp_data["pid"].exists()

    def test_status_without_state(self, tmp_data):
        assert daemon_status() == 1

    def test_status_reports(self, tmp_data, capsys):
        tmp_data["state"].write_text(json.dumps({
            "pid": 999999999, "interval": 600, "favorites": 3,
            "total_cycles": 2, "last_failed_names": ["Lima"],
        }))
        assert daemon_status() == 0
        out = capsys.readouterr().out
        assert "stopped" in out
        assert "Stale favorites: Lima" in out
