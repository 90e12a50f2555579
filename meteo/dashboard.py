"""Weather client API: FastAPI backend exposing the view state and its actions."""

import os
from datetime import UTC, datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from meteo.config.loader import load_config
from meteo.context import build_context
from meteo.favorites.scheduler import ThreadScheduler
from meteo.ingest.retry import quiet_http_logging
from meteo.view.formatters import favorite_to_json, state_to_json
from meteo.view.state_machine import InvalidTransition, ViewStateMachine

CONFIG_PATH = Path(os.environ.get("METEO_CONFIG", "config/meteo.yaml"))
DB_PATH = Path(os.environ.get("METEO_DB", "data/meteo.db"))


class SearchRequest(BaseModel):
    text: str


def create_app(machine: ViewStateMachine) -> FastAPI:
    app = FastAPI(title="Meteo", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _state() -> dict:
        return state_to_json(
            machine.state, machine.favorites.entries, machine.search_text
        )

    # ── View state ──────────────────────────────────────────────

    @app.get("/api/state")
    def get_state():
        return _state()

    @app.post("/api/search/open")
    def open_search():
        try:
            machine.open_search()
        except InvalidTransition as e:
            raise HTTPException(409, str(e)) from e
        return _state()

    @app.post("/api/search")
    def submit_search(req: SearchRequest):
        machine.submit(req.text)
        return _state()

    @app.post("/api/candidates/{index}")
    def pick_candidate(index: int):
        try:
            machine.pick(index)
        except InvalidTransition as e:
            raise HTTPException(409, str(e)) from e
        except IndexError as e:
            raise HTTPException(404, str(e)) from e
        return _state()

    @app.post("/api/days/{index}")
    def select_day(index: int):
        try:
            machine.select_day(index)
        except InvalidTransition as e:
            raise HTTPException(409, str(e)) from e
        except IndexError as e:
            raise HTTPException(404, str(e)) from e
        return _state()

    @app.post("/api/back")
    def back():
        machine.back()
        return _state()

    # ── Favorites ───────────────────────────────────────────────

    @app.get("/api/favorites")
    def list_favorites():
        return [favorite_to_json(e) for e in machine.favorites.entries]

    @app.post("/api/favorites")
    def add_current_favorite():
        try:
            added = machine.add_favorite()
        except InvalidTransition as e:
            raise HTTPException(409, str(e)) from e
        return {"status": "added" if added else "no_change", **_state()}

    @app.delete("/api/favorites/{name}")
    def remove_favorite(name: str):
        if not machine.favorites.contains(name):
            raise HTTPException(404, f"Favorite not found: {name}")
        machine.remove_favorite(name)
        return _state()

    @app.post("/api/favorites/{name}/open")
    def open_favorite(name: str):
        try:
            machine.pick_favorite(name)
        except InvalidTransition as e:
            raise HTTPException(409, str(e)) from e
        return _state()

    @app.post("/api/favorites/refresh")
    def refresh_favorites():
        entries = machine.favorites.refresh_all()
        report = machine.favorites.last_report
        return {
            "favorites": [favorite_to_json(e) for e in entries],
            "failed": report.failed_names if report else [],
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


def build_app() -> FastAPI:
    """App factory wiring real clients and a background refresh timer."""
    quiet_http_logging()
    ctx = build_context(load_config(CONFIG_PATH), DB_PATH)
    ctx.favorites.start(ThreadScheduler())
    return create_app(ctx.machine)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(build_app(), host="127.0.0.1", port=8777)
