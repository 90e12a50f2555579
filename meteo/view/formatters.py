"""Text and JSON renderings of the view state."""

from typing import Any

from meteo.models.favorites import FavoriteEntry
from meteo.models.place import Place
from meteo.models.reporting import RefreshReport
from meteo.models.weather import DayDetail, DisplayedDetail, FromForecastDay
from meteo.session.weather_session import WeatherSession
from meteo.units import kph_to_ms
from meteo.view.state_machine import (
    Browsing,
    Detail,
    Disambiguating,
    Error,
    Loading,
    Searching,
    ViewState,
)

# Indexed by date.weekday() (Monday == 0).
WEEKDAY_LABELS = ("月", "火", "水", "木", "金", "土", "日")

EMPTY_FAVORITES_MESSAGE = "お気に入り都市がありません。"


def weekday_label(day: DayDetail) -> str:
    return WEEKDAY_LABELS[day.date.weekday()]


def selected_day_index(session: WeatherSession) -> int | None:
    source = session.displayed.source
    if isinstance(source, FromForecastDay):
        return source.index
    return None


def format_detail_text(session: WeatherSession) -> str:
    d = session.displayed
    star = "★" if session.is_favorite else "☆"
    lines = [
        f"{star} {session.location_name} ({session.country_name})",
        f"{d.condition_text}  {d.temp_c}°C",
        f"湿度: {d.humidity_pct}%",
        f"風速: {kph_to_ms(d.wind_kph):.2f} m/s",
        f"体感温度: {d.feels_like_c}°C",
        f"降水量: {d.precip_mm} mm",
        "",
        "3日間の予報",
    ]
    selected = selected_day_index(session)
    for i, day in enumerate(session.forecast_days):
        marker = ">" if i == selected else " "
        lines.append(
            f"{marker} [{i}] {weekday_label(day)} {day.date.month}/{day.date.day} "
            f"{day.condition_text}  {day.max_temp_c}°C / {day.min_temp_c}°C"
        )
    return "\n".join(lines)


def format_favorites_text(entries: list[FavoriteEntry]) -> str:
    if not entries:
        return EMPTY_FAVORITES_MESSAGE
    return "\n".join(f"{e.name}  {e.last_known_temp_c}°C" for e in entries)


def format_candidates_text(places: tuple[Place, ...]) -> str:
    lines = ["検索結果を選択してください"]
    lines.extend(f"[{i}] {p.display_name}" for i, p in enumerate(places))
    return "\n".join(lines)


def format_refresh_text(report: RefreshReport) -> str:
    line = (
        f"Refreshed {report.refreshed}/{report.total} favorites "
        f"in {report.duration_seconds:.1f}s"
    )
    if report.failed_names:
        line += f" (kept stale: {', '.join(report.failed_names)})"
    return line


def format_state_text(state: ViewState, favorites: list[FavoriteEntry]) -> str:
    """Plain text rendering of whatever the view currently shows."""
    if isinstance(state, Detail):
        return format_detail_text(state.session)
    if isinstance(state, Disambiguating):
        return format_candidates_text(state.candidates)
    if isinstance(state, Loading):
        return "読み込み中..."
    if isinstance(state, Error):
        return f"{state.message}\n\n{format_favorites_text(favorites)}"
    return format_favorites_text(favorites)


# --- JSON ---


def detail_to_json(d: DisplayedDetail) -> dict[str, Any]:
    source = d.source
    return {
        "condition_text": d.condition_text,
        "condition_icon": d.condition_icon,
        "temp_c": d.temp_c,
        "feels_like_c": d.feels_like_c,
        "humidity_pct": d.humidity_pct,
        "wind_kph": d.wind_kph,
        "wind_ms": kph_to_ms(d.wind_kph),
        "precip_mm": d.precip_mm,
        "source": (
            {"kind": "forecast_day", "index": source.index}
            if isinstance(source, FromForecastDay)
            else {"kind": "current"}
        ),
    }


def session_to_json(session: WeatherSession) -> dict[str, Any]:
    return {
        "location_name": session.location_name,
        "country_name": session.country_name,
        "is_favorite": session.is_favorite,
        "current": {
            "condition_text": session.current.condition_text,
            "condition_icon": session.current.condition_icon,
            "temp_c": session.current.temp_c,
        },
        "displayed": detail_to_json(session.displayed),
        "forecast_days": [
            {
                "date": day.date.isoformat(),
                "weekday": weekday_label(day),
                "condition_text": day.condition_text,
                "condition_icon": day.condition_icon,
                "max_temp_c": day.max_temp_c,
                "min_temp_c": day.min_temp_c,
                "selected": i == selected_day_index(session),
            }
            for i, day in enumerate(session.forecast_days)
        ],
    }


def favorite_to_json(entry: FavoriteEntry) -> dict[str, Any]:
    return {
        "name": entry.name,
        "temp_c": entry.last_known_temp_c,
        "icon": entry.icon_ref,
    }


def state_to_json(
    state: ViewState, favorites: list[FavoriteEntry], search_text: str = ""
) -> dict[str, Any]:
    """JSON view state for programmatic consumption."""
    data: dict[str, Any] = {
        "search_text": search_text,
        "favorites": [favorite_to_json(e) for e in favorites],
    }
    if isinstance(state, Browsing):
        data["state"] = "browsing"
    elif isinstance(state, Searching):
        data["state"] = "searching"
    elif isinstance(state, Loading):
        data["state"] = "loading"
    elif isinstance(state, Disambiguating):
        data["state"] = "disambiguating"
        data["candidates"] = [
            {"place_id": p.place_id, "display_name": p.display_name}
            for p in state.candidates
        ]
    elif isinstance(state, Error):
        data["state"] = "error"
        data["error"] = {"message": state.message, "kind": state.kind.value}
    elif isinstance(state, Detail):
        data["state"] = "detail"
        data["session"] = session_to_json(state.session)
    return data
