from __future__ import annotations

from typing import Dict, List, Optional
from urllib.parse import parse_qs

from dash import Input, Output, ctx
import dash_bootstrap_components as dbc

from app.callbacks.common import load_dashboard_data
from app.data.loader import LOAD_ERROR_MESSAGE
from app.format import format_date_short
from app.layouts import WINDOW_DAYS_OPTIONS
from etl.aggregations import (
    get_unique_airlines,
    get_unique_cities,
    get_unique_countries,
    get_unique_origins,
    normalize_code,
    normalize_text,
)


FILTER_KEYS = ["origin", "country", "city", "airline"]

FILTER_IDS = {
    "filter-origin": "origin",
    "filter-country": "country",
    "filter-city": "city",
    "filter-airline": "airline",
}

DEFAULT_WINDOW_DAYS = "60"


def read_query_filters(search: Optional[str]) -> Dict[str, str]:
    """'?origin=AEP&country=Brasil' -> {'origin': 'AEP', 'country': 'Brasil'}"""
    params = parse_qs((search or "").lstrip("?"))
    return {key: values[0] for key, values in params.items() if values and values[0]}


def _match_text(value: Optional[str], options: List[str]) -> Optional[str]:
    wanted = normalize_text(value)
    if not wanted:
        return None
    return next((o for o in options if normalize_text(o) == wanted), None)


def _match_code(value: Optional[str], codes: List[str]) -> Optional[str]:
    wanted = normalize_code(value)
    if not wanted:
        return None
    return next((c for c in codes if normalize_code(c) == wanted), None)


def resolve_filters(
    routes: List[dict],
    filters: Dict[str, Optional[str]],
    changed: Optional[str] = None,
) -> dict:
    """
    Kaskadierende Filter: Origin -> Land -> Stadt -> Airline.

    - Ändert sich ein Filter, werden alle nachgelagerten zurückgesetzt.
    - Werte, die nicht (mehr) in den Optionen vorkommen, werden verworfen.
    - Gibt es genau einen Origin, wird er vorausgewählt.
    """

    values = {key: filters.get(key) or None for key in FILTER_KEYS}

    if changed in FILTER_KEYS:
        for key in FILTER_KEYS[FILTER_KEYS.index(changed) + 1:]:
            values[key] = None

    origins = get_unique_origins(routes)
    origin = _match_code(values["origin"], [o["code"] for o in origins])
    if origin is None and len(origins) == 1:
        origin = origins[0]["code"]

    countries = get_unique_countries(routes, origin)
    country = _match_text(values["country"], countries)

    cities = get_unique_cities(routes, origin, country)
    city = _match_text(values["city"], cities)

    airlines = get_unique_airlines(routes, origin, country, city)
    airline = _match_code(values["airline"], [a["code"] for a in airlines])

    return {
        "origin": origin,
        "country": country,
        "city": city,
        "airline": airline,
        "origin_options": [
            {"label": f"{o['code']} – {o['name']}" if o["name"] else o["code"], "value": o["code"]}
            for o in origins
        ],
        "country_options": [{"label": c, "value": c} for c in countries],
        "city_options": [{"label": c, "value": c} for c in cities],
        "airline_options": [{"label": a["name"] or a["code"], "value": a["code"]} for a in airlines],
    }


def resolve_window_days(query: Dict[str, str], lookback_days) -> str:
    if query.get("windowDays"):
        return query["windowDays"]
    if lookback_days:
        return str(lookback_days)
    return DEFAULT_WINDOW_DAYS


def dashboard_header(query: Dict[str, str], data) -> tuple:
    """
    Kopfzeile des Dashboards: Fehlermeldung, Stand der Daten und
    Zeitfenster-Optionen. data ist None, wenn das Laden fehlgeschlagen ist.
    """
    if data is None:
        return (
            dbc.Alert(LOAD_ERROR_MESSAGE, color="danger"),
            "",
            WINDOW_DAYS_OPTIONS,
            resolve_window_days(query, None),
        )

    window = resolve_window_days(query, data.headline.get("lookback_days"))
    options = list(WINDOW_DAYS_OPTIONS)
    if window not in {o["value"] for o in options}:
        options.append({"label": f"{window} days", "value": window})

    generated = ""
    if data.generated_at:
        generated = f"Updated {format_date_short(str(data.generated_at)[:10])} · last {window} days"

    return None, generated, options, window


def register_callbacks(app):
    @app.callback(
        Output("dashboard-error", "children"),
        Output("dashboard-generated-at", "children"),
        Output("filter-window-days", "options"),
        Output("filter-window-days", "value"),
        Input("url", "search"),
    )
    def init_dashboard(search):
        return dashboard_header(read_query_filters(search), load_dashboard_data())

    @app.callback(
        Output("filter-origin", "options"),
        Output("filter-origin", "value"),
        Output("filter-country", "options"),
        Output("filter-country", "value"),
        Output("filter-city", "options"),
        Output("filter-city", "value"),
        Output("filter-airline", "options"),
        Output("filter-airline", "value"),
        Input("url", "search"),
        Input("filter-origin", "value"),
        Input("filter-country", "value"),
        Input("filter-city", "value"),
        Input("filter-airline", "value"),
    )
    def update_filters(search, origin, country, city, airline):
        data = load_dashboard_data()
        routes = data.routes if data is not None else []

        trigger = ctx.triggered_id
        if trigger in (None, "url"):
            filters = read_query_filters(search)
            changed = None
        else:
            filters = {"origin": origin, "country": country, "city": city, "airline": airline}
            changed = FILTER_IDS.get(trigger)

        state = resolve_filters(routes, filters, changed=changed)

        return (
            state["origin_options"],
            state["origin"],
            state["country_options"],
            state["country"],
            state["city_options"],
            state["city"],
            state["airline_options"],
            state["airline"],
        )
