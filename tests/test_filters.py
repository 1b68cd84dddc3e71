import dash_bootstrap_components as dbc

from app.callbacks import common
from app.callbacks.filters import (
    dashboard_header,
    read_query_filters,
    resolve_filters,
    resolve_window_days,
)
from app.callbacks.gates import gates_figure, sort_gates
from app.data.loader import LOAD_ERROR_MESSAGE, DashboardData, DataLoadError
from app.layouts import WINDOW_DAYS_OPTIONS


def test_read_query_filters():
    assert read_query_filters("?origin=AEP&country=Brasil&city=") == {
        "origin": "AEP",
        "country": "Brasil",
    }
    assert read_query_filters(None) == {}


def test_resolve_filters_from_query(routes):
    state = resolve_filters(routes, {"origin": "aep", "country": "argentina", "city": "cordoba"})

    assert state["origin"] == "AEP"
    assert state["country"] == "Argentina"
    assert state["city"] == "Cordoba"
    assert state["airline"] is None
    assert [o["value"] for o in state["airline_options"]] == ["AR", "FO"]
    assert state["country_options"] == [{"label": "Argentina", "value": "Argentina"}]


def test_resolve_filters_resets_children_on_change(routes):
    """Wechsel des Origins setzt Land, Stadt und Airline zurück."""
    state = resolve_filters(
        routes,
        {"origin": "EZE", "country": "Argentina", "city": "Cordoba", "airline": "AR"},
        changed="origin",
    )

    assert state["origin"] == "EZE"
    assert (state["country"], state["city"], state["airline"]) == (None, None, None)
    assert state["country_options"] == [
        {"label": "Argentina", "value": "Argentina"},
        {"label": "Brasil", "value": "Brasil"},
    ]


def test_resolve_filters_drops_values_outside_options(routes):
    state = resolve_filters(routes, {"origin": "AEP", "country": "Brasil", "airline": "WJ"})

    assert state["origin"] == "AEP"
    assert state["country"] is None
    assert state["airline"] is None, "WJ fliegt nicht ab AEP"


def test_resolve_filters_preselects_single_origin(routes):
    only_eze = [r for r in routes if r["origin_airport_code"] == "EZE"]

    state = resolve_filters(only_eze, {})

    assert state["origin"] == "EZE"
    assert state["origin_options"] == [{"label": "EZE – Aeropuerto EZE", "value": "EZE"}]


def test_resolve_filters_without_routes():
    state = resolve_filters([], {"origin": "AEP"})

    assert state["origin"] is None
    assert state["origin_options"] == []


def test_resolve_window_days():
    assert resolve_window_days({"windowDays": "90"}, 60) == "90"
    assert resolve_window_days({}, 30) == "30"
    assert resolve_window_days({}, None) == "60"


def test_sort_gates_by_view_mode(gates):
    assert [g["gate"] for g in sort_gates(gates, "delay")] == ["5", "12", "3"]
    assert [g["gate"] for g in sort_gates(gates, "flights")] == ["5", "12", "3"]
    assert [g["gate"] for g in sort_gates(gates, "ontime")] == ["3", "12", "5"]
    assert [g["gate"] for g in sort_gates(gates, "unbekannt")] == ["5", "12", "3"]
    assert [g["gate"] for g in sort_gates(gates, "concurrency")] == ["5", "12", "3"]


def test_concurrency_view_renders_heatmap(gates):
    fig = gates_figure(gates, "concurrency")

    heatmap = fig.data[0]
    assert heatmap.type == "heatmap"
    assert list(heatmap.y) == ["Gate 5", "Gate 12", "Gate 3"]
    assert len(heatmap.z) == 3
    assert len(heatmap.z[0]) == 24


def test_bar_views_render_bars(gates):
    fig = gates_figure(gates, "ontime")

    assert fig.data[0].type == "bar"
    assert list(fig.data[0].x) == ["Gate 3", "Gate 12", "Gate 5"]


class _BrokenRepository:
    def get(self):
        raise DataLoadError("Manifest konnte nicht geladen werden")


def test_load_error_renders_alert(monkeypatch):
    """Ein fehlgeschlagener Load ergibt genau einen sichtbaren Fehlerzustand."""
    monkeypatch.setattr(common, "get_repository", lambda: _BrokenRepository())

    data = common.load_dashboard_data()
    error, generated, options, window = dashboard_header({}, data)

    assert data is None
    assert isinstance(error, dbc.Alert)
    assert error.children == LOAD_ERROR_MESSAGE
    assert generated == ""
    assert options == WINDOW_DAYS_OPTIONS
    assert window == "60"


def test_header_with_data_shows_window_from_headline():
    data = DashboardData(headline={"lookback_days": 45}, generated_at="2025-01-05T10:00:00.000Z")

    error, generated, options, window = dashboard_header({}, data)

    assert error is None
    assert window == "45"
    assert {"label": "45 days", "value": "45"} in options
    assert generated.startswith("Updated 05 ene")
