from __future__ import annotations

import logging

from dash import Input, Output
import pandas as pd
import plotly.express as px
from sqlalchemy.exc import SQLAlchemyError

from app.callbacks.common import empty_figure, load_dashboard_data
from app.format import format_number, format_percentage
from etl.aggregations import gate_heatmap, gate_summary
from etl.gates import fetch_gate_metrics

logger = logging.getLogger(__name__)


LIVE_GATES_LIMIT = 15

VIEW_MODES = {
    "delay": ("avg_delay_minutes", "Avg Delay (min)"),
    "flights": ("total_flights", "Flights"),
    "ontime": ("on_time_percentage", "On time (%)"),
    "concurrency": ("total_flights", "Flights per hour"),
}


def _load_gates():
    """
    Gates aus dem Export; fehlt der Export, direkt aus dem Warehouse.
    """
    data = load_dashboard_data()
    if data is not None and data.gates:
        return data.gates

    try:
        return fetch_gate_metrics(limit=LIVE_GATES_LIMIT)
    except (SQLAlchemyError, RuntimeError, KeyError) as e:
        logger.warning("Gates konnten nicht aus dem Warehouse geladen werden: %s", e)
        return []


def sort_gates(gates, view_mode):
    metric, _ = VIEW_MODES.get(view_mode, VIEW_MODES["delay"])
    return sorted(gates, key=lambda g: g.get(metric) or 0, reverse=True)


def _heatmap_figure(gates):
    heatmap = gate_heatmap(gates)

    fig = px.imshow(
        heatmap["matrix"],
        x=heatmap["hours"],
        y=[f"Gate {g}" for g in heatmap["gates"]],
        zmin=0,
        zmax=1,
        aspect="auto",
        color_continuous_scale="Blues",
        labels={"x": "Hour (UTC)", "y": "Gate", "color": "Load"},
        title=f"Gate concurrency by hour (max {format_number(heatmap['max_value'])} flights)",
    )
    fig.update_traces(
        customdata=heatmap["counts"],
        hovertemplate="%{y} · %{x}:00<br>%{customdata} flights<extra></extra>",
    )
    return fig


def gates_figure(gates, view_mode):
    if view_mode == "concurrency":
        return _heatmap_figure(gates)

    metric, label = VIEW_MODES.get(view_mode, VIEW_MODES["delay"])
    df = pd.DataFrame(sort_gates(gates, view_mode))
    df["gate_label"] = "Gate " + df["gate"].astype(str)

    fig = px.bar(
        df,
        x="gate_label",
        y=metric,
        title=f"Gates – sorted by {label}",
        labels={"gate_label": "Gate", metric: label},
    )
    fig.update_layout(xaxis_tickangle=-45)
    return fig


def register_callbacks(app):
    @app.callback(
        Output("gates-chart", "figure"),
        Output("gates-summary", "children"),
        Input("gates-view-mode", "value"),
    )
    def update_gates(view_mode):
        gates = _load_gates()
        if not gates:
            return empty_figure("Gates (no data)"), ""

        summary = gate_summary(gates)
        text = (
            f"{format_number(summary['total_flights'])} flights · "
            f"avg delay {format_number(summary['avg_delay_minutes'], 1)} min · "
            f"{format_percentage(summary['avg_on_time_percentage'])} on time"
        )
        return gates_figure(gates, view_mode), text
