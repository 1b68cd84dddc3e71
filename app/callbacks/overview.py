from __future__ import annotations

import logging

from dash import Input, Output, html
import dash_bootstrap_components as dbc
import pandas as pd
import plotly.express as px

from app.callbacks.common import empty_figure, load_dashboard_data
from app.format import format_date_short, format_number, format_percentage
from etl.aggregations import (
    aggregate_routes,
    bucket_breakdown,
    bucket_total,
    compute_insights,
    filter_routes,
    filter_top_delays,
    get_top_delays,
    get_unique_airlines,
)

logger = logging.getLogger(__name__)


BUCKET_LABELS = {
    "on_time_or_early": "On time / early",
    "delay_15_0": "0–15 min",
    "delay_30_15": "15–30 min",
    "delay_45_30": "30–45 min",
    "delay_over_45": "> 45 min",
    "cancelled": "Cancelled",
}


def _airline_name(routes, airline_code):
    if not airline_code:
        return None
    match = next((a for a in get_unique_airlines(routes) if a["code"] == airline_code), None)
    return match["name"] if match else None


def _kpi_values(totals):
    total = totals["totalFlights"]

    def _share(count):
        return count / total * 100 if total > 0 else 0

    return (
        format_number(total),
        f"{format_number(totals['totalOnTime'])} ({format_percentage(_share(totals['totalOnTime']))})",
        f"{format_number(totals['totalDelayed'])} ({format_percentage(_share(totals['totalDelayed']))})",
        f"{format_number(totals['totalCancelled'])} ({format_percentage(_share(totals['totalCancelled']))})",
        f"{format_number(totals['avgDelayMinutes'], 1)} min",
    )


def _bucket_figure(buckets, avg_delay_minutes):
    if not buckets or bucket_total(buckets) == 0:
        return empty_figure("Delay Distribution (no data)")

    df = pd.DataFrame(buckets)
    df["label"] = df["bucket"].map(BUCKET_LABELS).fillna(df["bucket"])

    fig = px.bar(
        df,
        x="label",
        y="total_flights",
        title=f"Delay Distribution – avg {format_number(avg_delay_minutes, 1)} min",
        labels={"label": "Bucket", "total_flights": "Flights"},
    )
    return fig


def _insight_cards(insights):
    cards = [
        dbc.Card(
            dbc.CardBody(
                [
                    html.H6("Peak hour", className="text-muted"),
                    html.P(
                        f"{insights['peak_hour']}:00 – {format_number(insights['peak_count'])} flights"
                    ),
                ]
            ),
            className="mb-2",
        )
    ]

    worst = insights["worst_flight"]
    if worst:
        cards.append(
            dbc.Card(
                dbc.CardBody(
                    [
                        html.H6("Largest delay", className="text-muted"),
                        html.P(
                            f"{worst.get('flight_number', '?')} to "
                            f"{worst.get('destination_city') or worst.get('destination_airport_code', '?')}: "
                            f"{format_number(worst.get('delay_minutes') or 0)} min"
                        ),
                    ]
                ),
                className="mb-2",
            )
        )

    best = insights["best_gate"]
    if best:
        cards.append(
            dbc.Card(
                dbc.CardBody(
                    [
                        html.H6("Best gate", className="text-muted"),
                        html.P(
                            f"Gate {best['gate']}: "
                            f"{format_percentage(best.get('on_time_percentage') or 0)} on time"
                        ),
                    ]
                ),
                className="mb-2",
            )
        )

    return cards


def _trend_figure(daily_status):
    if not daily_status:
        return empty_figure("Daily Average Delay (no data)")

    df = pd.DataFrame(daily_status)
    if "flight_date" not in df.columns:
        return empty_figure("Daily Average Delay (no data)")
    if "avg_delay_minutes" not in df.columns:
        df["avg_delay_minutes"] = 0
    df["flight_date"] = pd.to_datetime(df["flight_date"], errors="coerce")
    df = df.dropna(subset=["flight_date"]).sort_values("flight_date")
    if "total_flights" not in df.columns:
        df["total_flights"] = 0
    df["avg_delay"] = pd.to_numeric(df["avg_delay_minutes"], errors="coerce").fillna(0).round(1)
    df["label"] = df["flight_date"].dt.strftime("%Y-%m-%d").map(format_date_short)

    fig = px.line(
        df,
        x="flight_date",
        y="avg_delay",
        title="Daily Average Delay",
        labels={"avg_delay": "Avg Delay (min)", "flight_date": "Date"},
        hover_data={"label": True, "total_flights": True},
    )
    fig.update_traces(mode="lines+markers")
    fig.update_layout(hovermode="x unified")
    return fig


def register_callbacks(app):
    @app.callback(
        Output("kpi-total-flights", "children"),
        Output("kpi-on-time", "children"),
        Output("kpi-delayed", "children"),
        Output("kpi-cancelled", "children"),
        Output("kpi-avg-delay", "children"),
        Output("bucket-distribution-chart", "figure"),
        Output("insights-cards", "children"),
        Output("trend-chart", "figure"),
        Input("filter-origin", "value"),
        Input("filter-country", "value"),
        Input("filter-city", "value"),
        Input("filter-airline", "value"),
    )
    def update_overview(origin, country, city, airline):
        data = load_dashboard_data()
        if data is None:
            empty = empty_figure("(no data)")
            return "–", "–", "–", "–", "–", empty, [], empty

        routes = filter_routes(data.routes, origin=origin, country=country, city=city, airline=airline)
        totals = aggregate_routes(routes)

        buckets = bucket_breakdown(
            totals,
            data.buckets,
            data.airlines,
            airline=_airline_name(data.routes, airline),
        )

        top_delays = filter_top_delays(get_top_delays(data.tops), origin, country, city)
        insights = compute_insights(top_delays, data.gates)

        return (
            *_kpi_values(totals),
            _bucket_figure(buckets, totals["avgDelayMinutes"]),
            _insight_cards(insights),
            _trend_figure(data.daily_status),
        )
