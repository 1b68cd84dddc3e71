from dash import Input, Output, html
import dash_bootstrap_components as dbc
import pandas as pd
import plotly.express as px

from app.callbacks.common import empty_figure, load_dashboard_data
from app.format import format_number
from etl.aggregations import airline_ranking, filter_routes, top_destinations_from_routes


TOP_DESTINATIONS_LIMIT = 15


def _ranking_figure(ranking):
    if not ranking:
        return empty_figure("On-Time Ranking (no airline data for these filters)")

    df = pd.DataFrame(ranking)
    df["on_time_percentage"] = df["on_time_percentage"].round(1)

    fig = px.bar(
        df,
        x="on_time_percentage",
        y="airline_name",
        orientation="h",
        title="On-Time Ranking",
        labels={"on_time_percentage": "On time (%)", "airline_name": "Airline"},
        hover_data={"total_flights": True, "avg_delay_minutes": ":.1f"},
    )
    fig.update_layout(yaxis={"categoryorder": "total ascending"})
    return fig


def _destinations_table(destinations):
    if not destinations:
        return html.P("No destinations for the selected filters.", className="text-muted")

    df = pd.DataFrame(destinations)
    df["Flights"] = df["total_flights"].map(format_number)
    df["Avg Delay (min)"] = df["avg_delay_minutes"].map(lambda v: format_number(v, 1))
    df = df.rename(
        columns={
            "rank": "#",
            "destination_city": "City",
            "destination_country": "Country",
        }
    )[["#", "City", "Country", "Flights", "Avg Delay (min)"]]

    return dbc.Table.from_dataframe(df, striped=True, bordered=False, hover=True, size="sm")


def register_callbacks(app):
    @app.callback(
        Output("airlines-ranking-chart", "figure"),
        Output("top-destinations-table", "children"),
        Input("filter-origin", "value"),
        Input("filter-country", "value"),
        Input("filter-city", "value"),
        Input("filter-airline", "value"),
    )
    def update_routes_section(origin, country, city, airline):
        data = load_dashboard_data()
        if data is None:
            return empty_figure("(no data)"), []

        routes = filter_routes(data.routes, origin=origin, country=country, city=city, airline=airline)

        return (
            _ranking_figure(airline_ranking(routes)),
            _destinations_table(top_destinations_from_routes(routes, limit=TOP_DESTINATIONS_LIMIT)),
        )
