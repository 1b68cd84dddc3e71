from app.callbacks.overview import _airline_name, _kpi_values, _trend_figure
from app.callbacks.routes import _destinations_table
from etl.aggregations import aggregate_routes, top_destinations_from_routes


def test_kpi_values(routes):
    total, on_time, delayed, cancelled, avg_delay = _kpi_values(aggregate_routes(routes))

    assert total == "280"
    assert on_time == "190 (67,9%)"
    assert delayed == "76 (27,1%)"
    assert cancelled == "14 (5,0%)"
    assert avg_delay == "13,9 min", "Eine Nachkommastelle wie im Titel der Bucket-Grafik"


def test_kpi_values_without_flights():
    values = _kpi_values(aggregate_routes([]))

    assert values[1] == "0 (0,0%)"


def test_airline_name_lookup(routes):
    assert _airline_name(routes, "FO") == "Flybondi"
    assert _airline_name(routes, "XX") is None
    assert _airline_name(routes, None) is None


def test_trend_figure_sorted_by_date():
    daily = [
        {"flight_date": "2025-01-03", "avg_delay_minutes": 12.34, "total_flights": 100},
        {"flight_date": "2025-01-01", "avg_delay_minutes": 8.0, "total_flights": 90},
    ]

    fig = _trend_figure(daily)

    assert list(fig.data[0].y) == [8.0, 12.3]


def test_trend_figure_without_data():
    fig = _trend_figure([])

    assert "no data" in fig.layout.title.text


def test_destinations_table_has_rank_column(routes):
    table = _destinations_table(top_destinations_from_routes(routes))

    assert table.__class__.__name__ == "Table"
