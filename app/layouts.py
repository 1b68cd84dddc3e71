from dash import dcc, html
import dash_bootstrap_components as dbc


WINDOW_DAYS_OPTIONS = [
    {"label": "30 days", "value": "30"},
    {"label": "60 days", "value": "60"},
    {"label": "90 days", "value": "90"},
]

GATES_VIEW_OPTIONS = [
    {"label": "Avg Delay", "value": "delay"},
    {"label": "Flights", "value": "flights"},
    {"label": "On-Time %", "value": "ontime"},
    {"label": "Concurrency", "value": "concurrency"},
]


def _filter_col(label, component_id, placeholder):
    return dbc.Col(
        [
            html.Label(label),
            dcc.Dropdown(
                id=component_id,
                options=[],
                placeholder=placeholder,
            ),
        ],
        md=2,
    )


def _kpi_card(title, component_id):
    return dbc.Col(
        dbc.Card(
            dbc.CardBody(
                [
                    html.H6(title, className="text-muted"),
                    html.H4("–", id=component_id),
                ]
            )
        ),
        md=True,
    )


def get_filters_layout():
    """Filterzeile: Origin -> Land -> Stadt -> Airline, plus Zeitfenster."""
    return dbc.Row(
        [
            _filter_col("Origin", "filter-origin", "Choose an Airport..."),
            _filter_col("Country", "filter-country", "All countries"),
            _filter_col("City", "filter-city", "All cities"),
            _filter_col("Airline", "filter-airline", "All airlines"),
            dbc.Col(
                [
                    html.Label("Window"),
                    dcc.Dropdown(
                        id="filter-window-days",
                        options=WINDOW_DAYS_OPTIONS,
                        value="60",
                        clearable=False,
                    ),
                ],
                md=2,
            ),
        ],
        className="mb-4",
    )


def get_kpi_layout():
    return dbc.Row(
        [
            _kpi_card("Flights", "kpi-total-flights"),
            _kpi_card("On Time", "kpi-on-time"),
            _kpi_card("Delayed", "kpi-delayed"),
            _kpi_card("Cancelled", "kpi-cancelled"),
            _kpi_card("Avg Delay (min)", "kpi-avg-delay"),
        ],
        className="mb-4",
    )


def get_dashboard_layout():
    """Gesamtes Dashboard auf einer Seite."""
    return dbc.Container(
        [
            dcc.Location(id="url", refresh=False),
            dbc.Row(
                dbc.Col(
                    [
                        html.H2("Argentina Flight Punctuality", className="mt-3"),
                        html.P(id="dashboard-generated-at", className="text-muted"),
                    ],
                    width=12,
                )
            ),
            html.Div(id="dashboard-error"),
            get_filters_layout(),
            get_kpi_layout(),
            dbc.Row(
                [
                    dbc.Col(dcc.Graph(id="bucket-distribution-chart"), md=6),
                    dbc.Col(dcc.Graph(id="airlines-ranking-chart"), md=6),
                ],
                className="mb-4",
            ),
            dbc.Row(
                [
                    dbc.Col(
                        [
                            html.H4("Top Destinations"),
                            html.Div(id="top-destinations-table"),
                        ],
                        md=6,
                    ),
                    dbc.Col(
                        [
                            html.H4("Insights"),
                            html.Div(id="insights-cards"),
                        ],
                        md=6,
                    ),
                ],
                className="mb-4",
            ),
            dbc.Row(
                dbc.Col(dcc.Graph(id="trend-chart"), width=12),
                className="mb-4",
            ),
            dbc.Row(
                [
                    dbc.Col(
                        [
                            html.H4("Gates"),
                            dbc.RadioItems(
                                id="gates-view-mode",
                                options=GATES_VIEW_OPTIONS,
                                value="delay",
                                inline=True,
                            ),
                            html.P(id="gates-summary", className="text-muted"),
                            dcc.Graph(id="gates-chart"),
                        ],
                        width=12,
                    ),
                ]
            ),
        ],
        fluid=True,
    )
