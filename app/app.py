import logging

from dash import Dash
import dash_bootstrap_components as dbc

from app.api import register_api
from app.callbacks import register_all_callbacks
from app.layouts import get_dashboard_layout


logging.basicConfig(level=logging.INFO)

app = Dash(
    __name__,
    external_stylesheets=[dbc.themes.BOOTSTRAP],
    suppress_callback_exceptions=True,
)
app.title = "Argentina Flight Punctuality"
server = app.server

app.layout = get_dashboard_layout()

register_all_callbacks(app)
register_api(server)


if __name__ == "__main__":
    app.run(debug=True)
