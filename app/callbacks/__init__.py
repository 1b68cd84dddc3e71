from .filters import register_callbacks as register_filter_callbacks
from .overview import register_callbacks as register_overview_callbacks
from .routes import register_callbacks as register_routes_callbacks
from .gates import register_callbacks as register_gates_callbacks


def register_all_callbacks(app):
    register_filter_callbacks(app)
    register_overview_callbacks(app)
    register_routes_callbacks(app)
    register_gates_callbacks(app)
