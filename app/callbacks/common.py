from __future__ import annotations

import logging
from typing import Optional

import pandas as pd
import plotly.express as px

from app.data.loader import DashboardData, DataLoadError, get_repository

logger = logging.getLogger(__name__)


def load_dashboard_data() -> Optional[DashboardData]:
    """Dashboard-Daten aus dem Cache; bei Ladefehlern None."""
    try:
        return get_repository().get()
    except DataLoadError as e:
        logger.error("Fehler beim Laden der Dashboard-Daten: %s", e)
        return None


def empty_figure(title: str):
    df_empty = pd.DataFrame({"x": [], "y": []})
    return px.bar(df_empty, x="x", y="y", title=title)
