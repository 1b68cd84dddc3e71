from __future__ import annotations

from typing import List, Optional

import numpy as np
import pandas as pd
from sqlalchemy.engine import Engine

from etl.config import get_engine, get_flights_table


DEFAULT_LIMIT = 20
HOURS_PER_DAY = 24

GATE_FLIGHTS_SQL = """
SELECT
    gate,
    delay_minutes,
    COALESCE(actual_timestamp, scheduled_timestamp) AS event_timestamp
FROM {table}
WHERE gate IS NOT NULL
  AND TRIM(gate) != ''
"""


def load_gate_flights(engine: Engine, table: Optional[str] = None) -> pd.DataFrame:
    """
    Lädt alle Flüge mit Gate aus der Flights-Mart.
    Der Tabellenname kommt aus der Config (FLIGHTS_TABLE), nicht aus dem Request.
    """

    sql = GATE_FLIGHTS_SQL.format(table=table or get_flights_table())
    return pd.read_sql(sql, con=engine)


def _hourly_distribution(df: pd.DataFrame, gates: pd.Series) -> pd.DataFrame:
    hours = df.dropna(subset=["hour"]).copy()
    hours["hour"] = hours["hour"].astype(int)

    counts = (
        hours.groupby(["gate", "hour"]).size().unstack(fill_value=0)
        if not hours.empty
        else pd.DataFrame()
    )
    return counts.reindex(index=gates, columns=range(HOURS_PER_DAY), fill_value=0)


def aggregate_gate_metrics(df: pd.DataFrame, limit: int = DEFAULT_LIMIT) -> List[dict]:
    """
    Kennzahlen pro Gate.

    group by: gate

    Metriken:
      - total_flights
      - avg_delay_minutes (1 Nachkommastelle)
      - delayed_flights (delay > 0), on_time_flights (delay <= 0)
      - on_time_percentage (1 Nachkommastelle)
      - max_delay_minutes
      - time_distribution: 24 Werte, Index = Stunde (UTC) des Ereignisses
    """

    if limit < 1:
        raise ValueError(f"limit muss mindestens 1 sein, ist aber: {limit}")

    required = ["gate", "delay_minutes", "event_timestamp"]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise KeyError(f"Fehlende Spalten für Gate-Aggregation: {missing}")

    if df.empty:
        return []

    df = df.dropna(subset=["gate"]).copy()
    df["gate"] = df["gate"].astype(str).str.strip()
    df = df[df["gate"] != ""]
    if df.empty:
        return []

    df["delay_minutes"] = pd.to_numeric(df["delay_minutes"], errors="coerce")
    df["is_delayed"] = df["delay_minutes"] > 0
    df["is_on_time"] = df["delay_minutes"] <= 0
    df["hour"] = pd.to_datetime(df["event_timestamp"], errors="coerce", utc=True).dt.hour

    grouped = df.groupby("gate", as_index=False, sort=False).agg(
        total_flights=("gate", "size"),
        avg_delay_minutes=("delay_minutes", "mean"),
        delayed_flights=("is_delayed", "sum"),
        on_time_flights=("is_on_time", "sum"),
        max_delay_minutes=("delay_minutes", "max"),
    )

    grouped["avg_delay_minutes"] = grouped["avg_delay_minutes"].round(1).fillna(0)
    grouped["max_delay_minutes"] = grouped["max_delay_minutes"].fillna(0)
    grouped["on_time_percentage"] = (
        grouped["on_time_flights"] / grouped["total_flights"] * 100
    ).round(1)

    grouped = grouped.sort_values("total_flights", ascending=False, kind="stable").head(limit)

    distribution = _hourly_distribution(df, grouped["gate"])

    return [
        {
            "gate": row.gate,
            "total_flights": int(row.total_flights),
            "avg_delay_minutes": float(row.avg_delay_minutes),
            "delayed_flights": int(row.delayed_flights),
            "on_time_flights": int(row.on_time_flights),
            "on_time_percentage": float(row.on_time_percentage),
            "max_delay_minutes": float(row.max_delay_minutes),
            "time_distribution": [int(v) for v in np.asarray(distribution.loc[row.gate])],
        }
        for row in grouped.itertuples()
    ]


def fetch_gate_metrics(limit: int = DEFAULT_LIMIT, engine: Optional[Engine] = None) -> List[dict]:
    engine = engine or get_engine()
    df = load_gate_flights(engine)
    return aggregate_gate_metrics(df, limit=limit)
