from __future__ import annotations

from typing import Dict, List, Optional

import numpy as np
import pandas as pd


ROUTE_COUNT_COLUMNS = [
    "total_flights",
    "total_completed_flights",
    "total_cancelled_flights",
    "total_delayed_flights",
    "total_on_time_flights",
]

ROUTE_TEXT_COLUMNS = [
    "origin_airport_code",
    "origin_airport_name",
    "origin_city",
    "origin_country",
    "destination_airport_code",
    "destination_airport_name",
    "destination_city",
    "destination_country",
    "airline_code",
    "airline_name",
]

BUCKET_ORDER = [
    "on_time_or_early",
    "delay_15_0",
    "delay_30_15",
    "delay_45_30",
    "delay_over_45",
    "cancelled",
]

HOURS_PER_DAY = 24


def normalize_text(value: Optional[str]) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def normalize_code(value: Optional[str]) -> str:
    if value is None:
        return ""
    return str(value).strip().upper()


def _routes_frame(routes: List[dict]) -> pd.DataFrame:
    """
    Baut aus den Route-Records einen DataFrame mit garantierten Spalten.
    Fehlende Zähler werden zu 0, fehlende Texte zu "".
    """

    df = pd.DataFrame(list(routes))

    for col in ROUTE_COUNT_COLUMNS + ["avg_delay_minutes"]:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0)
        else:
            df[col] = 0

    for col in ROUTE_TEXT_COLUMNS:
        if col in df.columns:
            df[col] = df[col].fillna("").astype(str)
        else:
            df[col] = ""

    return df


def _as_codes(series: pd.Series) -> pd.Series:
    return series.fillna("").astype(str).str.strip().str.upper()


def _as_texts(series: pd.Series) -> pd.Series:
    return series.fillna("").astype(str).str.strip().str.lower()


def _route_mask(
    df: pd.DataFrame,
    origin: Optional[str] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
    airline: Optional[str] = None,
) -> pd.Series:
    mask = pd.Series(True, index=df.index)

    origin_filter = normalize_code(origin)
    country_filter = normalize_text(country)
    city_filter = normalize_text(city)
    airline_filter = normalize_code(airline)

    if origin_filter:
        mask &= _as_codes(df["origin_airport_code"]) == origin_filter
    if country_filter:
        mask &= _as_texts(df["destination_country"]) == country_filter
    if city_filter:
        mask &= _as_texts(df["destination_city"]) == city_filter
    if airline_filter:
        mask &= _as_codes(df["airline_code"]) == airline_filter

    return mask


def filter_routes(
    routes: List[dict],
    origin: Optional[str] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
    airline: Optional[str] = None,
) -> List[dict]:
    """
    Filtert Routen per exaktem Vergleich nach Normalisierung.

    Origin/Airline werden als Codes verglichen (trim, upper),
    Land/Stadt als Text (trim, lower). Leere Filter werden ignoriert,
    die Reihenfolge der Eingabe bleibt erhalten.
    """

    if not routes:
        return []

    df = _routes_frame(routes)
    mask = _route_mask(df, origin=origin, country=country, city=city, airline=airline)
    return [routes[i] for i in df.index[mask]]


def aggregate_routes(routes: List[dict]) -> Dict[str, float]:
    """
    Summiert die Zähler aller Routen und berechnet die gewichtete
    Durchschnittsverspätung:

        avgDelayMinutes = Σ(avg_delay_i × flights_i) / Σ(flights_i)

    Bei 0 Flügen ist der Durchschnitt 0 (nie NaN).
    """

    if not routes:
        return {
            "totalFlights": 0,
            "totalOnTime": 0,
            "totalDelayed": 0,
            "totalCancelled": 0,
            "avgDelayMinutes": 0.0,
        }

    df = _routes_frame(routes)

    total_flights = int(df["total_flights"].sum())
    total_delay_minutes = float((df["avg_delay_minutes"] * df["total_flights"]).sum())

    avg_delay = total_delay_minutes / total_flights if total_flights > 0 else 0.0

    return {
        "totalFlights": total_flights,
        "totalOnTime": int(df["total_on_time_flights"].sum()),
        "totalDelayed": int(df["total_delayed_flights"].sum()),
        "totalCancelled": int(df["total_cancelled_flights"].sum()),
        "avgDelayMinutes": avg_delay,
    }


def get_unique_origins(routes: List[dict]) -> List[dict]:
    """Eindeutige Abflughäfen (nach Code), erster Treffer gewinnt."""

    if not routes:
        return []

    df = _routes_frame(routes)
    df["code"] = _as_codes(df["origin_airport_code"])
    df = df[df["code"] != ""].drop_duplicates(subset="code", keep="first")

    return [
        {"code": row.code, "name": row.origin_airport_name, "city": row.origin_city}
        for row in df.itertuples()
    ]


def _sorted_unique(series: pd.Series) -> List[str]:
    values = series.fillna("").astype(str).str.strip()
    return sorted(v for v in values.unique() if v)


def get_unique_countries(routes: List[dict], origin: Optional[str] = None) -> List[str]:
    if not routes:
        return []

    df = _routes_frame(routes)
    df = df[_route_mask(df, origin=origin)]
    return _sorted_unique(df["destination_country"])


def get_unique_cities(
    routes: List[dict],
    origin: Optional[str] = None,
    country: Optional[str] = None,
) -> List[str]:
    if not routes:
        return []

    df = _routes_frame(routes)
    df = df[_route_mask(df, origin=origin, country=country)]
    return _sorted_unique(df["destination_city"])


def get_unique_airlines(
    routes: List[dict],
    origin: Optional[str] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
) -> List[dict]:
    if not routes:
        return []

    df = _routes_frame(routes)
    df = df[_route_mask(df, origin=origin, country=country, city=city)]
    df = df[df["airline_code"] != ""].drop_duplicates(subset="airline_code", keep="first")

    return [{"code": row.airline_code, "name": row.airline_name} for row in df.itertuples()]


def airline_ranking(routes: List[dict], limit: int = 8) -> List[dict]:
    """
    Pünktlichkeits-Ranking pro Airline über die (gefilterten) Routen.

    group by: airline_code

    Metriken:
      - total_flights
      - on_time_percentage
      - avg_delay_minutes (gewichtet mit total_flights)
    """

    if not routes:
        return []

    df = _routes_frame(routes)
    df["delay_minutes"] = df["avg_delay_minutes"] * df["total_flights"]

    grouped = df.groupby("airline_code", as_index=False, sort=False).agg(
        airline_name=("airline_name", "first"),
        total_flights=("total_flights", "sum"),
        on_time_flights=("total_on_time_flights", "sum"),
        delay_minutes=("delay_minutes", "sum"),
    )

    has_flights = grouped["total_flights"] > 0
    grouped["on_time_percentage"] = np.where(
        has_flights,
        grouped["on_time_flights"] / grouped["total_flights"].where(has_flights, 1) * 100,
        0.0,
    )
    grouped["avg_delay_minutes"] = np.where(
        has_flights,
        grouped["delay_minutes"] / grouped["total_flights"].where(has_flights, 1),
        0.0,
    )

    grouped = grouped.sort_values("on_time_percentage", ascending=False, kind="stable")

    return [
        {
            "airline_code": row.airline_code,
            "airline_name": row.airline_name,
            "total_flights": int(row.total_flights),
            "on_time_percentage": float(row.on_time_percentage),
            "avg_delay_minutes": float(row.avg_delay_minutes),
        }
        for row in grouped.head(limit).itertuples()
    ]


def top_destinations_from_routes(routes: List[dict], limit: int = 10) -> List[dict]:
    """
    Top-Destinationen aus den Routen, gruppiert nach Stadt und Land.
    Sortiert nach total_flights absteigend, Rang 1..n.
    """

    if not routes:
        return []

    df = _routes_frame(routes)
    df["delay_minutes"] = df["avg_delay_minutes"] * df["total_flights"]

    grouped = df.groupby(
        ["destination_city", "destination_country"], as_index=False, sort=False
    ).agg(
        total_flights=("total_flights", "sum"),
        delay_minutes=("delay_minutes", "sum"),
    )

    grouped = grouped[
        (grouped["destination_city"] != "") & (grouped["destination_country"] != "")
    ]
    grouped = grouped.sort_values("total_flights", ascending=False, kind="stable").head(limit)

    result = []
    for rank, row in enumerate(grouped.itertuples(), start=1):
        total = int(row.total_flights)
        result.append(
            {
                "destination_city": row.destination_city,
                "destination_country": row.destination_country,
                "total_flights": total,
                "avg_delay_minutes": float(row.delay_minutes) / total if total > 0 else 0.0,
                "rank": rank,
            }
        )
    return result


def _rank_key(record: dict) -> float:
    return record.get("rank") or 0


def get_top_destinations(tops: List[dict]) -> List[dict]:
    destinations = [
        {
            "destination_city": record.get("destination_city") or "",
            "destination_country": record.get("destination_country") or "",
            "total_flights": record.get("total_flights") or 0,
            "avg_delay_minutes": record.get("avg_delay_minutes") or 0,
            "rank": record.get("rank"),
        }
        for record in tops
        if record.get("record_type") == "top_destination"
    ]
    destinations = [d for d in destinations if d["destination_city"] and d["destination_country"]]
    return sorted(destinations, key=_rank_key)


def get_top_delays(tops: List[dict]) -> List[dict]:
    return sorted((r for r in tops if r.get("record_type") == "top_delay"), key=_rank_key)


def get_top_early(tops: List[dict]) -> List[dict]:
    return sorted((r for r in tops if r.get("record_type") == "top_early"), key=_rank_key)


def filter_top_delays(
    records: List[dict],
    origin: Optional[str] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
) -> List[dict]:
    # exakter Vergleich, die Top-Listen kommen bereits normalisiert aus dem Export
    result = []
    for record in records:
        if origin and record.get("origin_airport_code") != origin:
            continue
        if country and record.get("destination_country") != country:
            continue
        if city and record.get("destination_city") != city:
            continue
        result.append(record)
    return result


def bucket_total(buckets: List[dict]) -> int:
    return int(sum(b.get("total_flights") or 0 for b in buckets))


def bucket_breakdown(
    route_totals: Dict[str, float],
    buckets: List[dict],
    airlines: List[dict],
    airline: Optional[str] = None,
) -> List[dict]:
    """
    Verspätungs-Buckets passend zu den aktuellen Filtern.

    - Mit Airline-Filter und vorhandenem Breakdown: Buckets direkt aus
      airline_breakdown.
    - Sonst: on_time_or_early / cancelled aus den Routen-Totals, die
      delay_*-Buckets werden anteilig (globale Verteilung) auf
      totalDelayed hochgerechnet.
    """

    if airline:
        wanted = normalize_text(airline)
        match = next(
            (a for a in airlines if normalize_text(a.get("airline_name")) == wanted),
            None,
        )
        if match is not None:
            return [
                {"bucket": "on_time_or_early", "total_flights": int(match.get("on_time_or_early") or 0)},
                {"bucket": "delay_15_0", "total_flights": int(match.get("delay_15_0") or 0)},
                {"bucket": "delay_30_15", "total_flights": int(match.get("delay_30_15") or 0)},
                {"bucket": "delay_45_30", "total_flights": int(match.get("delay_45_30") or 0)},
                {"bucket": "delay_over_45", "total_flights": int(match.get("delay_over_45") or 0)},
                {"bucket": "cancelled", "total_flights": int(match.get("cancelled_flights") or 0)},
            ]

    delay_buckets = [b for b in buckets if "delay_" in str(b.get("bucket", ""))]
    global_delayed_total = bucket_total(delay_buckets)
    total_delayed = route_totals.get("totalDelayed", 0)

    scaled = []
    for b in delay_buckets:
        if global_delayed_total > 0:
            share = (b.get("total_flights") or 0) / global_delayed_total
            count = int(np.floor(share * total_delayed + 0.5))
        else:
            count = 0
        scaled.append({"bucket": b["bucket"], "total_flights": count})

    return (
        [{"bucket": "on_time_or_early", "total_flights": int(route_totals.get("totalOnTime", 0))}]
        + scaled
        + [{"bucket": "cancelled", "total_flights": int(route_totals.get("totalCancelled", 0))}]
    )


def _hourly_matrix(gates: List[dict]) -> np.ndarray:
    rows = []
    for gate in gates:
        dist = list(gate.get("time_distribution") or [])[:HOURS_PER_DAY]
        dist += [0] * (HOURS_PER_DAY - len(dist))
        rows.append(dist)
    if not rows:
        return np.zeros((0, HOURS_PER_DAY), dtype=int)
    return np.asarray(rows, dtype=float)


def gate_heatmap(gates: List[dict]) -> dict:
    """
    Gate × Stunde-Matrix für die Auslastungsansicht.

    Zeilen = Gates nach total_flights absteigend, Spalten = Stunden 0..23.
    Werte normalisiert auf die größte Zelle (0..1); max_value ist der Rohwert.
    """

    ordered = sorted(gates, key=lambda g: g.get("total_flights") or 0, reverse=True)
    counts = _hourly_matrix(ordered)
    max_value = float(counts.max()) if counts.size else 0.0

    normalized = counts / max_value if max_value > 0 else np.zeros_like(counts, dtype=float)

    return {
        "gates": [str(g.get("gate")) for g in ordered],
        "hours": list(range(HOURS_PER_DAY)),
        "counts": counts.astype(int),
        "matrix": normalized,
        "max_value": int(max_value),
    }


def compute_insights(top_delays: List[dict], gates: List[dict]) -> dict:
    """
    Drei Kennzahlen für die Insight-Karten:

      - peak_hour / peak_count: Stunde mit den meisten Flügen über alle Gates
      - worst_flight: erster Eintrag der Top-Delays (nach Rang sortiert)
      - best_gate: Gate mit > 10 Flügen und höchster Pünktlichkeit
    """

    hourly_totals = _hourly_matrix(gates).sum(axis=0)

    peak_hour = int(np.argmax(hourly_totals))
    peak_count = int(hourly_totals[peak_hour])

    worst_flight = top_delays[0] if top_delays else None

    candidates = [g for g in gates if (g.get("total_flights") or 0) > 10]
    best_gate = None
    for gate in candidates:
        if best_gate is None or (gate.get("on_time_percentage") or 0) > (
            best_gate.get("on_time_percentage") or 0
        ):
            best_gate = gate

    return {
        "peak_hour": peak_hour,
        "peak_count": peak_count,
        "worst_flight": worst_flight,
        "best_gate": best_gate,
    }


def gate_summary(gates: List[dict]) -> dict:
    if not gates:
        return {"avg_delay_minutes": 0.0, "total_flights": 0, "avg_on_time_percentage": 0.0}

    df = pd.DataFrame(gates)
    avg_delay = pd.to_numeric(df["avg_delay_minutes"], errors="coerce").fillna(0).round(1).mean()
    on_time = pd.to_numeric(df["on_time_percentage"], errors="coerce").fillna(0).mean()

    return {
        "avg_delay_minutes": round(float(avg_delay), 1),
        "total_flights": int(pd.to_numeric(df["total_flights"], errors="coerce").fillna(0).sum()),
        "avg_on_time_percentage": round(float(on_time), 1),
    }
