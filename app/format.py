from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pandas as pd


MONTHS_ES = ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sep", "oct", "nov", "dic"]


def format_number(value: Optional[float], decimals: int = 0) -> str:
    """Zahl im es-AR-Format: Punkt als Tausender-, Komma als Dezimaltrenner."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    if not math.isfinite(number):
        number = 0.0

    # Halbe Einheiten runden weg von 0 (2.5 -> 3), nicht auf gerade Ziffern
    rounded = Decimal(repr(number)).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    formatted = f"{rounded:,.{decimals}f}"
    return formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def format_percentage(value: Optional[float]) -> str:
    return f"{format_number(value, 1)}%"


def format_date_short(value: str) -> str:
    """'2025-01-05' -> '05 ene'. Nicht parsebare Werte kommen unverändert zurück."""
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return value
    return f"{parsed.day:02d} {MONTHS_ES[parsed.month - 1]}"
