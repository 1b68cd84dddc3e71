from __future__ import annotations

from datetime import datetime, timezone
from typing import Union


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_z(value: datetime) -> str:
    """ISO-8601 in UTC mit Millisekunden und 'Z', z. B. 2025-01-31T12:00:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def parse_iso(value: Union[str, datetime]) -> datetime:
    """
    Parst ISO-Zeitstempel aus Manifest/Cache. Naive Werte gelten als UTC.
    Ungültige Werte führen zu ValueError.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
