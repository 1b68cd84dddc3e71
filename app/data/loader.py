from __future__ import annotations

import dataclasses
import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from urllib.parse import urljoin

import requests

from app.data.cache import TieredCache
from etl.config import get_dashboard_cache_path, get_manifest_location, get_static_root
from etl.timestamps import parse_iso, to_iso_z, utc_now

logger = logging.getLogger(__name__)


REQUIRED_EXPORTS = [
    "headline",
    "airline_breakdown",
    "tops",
    "bucket_distribution",
    "daily_status",
    "routes_metrics",
]
OPTIONAL_EXPORTS = ["gates_analysis"]

REQUEST_TIMEOUT = 30
MAX_WORKERS = 7

LOAD_ERROR_MESSAGE = "Couldn't load data. Please retry in a few minutes."


class DataLoadError(Exception):
    """Manifest oder ein Pflicht-Export konnte nicht geladen werden."""

    user_message = LOAD_ERROR_MESSAGE


def default_headline() -> dict:
    return {
        "total_flights": 0,
        "cancelled_flights": 0,
        "delayed_over_30min": 0,
        "delayed_over_45min": 0,
        "avg_delay_minutes": 0,
        "lookback_days": 0,
        "dbt_updated_at": to_iso_z(utc_now()),
    }


@dataclass(frozen=True)
class DashboardData:
    headline: dict
    airlines: List[dict] = field(default_factory=list)
    tops: List[dict] = field(default_factory=list)
    buckets: List[dict] = field(default_factory=list)
    daily_status: List[dict] = field(default_factory=list)
    routes: List[dict] = field(default_factory=list)
    gates: List[dict] = field(default_factory=list)
    generated_at: Optional[str] = None
    expires_at: Optional[str] = None

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, payload: dict) -> "DashboardData":
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in payload.items() if k in names})


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def resolve_location(location: str, base: Optional[str] = None) -> str:
    """
    Absolute URLs bleiben unverändert. Relative Angaben (./data/x.json)
    werden gegen base aufgelöst, das eine URL oder ein Verzeichnis sein kann.
    """
    if _is_url(location) or not base:
        return location
    if _is_url(base):
        return urljoin(base if base.endswith("/") else base + "/", location)
    if Path(location).is_absolute():
        return location
    return str(Path(base) / location)


def fetch_json(location: str, base: Optional[str] = None, session=None):
    resolved = resolve_location(location, base)

    if _is_url(resolved):
        http = session or requests
        response = http.get(resolved, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        return response.json()

    path = Path(resolved)
    if not path.exists():
        raise FileNotFoundError(f"Datei nicht gefunden: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def fetch_export(location: str, base: Optional[str] = None, session=None) -> List[dict]:
    """Akzeptiert {metadata?, data: [...]} oder ein nacktes Array von Objekten."""
    payload = fetch_json(location, base=base, session=session)
    if isinstance(payload, dict):
        payload = payload.get("data")
        if payload is None:
            return []
    if not isinstance(payload, list):
        raise ValueError(f"Unerwartetes Export-Format in {location}: {type(payload).__name__}")
    if not all(isinstance(row, dict) for row in payload):
        raise ValueError(f"Export {location} enthält Einträge, die keine Objekte sind")
    return payload


def fetch_manifest(location: str, base: Optional[str] = None, session=None) -> dict:
    try:
        manifest = fetch_json(location, base=base, session=session)
    except (requests.RequestException, OSError, ValueError) as e:
        raise DataLoadError(f"Manifest konnte nicht geladen werden ({location}): {e}") from e

    urls = manifest.get("urls") if isinstance(manifest, dict) else None
    if not isinstance(urls, dict):
        raise DataLoadError(f"Manifest ohne 'urls': {location}")

    missing = [key for key in REQUIRED_EXPORTS if not urls.get(key)]
    if missing:
        raise DataLoadError(f"Fehlende Exporte im Manifest: {missing}")

    invalid = [key for key, url in urls.items() if url is not None and not isinstance(url, str)]
    if invalid:
        raise DataLoadError(f"Ungültige URLs im Manifest: {invalid}")

    expires_at = manifest.get("expires_at")
    if expires_at is not None:
        try:
            parse_iso(expires_at)
        except (TypeError, ValueError) as e:
            raise DataLoadError(f"Ungültiges expires_at im Manifest: {expires_at!r}") from e

    return manifest


def load_dashboard_data(
    manifest_location: str,
    base: Optional[str] = None,
    session=None,
    max_workers: int = MAX_WORKERS,
) -> DashboardData:
    """
    Lädt das Manifest und danach alle referenzierten Exporte parallel.

    - Pflicht-Exporte: jeder Fehler führt zu DataLoadError.
    - gates_analysis ist optional: Fehler ergeben eine leere Liste.
    """

    manifest = fetch_manifest(manifest_location, base=base, session=session)
    urls = manifest["urls"]

    jobs = {key: urls[key] for key in REQUIRED_EXPORTS}
    for key in OPTIONAL_EXPORTS:
        if urls.get(key):
            jobs[key] = urls[key]

    results = {key: [] for key in OPTIONAL_EXPORTS}

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(jobs)))) as pool:
        futures = {
            pool.submit(fetch_export, location, base, session): key
            for key, location in jobs.items()
        }
        for future in as_completed(futures):
            key = futures[future]
            try:
                results[key] = future.result()
            except (requests.RequestException, OSError, ValueError) as e:
                if key in OPTIONAL_EXPORTS:
                    logger.warning("Optionaler Export %s nicht verfügbar: %s", key, e)
                    results[key] = []
                    continue
                raise DataLoadError(f"Export {key} konnte nicht geladen werden: {e}") from e

    headline_rows = results["headline"]
    headline = headline_rows[0] if headline_rows else default_headline()

    logger.info(
        "Dashboard-Daten geladen: %d Routen, %d Airlines, %d Gates",
        len(results["routes_metrics"]),
        len(results["airline_breakdown"]),
        len(results["gates_analysis"]),
    )

    return DashboardData(
        headline=headline,
        airlines=results["airline_breakdown"],
        tops=results["tops"],
        buckets=results["bucket_distribution"],
        daily_status=results["daily_status"],
        routes=results["routes_metrics"],
        gates=results["gates_analysis"],
        generated_at=manifest.get("generated_at"),
        expires_at=manifest.get("expires_at"),
    )


class DashboardRepository:
    """Verbindet Loader und Cache: ein Load pro Manifest-Gültigkeit."""

    def __init__(
        self,
        manifest_location: str,
        base: Optional[str] = None,
        cache: Optional[TieredCache] = None,
        session=None,
    ):
        self.manifest_location = manifest_location
        self.base = base
        self.session = session
        self.cache = cache or TieredCache(
            encode=DashboardData.to_dict,
            decode=DashboardData.from_dict,
        )

    def get(self) -> DashboardData:
        return self.cache.get_or_load(self._load)

    def _load(self):
        data = load_dashboard_data(self.manifest_location, base=self.base, session=self.session)
        # ohne expires_at im Manifest wird nicht gecacht
        return data, data.expires_at or utc_now()


_repository: Optional[DashboardRepository] = None


def get_repository() -> DashboardRepository:
    global _repository
    if _repository is None:
        _repository = DashboardRepository(
            manifest_location=get_manifest_location(),
            base=str(get_static_root()),
            cache=TieredCache(
                path=get_dashboard_cache_path(),
                encode=DashboardData.to_dict,
                decode=DashboardData.from_dict,
            ),
            session=requests.Session(),
        )
    return _repository
