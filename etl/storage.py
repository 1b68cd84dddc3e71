from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import storage

from etl.config import (
    get_bucket_name,
    get_expiration_days,
    get_project_id,
    parse_service_account,
)
from etl.timestamps import to_iso_z, utc_now

logger = logging.getLogger(__name__)


DEFAULT_OBJECTS: Dict[str, str] = {
    "headline": "prod/exports/headline.json",
    "airline_breakdown": "prod/exports/airline_breakdown.json",
    "tops": "prod/exports/tops.json",
    "bucket_distribution": "prod/exports/bucket_distribution.json",
    "daily_status": "prod/exports/daily_status.json",
    "routes_metrics": "prod/exports/routes_metrics.json",
}

GATES_OBJECT_KEY = "gates_analysis"
GATES_OBJECT_FILENAME = "gates_analysis.json"


def resolve_object_map() -> Dict[str, str]:
    """
    Objekt-Pfade im Bucket, pro Export-Key.
    SIGNED_OBJECT_MAP (JSON-Objekt) überschreibt die Defaults komplett.
    """
    raw_map = os.getenv("SIGNED_OBJECT_MAP")
    if not raw_map:
        return dict(DEFAULT_OBJECTS)

    parsed = json.loads(raw_map)
    if not isinstance(parsed, dict):
        raise ValueError("SIGNED_OBJECT_MAP must be a JSON object")
    return {str(k): str(v) for k, v in parsed.items()}


def with_gates_object(objects: Dict[str, str]) -> Dict[str, str]:
    """Ergänzt gates_analysis im selben Ordner wie headline, falls es fehlt."""
    if GATES_OBJECT_KEY in objects or "headline" not in objects:
        return dict(objects)

    headline_path = objects["headline"]
    prefix, sep, _ = headline_path.rpartition("/")
    result = dict(objects)
    result[GATES_OBJECT_KEY] = f"{prefix}{sep}{GATES_OBJECT_FILENAME}"
    return result


def get_storage_client(service_account: Optional[dict] = None) -> storage.Client:
    if service_account is None:
        service_account = parse_service_account()

    project_id = get_project_id(service_account)

    if service_account:
        return storage.Client.from_service_account_info(service_account, project=project_id)
    return storage.Client(project=project_id)


def build_manifest(
    client: Optional[storage.Client] = None,
    bucket_name: Optional[str] = None,
    objects: Optional[Dict[str, str]] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Erzeugt das Manifest mit V4-Signed-URLs (nur GET) für alle Exporte.

    Rückgabe:
      {generated_at, expires_at, expiration_days, urls: {key: signed_url}}
    """

    bucket_name = bucket_name or get_bucket_name()
    if not bucket_name:
        raise RuntimeError("Missing bucket name")

    client = client or get_storage_client()
    objects = objects if objects is not None else resolve_object_map()

    expiration_days = get_expiration_days()
    generated_at = now or utc_now()
    expires_at = generated_at + timedelta(days=expiration_days)

    bucket = client.bucket(bucket_name)
    urls = {}
    for key, object_path in objects.items():
        urls[key] = bucket.blob(object_path).generate_signed_url(
            version="v4",
            expiration=expires_at,
            method="GET",
        )

    logger.info(
        "Manifest mit %d Signed-URLs erzeugt (Bucket %s, gültig %d Tage)",
        len(urls),
        bucket_name,
        expiration_days,
    )

    return {
        "generated_at": to_iso_z(generated_at),
        "expires_at": to_iso_z(expires_at),
        "expiration_days": expiration_days,
        "urls": urls,
    }


def download_objects(
    objects: Dict[str, str],
    target_dir: Path,
    client: Optional[storage.Client] = None,
    bucket_name: Optional[str] = None,
) -> List[str]:
    """
    Lädt jedes Objekt nach <target_dir>/<key>.json.
    Fehlende Objekte werden geloggt und übersprungen.
    Rückgabe: Liste der erfolgreich geladenen Keys.
    """

    bucket_name = bucket_name or get_bucket_name()
    if not bucket_name:
        raise RuntimeError("Missing bucket name")

    client = client or get_storage_client()
    target_dir.mkdir(parents=True, exist_ok=True)

    bucket = client.bucket(bucket_name)
    downloaded = []
    for key, object_path in objects.items():
        destination = target_dir / f"{key}.json"
        try:
            bucket.blob(object_path).download_to_filename(str(destination))
        except GoogleAPIError as e:
            logger.warning("%s nicht im Bucket gefunden (Pfad %s): %s", key, object_path, e)
            continue
        downloaded.append(key)

    return downloaded
