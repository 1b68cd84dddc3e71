from __future__ import annotations

import base64
import binascii
import json
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine

load_dotenv()  # liest .env ein


DEFAULT_FLIGHTS_TABLE = "marts.flights_performance"
DEFAULT_EXPIRATION_DAYS = 7

SERVICE_ACCOUNT_ENV_VARS = [
    "GCP_SERVICE_ACCOUNT_JSON",
    "GOOGLE_APPLICATION_CREDENTIALS_JSON",
    "GOOGLE_APPLICATION_CREDENTIALS",
]

BUCKET_ENV_VARS = [
    "SIGNED_GCS_BUCKET_NAME",
    "EXPORT_GCS_BUCKET_NAME",
    "GCS_BUCKET_NAME",
]


def _get_env(name: str) -> str:
    value = os.getenv(name)
    if value is None:
        raise RuntimeError(f"Required env var {name} is not set")
    return value


def get_project_root() -> Path:
    """
    Liefert den Projekt-Root relativ zu diesem File.
    Annahme: dieses Skript liegt in etl/ und data/ liegt direkt im Projektroot.
    """
    return Path(__file__).resolve().parent.parent


def get_warehouse_uri() -> str:
    """
    WAREHOUSE_URI hat Vorrang (beliebige SQLAlchemy-URL),
    sonst wird die Postgres-URL aus den DB_*-Variablen gebaut.
    """
    uri = os.getenv("WAREHOUSE_URI")
    if uri:
        return uri

    db_host = _get_env("DB_HOST")
    db_port = _get_env("DB_PORT")
    db_name = _get_env("DB_NAME")
    db_user = _get_env("DB_USER")
    db_password = _get_env("DB_PASSWORD")

    return f"postgresql+psycopg2://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


def get_engine():
    return create_engine(get_warehouse_uri())


def get_flights_table() -> str:
    return os.getenv("FLIGHTS_TABLE", DEFAULT_FLIGHTS_TABLE)


def get_bucket_name() -> Optional[str]:
    for name in BUCKET_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None


def get_expiration_days() -> int:
    raw = os.getenv("SIGNED_URL_EXPIRATION_DAYS")
    if not raw:
        return DEFAULT_EXPIRATION_DAYS
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(
            f"SIGNED_URL_EXPIRATION_DAYS muss eine ganze Zahl sein, ist aber: {raw!r}"
        ) from e


def get_project_id(service_account: Optional[dict] = None) -> Optional[str]:
    if service_account and service_account.get("project_id"):
        return service_account["project_id"]
    return os.getenv("GCP_PROJECT_ID")


def try_parse_service_account(raw: Optional[str]) -> Optional[dict]:
    """
    Akzeptiert drei Formen:
      - rohes JSON ("{...}")
      - Pfad auf eine existierende .json-Datei
      - base64-kodiertes JSON

    Alles andere liefert None.
    """
    if not raw:
        return None

    trimmed = raw.strip()
    if not trimmed:
        return None

    if trimmed.startswith("{"):
        return json.loads(trimmed)

    if trimmed.endswith(".json"):
        path = Path(trimmed)
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))

    try:
        decoded = base64.b64decode(trimmed, validate=True).decode("utf-8")
        return json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None


def parse_service_account() -> Optional[dict]:
    """
    Sucht die Service-Account-Credentials in den bekannten Env-Variablen.

    Ist keine Variable gesetzt, wird None zurückgegeben (Application Default
    Credentials). Ist eine gesetzt, aber keine davon parsebar, gibt es einen
    RuntimeError.
    """
    candidates = [os.getenv(name) for name in SERVICE_ACCOUNT_ENV_VARS]
    if not any(c and c.strip() for c in candidates):
        return None

    for candidate in candidates:
        parsed = try_parse_service_account(candidate)
        if parsed:
            return parsed

    raise RuntimeError(
        "Invalid service account JSON. Provide raw JSON, base64 JSON, "
        "or a path to a JSON key file."
    )


def get_manifest_location() -> str:
    return os.getenv(
        "MANIFEST_LOCATION",
        str(get_static_data_dir() / "manifest.json"),
    )


def get_static_root() -> Path:
    """
    Wurzel des statischen Hostings. Relative URLs im Manifest
    (./data/<key>.json) werden gegen dieses Verzeichnis aufgelöst.
    """
    raw = os.getenv("STATIC_ROOT")
    if raw:
        return Path(raw)
    return get_project_root() / "public"


def get_static_data_dir() -> Path:
    return get_static_root() / "data"


def get_dashboard_cache_path() -> Path:
    raw = os.getenv("DASHBOARD_CACHE_PATH")
    if raw:
        return Path(raw)
    return get_project_root() / "data" / "cache" / "dashboard.json"
