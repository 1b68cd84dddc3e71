from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from sqlalchemy.exc import SQLAlchemyError

from etl.config import get_bucket_name, parse_service_account
from etl.gates import DEFAULT_LIMIT, fetch_gate_metrics
from etl.storage import build_manifest, get_storage_client
from etl.timestamps import to_iso_z, utc_now

logger = logging.getLogger(__name__)


CACHE_CONTROL = "s-maxage=3600, stale-while-revalidate=3600, max-age=0"

api = Blueprint("api", __name__, url_prefix="/api")


def _cached_json(payload):
    response = jsonify(payload)
    response.headers["Cache-Control"] = CACHE_CONTROL
    return response


@api.get("/manifest")
def get_manifest():
    """Manifest mit Signed-URLs für alle Dashboard-Exporte."""
    bucket_name = get_bucket_name()
    if not bucket_name:
        return jsonify({"error": "Missing bucket name"}), 500

    try:
        service_account = parse_service_account()
    except (RuntimeError, ValueError) as e:
        return jsonify({"error": str(e) or "Failed to parse service account JSON"}), 500

    try:
        client = get_storage_client(service_account)
        manifest = build_manifest(client=client, bucket_name=bucket_name)
    # AttributeError: Credentials ohne Private Key können nicht signieren
    except (GoogleAPIError, GoogleAuthError, OSError, ValueError, AttributeError) as e:
        logger.error("Signed-URLs konnten nicht erzeugt werden: %s", e)
        return jsonify({"error": "Failed to generate signed URLs"}), 500

    return _cached_json(manifest)


@api.get("/gates")
def get_gates():
    """Gate-Kennzahlen direkt aus dem Warehouse (?limit=20)."""
    limit = request.args.get("limit", default=DEFAULT_LIMIT, type=int)
    if limit < 1:
        return jsonify({"error": "limit must be a positive integer"}), 400

    try:
        data = fetch_gate_metrics(limit=limit)
    except (SQLAlchemyError, RuntimeError, KeyError) as e:
        logger.error("Failed to fetch gates data: %s", e)
        return jsonify({"error": "Failed to fetch gates data"}), 500

    return _cached_json(
        {
            "data": data,
            "metadata": {
                "total_gates": len(data),
                "fetched_at": to_iso_z(utc_now()),
            },
        }
    )


def register_api(server) -> None:
    server.register_blueprint(api)
