from __future__ import annotations

import json
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional

from etl.config import get_bucket_name, get_static_data_dir, parse_service_account
from etl.storage import (
    download_objects,
    get_storage_client,
    resolve_object_map,
    with_gates_object,
)
from etl.timestamps import to_iso_z, utc_now


EXPIRATION_HOURS = 6


def build_static_manifest(keys, generated_at=None) -> dict:
    """
    Manifest für das statische Hosting: die URLs zeigen relativ auf
    die synchronisierten Dateien (./data/<key>.json).
    """
    generated_at = generated_at or utc_now()
    expires_at = generated_at + timedelta(hours=EXPIRATION_HOURS)

    return {
        "generated_at": to_iso_z(generated_at),
        "expires_at": to_iso_z(expires_at),
        "urls": {key: f"./data/{key}.json" for key in keys},
    }


def run_sync(client=None, target_dir: Optional[Path] = None) -> dict:
    """
    Lädt alle Exporte aus dem Bucket nach public/data und schreibt
    dort ein manifest.json für das Frontend.
    """

    target_dir = target_dir or get_static_data_dir()
    objects = with_gates_object(resolve_object_map())

    print(f"Lade {len(objects)} Exporte aus GCS nach: {target_dir}")
    downloaded = download_objects(objects, target_dir, client=client)
    for key in objects:
        if key in downloaded:
            print(f"✓ {key} synchronisiert")
        else:
            print(f"⚠ {key} nicht im Bucket gefunden (Pfad {objects[key]})")

    # Manifest listet alle Keys, auch nicht gefundene: fehlende optionale
    # Exporte (gates_analysis) fängt der Loader ab.
    manifest = build_static_manifest(objects.keys())

    manifest_path = target_dir / "manifest.json"
    manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    print(f"✓ manifest.json erstellt: {manifest_path}")

    return manifest


def main() -> None:
    bucket_name = get_bucket_name()
    try:
        credentials = parse_service_account()
    except (RuntimeError, ValueError) as e:
        print(f"❌ Credentials nicht lesbar: {e}")
        sys.exit(1)

    if not bucket_name or not credentials:
        print(
            "❌ Fehlende Env-Variablen für den Sync. "
            "Benötigt: Bucket (SIGNED_GCS_BUCKET_NAME / GCS_BUCKET_NAME) und Credentials."
        )
        sys.exit(1)

    run_sync(client=get_storage_client(credentials))


if __name__ == "__main__":
    main()
