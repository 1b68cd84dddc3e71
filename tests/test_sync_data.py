import json
from datetime import datetime, timezone

import pytest

from app.data.loader import load_dashboard_data
from etl import sync_data
from etl.sync_data import build_static_manifest, run_sync
from fakes import FakeClient


def _bucket_contents():
    return {
        "prod/exports/headline.json": [{"total_flights": 10, "lookback_days": 30}],
        "prod/exports/airline_breakdown.json": [],
        "prod/exports/tops.json": [],
        "prod/exports/bucket_distribution.json": [],
        "prod/exports/daily_status.json": [],
        "prod/exports/routes_metrics.json": {"metadata": {}, "data": [{"origin_airport_code": "AEP"}]},
    }


def test_build_static_manifest_relative_urls():
    generated = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    manifest = build_static_manifest(["headline", "tops"], generated_at=generated)

    assert manifest == {
        "generated_at": "2025-03-01T12:00:00.000Z",
        "expires_at": "2025-03-01T18:00:00.000Z",
        "urls": {"headline": "./data/headline.json", "tops": "./data/tops.json"},
    }


def test_run_sync_downloads_and_writes_manifest(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("GCS_BUCKET_NAME", "exports")
    target = tmp_path / "public" / "data"

    manifest = run_sync(client=FakeClient(_bucket_contents()), target_dir=target)

    assert (target / "headline.json").exists()
    assert not (target / "gates_analysis.json").exists()
    assert manifest["urls"]["gates_analysis"] == "./data/gates_analysis.json"

    written = json.loads((target / "manifest.json").read_text(encoding="utf-8"))
    assert written == manifest

    out = capsys.readouterr().out
    assert "gates_analysis" in out


def test_synced_site_is_loadable(tmp_path, monkeypatch):
    """Das Ergebnis des Syncs muss direkt vom Loader gelesen werden können."""
    monkeypatch.setenv("GCS_BUCKET_NAME", "exports")
    public = tmp_path / "public"
    run_sync(client=FakeClient(_bucket_contents()), target_dir=public / "data")

    data = load_dashboard_data(str(public / "data" / "manifest.json"), base=str(public))

    assert data.headline["total_flights"] == 10
    assert data.routes == [{"origin_airport_code": "AEP"}]
    assert data.gates == []


def test_main_exits_without_bucket_or_credentials(monkeypatch):
    with pytest.raises(SystemExit) as excinfo:
        sync_data.main()
    assert excinfo.value.code == 1

    monkeypatch.setenv("GCS_BUCKET_NAME", "exports")
    monkeypatch.setenv("GCP_SERVICE_ACCOUNT_JSON", "{kaputt")
    with pytest.raises(SystemExit) as excinfo:
        sync_data.main()
    assert excinfo.value.code == 1
