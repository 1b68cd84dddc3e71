"""
Gemeinsame Fixtures. Die Tests laufen ohne GCP-Credentials, ohne Bucket
und ohne Warehouse; alles Externe wird durch kleine Fakes ersetzt.
"""

import pytest


ENV_VARS = [
    "WAREHOUSE_URI",
    "FLIGHTS_TABLE",
    "SIGNED_GCS_BUCKET_NAME",
    "EXPORT_GCS_BUCKET_NAME",
    "GCS_BUCKET_NAME",
    "SIGNED_OBJECT_MAP",
    "SIGNED_URL_EXPIRATION_DAYS",
    "GCP_SERVICE_ACCOUNT_JSON",
    "GOOGLE_APPLICATION_CREDENTIALS_JSON",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "GCP_PROJECT_ID",
    "MANIFEST_LOCATION",
    "STATIC_ROOT",
    "DASHBOARD_CACHE_PATH",
    "DB_HOST",
    "DB_PORT",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Entfernt alle Config-Variablen, damit lokale .env-Werte nicht stören."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _route(origin, country, city, airline, flights, on_time, delayed, cancelled, avg_delay):
    return {
        "origin_airport_code": origin,
        "origin_airport_name": f"Aeropuerto {origin}",
        "origin_city": "Buenos Aires",
        "origin_country": "Argentina",
        "destination_airport_code": city[:3].upper(),
        "destination_airport_name": f"Aeropuerto {city}",
        "destination_city": city,
        "destination_country": country,
        "airline_code": airline,
        "airline_name": {"AR": "Aerolineas Argentinas", "FO": "Flybondi", "WJ": "JetSMART"}[airline],
        "window_start_date": "2025-01-01",
        "window_end_date": "2025-03-01",
        "total_flights": flights,
        "total_completed_flights": flights - cancelled,
        "total_cancelled_flights": cancelled,
        "total_delayed_flights": delayed,
        "total_on_time_flights": on_time,
        "avg_delay_minutes": avg_delay,
        "on_time_percentage": on_time / flights * 100 if flights else 0,
        "delayed_percentage": delayed / flights * 100 if flights else 0,
        "cancellation_rate": cancelled / flights * 100 if flights else 0,
    }


@pytest.fixture()
def routes():
    return [
        _route("AEP", "Argentina", "Cordoba", "AR", 100, 70, 25, 5, 12.0),
        _route("AEP", "Argentina", "Mendoza", "FO", 50, 30, 18, 2, 20.0),
        _route("EZE", "Brasil", "Sao Paulo", "AR", 80, 60, 16, 4, 8.0),
        _route("EZE", "Argentina", "Cordoba", "WJ", 20, 10, 9, 1, 30.0),
        _route("AEP", "Argentina", "Cordoba", "FO", 30, 20, 8, 2, 15.0),
    ]


@pytest.fixture()
def gates():
    distribution_a = [0] * 24
    distribution_a[8] = 10
    distribution_a[18] = 5
    distribution_b = [0] * 24
    distribution_b[8] = 3
    distribution_b[19] = 9
    return [
        {
            "gate": "5",
            "total_flights": 15,
            "avg_delay_minutes": 12.5,
            "delayed_flights": 6,
            "on_time_flights": 9,
            "on_time_percentage": 60.0,
            "max_delay_minutes": 90,
            "time_distribution": distribution_a,
        },
        {
            "gate": "12",
            "total_flights": 12,
            "avg_delay_minutes": 4.0,
            "delayed_flights": 2,
            "on_time_flights": 10,
            "on_time_percentage": 83.3,
            "max_delay_minutes": 25,
            "time_distribution": distribution_b,
        },
        {
            "gate": "3",
            "total_flights": 4,
            "avg_delay_minutes": 0.0,
            "delayed_flights": 0,
            "on_time_flights": 4,
            "on_time_percentage": 100.0,
            "max_delay_minutes": 0,
            "time_distribution": [0] * 24,
        },
    ]
