#!/usr/bin/env python3
"""
API Test Script

This script tests the REST and WebSocket API of the Fix Tracker in-process,
using the FastAPI test client against a mock provider and a temporary
history log.

Usage:
    python scripts/test_api.py              # Run all tests
    pytest scripts/test_api.py -v           # Run under pytest
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

import fixtrack.core.session as session_module
from fixtrack.core.config import settings
from fixtrack.core.session import SessionCoordinator, NOTHING_TO_EXPORT_MESSAGE, EXPORT_SUCCESS_MESSAGE
from fixtrack.location import MockLocationProvider, StaticPermissionSource, ProviderKind, RawLocation
from fixtrack.storage import HistoryStore, CsvExporter, EMPTY_HISTORY_MESSAGE


HEADER = "Fecha,Hora,Latitud,Longitud,Proveedor,Precision (m),Simulado"


@pytest.fixture
def provider():
    return MockLocationProvider()


@pytest.fixture
def client(tmp_path, monkeypatch, provider):
    """Test client bound to a coordinator writing under tmp_path"""
    monkeypatch.setattr(settings.location, "simulate", False)
    monkeypatch.setattr(settings.logging, "file", None)

    store = HistoryStore(tmp_path / "location_history.txt")
    coordinator = SessionCoordinator(
        provider,
        StaticPermissionSource(),
        store,
        exporter=CsvExporter(store, tmp_path / "exports"),
        interval_ms=1000
    )
    monkeypatch.setattr(session_module, "_session_coordinator", coordinator)

    from fixtrack.api.main import app
    with TestClient(app) as test_client:
        yield test_client


def emit_fix(provider, lat=19.4326, lon=-99.1332):
    provider.emit(RawLocation(latitude=lat, longitude=lon, accuracy=5.0,
                              provider="gps", time_ms=1700000000000))


def test_health(client):
    """Test health and root endpoints"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["websocket_clients"] == 0

    response = client.get("/")
    assert response.status_code == 200
    assert response.json()['name'] == settings.app_name


def test_session_state_after_startup(client):
    """Startup checks permission and starts updates"""
    response = client.get("/api/session")
    assert response.status_code == 200

    data = response.json()
    assert data['permission'] == 'granted'
    assert data['streaming'] is True
    assert data['current_fix'] is None
    assert "X-Process-Time" in response.headers


def test_fix_updates_state(client, provider):
    """A delivered fix shows up as the current fix"""
    emit_fix(provider, lat=1.25, lon=2.5)

    data = client.get("/api/session").json()
    assert data['readiness'] == 'enabled'
    assert data['error'] is None
    assert data['current_fix']['latitude'] == 1.25
    assert data['current_fix']['provider'] == 'gps'
    assert data['current_fix']['provider_label'] == 'GPS'
    assert data['last_saved_fix']['longitude'] == 2.5


def test_permission_signals(client, provider):
    """Denying and granting permission through the API"""
    response = client.post("/api/session/permission", json={"granted": False})
    assert response.status_code == 200
    data = response.json()
    assert data['permission'] == 'denied'
    assert data['error']
    assert data['streaming'] is False
    assert provider.listener_count == 0

    response = client.post("/api/session/refresh")
    assert response.json()['permission'] == 'denied'
    assert provider.listener_count == 0

    response = client.post("/api/session/permission", json={"granted": True})
    data = response.json()
    assert data['permission'] == 'granted'
    assert data['streaming'] is True
    assert provider.listener_count == 1


def test_permission_signal_validation(client):
    """Malformed permission signals are rejected"""
    response = client.post("/api/session/permission", json={})
    assert response.status_code == 422
    assert response.json()['detail'] == "Validation error"


def test_refresh_and_stop(client, provider):
    """Manual refresh and stop"""
    provider.set_provider_enabled(ProviderKind.GPS, False)
    provider.set_provider_enabled(ProviderKind.NETWORK, False)

    data = client.post("/api/session/refresh").json()
    assert data['readiness'] == 'disabled'

    provider.set_provider_enabled(ProviderKind.NETWORK, True)
    data = client.post("/api/session/refresh").json()
    assert data['streaming'] is True
    assert provider.listener_count == 1

    data = client.post("/api/session/stop").json()
    assert data['streaming'] is False
    assert provider.listener_count == 0


def test_settings_target(client):
    response = client.get("/api/session/settings-target")
    assert response.status_code == 200
    assert response.json()['target'] == "mock://settings/location"


def test_history(client, provider):
    """History is empty until a fix is saved"""
    data = client.get("/api/history").json()
    assert data['exists'] is False
    assert data['content'] == EMPTY_HISTORY_MESSAGE

    emit_fix(provider)
    data = client.get("/api/history").json()
    assert data['exists'] is True
    assert "Latitud: 19.4326" in data['content']
    assert "Proveedor: GPS" in data['content']


def test_export_without_history(client):
    """Exporting an empty history reports nothing to export"""
    data = client.post("/api/export/csv").json()
    assert data['exported'] is False
    assert data['status'] == NOTHING_TO_EXPORT_MESSAGE
    assert client.get("/api/session").json()['export_status'] == NOTHING_TO_EXPORT_MESSAGE


def test_export_and_download(client, provider):
    """Export, download, and clear the export status"""
    emit_fix(provider)

    data = client.post("/api/export/csv").json()
    assert data['exported'] is True
    assert data['status'] == EXPORT_SUCCESS_MESSAGE
    assert data['file_name'].startswith("location_history_")

    response = client.get(data['download_url'])
    assert response.status_code == 200
    assert response.headers['content-type'].startswith("text/csv")
    lines = response.text.splitlines()
    assert lines[0] == HEADER
    assert lines[1].endswith(",19.4326,-99.1332,GPS,5.0,No")

    response = client.delete("/api/export/status")
    assert response.status_code == 204
    assert client.get("/api/session").json()['export_status'] is None


def test_download_rejects_bad_names(client):
    response = client.get("/api/export/download/notes.txt")
    assert response.status_code == 400

    response = client.get("/api/export/download/location_history_19700101_000000.csv")
    assert response.status_code == 404


def test_websocket_session(client, provider):
    """WebSocket sends the state on connect and on request"""
    with client.websocket_connect("/ws/session") as websocket:
        message = websocket.receive_json()
        assert message['type'] == 'state'
        assert message['state']['permission'] == 'granted'
        assert client.get("/health").json()["websocket_clients"] == 1

        websocket.send_json({'type': 'get_state'})
        message = websocket.receive_json()
        assert message['type'] == 'state'

        websocket.send_json({'type': 'unknown'})
        message = websocket.receive_json()
        assert message['type'] == 'error'


def main():
    print("\n" + "=" * 60)
    print("  Fix Tracker - API Test Suite")
    print("=" * 60)
    return pytest.main([os.path.abspath(__file__), "-v"])


if __name__ == '__main__':
    sys.exit(main())
