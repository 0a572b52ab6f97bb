"""API tests: upload, clock control, live tracker payload and timetable retrieval."""

import datetime as dt
import json

import pytest
from fastapi.testclient import TestClient

from backend.deps import get_service, get_state
from backend.main import app
from backend.models.clock import Clock
from backend.models.session import SessionState
from backend.services.timetable_service import TimetableService

TIMETABLE = {
    "name": "Debug day",
    "date": "18 October",
    "trains": [{
        "trainNumber": "Steam1",
        "direction": "southbound",
        "stops": [
            {"station": "Kidderminster", "departure": "10:00", "stopsAt": True},
            {"station": "Bewdley", "arrival": "10:20", "departure": "10:25", "stopsAt": True},
            {"station": "Bridgnorth", "arrival": "11:10", "stopsAt": True},
        ],
    }],
}


@pytest.fixture
def session():
    return SessionState(clock=Clock(now_fn=lambda: dt.datetime(2025, 10, 18, 10, 10)))


@pytest.fixture
def client(tmp_path, session):
    (tmp_path / "debug.json").write_text(json.dumps(TIMETABLE), encoding="utf-8")
    app.dependency_overrides[get_state] = lambda: session
    service = TimetableService(tmp_path)
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestUpload:
    def test_upload_json(self, client, session):
        resp = client.post("/api/upload", files={"file": ("day.json", json.dumps(TIMETABLE), "application/json")})
        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] and body["changed"]
        assert body["name"] == "Debug day"
        assert session.stations == ["Kidderminster", "Bewdley", "Bridgnorth"]

    def test_upload_same_content_unchanged(self, client):
        files = {"file": ("day.json", json.dumps(TIMETABLE), "application/json")}
        client.post("/api/upload", files=files)
        resp = client.post("/api/upload", files=files)
        assert resp.json()["changed"] is False
        assert resp.json()["message"] == "Timetable unchanged"

    def test_upload_wrong_extension(self, client):
        resp = client.post("/api/upload", files={"file": ("day.xlsx", b"xx", "application/octet-stream")})
        assert resp.status_code == 400

    def test_upload_empty_timetable(self, client, session):
        content = json.dumps({"name": "Empty", "trains": []})
        resp = client.post("/api/upload", files={"file": ("day.json", content, "application/json")})
        assert resp.status_code == 400
        assert not session.loaded


class TestClockEndpoints:
    def test_get_clock_live(self, client):
        assert client.get("/api/clock").json() == {"live": True, "minutes": 610, "time": "10:10"}

    def test_step_and_back_to_live(self, client):
        resp = client.post("/api/clock/step", json={"minutes": -5})
        assert resp.json() == {"live": False, "minutes": 605, "time": "10:05"}
        resp = client.post("/api/clock/live")
        assert resp.json()["live"] is True
        assert resp.json()["minutes"] == 610

    def test_step_out_of_range(self, client):
        assert client.post("/api/clock/step", json={"minutes": 5000}).status_code == 422


class TestTrainsEndpoint:
    def test_loads_debug_timetable_and_tracks(self, client):
        resp = client.get("/api/trains", params={"debug": "true"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["time"] == "10:10"
        assert body["stations"] == ["Kidderminster", "Bewdley", "Bridgnorth"]
        assert body["statuses"][0]["train_number"] == "Steam1"
        assert body["statuses"][0]["text"].startswith("Traveling from Kidderminster")

    def test_manual_time_applies(self, client):
        client.get("/api/trains", params={"debug": "true"})
        client.post("/api/clock/step", json={"minutes": 12})
        body = client.get("/api/trains").json()
        assert body["time"] == "10:22"
        assert body["statuses"][0]["text"] == "At Bewdley, departing at 10:25 (in 3 minutes) → Bridgnorth"

    def test_no_timetable_for_today(self, client):
        resp = client.get("/api/trains")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "No timetable found for the current date"


class TestTimetableEndpoints:
    def test_raw_debug_timetable(self, client):
        resp = client.get("/api/timetable", params={"debug": "true"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Debug day"

    def test_raw_timetable_not_found(self, client):
        resp = client.get("/api/timetable")
        assert resp.status_code == 404
        assert resp.json() == {"error": "No timetable found for the current date"}

    def test_reload(self, client, session):
        client.get("/api/trains", params={"debug": "true"})
        resp = client.post("/api/timetable/reload", params={"debug": "true"})
        assert resp.status_code == 200
        assert resp.json()["changed"] is True
        assert session.loaded

    def test_reload_rereads_changed_file(self, client, session, tmp_path):
        client.get("/api/trains", params={"debug": "true"})
        (tmp_path / "debug.json").write_text(json.dumps({**TIMETABLE, "name": "Amended day"}), encoding="utf-8")
        resp = client.post("/api/timetable/reload", params={"debug": "true"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Amended day"
        assert session.timetable.name == "Amended day"

    def test_failed_reload_keeps_loaded_timetable(self, client, session, tmp_path):
        client.get("/api/trains", params={"debug": "true"})
        loaded_hash = session.timetable_hash
        (tmp_path / "debug.json").write_text(json.dumps({"trains": []}), encoding="utf-8")

        resp = client.post("/api/timetable/reload", params={"debug": "true"})
        assert resp.status_code == 422
        assert session.loaded
        assert session.timetable.name == "Debug day"
        assert session.stations == ["Kidderminster", "Bewdley", "Bridgnorth"]
        assert session.train_colors == {"Steam1": "#ff6b6b"}
        assert session.timetable_hash == loaded_hash

        body = client.get("/api/trains").json()
        assert body["statuses"][0]["train_number"] == "Steam1"

    def test_reload_missing_file_keeps_loaded_timetable(self, client, session, tmp_path):
        client.get("/api/trains", params={"debug": "true"})
        (tmp_path / "debug.json").unlink()
        resp = client.post("/api/timetable/reload", params={"debug": "true"})
        assert resp.status_code == 404
        assert session.timetable.name == "Debug day"

    def test_corrupt_file_is_server_error(self, client, session, tmp_path):
        client.get("/api/trains", params={"debug": "true"})
        (tmp_path / "debug.json").write_text("{oops", encoding="utf-8")
        resp = client.post("/api/timetable/reload", params={"debug": "true"})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "An error occurred while retrieving the timetable"
        assert session.timetable.name == "Debug day"

    def test_corrupt_file_on_first_load_is_server_error(self, client, tmp_path):
        (tmp_path / "debug.json").write_text("{oops", encoding="utf-8")
        resp = client.get("/api/trains", params={"debug": "true"})
        assert resp.status_code == 500
        assert client.get("/api/timetable", params={"debug": "true"}).status_code == 500

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["service"] == "LiveTrainTracker"
