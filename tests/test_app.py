import runpy
from pathlib import Path

import pytest

from app import MAX_BATCH_PROFILES, app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_options_preflight(client):
    assert client.open("/api/derived", method="OPTIONS").status_code == 204
    assert client.open("/api/derived/batch", method="OPTIONS").status_code == 204


class TestDerivedEndpoint:
    def test_supercell(self, client, supercell_body):
        resp = client.post("/api/derived", json=supercell_body)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["derived"]["station_id"] == "OUN"
        assert data["derived"]["sbcape"] > 1000
        assert data["derived"]["totals_totals"] == pytest.approx(54.0)
        assert data["meta"] == {
            "station": "OUN",
            "obsTime": "2024-05-20T00:00:00Z",
            "levels": 17,
            "validLevels": 17,
            "sfcPressure": 1000,
            "topPressure": 100,
        }
        assert "parcels" not in data
        assert "levels" not in data

    def test_include_parcels_and_levels(self, client, supercell_body):
        body = dict(supercell_body, includeParcels=True, includeLevels=True)
        data = client.post("/api/derived", json=body).get_json()
        parcels = data["parcels"]
        assert set(parcels) == {"surfaceBased", "mixedLayer", "mostUnstable", "downdraft"}
        assert parcels["surfaceBased"]["path"][0]["pressure_mb"] == 1000
        assert parcels["downdraft"]["dcape"] > 0
        assert len(data["levels"]) == 17

    def test_units_map(self, client, supercell_body):
        body = dict(supercell_body, units={"wind_speed": "m/s"})
        in_knots = client.post("/api/derived", json=supercell_body).get_json()["derived"]
        in_ms = client.post("/api/derived", json=body).get_json()["derived"]
        assert in_ms["shear_0_6km"] == pytest.approx(in_knots["shear_0_6km"] / 0.514444, rel=1e-3)

    def test_degenerate_profile_is_not_an_error(self, client):
        body = {"station_id": "BAD", "obs_time": "t", "levels": []}
        resp = client.post("/api/derived", json=body)
        assert resp.status_code == 200
        assert resp.get_json()["derived"]["mucape"] == 0
        assert resp.get_json()["meta"]["sfcPressure"] is None

    def test_missing_levels(self, client):
        resp = client.post("/api/derived", json={"station_id": "X"})
        assert resp.status_code == 400
        assert "levels" in resp.get_json()["error"]

    def test_not_json(self, client):
        resp = client.post("/api/derived", data="not json", content_type="text/plain")
        assert resp.status_code == 400


class TestBatchEndpoint:
    def test_results_in_request_order(self, client, supercell_body):
        second = dict(supercell_body, station_id="FWD")
        bad = {"station_id": "BAD", "levels": [{"pressure_mb": 1000}]}
        resp = client.post("/api/derived/batch", json={"profiles": [supercell_body, bad, second]})
        assert resp.status_code == 200
        results = resp.get_json()["results"]
        assert len(results) == 3
        assert results[0]["derived"]["station_id"] == "OUN"
        assert "error" in results[1]
        assert results[2]["derived"]["station_id"] == "FWD"

    def test_requires_profiles(self, client):
        assert client.post("/api/derived/batch", json={}).status_code == 400
        assert client.post("/api/derived/batch", json={"profiles": "x"}).status_code == 400

    def test_batch_limit(self, client, supercell_body):
        body = {"profiles": [supercell_body] * (MAX_BATCH_PROFILES + 1)}
        assert client.post("/api/derived/batch", json=body).status_code == 400


def test_gunicorn_settings_follow_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9123")
    monkeypatch.setenv("WEB_CONCURRENCY", "3")
    monkeypatch.delenv("GUNICORN_TIMEOUT", raising=False)
    settings = runpy.run_path(str(Path(__file__).resolve().parents[1] / "gunicorn.conf.py"))
    assert settings["bind"] == "0.0.0.0:9123"
    assert settings["workers"] == 3
    assert settings["timeout"] == 120
    assert settings["preload_app"] is True
    assert callable(settings["when_ready"])
