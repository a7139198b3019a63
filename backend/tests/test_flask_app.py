"""
Tests for the Flask variant of the API.
"""

import pytest

from trackheat.flask_app import app, create_app
from trackheat.services.repository import get_repository


@pytest.fixture
def client(data_folder):
    create_app(data_folder)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def empty_client(tmp_path):
    create_app(tmp_path / "missing")
    app.config["TESTING"] = True
    return app.test_client()


class TestFlaskEndpoints:
    """Same endpoints as the FastAPI app."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.get_json()["name"] == "Trackheat"

    def test_health(self, client, data_folder):
        data = client.get("/health").get_json()

        assert data["status"] == "healthy"
        assert data["track_count"] == 3

    def test_create_app_without_folder(self, empty_client):
        assert get_repository().data_folder is None
        assert empty_client.get("/folder").get_json() == {"path": None, "track_count": 0}

    def test_set_folder(self, empty_client, data_folder):
        response = empty_client.post("/folder", json={"path": str(data_folder)})

        assert response.status_code == 200
        assert response.get_json()["track_count"] == 3

    def test_set_folder_errors(self, empty_client, tmp_path):
        assert empty_client.post("/folder", json={}).status_code == 400
        assert empty_client.post("/folder", json={"path": str(tmp_path / "nope")}).status_code == 400
        assert empty_client.post("/folder/rescan").status_code == 400

    def test_tracks(self, client):
        tracks = client.get("/tracks").get_json()
        assert len(tracks) == 3

        track_id = tracks[0]["id"]
        assert client.get(f"/tracks/{track_id}").get_json() == tracks[0]
        assert client.get("/tracks/unknown").status_code == 404

    def test_points(self, client):
        track_id = client.get("/tracks").get_json()[0]["id"]

        data = client.get(f"/tracks/{track_id}/points?simplify_max=10").get_json()

        assert len(data["latlon"]) <= 10
        assert len(data["points"]) == data["point_count"]

    def test_points_bad_query(self, client):
        track_id = client.get("/tracks").get_json()[0]["id"]

        assert client.get(f"/tracks/{track_id}/points?simplify_max=abc").status_code == 400
        assert client.get(f"/tracks/{track_id}/points?simplify_max=1").status_code == 400

    def test_heatmap(self, client):
        data = client.get("/heatmap").get_json()

        assert data["point_count"] == len(data["points"])
        assert data["statistics"]["total_points"] == 600
        assert client.get("/heatmap?days=-1").status_code == 400
