"""Transport control endpoints."""

import pytest
from fastapi.testclient import TestClient


class TestControl:
    def test_play_queues_command(self, client: TestClient) -> None:
        response = client.post("/api/control/play", json={"player": 2, "disc": 120})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["queued"] is True
        assert body["commandId"].startswith("cmd-")
        assert client.get("/api/esp32/poll").json()["track"] == 1

    @pytest.mark.parametrize("verb", ["pause", "stop", "next", "previous"])
    def test_simple_verbs(self, client: TestClient, verb: str) -> None:
        response = client.post(f"/api/control/{verb}")

        assert response.status_code == 200
        assert client.get("/api/esp32/poll").json()["action"] == verb

    @pytest.mark.parametrize(
        "body",
        [
            {"disc": 5},
            {"player": 3, "disc": 5},
            {"player": 1, "disc": 0},
            {"player": 1, "disc": 5, "track": 0},
        ],
    )
    def test_invalid_play_rejected(self, client: TestClient, body: dict) -> None:
        response = client.post("/api/control/play", json=body)

        assert response.status_code == 422
        assert client.get("/api/esp32/poll").json() == {}

    def test_control_does_not_change_state(self, client: TestClient) -> None:
        client.post("/api/control/play", json={"player": 1, "disc": 5})

        assert client.get("/api/current").json()["state"] == "stop"
