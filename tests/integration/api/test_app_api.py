"""Health, current state, Last.fm status and the realtime socket."""

from fastapi.testclient import TestClient

from jukebox.config import Settings
from jukebox.main import create_app


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "X-Correlation-ID" in response.headers

    def test_api_unavailable_before_startup(self, api_settings: Settings) -> None:
        # No `with` block, so lifespan never runs and nothing is wired
        client = TestClient(create_app(api_settings))

        response = client.get("/api/esp32/poll")

        assert response.status_code == 503


class TestCurrent:
    def test_initial_state(self, client: TestClient) -> None:
        current = client.get("/api/current").json()

        assert current["state"] == "stop"
        assert current["current_player"] is None
        assert "pending_command_id" not in current


class TestLastfm:
    def test_status_not_configured(self, client: TestClient) -> None:
        assert client.get("/api/lastfm/status").json() == {
            "configured": False,
            "authenticated": False,
            "username": None,
        }

    def test_auth_url_not_configured(self, client: TestClient) -> None:
        assert client.get("/api/lastfm/auth-url").status_code == 503

    def test_callback_redirects_with_error(self, client: TestClient) -> None:
        response = client.get(
            "/api/lastfm/callback", params={"token": "abc"}, follow_redirects=False
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/settings?lastfm=error"

    def test_disconnect(self, client: TestClient) -> None:
        assert client.post("/api/lastfm/disconnect").json() == {"success": True}


class TestRealtime:
    def test_subscribe_then_receive_state(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "subscribe"})
            assert ws.receive_json()["type"] == "subscribed"

            client.post(
                "/api/state",
                json={"player": 2, "disc": 7, "track": 4, "state": "pause"},
            )

            event = ws.receive_json()
            assert event["type"] == "state"
            assert event["data"]["current_disc"] == 7
            assert event["data"]["state"] == "pause"

    def test_control_broadcasts_loading(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "subscribe"})
            ws.receive_json()

            command_id = client.post(
                "/api/control/play", json={"player": 1, "disc": 12}
            ).json()["commandId"]

            event = ws.receive_json()
            assert event["data"]["state"] == "loading"
            assert event["data"]["current_disc"] == 12
            assert event["data"]["pending_command_id"] == command_id

    def test_garbage_frames_ignored(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json({"type": "subscribe"})

            assert ws.receive_json()["type"] == "subscribed"
