"""
Contract tests for the HTTP control surface.

Runs a real server on an ephemeral port against a stand-in station whose
call() executes on the handler thread.
"""

import asyncio
import threading
from unittest.mock import Mock

import httpx
import pytest

from airwaves.app.http_server import create_http_server
from airwaves.app.radio_service import RadioService
from airwaves.outputs.audio_proxy import encode_ref
from airwaves.tests.contracts.test_doubles import FakeProxy


class FakeStation:
    def __init__(self, radio):
        self.radio = radio
        self.proxy = FakeProxy()
        self.orchestrator = Mock()

    def call(self, func, *args, timeout=30.0):
        result = func(*args)
        if asyncio.iscoroutine(result):
            result = asyncio.run(result)
        return result

    def now_playing(self):
        return {"id": "1", "title": "Song 1"}


@pytest.fixture
def station(state_store):
    return FakeStation(RadioService(state_store))


@pytest.fixture
def client(station):
    server = create_http_server(station, "127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    with httpx.Client(base_url=f"http://{host}:{port}", timeout=5.0) as http:
        yield http
    server.shutdown()
    server.server_close()


class TestHTTP_Config:

    def test_get_config(self, client):
        response = client.get("/api/radio/config")
        assert response.status_code == 200
        assert response.json()["radio_name"] == "Airwaves FM"

    def test_put_config(self, client, station):
        response = client.put("/api/radio/config", json={"frequency": "5", "song_counter": 7})
        assert response.status_code == 200
        assert response.json()["frequency"] == 5
        assert station.radio.config.song_counter == 0

    def test_put_config_rejects_non_object(self, client):
        response = client.put("/api/radio/config", content=b"[1]",
                              headers={"Content-Type": "application/json"})
        assert response.status_code == 400

    def test_catalogues(self, client):
        assert any(v["id"] == "af_bella" for v in client.get("/api/radio/voices").json())
        assert any(p["id"] == "custom" for p in client.get("/api/radio/personalities").json())


class TestHTTP_Radio:

    def test_toggle_schedules_generation(self, client, station):
        response = client.post("/api/radio/toggle")
        assert response.json() == {"enabled": True}
        station.orchestrator.schedule_pre_generation.assert_called_once()

    def test_toggle_off_clears_prepared_announcement(self, client, station):
        client.post("/api/radio/toggle")
        response = client.post("/api/radio/toggle")
        assert response.json() == {"enabled": False}
        assert station.orchestrator.schedule_pre_generation.call_count == 2

    def test_peek_and_check(self, client):
        assert client.get("/api/radio/peek").json() == {"shouldAnnounce": False, "enabled": False}
        client.post("/api/radio/toggle")
        assert client.get("/api/radio/peek").json()["nextCount"] == 1
        assert client.post("/api/radio/check").json()["currentCount"] == 1

    def test_now_playing(self, client):
        assert client.get("/now_playing").json()["title"] == "Song 1"

    def test_unknown_path(self, client):
        assert client.get("/api/radio/nope").status_code == 404


class TestHTTP_Audio:

    def test_audio_proxied_with_content_type(self, client):
        ref = "https://replicate.delivery/out/speech.mp3"
        response = client.get(f"/api/radio/audio/{encode_ref(ref)}")
        assert response.status_code == 200
        assert response.headers["Content-Type"] == "audio/mpeg"
        assert response.content == ref.encode("utf-8")

    def test_clear_cache(self, client, station):
        client.get(f"/api/radio/audio/{encode_ref('https://a/1.wav')}")
        assert client.delete("/api/radio/audio/cache").json() == {"cleared": 1}
