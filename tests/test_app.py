"""
HTTP Application Tests
======================
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from mjpeg_stream.config import FramesConfig, ServerConfig, Settings, StreamOptions
from mjpeg_stream.main import create_app, resolve_stream_dir
from mjpeg_stream.stream.protocol import encode_part


@pytest.fixture
def frames_root(tmp_path):
    clip = tmp_path / "clip"
    clip.mkdir()
    (clip / "a.jpg").write_bytes(b"aaa")
    (clip / "b.jpg").write_bytes(b"bbbbb")
    (tmp_path / "empty").mkdir()
    return tmp_path


@pytest.fixture
def client(frames_root):
    settings = Settings(
        frames=FramesConfig(root=str(frames_root)),
        stream=StreamOptions(frame_rate=100),
    )
    with TestClient(create_app(settings)) as client:
        yield client


class TestServiceEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["defaults"]["frame_rate"] == 100

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_list_streams(self, client):
        assert client.get("/streams").json() == {"streams": ["clip", "empty"]}


class TestStreamEndpoint:

    def test_single_pass(self, client):
        response = client.get("/streams/clip", params={"loop": "false"})

        assert response.status_code == 200
        assert response.headers["content-type"] == (
            "multipart/x-mixed-replace; boundary=mjpeg-frame-boundary"
        )
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["pragma"] == "no-cache"
        assert response.content == (
            encode_part("mjpeg-frame-boundary", b"bbbbb")
            + encode_part("mjpeg-frame-boundary", b"aaa")
        )

    def test_reverse_direction(self, client):
        response = client.get(
            "/streams/clip", params={"loop": "false", "direction": "reverse"}
        )
        assert response.content.index(b"aaa") < response.content.index(b"bbbbb")

    def test_time_limit(self, client):
        response = client.get("/streams/clip", params={"time_limit_ms": 60})
        assert response.status_code == 200
        assert response.content.startswith(b"--mjpeg-frame-boundary\r\n")

    def test_empty_directory(self, client):
        response = client.get("/streams/empty")
        assert response.status_code == 404
        assert "no frame images found" in response.json()["detail"]

    def test_missing_directory(self, client):
        assert client.get("/streams/nope").status_code == 404

    def test_invalid_override(self, client):
        assert client.get("/streams/clip", params={"fps": 0}).status_code == 422

    def test_metrics(self, client):
        client.get("/streams/clip", params={"loop": "false"})
        client.get("/streams/empty")

        metrics = client.get("/metrics").json()
        assert metrics["sessions_started"] == 1
        assert metrics["sessions_completed"] == 1
        assert metrics["sessions_failed"] == 1
        assert metrics["total_frames"] == 2
        assert metrics["total_bytes"] == 8
        assert metrics["active_sessions"] == 0
        assert metrics["dropped_chunks"] == 0
        assert metrics["live_sessions"] == 0

    def test_ended_while_listing(self, frames_root, slow_source):
        settings = Settings(frames=FramesConfig(root=str(frames_root)))
        app = create_app(settings, source=slow_source(0.1))

        with TestClient(app) as client:
            response = client.get("/streams/clip", params={"time_limit_ms": 20})

        assert response.status_code == 204
        assert response.content == b""


class TestResolveStreamDir:

    def test_inside_root(self, tmp_path):
        assert resolve_stream_dir(tmp_path, "clip") == (tmp_path / "clip").resolve()

    @pytest.mark.parametrize("name", ["..", ".", "../etc"])
    def test_escapes_root(self, tmp_path, name):
        from fastapi import HTTPException

        with pytest.raises(HTTPException) as exc_info:
            resolve_stream_dir(tmp_path, name)
        assert exc_info.value.status_code == 404


def _stream_scope(path: str, query: bytes = b"") -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.4"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query,
        "headers": [],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }


async def _never_disconnects() -> dict:
    await asyncio.Event().wait()
    return {"type": "http.disconnect"}


class TestResponseLifetime:

    def test_failed_response_start_ends_session(self, frames_root):
        settings = Settings(
            frames=FramesConfig(root=str(frames_root)),
            stream=StreamOptions(frame_rate=100, loop=True),
        )
        app = create_app(settings)

        async def send(message):
            if message["type"] == "http.response.start":
                raise OSError("connection reset by peer")

        async def scenario():
            try:
                await app(_stream_scope("/streams/clip"), _never_disconnects, send)
            except Exception:
                pass
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        stats = app.state.stats
        assert app.state.sessions == {}
        assert stats.sessions_started == 1
        assert stats.sessions_completed == 1
        assert stats.active_sessions == 0

    def test_slow_client_drops_are_counted(self, tmp_path):
        clip = tmp_path / "clip"
        clip.mkdir()
        for index in range(5):
            (clip / f"{index}.jpg").write_bytes(b"abc")

        settings = Settings(
            frames=FramesConfig(root=str(tmp_path)),
            stream=StreamOptions(frame_rate=100, loop=False),
            server=ServerConfig(output_queue_size=1),
        )
        app = create_app(settings)
        body = []

        async def send(message):
            if message["type"] == "http.response.body" and message.get("body"):
                body.append(message["body"])
                await asyncio.sleep(0.1)

        async def scenario():
            await app(_stream_scope("/streams/clip"), _never_disconnects, send)
            await asyncio.sleep(0.01)

        asyncio.run(scenario())
        stats = app.state.stats
        delivered = b"".join(body).count(b"--mjpeg-frame-boundary\r\n")
        assert stats.total_frames == 5
        assert stats.dropped_chunks >= 1
        assert delivered + stats.dropped_chunks == 5
