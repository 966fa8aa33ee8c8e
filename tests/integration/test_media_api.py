"""
Integration tests for the media and session API endpoints.
"""

import asyncio
import time
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from streamin.core.registry import SessionRegistry
from streamin.main import app
from streamin.schemas.media import encode_media_id
from streamin.services.probe import ProbeError


@pytest_asyncio.fixture
async def client():
    """Test client with a fresh session registry."""
    app.state.sessions = SessionRegistry()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestIndex:
    @pytest.mark.asyncio
    async def test_hello(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json() == {"item": "Hello, World!"}


class TestMediaListing:
    @pytest.mark.asyncio
    async def test_unprocessed(self, client, source_file, media_info_factory):
        with patch("streamin.services.library.get_media_info", side_effect=media_info_factory):
            response = await client.get("/media/unprocessed")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["file_title"] == "movie.mkv"
        assert data[0]["id"] == encode_media_id(source_file)
        assert data[0]["duration"] == 10.0
        assert "raw" not in data[0]

    @pytest.mark.asyncio
    async def test_unreadable_files_skipped(self, client, source_file):
        with patch("streamin.services.library.get_media_info", side_effect=ProbeError("bad")):
            response = await client.get("/media/unprocessed")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_processed(self, client, media_dirs, media_info_factory):
        package = media_dirs.processed / "movie"
        package.mkdir()
        (package / "manifest.mpd").write_text("<MPD/>")

        with patch("streamin.services.library.get_media_info", side_effect=media_info_factory):
            response = await client.get("/media/processed")

        assert response.status_code == 200
        assert [item["file_title"] for item in response.json()] == ["movie"]

    @pytest.mark.asyncio
    async def test_missing_directory(self, client, media_dirs):
        media_dirs.processed.rmdir()
        response = await client.get("/media/processed")
        assert response.status_code == 404


class TestProcess:
    @pytest.mark.asyncio
    async def test_starts_conversion(self, client, source_file):
        with patch("streamin.api.media.start_dash_conversion", return_value="abc-123") as mock_start:
            response = await client.post(
                "/media/process", json={"id": encode_media_id(source_file), "dash": True}
            )

        assert response.status_code == 201
        assert response.headers["location"] == "abc-123"
        assert mock_start.call_args[0][1] == source_file.resolve()

    @pytest.mark.asyncio
    async def test_dash_not_requested(self, client, source_file):
        with patch("streamin.api.media.start_dash_conversion") as mock_start:
            response = await client.post("/media/process", json={"id": encode_media_id(source_file)})

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"
        mock_start.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_file(self, client, media_dirs):
        media_id = encode_media_id(media_dirs.unprocessed / "missing.mkv")
        response = await client.post("/media/process", json={"id": media_id, "dash": True})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_file_outside_media_dir(self, client, tmp_path):
        outside = tmp_path / "secret.mkv"
        outside.write_bytes(b"x")
        response = await client.post(
            "/media/process", json={"id": encode_media_id(outside), "dash": True}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_traversal_rejected(self, client, media_dirs, tmp_path):
        (tmp_path / "secret.mkv").write_bytes(b"x")
        sneaky = media_dirs.unprocessed / ".." / "secret.mkv"
        response = await client.post(
            "/media/process", json={"id": encode_media_id(sneaky), "dash": True}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_garbage_id(self, client):
        response = await client.post("/media/process", json={"id": "abcde", "dash": True})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unprobeable_file(self, client, source_file):
        with patch("streamin.services.dash.get_media_info", side_effect=ProbeError("bad")):
            response = await client.post(
                "/media/process", json={"id": encode_media_id(source_file), "dash": True}
            )
        assert response.status_code == 404
        assert len(app.state.sessions) == 0

    @pytest.mark.asyncio
    async def test_slow_media_scan_keeps_loop_responsive(self, client, source_file):
        def slow_media_info(path):
            time.sleep(0.5)
            raise ProbeError("slow")

        loop = asyncio.get_running_loop()
        ticks = []

        async def ticker():
            while True:
                ticks.append(loop.time())
                await asyncio.sleep(0.02)

        ticking = asyncio.create_task(ticker())
        try:
            with patch("streamin.services.dash.get_media_info", side_effect=slow_media_info):
                response = await client.post(
                    "/media/process", json={"id": encode_media_id(source_file), "dash": True}
                )
        finally:
            ticking.cancel()
            await asyncio.gather(ticking, return_exceptions=True)

        assert response.status_code == 404
        gaps = [later - earlier for earlier, later in zip(ticks, ticks[1:])]
        assert len(ticks) > 5
        assert max(gaps) < 0.3


class TestSessions:
    @pytest.mark.asyncio
    async def test_unknown_session(self, client):
        response = await client.get("/media/process/session/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_session_id(self, client):
        response = await client.get("/media/process/session/not-a-uuid")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_empty_session_list(self, client):
        response = await client.get("/media/process/session")
        assert response.status_code == 200
        assert response.json() == {}

    @pytest.mark.asyncio
    async def test_conversion_lifecycle(self, client, fake_tools, source_file, media_dirs, media_info_factory):
        info = media_info_factory(source_file, audio_indices=[1])

        with patch("streamin.services.dash.get_media_info", return_value=info):
            response = await client.post(
                "/media/process", json={"id": encode_media_id(source_file), "dash": True}
            )
        assert response.status_code == 201
        session_id = response.headers["location"]

        session = app.state.sessions.get(session_id)
        await asyncio.wait_for(session.wait(), 30)

        response = await client.get(f"/media/process/session/{session_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "completed"
        assert data["percent_complete"] == 100.0
        assert data["stage"] == data["max_stages"] == 5
        assert (media_dirs.processed / "movie" / "manifest.mpd").is_file()

        response = await client.get("/media/process/session")
        assert list(response.json()) == [session_id]

    @pytest.mark.asyncio
    async def test_cancel(self, client, fake_tools, source_file, media_info_factory, monkeypatch):
        monkeypatch.setenv("FAKE_HANG", "1")
        info = media_info_factory(source_file)

        with patch("streamin.services.dash.get_media_info", return_value=info):
            response = await client.post(
                "/media/process", json={"id": encode_media_id(source_file), "dash": True}
            )
        session_id = response.headers["location"]

        response = await client.post(f"/media/process/session/{session_id}/cancel")

        assert response.status_code == 200
        assert response.json()["state"] == "cancelled"
        assert response.json()["percent_complete"] < 100.0

    @pytest.mark.asyncio
    async def test_cancel_unknown_session(self, client):
        response = await client.post("/media/process/session/not-a-uuid/cancel")
        assert response.status_code == 404
