import pytest
from fastapi.testclient import TestClient

from video_markup.config import Settings
from video_markup.errors import DependencyError
from video_markup.main import create_app
from video_markup.models import VideoMetadata


class FakeMetadataClient:
    """Stands in for the oEmbed lookup; URLs containing "invalid" fail."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def fetch(self, video_url: str) -> VideoMetadata:
        self.calls.append(video_url)
        if "invalid" in video_url:
            raise DependencyError("Invalid YouTube URL")
        return VideoMetadata(
            title=f"Title of {video_url}",
            thumbnail_url="https://i.ytimg.com/vi/abc/hqdefault.jpg",
        )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        db_path=str(tmp_path / "markup.db"),
        audio_dir=str(tmp_path / "audio"),
        max_audio_bytes=1024,
    )


@pytest.fixture
def metadata() -> FakeMetadataClient:
    return FakeMetadataClient()


@pytest.fixture
def client(settings, metadata):
    app = create_app(settings, metadata_client=metadata)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session(client) -> dict:
    response = client.post("/api/sessions", json={"youtube_url": "https://youtu.be/abc"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def make_marker(client, session):
    def _make(start: float, end: float | None = None, token: str | None = None, target: dict | None = None):
        owner = target or session
        return client.post(
            f"/api/sessions/{owner['id']}/markers",
            params={"token": token or owner["creator_token"]},
            json={"start_time": start, "end_time": end},
        )

    return _make


@pytest.fixture
def make_post(client):
    def _make(marker_id: int, token: str, text: str | None = None, audio: bytes | None = None):
        data = {"text_content": text} if text is not None else {}
        files = {"audio": ("clip.mp3", audio, "audio/mpeg")} if audio is not None else None
        return client.post(
            f"/api/markers/{marker_id}/posts",
            params={"token": token},
            data=data,
            files=files,
        )

    return _make
