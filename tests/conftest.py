"""
Shared fixtures for studio_session tests.

Remote services are replaced by an httpx.MockTransport backed fake and all
sleeps are no-ops, so no test touches the network or waits on a clock.
"""

import io
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from PIL import Image

from studio_session.client import StudioApiClient
from studio_session.config import StudioConfig
from studio_session.core.engine import MemoryEngine
from studio_session.core.models import Asset, Clip, Document, Track
from studio_session.ingest import encode_data_uri
from studio_session.visual import VisualTimeline


class FakeStudioApi:
    """Scripted stand-in for the ingest and render endpoints."""

    def __init__(
        self,
        statuses: Optional[List[Dict[str, Any]]] = None,
        job_id: str = "job-123",
        upload_error: Optional[httpx.Response] = None,
        submit_error: Optional[httpx.Response] = None,
    ):
        self.statuses = list(statuses or [{"status": "done", "url": "https://cdn.test/out.mp4"}])
        self.job_id = job_id
        self.upload_error = upload_error
        self.submit_error = submit_error
        self.uploads: List[httpx.Request] = []
        self.submissions: List[Dict[str, Any]] = []
        self.status_calls = 0
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/sources"):
            self.uploads.append(request)
            if self.upload_error is not None:
                return self.upload_error
            source = f"https://assets.test/source-{len(self.uploads)}"
            return httpx.Response(200, json={"data": {"attributes": {"source": source}}})
        if request.method == "POST" and path.endswith("/render"):
            self.submissions.append(json.loads(request.content))
            if self.submit_error is not None:
                return self.submit_error
            return httpx.Response(201, json={"response": {"id": self.job_id}})
        if request.method == "GET" and "/render/" in path:
            self.status_calls += 1
            index = min(self.status_calls, len(self.statuses)) - 1
            return httpx.Response(200, json={"response": self.statuses[index]})
        return httpx.Response(404, json={"message": f"no route for {request.method} {path}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


async def no_sleep(_seconds: float) -> None:
    return None


def make_clip(start: float, length: float, src: str = "https://media.test/a.mp4", type: str = "video") -> Clip:
    return Clip(asset=Asset(type=type, src=src), start=start, length=length)


def png_bytes(width: int = 64, height: int = 48, color=(200, 30, 30)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), color).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def config() -> StudioConfig:
    return StudioConfig(api_key="test-key", api_url="https://api.test", poll_interval=3.0)


@pytest.fixture
def fake_api() -> FakeStudioApi:
    return FakeStudioApi()


@pytest.fixture
def api_client(config, fake_api):
    return StudioApiClient(config, transport=fake_api.transport)


@pytest.fixture
def document() -> Document:
    return Document(
        tracks=[
            Track(clips=[make_clip(0, 3), make_clip(3, 2, src="https://media.test/b.mp4"), make_clip(5, 4)]),
            Track(clips=[make_clip(0, 9, src="https://media.test/music.mp3", type="audio")]),
        ],
        background="#000000",
    )


@pytest.fixture
def engine(document) -> MemoryEngine:
    return MemoryEngine(document)


@pytest.fixture
def timeline(engine) -> VisualTimeline:
    return VisualTimeline.from_document(engine.get_edit())


@pytest.fixture
def png_data_uri() -> str:
    return encode_data_uri(png_bytes(), "image/png")
