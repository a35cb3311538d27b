import asyncio
import itertools

import httpx
import pytest

from conftest import FakeStudioApi, make_clip, no_sleep
from studio_session.client import StudioApiClient
from studio_session.core.models import Document, Track
from studio_session.errors import RemoteServiceError, RenderFailedError, RenderTimeoutError
from studio_session.ingest import MediaIngestor
from studio_session.render import RenderOrchestrator


def _orchestrator(client, **kwargs):
    kwargs.setdefault("sleep", no_sleep)
    return RenderOrchestrator(client, MediaIngestor(client), **kwargs)


@pytest.mark.asyncio
async def test_submit_rewrites_embedded_sources(config, png_data_uri):
    api = FakeStudioApi()
    document = Document(
        tracks=[
            Track(clips=[make_clip(0, 5, src=png_data_uri, type="image"), make_clip(5, 2)]),
            Track(clips=[make_clip(0, 5, src=png_data_uri, type="image")]),
        ]
    )
    async with StudioApiClient(config, transport=api.transport) as client:
        job_id = await _orchestrator(client).submit(document)

    assert job_id == "job-123"
    assert len(api.uploads) == 2
    body = api.submissions[0]
    assert set(body) == {"timeline", "output"}
    sources = [c["asset"]["src"] for t in body["timeline"]["tracks"] for c in t["clips"]]
    assert all(not s.startswith("data:") for s in sources)
    assert sources[1] == "https://media.test/a.mp4"
    assert body["output"] == {"format": "mp4", "resolution": "sd"}
    # The caller's document is left untouched.
    assert document.tracks[0].clips[0].asset.src == png_data_uri


@pytest.mark.asyncio
async def test_submit_without_embedded_assets_skips_ingest(config, document):
    api = FakeStudioApi()
    async with StudioApiClient(config, transport=api.transport) as client:
        await _orchestrator(client).submit(document)
    assert api.uploads == []
    assert api.submissions[0]["timeline"]["background"] == "#000000"


@pytest.mark.asyncio
async def test_submit_failure_uses_server_message(config, document):
    api = FakeStudioApi(submit_error=httpx.Response(400, json={"message": "Invalid timeline"}))
    async with StudioApiClient(config, transport=api.transport) as client:
        with pytest.raises(RemoteServiceError) as exc:
            await _orchestrator(client).submit(document)
    assert exc.value.message == "Invalid timeline"


@pytest.mark.asyncio
async def test_failed_upload_aborts_before_submit(config, png_data_uri):
    api = FakeStudioApi(upload_error=httpx.Response(413, json={"message": "Too big"}))
    document = Document(tracks=[Track(clips=[make_clip(0, 5, src=png_data_uri, type="image")])])
    async with StudioApiClient(config, transport=api.transport) as client:
        with pytest.raises(RemoteServiceError):
            await _orchestrator(client).submit(document)
    assert api.submissions == []


@pytest.mark.asyncio
async def test_poll_stops_on_nth_done(config):
    statuses = [{"status": "queued"}] * 4 + [{"status": "done", "url": "https://cdn.test/final.mp4"}]
    api = FakeStudioApi(statuses=statuses)
    waits = []

    async def record_sleep(seconds):
        waits.append(seconds)

    async with StudioApiClient(config, transport=api.transport) as client:
        job = await _orchestrator(client, sleep=record_sleep).poll("job-123")

    assert job.status == "done"
    assert job.url == "https://cdn.test/final.mp4"
    assert job.polls == 5
    assert api.status_calls == 5
    assert waits == [3.0] * 5
    assert api.requests[-1].url.path == "/stage/render/job-123"


@pytest.mark.asyncio
async def test_poll_raises_on_failed(config):
    api = FakeStudioApi(statuses=[{"status": "fetching"}, {"status": "failed", "error": "Asset unreachable"}])
    async with StudioApiClient(config, transport=api.transport) as client:
        with pytest.raises(RenderFailedError) as exc:
            await _orchestrator(client).poll("job-123")
    assert exc.value.message == "Render failed: Asset unreachable"
    assert exc.value.job.status == "failed"
    assert api.status_calls == 2


@pytest.mark.asyncio
async def test_poll_status_http_error(config):
    def handler(request):
        return httpx.Response(503)

    async with StudioApiClient(config, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(RemoteServiceError) as exc:
            await _orchestrator(client).poll("job-123")
    assert exc.value.message == "Failed to check render status"


@pytest.mark.asyncio
async def test_poll_times_out_when_bounded(config):
    api = FakeStudioApi(statuses=[{"status": "rendering"}])
    ticks = itertools.count(0, 3)
    async with StudioApiClient(config, transport=api.transport) as client:
        orchestrator = _orchestrator(client, max_wait=10, monotonic=lambda: next(ticks))
        with pytest.raises(RenderTimeoutError):
            await orchestrator.poll("job-123")
    assert api.status_calls < 10


@pytest.mark.asyncio
async def test_poll_keeps_going_on_unknown_status(config):
    api = FakeStudioApi(statuses=[{"status": "saving"}, {"status": "done", "url": "u"}])
    async with StudioApiClient(config, transport=api.transport) as client:
        job = await _orchestrator(client).poll("job-123")
    assert job.url == "u"
    assert api.status_calls == 2


@pytest.mark.asyncio
async def test_poll_is_cancellable(config):
    api = FakeStudioApi(statuses=[{"status": "queued"}])
    async with StudioApiClient(config, transport=api.transport) as client:
        task = asyncio.ensure_future(_orchestrator(client, sleep=asyncio.sleep, poll_interval=0).poll("job-123"))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
