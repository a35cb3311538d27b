import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from studio_session.client import StudioApiClient
from studio_session.config import DEFAULT_POLL_INTERVAL, DEFAULT_RENDER_MAX_WAIT
from studio_session.core.models import Document, RenderJob, RenderStatus
from studio_session.errors import RenderFailedError, RenderTimeoutError
from studio_session.ingest import MediaIngestor

logger = logging.getLogger(__name__)

PENDING_STATUSES = {
    RenderStatus.QUEUED.value,
    RenderStatus.FETCHING.value,
    RenderStatus.RENDERING.value,
}

Sleep = Callable[[float], Awaitable[Any]]


class RenderOrchestrator:
    """Submits documents to the render service and polls jobs to completion.

    Status changes are only ever observed by polling. Failed renders are
    reported, never resubmitted.
    """

    def __init__(
        self,
        client: StudioApiClient,
        ingestor: MediaIngestor,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_wait: Optional[float] = DEFAULT_RENDER_MAX_WAIT,
        sleep: Sleep = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.ingestor = ingestor
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep
        self._monotonic = monotonic

    async def resolve_assets(self, document: Document) -> Document:
        """Return a copy of ``document`` with every embedded asset uploaded."""
        resolved = document.copy()
        pending = list(resolved.embedded_clips())
        if not pending:
            return resolved
        logger.info("Uploading %d local file(s) before render", len(pending))
        urls: List[str] = await asyncio.gather(
            *(self.ingestor.ingest(clip.asset.src) for _, _, clip in pending)
        )
        for (_, _, clip), url in zip(pending, urls):
            clip.asset.src = url
        logger.info("All files uploaded successfully")
        return resolved

    @staticmethod
    def build_request(document: Document) -> Dict[str, Any]:
        return {"timeline": document.timeline_dict(), "output": dict(document.output)}

    async def submit(self, document: Document) -> str:
        resolved = await self.resolve_assets(document)
        job_id = await self.client.submit_render(self.build_request(resolved))
        logger.info("Render job submitted: %s", job_id)
        return job_id

    async def poll(self, job_id: str) -> RenderJob:
        job = RenderJob(id=job_id)
        started = self._monotonic()
        while not job.is_terminal:
            if self.max_wait is not None and self._monotonic() - started >= self.max_wait:
                raise RenderTimeoutError(job_id, self._monotonic() - started)
            await self._sleep(self.poll_interval)
            response = await self.client.get_render(job_id)
            job.polls += 1
            status = str(response.get("status", job.status))
            if status != job.status:
                logger.info("Render status: %s", status)
            job.status = status
            if status not in PENDING_STATUSES and not job.is_terminal:
                logger.warning("Unexpected render status %r, still polling", status)
            if status == RenderStatus.DONE.value:
                job.url = response.get("url")
            elif status == RenderStatus.FAILED.value:
                job.error = response.get("error") or "Unknown error"
                raise RenderFailedError(f"Render failed: {job.error}", job=job)
        logger.info("Video ready: %s", job.url)
        return job

    async def render(self, document: Document) -> RenderJob:
        job_id = await self.submit(document)
        return await self.poll(job_id)
