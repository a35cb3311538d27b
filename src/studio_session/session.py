"""Editing session façade used by the UI layer."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union
from uuid import uuid4

import httpx

from studio_session.client import StudioApiClient
from studio_session.config import StudioConfig
from studio_session.core.engine import EditingEngine
from studio_session.core.history import CommandStack, COMPENSATED, HistoryResult
from studio_session.core.models import Asset, AssetType, Clip, RenderJob
from studio_session.errors import MissingApiKeyError, PreconditionError
from studio_session.ingest import MediaIngestor, guess_mime, media_type_for_mime, to_data_uri
from studio_session.render import RenderOrchestrator, Sleep
from studio_session.sync import TimelineSync
from studio_session.visual import VisualTimeline

logger = logging.getLogger(__name__)

DELETE_KEY = "Delete"

# Default placement lengths in seconds for dropped media
IMAGE_CLIP_LENGTH = 5
MEDIA_CLIP_LENGTH = 10


@dataclass
class Selection:
    track_index: int
    clip_index: int
    clip: Clip


@dataclass
class MediaItem:
    id: str
    name: str
    path: Path
    type: str
    mime_type: str


@dataclass
class SessionState:
    history: CommandStack
    selection: Optional[Selection] = None
    duration: float = 0
    media: List[MediaItem] = field(default_factory=list)
    last_render: Optional[RenderJob] = None


class EditSession:
    """Coordinates edits, history, visual sync and export for one document.

    Overlapping ``export``/``undo``/``redo`` calls on one session are not
    guarded; callers serialise them.
    """

    def __init__(
        self,
        engine: EditingEngine,
        timeline: Optional[VisualTimeline] = None,
        config: Optional[StudioConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.engine = engine
        self.timeline = timeline
        self.config = config or StudioConfig.from_env()
        self.transport = transport
        self.sleep = sleep
        self.state = SessionState(history=CommandStack(engine))
        self.sync = TimelineSync(engine, timeline)
        self._refresh_duration()

    @property
    def history(self) -> CommandStack:
        return self.state.history

    @property
    def selection(self) -> Optional[Selection]:
        return self.state.selection

    @property
    def duration(self) -> float:
        return self.state.duration

    def _refresh_duration(self) -> None:
        self.state.duration = self.engine.total_duration

    def select_clip(self, track_index: int, clip_index: int) -> Selection:
        clip = self.engine.get_clip(track_index, clip_index)
        if clip is None:
            raise PreconditionError(f"Clip {clip_index} not found on track {track_index}")
        self.state.selection = Selection(track_index, clip_index, clip)
        logger.debug("Clip selected: track %d, clip %d", track_index, clip_index)
        return self.state.selection

    def clear_selection(self) -> None:
        self.state.selection = None
        self.engine.clear_selection()

    async def delete_selected(self) -> bool:
        selected = self.state.selection
        if selected is None:
            logger.warning("No clip selected to delete")
            return False
        track_index, clip_index = selected.track_index, selected.clip_index
        clip = self.engine.get_clip(track_index, clip_index)
        # Drop the selection before deleting so a repeated trigger is a no-op.
        self.clear_selection()
        if clip is None or clip.identity_key() != selected.clip.identity_key():
            logger.warning("Selected clip is no longer at track %d, clip %d", track_index, clip_index)
            return False
        await self.engine.delete_clip(track_index, clip_index)
        self.history.record_deletion(track_index, clip, clip_index)
        self.sync.reconcile()
        self._refresh_duration()
        logger.info("Clip deleted successfully")
        return True

    async def handle_key(self, key: str) -> bool:
        if key != DELETE_KEY:
            return False
        return await self.delete_selected()

    async def undo(self) -> HistoryResult:
        result = await self.history.undo()
        if result.applied:
            # Reinsertion needs placement data only a rebuild provides.
            self.sync.rebuild()
            self._refresh_duration()
        return result

    async def redo(self) -> HistoryResult:
        result = await self.history.redo()
        if result.applied:
            if result.source == COMPENSATED:
                self.sync.reconcile()
            else:
                self.sync.rebuild()
            self._refresh_duration()
        return result

    def import_media(self, paths: Iterable[Union[str, Path]]) -> List[MediaItem]:
        added: List[MediaItem] = []
        for raw in paths:
            path = Path(raw)
            mime_type = guess_mime(path)
            added.append(
                MediaItem(
                    id=uuid4().hex,
                    name=path.name,
                    path=path,
                    type=media_type_for_mime(mime_type),
                    mime_type=mime_type,
                )
            )
        self.state.media.extend(added)
        return added

    def find_media(self, media_id: str) -> Optional[MediaItem]:
        return next((m for m in self.state.media if m.id == media_id), None)

    async def add_media(self, media: Union[MediaItem, str, Path], track_index: int = 0) -> Clip:
        """Place media at the end of the timeline as an embedded asset."""
        if isinstance(media, MediaItem):
            item = media
        else:
            found = self.find_media(media) if isinstance(media, str) else None
            item = found or self.import_media([media])[0]
        length = IMAGE_CLIP_LENGTH if item.type == AssetType.IMAGE.value else MEDIA_CLIP_LENGTH
        clip = Clip(
            asset=Asset(type=item.type, src=to_data_uri(item.path)),
            start=self.engine.total_duration,
            length=length,
        )
        await self.engine.add_clip(track_index, clip)
        self.sync.rebuild()
        self._refresh_duration()
        logger.info("Added %s clip to timeline: %s", item.type, item.name)
        return clip

    def _orchestrator(self, client: StudioApiClient) -> RenderOrchestrator:
        return RenderOrchestrator(
            client,
            MediaIngestor(client),
            poll_interval=self.config.poll_interval,
            max_wait=self.config.render_max_wait,
            sleep=self.sleep,
        )

    async def export(self) -> RenderJob:
        if not self.config.api_key:
            raise MissingApiKeyError()
        document = self.engine.get_edit()
        logger.info("Rendering video...")
        async with StudioApiClient(self.config, transport=self.transport) as client:
            job = await self._orchestrator(client).render(document)
        self.state.last_render = job
        logger.info("Video rendered successfully: %s", job.url)
        return job
