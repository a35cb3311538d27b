"""Boundary to the editing engine that owns the composition document."""

import copy
import logging
from typing import Iterable, List, Optional, Protocol, Tuple

from studio_session.core.models import Clip, Document, Track

logger = logging.getLogger(__name__)


class EditingEngine(Protocol):
    def get_edit(self) -> Document:
        ...

    def get_clip(self, track_index: int, clip_index: int) -> Optional[Clip]:
        ...

    async def add_clip(self, track_index: int, clip: Clip) -> None:
        ...

    async def delete_clip(self, track_index: int, clip_index: int) -> None:
        ...

    def undo(self) -> bool:
        ...

    def redo(self) -> bool:
        ...

    def clear_selection(self) -> None:
        ...

    @property
    def total_duration(self) -> float:
        ...


class MemoryEngine:
    """In-process engine holding the authoritative document.

    Native history is snapshot based and only covers the operations named in
    ``native_ops``; clip deletion is left out by default, matching engines
    whose own history cannot reverse it.
    """

    def __init__(self, document: Optional[Document] = None, native_ops: Iterable[str] = ("add_clip",)):
        self._document = document.copy() if document is not None else Document(tracks=[Track()])
        self.native_ops = set(native_ops)
        self._undo_snapshots: List[Document] = []
        self._redo_snapshots: List[Document] = []
        self.selection: Optional[Tuple[int, int]] = None

    @property
    def document(self) -> Document:
        return self._document

    @property
    def total_duration(self) -> float:
        return self._document.total_duration

    def get_edit(self) -> Document:
        return self._document.copy()

    def get_clip(self, track_index: int, clip_index: int) -> Optional[Clip]:
        if track_index < 0 or clip_index < 0:
            return None
        try:
            clip = self._document.tracks[track_index].clips[clip_index]
        except IndexError:
            return None
        return copy.deepcopy(clip)

    def _remember(self, op: str) -> None:
        if op not in self.native_ops:
            return
        self._undo_snapshots.append(self._document.copy())
        self._redo_snapshots.clear()

    def _track(self, track_index: int) -> Optional[Track]:
        if track_index < 0:
            raise ValueError(f"Track index must be >= 0, got {track_index}")
        return self._document.tracks[track_index] if track_index < len(self._document.tracks) else None

    async def add_clip(self, track_index: int, clip: Clip) -> None:
        if track_index < 0:
            raise ValueError(f"Track index must be >= 0, got {track_index}")
        self._remember("add_clip")
        while len(self._document.tracks) <= track_index:
            self._document.tracks.append(Track())
        self._document.tracks[track_index].clips.append(copy.deepcopy(clip))
        logger.debug("Added clip at %ss to track %d", clip.start, track_index)

    async def delete_clip(self, track_index: int, clip_index: int) -> None:
        track = self._track(track_index)
        if track is None or not 0 <= clip_index < len(track.clips):
            raise ValueError(f"Clip {clip_index} not found on track {track_index}")
        self._remember("delete_clip")
        del track.clips[clip_index]
        logger.debug("Deleted clip %d from track %d", clip_index, track_index)
        if self.selection == (track_index, clip_index):
            self.selection = None

    def undo(self) -> bool:
        if not self._undo_snapshots:
            return False
        self._redo_snapshots.append(self._document.copy())
        self._document = self._undo_snapshots.pop()
        return True

    def redo(self) -> bool:
        if not self._redo_snapshots:
            return False
        self._undo_snapshots.append(self._document.copy())
        self._document = self._redo_snapshots.pop()
        return True

    def select(self, track_index: int, clip_index: int) -> Clip:
        clip = self.get_clip(track_index, clip_index)
        if clip is None:
            raise ValueError(f"Clip {clip_index} not found on track {track_index}")
        self.selection = (track_index, clip_index)
        return clip

    def clear_selection(self) -> None:
        self.selection = None
