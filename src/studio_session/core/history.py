import logging
from dataclasses import dataclass
from typing import List, Optional

from studio_session.core.engine import EditingEngine
from studio_session.core.models import Clip, DeleteClip, UndoAction

logger = logging.getLogger(__name__)

COMPENSATED = "compensated"
NATIVE = "native"
NONE = "none"


@dataclass
class HistoryResult:
    applied: bool
    source: str
    message: str
    action: Optional[UndoAction] = None

    def __bool__(self) -> bool:
        return self.applied


class CommandStack:
    """Compensating undo/redo log layered over the engine's native history.

    The compensating stacks are always consulted first. The engine's own
    ``undo``/``redo`` is only reached when the compensating stack is empty or
    its top action does not apply. The two histories are never merged.
    """

    def __init__(self, engine: EditingEngine):
        self.engine = engine
        self._undo_stack: List[UndoAction] = []
        self._redo_stack: List[UndoAction] = []

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def clear(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()

    def record_deletion(self, track_index: int, clip: Clip, clip_index: Optional[int] = None) -> DeleteClip:
        action = DeleteClip(track_index=track_index, clip=clip, clip_index=clip_index)
        self._undo_stack.append(action)
        # Linear history: a fresh edit drops anything that could be redone.
        self._redo_stack.clear()
        return action

    @staticmethod
    def _applies(action: UndoAction) -> bool:
        return action.kind == DeleteClip.kind

    async def undo(self) -> HistoryResult:
        if self._undo_stack and self._applies(self._undo_stack[-1]):
            action = self._undo_stack.pop()
            await self.engine.add_clip(action.track_index, action.clip)
            self._redo_stack.append(action)
            logger.info("Undo delete performed on track %d", action.track_index)
            return HistoryResult(True, COMPENSATED, "Undo delete performed", action)
        if self.engine.undo():
            logger.info("Undo performed")
            return HistoryResult(True, NATIVE, "Undo performed")
        logger.info("Nothing to undo")
        return HistoryResult(False, NONE, "Nothing to undo")

    async def redo(self) -> HistoryResult:
        if self._redo_stack and self._applies(self._redo_stack[-1]):
            action = self._redo_stack.pop()
            clip_index = self.locate(action)
            if clip_index is None:
                logger.warning(
                    "Could not find clip to redo delete on track %d (start=%s, length=%s)",
                    action.track_index,
                    action.clip.start,
                    action.clip.length,
                )
                return HistoryResult(False, NONE, "Nothing to redo", action)
            await self.engine.delete_clip(action.track_index, clip_index)
            action.clip_index = clip_index
            self._undo_stack.append(action)
            logger.info("Redo delete performed on track %d", action.track_index)
            return HistoryResult(True, COMPENSATED, "Redo delete performed", action)
        if self.engine.redo():
            logger.info("Redo performed")
            return HistoryResult(True, NATIVE, "Redo performed")
        logger.info("Nothing to redo")
        return HistoryResult(False, NONE, "Nothing to redo")

    def locate(self, action: DeleteClip) -> Optional[int]:
        """Find the recorded clip again by content; indices are not stable."""
        document = self.engine.get_edit()
        if not 0 <= action.track_index < len(document.tracks):
            return None
        wanted = action.clip.identity_key()
        for idx, clip in enumerate(document.tracks[action.track_index].clips):
            if clip.identity_key() == wanted:
                return idx
        return None
