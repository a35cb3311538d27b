import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

from studio_session.core.engine import EditingEngine
from studio_session.core.models import Document
from studio_session.visual import VisualTimeline, VisualTrack

logger = logging.getLogger(__name__)


@dataclass
class VisualPatch:
    track_index: int
    visual_count: int
    document_count: int

    @property
    def remove_count(self) -> int:
        return self.visual_count - self.document_count


@dataclass
class ReconcilePlan:
    patches: List[VisualPatch] = field(default_factory=list)

    @property
    def total_removed(self) -> int:
        return sum(p.remove_count for p in self.patches)

    @property
    def is_empty(self) -> bool:
        return not self.patches

    def to_dict(self) -> Dict[str, object]:
        return {
            "patches": [dict(asdict(p), remove_count=p.remove_count) for p in self.patches],
            "stats": {"total_removed": self.total_removed},
        }


def plan_reconcile(document: Optional[Document], tracks: Optional[Sequence[VisualTrack]]) -> ReconcilePlan:
    """Work out which trailing visual clips no longer exist in the document.

    Only removals are planned. A visual track that is shorter than its
    document track is left alone; insertions go through a full rebuild.
    """
    if document is None or tracks is None:
        return ReconcilePlan()
    patches: List[VisualPatch] = []
    for track_idx, visual in enumerate(tracks):
        if visual is None or visual.clips is None:
            continue
        doc_count = len(document.tracks[track_idx].clips) if track_idx < len(document.tracks) else 0
        if len(visual.clips) > doc_count:
            patches.append(
                VisualPatch(track_index=track_idx, visual_count=len(visual.clips), document_count=doc_count)
            )
    return ReconcilePlan(patches=patches)


def apply_plan(plan: ReconcilePlan, tracks: Sequence[VisualTrack]) -> int:
    removed = 0
    for patch in plan.patches:
        visual = tracks[patch.track_index]
        while len(visual.clips) > patch.document_count:
            stale = visual.clips.pop()
            node = stale.node
            if node is not None and node.getparent() is not None:
                node.getparent().remove(node)
            removed += 1
    return removed


class TimelineSync:
    def __init__(self, engine: Optional[EditingEngine], timeline: Optional[VisualTimeline]):
        self.engine = engine
        self.timeline = timeline

    def reconcile(self) -> ReconcilePlan:
        if self.timeline is None or self.engine is None:
            return ReconcilePlan()
        tracks = self.timeline.get_visual_tracks()
        document = self.engine.get_edit()
        if not tracks or document is None:
            return ReconcilePlan()
        plan = plan_reconcile(document, tracks)
        if not plan.is_empty:
            removed = apply_plan(plan, tracks)
            logger.debug("Removed %d stale visual clips", removed)
        self.timeline.update_ruler_duration(document.total_duration)
        self.timeline.draw()
        return plan

    def rebuild(self) -> None:
        if self.timeline is None or self.engine is None:
            return
        self.timeline.rebuild_from_edit(self.engine.get_edit())
        self.timeline.draw()
