"""Rendering-side mirror of the document as an lxml node tree."""

from dataclasses import dataclass, field
from typing import List, Optional

from lxml import etree
from lxml.etree import _Element as Element

from studio_session.core.models import Clip, Document


def _fmt(value: float) -> str:
    return f"{float(value):g}"


@dataclass
class VisualClip:
    start: float
    length: float
    asset_type: str
    node: Optional[Element] = field(default=None, repr=False)

    @classmethod
    def from_clip(cls, clip: Clip, parent: Element) -> "VisualClip":
        node = etree.SubElement(
            parent,
            "clip",
            start=_fmt(clip.start),
            length=_fmt(clip.length),
            type=clip.asset.type,
        )
        return cls(start=clip.start, length=clip.length, asset_type=clip.asset.type, node=node)


@dataclass
class VisualTrack:
    index: int
    clips: Optional[List[VisualClip]] = field(default_factory=list)
    node: Optional[Element] = field(default=None, repr=False)


class VisualTimeline:
    """Derived timeline view; never owns document data."""

    def __init__(self) -> None:
        self.root: Element = etree.Element("timeline", duration="0")
        self._tracks: List[VisualTrack] = []
        self.draw_count = 0

    @classmethod
    def from_document(cls, document: Document) -> "VisualTimeline":
        timeline = cls()
        timeline.rebuild_from_edit(document)
        return timeline

    def get_visual_tracks(self) -> List[VisualTrack]:
        return self._tracks

    def rebuild_from_edit(self, document: Document) -> None:
        for child in list(self.root):
            self.root.remove(child)
        self._tracks = []
        for idx, track in enumerate(document.tracks):
            track_node = etree.SubElement(self.root, "track", index=str(idx))
            visual = VisualTrack(index=idx, node=track_node)
            visual.clips = [VisualClip.from_clip(c, track_node) for c in track.clips]
            self._tracks.append(visual)
        self.update_ruler_duration(document.total_duration)

    def update_ruler_duration(self, duration: float) -> None:
        self.root.set("duration", _fmt(duration))

    def clip_nodes(self, track_index: int) -> List[Element]:
        if not 0 <= track_index < len(self._tracks):
            return []
        node = self._tracks[track_index].node
        return node.findall("clip") if node is not None else []

    def draw(self) -> str:
        self.draw_count += 1
        return etree.tostring(self.root, pretty_print=True, encoding="unicode")
