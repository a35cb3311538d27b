import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

DEFAULT_OUTPUT = {"format": "mp4", "resolution": "sd"}


class AssetType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"


@dataclass
class Asset:
    type: str
    src: str
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_embedded(self) -> bool:
        return self.src.startswith("data:")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        extra = {k: v for k, v in data.items() if k not in ("type", "src")}
        return cls(type=str(data.get("type", "")), src=str(data.get("src", "")), extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "src": self.src, **copy.deepcopy(self.extra)}


@dataclass
class Clip:
    asset: Asset
    start: float
    length: float
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("clip start must be >= 0")
        if self.length <= 0:
            raise ValueError("clip length must be > 0")

    @property
    def end(self) -> float:
        return self.start + self.length

    def identity_key(self) -> Tuple[float, float, str, str]:
        return (self.start, self.length, self.asset.type, self.asset.src)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Clip":
        extra = {k: v for k, v in data.items() if k not in ("asset", "start", "length")}
        return cls(
            asset=Asset.from_dict(data.get("asset", {})),
            start=data.get("start", 0),
            length=data.get("length", 0),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset": self.asset.to_dict(),
            "start": self.start,
            "length": self.length,
            **copy.deepcopy(self.extra),
        }


@dataclass
class Track:
    clips: List[Clip] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        return cls(clips=[Clip.from_dict(c) for c in data.get("clips") or []])

    def to_dict(self) -> Dict[str, Any]:
        return {"clips": [c.to_dict() for c in self.clips]}


@dataclass
class Document:
    tracks: List[Track] = field(default_factory=list)
    background: Optional[str] = None
    output: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_OUTPUT))
    timeline_extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def total_duration(self) -> float:
        return max((c.end for t in self.tracks for c in t.clips), default=0)

    @property
    def clip_count(self) -> int:
        return sum(len(t.clips) for t in self.tracks)

    def embedded_clips(self) -> Iterator[Tuple[int, int, Clip]]:
        for track_idx, track in enumerate(self.tracks):
            for clip_idx, clip in enumerate(track.clips):
                if clip.asset.is_embedded:
                    yield track_idx, clip_idx, clip

    def copy(self) -> "Document":
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        timeline = data.get("timeline") or {}
        extra = {k: v for k, v in timeline.items() if k not in ("background", "tracks")}
        return cls(
            tracks=[Track.from_dict(t) for t in timeline.get("tracks") or []],
            background=timeline.get("background"),
            output=dict(data.get("output") or DEFAULT_OUTPUT),
            timeline_extra=copy.deepcopy(extra),
        )

    def timeline_dict(self) -> Dict[str, Any]:
        timeline: Dict[str, Any] = {}
        if self.background is not None:
            timeline["background"] = self.background
        timeline.update(copy.deepcopy(self.timeline_extra))
        timeline["tracks"] = [t.to_dict() for t in self.tracks]
        return timeline

    def to_dict(self) -> Dict[str, Any]:
        return {"timeline": self.timeline_dict(), "output": dict(self.output)}


@dataclass
class DeleteClip:
    track_index: int
    clip: Clip
    clip_index: Optional[int] = None

    kind = "deleteClip"


# Only one compensating action exists; the alias marks where new variants go.
UndoAction = DeleteClip


class RenderStatus(str, Enum):
    QUEUED = "queued"
    FETCHING = "fetching"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RenderStatus.DONE, RenderStatus.FAILED)


@dataclass
class RenderJob:
    id: str
    status: str = RenderStatus.QUEUED.value
    url: Optional[str] = None
    error: Optional[str] = None
    polls: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in (RenderStatus.DONE.value, RenderStatus.FAILED.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "url": self.url,
            "error": self.error,
            "polls": self.polls,
        }
