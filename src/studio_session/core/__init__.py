from studio_session.core.engine import EditingEngine, MemoryEngine
from studio_session.core.history import CommandStack, HistoryResult
from studio_session.core.models import Asset, Clip, DeleteClip, Document, RenderJob, RenderStatus, Track

__all__ = [
    "Asset",
    "Clip",
    "CommandStack",
    "DeleteClip",
    "Document",
    "EditingEngine",
    "HistoryResult",
    "MemoryEngine",
    "RenderJob",
    "RenderStatus",
    "Track",
]
