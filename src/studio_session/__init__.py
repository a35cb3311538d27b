"""Editing-session controller for timeline video compositions."""

from studio_session.core.engine import MemoryEngine
from studio_session.core.history import CommandStack
from studio_session.session import EditSession

__all__ = ["CommandStack", "EditSession", "MemoryEngine"]

__version__ = "0.1.0"
