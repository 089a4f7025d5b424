"""Session management and persistence."""

from .manager import SessionConfig, SessionManager, SessionState, Sink
from .models import Message

__all__ = ["Message", "SessionConfig", "SessionManager", "SessionState", "Sink"]
