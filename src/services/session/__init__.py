"""User store module."""

from src.services.session.base import SessionManager
from src.services.session.factory import get_session_manager
from src.services.session.memory import MemorySessionManager
from src.services.session.sql import SQLSessionManager

__all__ = [
    "SessionManager",
    "MemorySessionManager",
    "SQLSessionManager",
    "get_session_manager",
]
