"""Factory for creating user store instances."""

from typing import Optional

from src.config import Settings, settings as default_settings
from src.core.logging import get_logger
from src.services.session.base import SessionManager
from src.services.session.memory import MemorySessionManager
from src.services.session.sql import SQLSessionManager

logger = get_logger(__name__)


def get_session_manager(config: Optional[Settings] = None) -> SessionManager:
    """Get a user store for the configured SESSION_BACKEND.

    Unknown backends fall back to the in-memory store.
    """
    config = config or default_settings
    name = config.SESSION_BACKEND

    if name == "memory":
        logger.debug("Using MemorySessionManager")
        return MemorySessionManager(history_size=config.HISTORY_SIZE)

    if name == "sql":
        logger.debug("Using SQLSessionManager with %s", config.DATABASE_URL)
        return SQLSessionManager(
            url=config.DATABASE_URL,
            history_size=config.HISTORY_SIZE,
            echo=config.DEBUG,
        )

    logger.warning("Unknown session backend '%s', falling back to memory", name)
    return MemorySessionManager(history_size=config.HISTORY_SIZE)
