"""Shared test fixtures."""

from typing import Callable

import pytest

from src.config import Settings
from src.core.engine import RiveScript
from src.db.database import build_engine
from src.services.session import MemorySessionManager, SQLSessionManager


def make_settings(**overrides) -> Settings:
    """Settings isolated from the developer's environment / .env."""
    values = {
        "SESSION_BACKEND": "memory",
        "DEBUG": False,
        "STRICT": True,
        "DEPTH": 50,
        "UTF8": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def make_config() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture()
def make_bot() -> Callable[..., RiveScript]:
    """Factory: stream script code into a fresh, sorted engine."""

    def _make(code: str = "", **overrides) -> RiveScript:
        config = make_settings(**overrides)
        bot = RiveScript(config, session_manager=MemorySessionManager(config.HISTORY_SIZE), seed=1)
        if code:
            bot.stream(code)
        bot.sort_replies()
        return bot

    return _make


@pytest.fixture()
def sql_sessions() -> SQLSessionManager:
    """User store on an in-memory SQLite database."""
    return SQLSessionManager(engine=build_engine("sqlite:///:memory:", echo=False))
