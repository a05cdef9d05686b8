"""Abstract base class for user stores."""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from src.core.errors import SessionError
from src.core.logging import get_logger
from src.core.models import DEFAULT_TOPIC, UNDEFINED, UserData

logger = get_logger(__name__)

THAW_ACTIONS = ("thaw", "discard", "keep")


@dataclass
class _UserLock:
    """Re-entrant lock plus the number of callers holding or awaiting it"""

    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0


class SessionManager(ABC):
    """Per-user variables, history and topic.

    Backends only implement load/save/delete/user_ids; every public
    operation runs under the user's re-entrant lock so a read-modify-write
    is atomic relative to other calls for the same user id. Unknown users
    read as "undefined" and are created lazily on first write.
    """

    def __init__(self, history_size: int = 9) -> None:
        self.history_size = history_size
        self._locks: dict[str, _UserLock] = {}
        self._locks_guard = threading.Lock()
        self._frozen: dict[str, UserData] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g. 'memory', 'sql')"""
        ...

    # === Backend hooks ===

    @abstractmethod
    def load(self, user_id: str) -> Optional[UserData]:
        """Return the stored record, or None for an unknown user."""
        ...

    @abstractmethod
    def save(self, data: UserData) -> None:
        ...

    @abstractmethod
    def delete(self, user_id: str) -> None:
        ...

    @abstractmethod
    def user_ids(self) -> list[str]:
        ...

    # === Locking ===

    @contextmanager
    def lock(self, user_id: str) -> Iterator[None]:
        """Hold the user's lock; the entry is dropped once nobody needs it."""
        with self._locks_guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = _UserLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[user_id]

    def _load_or_create(self, user_id: str) -> UserData:
        data = self.load(user_id)
        if data is None:
            data = UserData(user_id=user_id, history_size=self.history_size)
        return data

    # === Variables ===

    def get_var(self, user_id: str, key: str) -> str:
        with self.lock(user_id):
            data = self.load(user_id)
            if data is None:
                return UNDEFINED
            return data.variables.get(key, UNDEFINED)

    def set_var(self, user_id: str, key: str, value: str) -> None:
        self.set_vars(user_id, {key: value})

    def set_vars(self, user_id: str, variables: dict[str, str]) -> None:
        with self.lock(user_id):
            data = self._load_or_create(user_id)
            data.variables.update({k: str(v) for k, v in variables.items()})
            self.save(data)

    def get_all(self, user_id: str) -> Optional[dict[str, str]]:
        """Copy of a user's variables, None for an unknown user."""
        with self.lock(user_id):
            data = self.load(user_id)
            return dict(data.variables) if data else None

    def get_any(self) -> dict[str, dict[str, str]]:
        return {
            user_id: variables
            for user_id in self.user_ids()
            if (variables := self.get_all(user_id)) is not None
        }

    # === Topic / history ===

    def current_topic(self, user_id: str) -> str:
        topic = self.get_var(user_id, "topic")
        return DEFAULT_TOPIC if topic == UNDEFINED else topic

    def set_topic(self, user_id: str, topic: str) -> None:
        self.set_var(user_id, "topic", topic)

    def last_reply(self, user_id: str) -> str:
        with self.lock(user_id):
            data = self.load(user_id)
            return data.last_reply if data else UNDEFINED

    def last_match(self, user_id: str) -> Optional[str]:
        with self.lock(user_id):
            data = self.load(user_id)
            return data.last_match if data else None

    def set_last_match(self, user_id: str, pattern: Optional[str]) -> None:
        with self.lock(user_id):
            data = self._load_or_create(user_id)
            data.last_match = pattern
            self.save(data)

    def history(self, user_id: str) -> tuple[list[str], list[str]]:
        """(inputs, replies), newest first"""
        with self.lock(user_id):
            data = self.load(user_id)
            if data is None:
                blank = [UNDEFINED] * self.history_size
                return list(blank), list(blank)
            return list(data.input_history), list(data.reply_history)

    def push_history(self, user_id: str, user_input: str, reply: str) -> None:
        with self.lock(user_id):
            data = self._load_or_create(user_id)
            data.push_history(user_input, reply)
            self.save(data)

    # === Reset / freeze ===

    def clear(self, user_id: str) -> None:
        with self.lock(user_id):
            self.delete(user_id)
            self._frozen.pop(user_id, None)

    def clear_all(self) -> None:
        for user_id in self.user_ids():
            self.clear(user_id)
        self._frozen.clear()

    def freeze(self, user_id: str) -> bool:
        """Snapshot a user's state so it can be restored later."""
        with self.lock(user_id):
            data = self.load(user_id)
            if data is None:
                logger.warning("Can't freeze unknown user %s", user_id)
                return False
            self._frozen[user_id] = copy.deepcopy(data)
            return True

    def thaw(self, user_id: str, action: str = "thaw") -> bool:
        """Restore a frozen snapshot.

        thaw: restore and drop the snapshot
        discard: drop the snapshot only
        keep: restore and keep the snapshot
        """
        if action not in THAW_ACTIONS:
            raise SessionError(f"Unsupported thaw action: {action}")

        with self.lock(user_id):
            frozen = self._frozen.get(user_id)
            if frozen is None:
                logger.warning("Can't thaw user %s: not frozen", user_id)
                return False
            if action in ("thaw", "keep"):
                self.save(copy.deepcopy(frozen))
            if action in ("thaw", "discard"):
                del self._frozen[user_id]
            return True
