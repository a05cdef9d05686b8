"""In-memory user store."""

from typing import Optional

from src.core.models import UserData
from src.services.session.base import SessionManager


class MemorySessionManager(SessionManager):
    """Keeps every UserData in a dict for the life of the process.

    Default backend; state is lost on restart.
    """

    def __init__(self, history_size: int = 9) -> None:
        super().__init__(history_size)
        self._users: dict[str, UserData] = {}

    @property
    def name(self) -> str:
        return "memory"

    def load(self, user_id: str) -> Optional[UserData]:
        return self._users.get(user_id)

    def save(self, data: UserData) -> None:
        self._users[data.user_id] = data

    def delete(self, user_id: str) -> None:
        self._users.pop(user_id, None)

    def user_ids(self) -> list[str]:
        return list(self._users)
