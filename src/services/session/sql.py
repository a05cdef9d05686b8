"""SQLAlchemy-backed user store."""

from typing import Optional

from sqlalchemy import Engine, select
from sqlalchemy.orm import sessionmaker

from src.core.logging import get_logger
from src.core.models import UserData
from src.db.database import build_engine, build_session_factory
from src.db.models import Base, UserSessionModel
from src.services.session.base import SessionManager

logger = get_logger(__name__)


def _model_to_user(model: UserSessionModel, history_size: int) -> UserData:
    """UserSessionModel -> UserData"""
    return UserData(
        user_id=model.user_id,
        history_size=history_size,
        variables=dict(model.variables or {}),
        input_history=list(model.input_history or []),
        reply_history=list(model.reply_history or []),
        last_reply=model.last_reply,
        last_match=model.last_match,
    )


class SQLSessionManager(SessionManager):
    """One row per user in the user_sessions table.

    Every operation opens and commits its own session; the per-user lock
    in SessionManager serializes writers for the same user.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        engine: Optional[Engine] = None,
        history_size: int = 9,
        echo: bool = False,
    ) -> None:
        super().__init__(history_size)
        if engine is None:
            if url is None:
                raise ValueError("SQLSessionManager needs a database url or an engine")
            engine = build_engine(url, echo=echo)
        self._engine = engine
        self._session_factory: sessionmaker = build_session_factory(engine)
        Base.metadata.create_all(bind=engine)
        logger.info("SQL user store ready (%s)", engine.url)

    @property
    def name(self) -> str:
        return "sql"

    def load(self, user_id: str) -> Optional[UserData]:
        with self._session_factory() as db:
            model = db.get(UserSessionModel, user_id)
            if model is None:
                return None
            return _model_to_user(model, self.history_size)

    def save(self, data: UserData) -> None:
        with self._session_factory() as db:
            model = db.get(UserSessionModel, data.user_id)
            if model is None:
                model = UserSessionModel(user_id=data.user_id)
                db.add(model)
            model.variables = dict(data.variables)
            model.input_history = list(data.input_history)
            model.reply_history = list(data.reply_history)
            model.last_reply = data.last_reply
            model.last_match = data.last_match
            db.commit()

    def delete(self, user_id: str) -> None:
        with self._session_factory() as db:
            model = db.get(UserSessionModel, user_id)
            if model is not None:
                db.delete(model)
                db.commit()

    def user_ids(self) -> list[str]:
        with self._session_factory() as db:
            return list(db.scalars(select(UserSessionModel.user_id)))
