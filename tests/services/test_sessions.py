"""User store tests (memory and SQL backends)"""

import pytest

from src.core.errors import SessionError
from src.db.models import UserSessionModel
from src.services.session import MemorySessionManager, SQLSessionManager, get_session_manager


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return MemorySessionManager()
    return request.getfixturevalue("sql_sessions")


class TestVariables:
    def test_unknown_user_reads_undefined(self, store):
        assert store.get_var("ghost", "name") == "undefined"
        assert store.get_all("ghost") is None
        assert store.current_topic("ghost") == "random"

    def test_set_and_get(self, store):
        store.set_var("u", "name", "Alice")
        assert store.get_var("u", "name") == "Alice"
        assert store.get_all("u") == {"topic": "random", "name": "Alice"}

    def test_set_vars_stringifies(self, store):
        store.set_vars("u", {"age": 30})
        assert store.get_var("u", "age") == "30"

    def test_get_any(self, store):
        store.set_var("a", "x", "1")
        store.set_var("b", "x", "2")
        everyone = store.get_any()
        assert everyone["a"]["x"] == "1"
        assert everyone["b"]["x"] == "2"

    def test_topic(self, store):
        store.set_topic("u", "game")
        assert store.current_topic("u") == "game"
        assert store.get_var("u", "topic") == "game"


class TestHistory:
    def test_starts_undefined(self, store):
        inputs, replies = store.history("u")
        assert inputs == ["undefined"] * 9
        assert replies == ["undefined"] * 9
        assert store.last_reply("u") == "undefined"

    def test_newest_first_and_bounded(self, store):
        for i in range(12):
            store.push_history("u", f"in {i}", f"out {i}")
        inputs, replies = store.history("u")
        assert len(inputs) == 9
        assert inputs[0] == "in 11"
        assert replies[8] == "out 3"
        assert store.last_reply("u") == "out 11"

    def test_last_match(self, store):
        assert store.last_match("u") is None
        store.set_last_match("u", "hello *")
        assert store.last_match("u") == "hello *"


class TestFreezeThaw:
    def test_thaw_restores(self, store):
        store.set_var("u", "name", "Alice")
        assert store.freeze("u")
        store.set_var("u", "name", "Bob")
        assert store.thaw("u")
        assert store.get_var("u", "name") == "Alice"
        # snapshot is gone after a plain thaw
        assert store.thaw("u") is False

    def test_discard(self, store):
        store.set_var("u", "name", "Alice")
        store.freeze("u")
        store.set_var("u", "name", "Bob")
        assert store.thaw("u", "discard")
        assert store.get_var("u", "name") == "Bob"
        assert store.thaw("u") is False

    def test_keep(self, store):
        store.set_var("u", "name", "Alice")
        store.freeze("u")
        store.set_var("u", "name", "Bob")
        store.thaw("u", "keep")
        assert store.get_var("u", "name") == "Alice"
        store.set_var("u", "name", "Carol")
        assert store.thaw("u")
        assert store.get_var("u", "name") == "Alice"

    def test_freeze_unknown_user(self, store):
        assert store.freeze("ghost") is False

    def test_invalid_action(self, store):
        with pytest.raises(SessionError):
            store.thaw("u", "melt")


class TestClear:
    def test_clear_one(self, store):
        store.set_var("a", "x", "1")
        store.set_var("b", "x", "2")
        store.clear("a")
        assert store.get_all("a") is None
        assert store.get_var("b", "x") == "2"

    def test_clear_all(self, store):
        store.set_var("a", "x", "1")
        store.set_var("b", "x", "2")
        store.clear_all()
        assert store.user_ids() == []


class TestSQLRows:
    def test_rows_are_timestamped(self, sql_sessions):
        sql_sessions.set_var("u", "x", "1")
        with sql_sessions._session_factory() as db:
            row = db.get(UserSessionModel, "u")
            assert row.updated_at is not None
            assert row.variables == {"topic": "random", "x": "1"}


class TestLocking:
    def test_idle_users_hold_no_lock(self, store):
        for i in range(5):
            store.set_var(f"u{i}", "x", "1")
        assert store._locks == {}

    def test_lock_is_reentrant_and_released(self, store):
        with store.lock("u"):
            store.set_var("u", "x", "1")
            assert store.get_var("u", "x") == "1"
            assert "u" in store._locks
        assert "u" not in store._locks


class TestFactory:
    def test_memory(self, make_config):
        manager = get_session_manager(make_config(SESSION_BACKEND="memory"))
        assert manager.name == "memory"

    def test_sql(self, make_config):
        config = make_config(SESSION_BACKEND="sql", DATABASE_URL="sqlite:///:memory:")
        manager = get_session_manager(config)
        assert isinstance(manager, SQLSessionManager)
        assert manager.name == "sql"

    def test_unknown_falls_back(self, make_config, caplog):
        manager = get_session_manager(make_config(SESSION_BACKEND="redis"))
        assert isinstance(manager, MemorySessionManager)
        assert "redis" in caplog.text

    def test_history_size(self, make_config):
        manager = get_session_manager(make_config(HISTORY_SIZE=3))
        assert manager.history("u") == (["undefined"] * 3, ["undefined"] * 3)

    def test_sql_echo_follows_debug(self, make_config):
        url = "sqlite:///:memory:"
        quiet = get_session_manager(make_config(SESSION_BACKEND="sql", DATABASE_URL=url))
        loud = get_session_manager(
            make_config(SESSION_BACKEND="sql", DATABASE_URL=url, DEBUG=True)
        )
        assert quiet._engine.echo is False
        assert loud._engine.echo is True

    def test_sql_requires_url_or_engine(self):
        with pytest.raises(ValueError):
            SQLSessionManager()


class TestEngineUserVars:
    def test_round_trip_through_engine(self, make_bot):
        bot = make_bot()
        bot.set_uservars("u", {"name": "Alice", "age": "30"})
        bot.set_uservars({"v": {"name": "Vic"}})
        assert bot.get_uservar("u", "age") == "30"
        assert bot.get_uservars("v")["name"] == "Vic"
        assert set(bot.get_uservars()) == {"u", "v"}

    def test_freeze_thaw_through_engine(self, make_bot):
        bot = make_bot("+ my name is *\n- <set name=<star>>ok")
        bot.reply("u", "my name is alice")
        bot.freeze_uservars("u")
        bot.reply("u", "my name is bob")
        bot.thaw_uservars("u")
        assert bot.get_uservar("u", "name") == "alice"

    def test_clear_uservars(self, make_bot):
        bot = make_bot()
        bot.set_uservar("u", "x", "1")
        bot.clear_uservars()
        assert bot.get_uservars() == {}
