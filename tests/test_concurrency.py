"""Concurrent replies for many users on one engine"""

from concurrent.futures import ThreadPoolExecutor

from src.core.engine import RiveScript

SCRIPT = """
+ my name is *
- <set name=<star>>ok

+ count
- <add hits=1><get hits>

+ what is my name
- <get name>
"""


class TestConcurrentUsers:
    def test_users_do_not_leak(self, make_bot):
        bot = make_bot(SCRIPT)
        users = [f"user{i}" for i in range(20)]

        def chat(user):
            bot.reply(user, f"my name is {user}")
            return bot.reply(user, "what is my name")

        with ThreadPoolExecutor(max_workers=8) as pool:
            answers = list(pool.map(chat, users))
        assert answers == users

    def test_same_user_counter_is_atomic(self, make_bot):
        bot = make_bot(SCRIPT)
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: bot.reply("shared", "count"), range(50)))
        assert bot.get_uservar("shared", "hits") == "50"

    def test_sql_backend_counter(self, make_config, sql_sessions):
        bot = RiveScript(make_config(), session_manager=sql_sessions, seed=1)
        bot.stream(SCRIPT)
        bot.sort_replies()
        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda _: bot.reply("shared", "count"), range(20)))
        assert bot.get_uservar("shared", "hits") == "20"
