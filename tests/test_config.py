"""Settings and console shell tests"""

import io

from src.config import Settings
from src import main as shell


class TestSettings:
    def test_defaults(self):
        config = Settings(_env_file=None)
        assert config.DEPTH == 50
        assert config.STRICT is True
        assert config.UTF8 is False
        assert config.SESSION_BACKEND == "memory"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DEPTH", "10")
        monkeypatch.setenv("UTF8", "true")
        config = Settings(_env_file=None)
        assert config.DEPTH == 10
        assert config.UTF8 is True


class TestShell:
    def test_chat_session(self, tmp_path, monkeypatch, capsys):
        (tmp_path / "hello.rive").write_text("+ hello\n- Hi!", encoding="utf-8")
        monkeypatch.setattr("sys.stdin", io.StringIO("hello\n/quit\nhello\n"))

        assert shell.main([str(tmp_path)]) == 0
        out = capsys.readouterr().out
        assert out.count("Bot> Hi!") == 1

    def test_nothing_to_load(self, tmp_path):
        assert shell.main([str(tmp_path / "missing")]) == 1
