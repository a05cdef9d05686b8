"""
Reply Engine - Main Entry Point
===============================
Owns everything one chatbot needs: the loaded topics, the definition
tables (global / bot variables, substitutions, arrays), the sort
buffers, the user store and the macro registry.

Lifecycle is load-then-freeze:

    bot = RiveScript()
    bot.load_directory("brain/")
    bot.sort_replies()          # once every load is done
    bot.reply("alice", "hello") # safe from many threads after this

Loading while other threads are replying is not supported.
"""

from __future__ import annotations

import logging
import random
import re
import threading
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from src.config import Settings, settings as default_settings
from src.core.brain import Brain
from src.core.errors import RepliesNotSortedError
from src.core.logging import get_logger
from src.core.matcher import RE_WEIGHT
from src.core.models import UNDEF_TAG, UNDEFINED, Trigger
from src.core.sorting import SortBuffer, sort_substitutions, sort_triggers
from src.core.topic_index import TopicIndex
from src.parser.ast import RootAST
from src.parser.parser import ScriptParser
from src.services.macro import MacroDispatcher, MacroHandler, PythonHandler, Subroutine
from src.services.session import SessionManager, get_session_manager

logger = get_logger(__name__)

RE_TRIGGER_WEIGHT = re.compile(r"\{weight=(\d+)\}")

DEFAULT_EXTENSIONS = (".rive", ".rs")


def _trigger_from_ast(topic: str, raw: Any) -> Trigger:
    """TriggerAST -> Trigger (weight split out of the pattern)"""
    weight = RE_TRIGGER_WEIGHT.search(raw.pattern)
    return Trigger(
        pattern=RE_WEIGHT.sub(" ", raw.pattern).strip(),
        topic=topic,
        replies=tuple(raw.replies),
        conditions=tuple(raw.conditions),
        redirect=raw.redirect or None,
        previous=raw.previous or None,
        weight=int(weight.group(1)) if weight else 0,
    )


def _merge_definitions(target: dict, source: dict) -> None:
    """Overwrite keys; the <undef> value deletes them."""
    for key, value in source.items():
        if value == UNDEF_TAG or value == [UNDEF_TAG]:
            target.pop(key, None)
        else:
            target[key] = value


class RiveScript:
    """Chatbot engine"""

    def __init__(
        self,
        config: Optional[Settings] = None,
        session_manager: Optional[SessionManager] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.settings = config or default_settings
        self.punctuation = re.compile(self.settings.UNICODE_PUNCTUATION)
        if self.settings.DEBUG:
            logging.getLogger("src").setLevel(logging.DEBUG)

        self.sessions = session_manager or get_session_manager(self.settings)
        self.macros = MacroDispatcher()
        if self.settings.PYTHON_MACROS:
            self.macros.set_handler("python", PythonHandler())

        self.parser = ScriptParser(strict=self.settings.STRICT, utf8=self.settings.UTF8)
        self.index = TopicIndex()

        # definition tables
        self.globals: dict[str, str] = {}
        self.variables: dict[str, str] = {}
        self.sub: dict[str, str] = {}
        self.person: dict[str, str] = {}
        self.arrays: dict[str, list[str]] = {}

        self.sorted: Optional[SortBuffer] = None
        self.rng = random.Random(seed)
        self.brain = Brain(self)
        self._tables_lock = threading.Lock()

        logger.info("Engine initialized (depth=%d, utf8=%s)", self.settings.DEPTH, self.settings.UTF8)

    # === Loading ===

    def load_file(self, path: Union[str, Path]) -> bool:
        """Load one script file. Returns False if it can't be read."""
        path = Path(path)
        logger.debug("Load script file: %s", path)
        try:
            code = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to open file %s: %s", path, e)
            return False
        self.load_ast(self.parser.parse(str(path), code.splitlines()))
        return True

    def load_directory(
        self, directory: Union[str, Path], extensions: Iterable[str] = DEFAULT_EXTENSIONS
    ) -> int:
        """Load every script file in a folder (sorted by name). Returns the count."""
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning("Failed to open folder %s: not a directory", directory)
            return 0

        extensions = tuple(ext.lower() for ext in extensions)
        count = 0
        for path in sorted(directory.iterdir()):
            if path.is_file() and path.suffix.lower() in extensions:
                count += int(self.load_file(path))
        logger.info("Loaded %d script files from %s", count, directory)
        return count

    def stream(self, code: str, filename: str = "stream()") -> None:
        """Load script source from a string."""
        self.load_ast(self.parser.parse(filename, code))

    def load_ast(self, root: Union[RootAST, dict], source: str = "ast") -> None:
        """Merge a parsed document into the brain. Invalidates the sort buffers."""
        if isinstance(root, dict):
            root = RootAST.model_validate(root)

        with self._tables_lock:
            _merge_definitions(self.globals, root.begin.global_)
            _merge_definitions(self.variables, root.begin.var)
            _merge_definitions(self.sub, root.begin.sub)
            _merge_definitions(self.person, root.begin.person)
            _merge_definitions(self.arrays, root.begin.array)

        count = 0
        for name, topic in root.topics.items():
            self.index.add_edges(name, topic.includes, topic.inherits)
            for raw in topic.triggers:
                self.index.add_trigger(_trigger_from_ast(name, raw))
                count += 1

        for obj in root.objects:
            self.macros.load_object(obj.name, obj.language, obj.code)

        self.sorted = None
        logger.debug("Loaded %d triggers from %s", count, source)

    def sort_replies(self) -> None:
        """Build the sort buffers. Call once after all loading is done."""
        buffer = SortBuffer()
        logger.debug("Sorting triggers...")

        for topic in self.index.names:
            buffer.topics[topic] = sort_triggers(self.index.visible_triggers(topic))
            buffer.thats[topic] = sort_triggers(
                self.index.visible_that_triggers(topic, self.settings.THAT_INHERITANCE),
                that_only=True,
            )

        buffer.sub = sort_substitutions(self.sub)
        buffer.person = sort_substitutions(self.person)
        self.sorted = buffer
        logger.info("Sorted %d topics", len(buffer.topics))

    @property
    def sorted_sub(self) -> list[str]:
        return self.sorted.sub if self.sorted else sort_substitutions(self.sub)

    @property
    def sorted_person(self) -> list[str]:
        return self.sorted.person if self.sorted else sort_substitutions(self.person)

    # === Replies ===

    def reply(self, user: str, message: str) -> str:
        """Get the bot's reply to a user's message.

        Always returns text: no match, deep recursion and macro failures
        come back as [ERR: ...] replies.

        Raises:
            RepliesNotSortedError: sort_replies() has not run since the last load.
        """
        if self.sorted is None:
            raise RepliesNotSortedError()
        with self.sessions.lock(user):
            return self.brain.reply(user, message)

    def current_user(self) -> Optional[str]:
        """User whose reply is being computed on this thread (for macros)."""
        return self.brain.current_user()

    def last_match(self, user: str) -> Optional[str]:
        """Pattern of the trigger that produced the user's last reply."""
        return self.sessions.last_match(user)

    # === Macros ===

    def set_handler(self, language: str, handler: Optional[MacroHandler]) -> None:
        self.macros.set_handler(language, handler)

    def set_subroutine(self, name: str, func: Optional[Subroutine]) -> None:
        self.macros.set_subroutine(name, func)

    # === Definition tables ===

    def set_global(self, name: str, value: Optional[str]) -> None:
        with self._tables_lock:
            _merge_definitions(self.globals, {name: UNDEF_TAG if value is None else value})

    def get_global(self, name: str) -> str:
        return self.globals.get(name, UNDEFINED)

    def set_variable(self, name: str, value: Optional[str]) -> None:
        with self._tables_lock:
            _merge_definitions(self.variables, {name: UNDEF_TAG if value is None else value})

    def get_variable(self, name: str) -> str:
        return self.variables.get(name, UNDEFINED)

    def set_substitution(self, word: str, value: Optional[str]) -> None:
        with self._tables_lock:
            _merge_definitions(self.sub, {word.lower(): UNDEF_TAG if value is None else value})
            if self.sorted is not None:
                self.sorted.sub = sort_substitutions(self.sub)

    def set_person(self, word: str, value: Optional[str]) -> None:
        with self._tables_lock:
            _merge_definitions(self.person, {word.lower(): UNDEF_TAG if value is None else value})
            if self.sorted is not None:
                self.sorted.person = sort_substitutions(self.person)

    # === User variables ===

    def set_uservar(self, user: str, name: str, value: str) -> None:
        self.sessions.set_var(user, name, value)

    def set_uservars(
        self, user: Union[str, dict[str, dict[str, str]]], data: Optional[dict[str, str]] = None
    ) -> None:
        """Set many variables for one user, or pass {user: {name: value}}."""
        if isinstance(user, dict):
            for uid, variables in user.items():
                self.sessions.set_vars(uid, variables)
            return
        self.sessions.set_vars(user, data or {})

    def get_uservar(self, user: str, name: str) -> str:
        return self.sessions.get_var(user, name)

    def get_uservars(
        self, user: Optional[str] = None
    ) -> Union[Optional[dict[str, str]], dict[str, dict[str, str]]]:
        """One user's variables, or every user's when user is None."""
        if user is None:
            return self.sessions.get_any()
        return self.sessions.get_all(user)

    def clear_uservars(self, user: Optional[str] = None) -> None:
        if user is None:
            self.sessions.clear_all()
        else:
            self.sessions.clear(user)

    def freeze_uservars(self, user: str) -> bool:
        return self.sessions.freeze(user)

    def thaw_uservars(self, user: str, action: str = "thaw") -> bool:
        return self.sessions.thaw(user, action)

    # === Debugging ===

    def dump_topics(self) -> str:
        return self.index.dump()

    def dump_sorted(self) -> str:
        if self.sorted is None:
            return "Sort buffers are empty; call sort_replies()"
        lines: list[str] = []
        for label, tree in (("Topics", self.sorted.topics), ("Thats", self.sorted.thats)):
            lines.append(f"Sort Buffer: {label}")
            for topic, entries in tree.items():
                lines.append(f"  Topic: {topic}")
                lines.extend(f"    + {entry.pattern}" for entry in entries)
        for label, items in (
            ("Substitutions", self.sorted.sub),
            ("Person Substitutions", self.sorted.person),
        ):
            lines.append(f"Sort Buffer: {label}")
            lines.extend(f"  {item}" for item in items)
        return "\n".join(lines)
