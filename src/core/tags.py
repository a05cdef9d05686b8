"""Reply tag expansion.

Tags are expanded left to right in fixed phases:

1. {weight=N} markers are stripped, shortcut tags (<formal>, <@>, ...)
   are rewritten into their long form
2. <star>, <botstar>, <input>, <reply>, <id>, escapes, (@array), {random}
3. variable tags (<get>, <set>, <bot>, <env>, math) and formatting blocks
   ({formal}...{/formal}), innermost first
4. {topic=...}, {@redirect}, <call>macro</call>

Values inserted in phase 2-3 have their angle brackets and braces escaped
so user text is never interpreted as a tag.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.core.errors import (
    ERR_OBJECT_FAILED,
    ERR_OBJECT_NOT_FOUND,
    MacroError,
    MacroNotFoundError,
)
from src.core.logging import get_logger
from src.core.models import UNDEFINED
from src.core.normalize import formal, is_numeric, sentence, split_args, substitute

# Brain imports this module; type hints only
if TYPE_CHECKING:
    from src.core.brain import Brain

logger = get_logger(__name__)

SHORTCUTS = {
    "<person>": "{person}<star>{/person}",
    "<@>": "{@<star>}",
    "<formal>": "{formal}<star>{/formal}",
    "<sentence>": "{sentence}<star>{/sentence}",
    "<uppercase>": "{uppercase}<star>{/uppercase}",
    "<lowercase>": "{lowercase}<star>{/lowercase}",
}

RE_WEIGHT_MARK = re.compile(r"\s*\{weight=\d+\}")
RE_STAR = re.compile(r"<star(\d*)>")
RE_BOTSTAR = re.compile(r"<botstar(\d*)>")
RE_INPUT = re.compile(r"<input(\d*)>")
RE_REPLY = re.compile(r"<reply(\d*)>")
RE_REPLY_ARRAY = re.compile(r"\(@([A-Za-z0-9_]+)\)")
RE_RANDOM = re.compile(r"\{random\}(.*?)\{/random\}", re.DOTALL)
RE_FORMAT = re.compile(
    r"\{(person|formal|sentence|uppercase|lowercase)\}([^<>{}]*?)\{/\1\}", re.DOTALL
)
RE_VARIABLE = re.compile(r"<(bot|env|get|set|add|sub|mult|div)(?:\s+([^<>]*?))?>")
RE_TOPIC = re.compile(r"\{topic=([^}]*?)\}")
RE_INLINE_REDIRECT = re.compile(r"\{@([^}]*?)\}")
RE_CALL = re.compile(r"<call>(.*?)</call>", re.DOTALL)

ESCAPE = {"<": "\x01", ">": "\x02", "{": "\x03", "}": "\x04"}
MATH_TAGS = {"add", "sub", "mult", "div"}


def escape(text: str) -> str:
    for char, sentinel in ESCAPE.items():
        text = text.replace(char, sentinel)
    return text


def unescape(text: str) -> str:
    for char, sentinel in ESCAPE.items():
        text = text.replace(sentinel, char)
    return text


@dataclass
class ReplyContext:
    """State of one resolution step"""

    user: str
    message: str
    depth: int = 0
    stars: list[str] = field(default_factory=list)
    botstars: list[str] = field(default_factory=list)


class TagProcessor:
    """Expands reply (and condition) templates for the Brain."""

    def __init__(self, brain: Brain) -> None:
        self.brain = brain

    @property
    def engine(self):
        return self.brain.engine

    def process(self, ctx: ReplyContext, text: str) -> str:
        text = RE_WEIGHT_MARK.sub("", text)
        for short, long in SHORTCUTS.items():
            text = text.replace(short, long)

        # template-only syntax, expanded before any user text is inserted
        text = text.replace("\\s", " ").replace("\\n", "\n").replace("\\#", "#")
        text = RE_REPLY_ARRAY.sub(self._array_choice, text)

        text = RE_STAR.sub(lambda m: escape(self._capture(ctx.stars, m.group(1))), text)
        text = RE_BOTSTAR.sub(lambda m: escape(self._capture(ctx.botstars, m.group(1))), text)

        if RE_INPUT.search(text) or RE_REPLY.search(text):
            inputs, replies = self.engine.sessions.history(ctx.user)
            text = RE_INPUT.sub(lambda m: escape(self._capture(inputs, m.group(1))), text)
            text = RE_REPLY.sub(lambda m: escape(self._capture(replies, m.group(1))), text)

        text = text.replace("<id>", escape(ctx.user))

        while True:
            m = RE_RANDOM.search(text)
            if not m:
                break
            text = text[: m.start()] + self._random(m.group(1)) + text[m.end() :]

        text = self._expand_variables(ctx, text)

        # {topic=...}
        for m in list(RE_TOPIC.finditer(text)):
            topic = unescape(m.group(1)).strip().lower()
            logger.debug("Setting user %s's topic to %s", ctx.user, topic)
            self.engine.sessions.set_topic(ctx.user, topic)
        text = RE_TOPIC.sub("", text)

        # {@inline redirect}
        while True:
            m = RE_INLINE_REDIRECT.search(text)
            if not m:
                break
            target = self.brain.normalize_redirect(unescape(m.group(1)))
            logger.debug("Inline redirection to: %s", target)
            sub_reply = self.brain.get_reply(ctx.user, target, ctx.depth + 1)
            text = text[: m.start()] + escape(sub_reply) + text[m.end() :]

        # <call>macro</call>
        while True:
            m = RE_CALL.search(text)
            if not m:
                break
            output = self._call(ctx, unescape(m.group(1)))
            text = text[: m.start()] + escape(output) + text[m.end() :]

        return unescape(text)

    # === Phase helpers ===

    @staticmethod
    def _capture(values: list[str], index: str) -> str:
        position = int(index) if index else 1
        if 1 <= position <= len(values):
            value = values[position - 1]
            return UNDEFINED if value is None else value
        return UNDEFINED

    def _array_choice(self, m: re.Match) -> str:
        entries = self.engine.arrays.get(m.group(1))
        if not entries:
            return m.group(0)
        return escape(self.engine.rng.choice(entries))

    def _random(self, body: str) -> str:
        options = body.split("|") if "|" in body else body.split()
        return self.engine.rng.choice(options) if options else ""

    def _format(self, kind: str, text: str) -> str:
        if kind == "person":
            return substitute(
                text, self.engine.sorted_person, self.engine.person, ignore_case=True
            )
        if kind == "formal":
            return formal(text)
        if kind == "sentence":
            return sentence(text)
        if kind == "uppercase":
            return text.upper()
        return text.lower()

    def _expand_variables(self, ctx: ReplyContext, text: str) -> str:
        """Variable tags and formatting blocks, innermost first."""
        while True:
            fmt = RE_FORMAT.search(text)
            if fmt:
                text = text[: fmt.start()] + self._format(fmt.group(1), fmt.group(2)) + text[fmt.end() :]
                continue

            var = RE_VARIABLE.search(text)
            if not var:
                return text
            value = self._variable(ctx, var.group(1), unescape(var.group(2) or "").strip())
            text = text[: var.start()] + escape(value) + text[var.end() :]

    def _variable(self, ctx: ReplyContext, tag: str, data: str) -> str:
        engine = self.engine
        name, has_value, value = data.partition("=")
        name, value = name.strip(), value.strip()

        if tag == "bot":
            if has_value:
                engine.set_variable(name, value)
                return ""
            return engine.get_variable(name)

        if tag == "env":
            if has_value:
                engine.set_global(name, value)
                return ""
            return engine.get_global(name)

        if tag == "get":
            return engine.sessions.get_var(ctx.user, name)

        if tag == "set":
            logger.debug("Set uservar %s=%s for %s", name, value, ctx.user)
            engine.sessions.set_var(ctx.user, name, value)
            return ""

        # add / sub / mult / div
        return self._math(ctx, tag, name, value)

    def _math(self, ctx: ReplyContext, tag: str, name: str, value: str) -> str:
        sessions = self.engine.sessions
        with sessions.lock(ctx.user):
            current = sessions.get_var(ctx.user, name)
            if current == UNDEFINED:
                current = "0"
            if not is_numeric(value):
                return f"[ERR: Math can't '{tag}' non-numeric value '{value}']"
            if not is_numeric(current):
                return f"[ERR: Math can't '{tag}' non-numeric user variable '{name}']"

            left, right = int(current), int(value)
            if tag == "add":
                result = left + right
            elif tag == "sub":
                result = left - right
            elif tag == "mult":
                result = left * right
            else:
                if right == 0:
                    return "[ERR: Can't Divide By Zero]"
                result = int(left / right)

            sessions.set_var(ctx.user, name, str(result))
        return ""

    def _call(self, ctx: ReplyContext, body: str) -> str:
        parts = body.strip().split(None, 1)
        if not parts:
            return ""
        name = parts[0]
        args = split_args(parts[1]) if len(parts) > 1 else []

        try:
            output = self.brain.engine.macros.invoke(self.brain.engine, name, args)
        except MacroNotFoundError:
            logger.warning("Object macro not found: %s", name)
            return ERR_OBJECT_NOT_FOUND
        except MacroError:
            return ERR_OBJECT_FAILED

        # macro output may itself contain tags: one more level of recursion
        if "<" in output or "{" in output:
            deeper = ReplyContext(
                user=ctx.user,
                message=ctx.message,
                depth=ctx.depth + 1,
                stars=ctx.stars,
                botstars=ctx.botstars,
            )
            self.brain.check_depth(deeper.depth)
            output = self.process(deeper, output)
        return output
