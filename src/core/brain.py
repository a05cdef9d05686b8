"""Reply Resolver

Drives one reply: normalize the message, pick the active topic, find the
winning trigger in the precomputed sort buffers (that-context first),
choose a reply (conditions, then weighted random) and expand its tags.
Redirects, inline redirects and macro calls recurse through get_reply
sharing one depth counter; exceeding Settings.DEPTH aborts the whole
resolution with DeepRecursionError.
"""

from __future__ import annotations

import re
import threading
from typing import TYPE_CHECKING, Optional

from src.core.errors import (
    ERR_DEEP_RECURSION,
    ERR_NO_MATCH,
    ERR_NO_REPLY,
    DeepRecursionError,
    RepliesNotSortedError,
)
from src.core.logging import get_logger
from src.core.matcher import MatchResult, match
from src.core.models import DEFAULT_TOPIC, UNDEFINED, Trigger
from src.core.normalize import collapse_whitespace, format_message, is_numeric
from src.core.tags import ReplyContext, TagProcessor

if TYPE_CHECKING:
    from src.core.engine import RiveScript

logger = get_logger(__name__)

RE_CONDITION = re.compile(r"^(.+?)\s+(==|eq|!=|ne|<>|<=|>=|<|>)\s+(.*?)$")
RE_CONDITION_SPLIT = re.compile(r"\s*=>\s*")
RE_REPLY_WEIGHT = re.compile(r"\{weight=(\d+)\}")
RE_PATTERN_BOT = re.compile(r"<bot\s+([^<>]+?)>")
RE_PATTERN_GET = re.compile(r"<get\s+([^<>]+?)>")
RE_PATTERN_INPUT = re.compile(r"<input(\d*)>")
RE_PATTERN_REPLY = re.compile(r"<reply(\d*)>")


class Brain:
    """Reply resolution for one engine"""

    def __init__(self, engine: RiveScript) -> None:
        self.engine = engine
        self.tags = TagProcessor(self)
        # per-thread (depth, user) stack so macros calling reply() nest
        self._local = threading.local()

    # === Entry point ===

    def reply(self, user: str, message: str) -> str:
        """Resolve one message for one user. Caller holds the user's lock."""
        if self.engine.sorted is None:
            raise RepliesNotSortedError()

        stack: list[tuple[int, str]] = self._stack()
        nested = bool(stack)
        start_depth = stack[-1][0] + 1 if nested else 0

        stack.append((start_depth, user))
        try:
            normalized = self.format_message(message)
            logger.debug("Get reply to [%s] %s", user, normalized)
            try:
                reply = self.get_reply(user, normalized, start_depth, top_level=True)
            except DeepRecursionError:
                if nested:
                    raise
                logger.warning("Deep recursion while replying to [%s] %s", user, normalized)
                return ERR_DEEP_RECURSION
        finally:
            stack.pop()

        reply = reply.strip()
        self.engine.sessions.push_history(user, normalized, reply)
        return reply

    def current_user(self) -> Optional[str]:
        stack = self._stack()
        return stack[-1][1] if stack else None

    # === Resolution ===

    def check_depth(self, depth: int) -> None:
        if depth > self.engine.settings.DEPTH:
            raise DeepRecursionError(self.engine.settings.DEPTH)

    def get_reply(
        self, user: str, message: str, depth: int, top_level: bool = False
    ) -> str:
        """Match message in the user's topic and build the reply text."""
        self.check_depth(depth)
        previous = self._mark_depth(depth)
        try:
            return self._resolve(user, message, depth, top_level)
        finally:
            self._mark_depth(previous)

    def _resolve(self, user: str, message: str, depth: int, top_level: bool) -> str:
        engine = self.engine
        sorted_buffer = engine.sorted
        if sorted_buffer is None:
            raise RepliesNotSortedError()

        topic = engine.sessions.current_topic(user)
        if topic not in sorted_buffer.topics:
            logger.warning("User %s was in an empty topic named '%s'", user, topic)
            topic = DEFAULT_TOPIC
            engine.sessions.set_topic(user, topic)

        matched: Optional[Trigger] = None
        stars: list[str] = []
        botstars: list[str] = []

        # %Previous triggers only apply to what the user typed, not redirects
        if top_level and sorted_buffer.thats.get(topic):
            last_reply = self.format_message(engine.sessions.last_reply(user))
            for entry in sorted_buffer.thats[topic]:
                bot_side = self.match_pattern(user, entry.trigger.previous or "", last_reply)
                if not bot_side:
                    continue
                user_side = self.match_pattern(user, entry.pattern, message)
                if user_side:
                    logger.debug("Found a %%Previous match: %s", entry.pattern)
                    matched = entry.trigger
                    stars, botstars = user_side.captures, bot_side.captures
                    break

        if matched is None:
            for entry in sorted_buffer.topics.get(topic, []):
                result = self.match_pattern(user, entry.pattern, message)
                if result:
                    logger.debug("Found a match: %s", entry.pattern)
                    matched = entry.trigger
                    stars = result.captures
                    break

        if matched is None:
            return ERR_NO_MATCH

        engine.sessions.set_last_match(user, matched.pattern)
        ctx = ReplyContext(user=user, message=message, depth=depth, stars=stars, botstars=botstars)

        if matched.redirect:
            target = self.normalize_redirect(self.tags.process(ctx, matched.redirect))
            logger.debug("Redirecting to: %s", target)
            return self.get_reply(user, target, depth + 1)

        reply = self._condition_reply(ctx, matched)
        if reply is None:
            reply = self._weighted_choice(matched.replies)
        if reply is None:
            return ERR_NO_REPLY

        return self.tags.process(ctx, reply)

    def _condition_reply(self, ctx: ReplyContext, trigger: Trigger) -> Optional[str]:
        """Reply text of the first condition that holds, if any."""
        for condition in trigger.conditions:
            halves = RE_CONDITION_SPLIT.split(condition, maxsplit=1)
            if len(halves) != 2:
                logger.warning("Malformed condition: %s", condition)
                continue
            parsed = RE_CONDITION.match(halves[0].strip())
            if not parsed:
                logger.warning("Malformed condition: %s", condition)
                continue

            left, op, right = parsed.groups()
            left = self.tags.process(ctx, left.strip()).strip() or UNDEFINED
            right = self.tags.process(ctx, right.strip()).strip() or UNDEFINED

            if self.compare(left, op, right):
                return halves[1]
        return None

    @staticmethod
    def compare(left: str, op: str, right: str) -> bool:
        if op in ("==", "eq"):
            return left == right
        if op in ("!=", "ne", "<>"):
            return left != right

        if not (is_numeric(left) and is_numeric(right)):
            logger.warning("Non-numeric comparison: %s %s %s", left, op, right)
            return False
        a, b = int(left), int(right)
        if op == "<":
            return a < b
        if op == "<=":
            return a <= b
        if op == ">":
            return a > b
        return a >= b

    def _weighted_choice(self, replies: tuple[str, ...]) -> Optional[str]:
        if not replies:
            return None
        weights = []
        for text in replies:
            m = RE_REPLY_WEIGHT.search(text)
            weights.append(max(int(m.group(1)), 1) if m else 1)
        return self.engine.rng.choices(replies, weights=weights, k=1)[0]

    # === Matching helpers ===

    def match_pattern(self, user: str, pattern: str, message: str) -> MatchResult:
        if "<" in pattern:
            pattern = self._expand_pattern_tags(user, pattern)
        return match(pattern, message, self.engine.arrays)

    def _expand_pattern_tags(self, user: str, pattern: str) -> str:
        """<bot>, <get>, <input>, <reply> inside a trigger become normalized text."""
        engine = self.engine

        def clean(value: str) -> str:
            return self.format_message(value, substitutions=False)

        pattern = RE_PATTERN_BOT.sub(lambda m: clean(engine.get_variable(m.group(1).strip())), pattern)
        pattern = RE_PATTERN_GET.sub(
            lambda m: clean(engine.sessions.get_var(user, m.group(1).strip())), pattern
        )
        if RE_PATTERN_INPUT.search(pattern) or RE_PATTERN_REPLY.search(pattern):
            inputs, replies = engine.sessions.history(user)
            pattern = RE_PATTERN_INPUT.sub(
                lambda m: clean(TagProcessor._capture(inputs, m.group(1))), pattern
            )
            pattern = RE_PATTERN_REPLY.sub(
                lambda m: clean(TagProcessor._capture(replies, m.group(1))), pattern
            )
        return pattern

    def format_message(self, text: str, substitutions: bool = True) -> str:
        engine = self.engine
        return format_message(
            text,
            sub_keys=engine.sorted_sub if substitutions else (),
            subs=engine.sub if substitutions else None,
            utf8=engine.settings.UTF8,
            punctuation=engine.punctuation,
        )

    def normalize_redirect(self, target: str) -> str:
        return self.format_message(collapse_whitespace(target), substitutions=False)

    # === Thread-local bookkeeping ===

    def _stack(self) -> list[tuple[int, str]]:
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def _mark_depth(self, depth: int) -> int:
        """Record the depth being resolved; returns the one it replaces."""
        stack = self._stack()
        if not stack:
            return depth
        previous = stack[-1][0]
        stack[-1] = (depth, stack[-1][1])
        return previous

