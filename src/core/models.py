"""Brain domain models (storage independent).

Triggers and topics are immutable once loaded; a reload replaces them
wholesale. UserData is the only structure mutated while replying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

# --- Forms of undefined ---
UNDEFINED = "undefined"  # default text for variable getters
UNDEF_TAG = "<undef>"  # definition value that deletes the key

DEFAULT_TOPIC = "random"
BEGIN_TOPIC = "__begin__"


@dataclass(frozen=True)
class Trigger:
    """One `+` line with its response rules"""

    pattern: str
    topic: str = DEFAULT_TOPIC
    replies: tuple[str, ...] = ()
    conditions: tuple[str, ...] = ()
    redirect: Optional[str] = None
    previous: Optional[str] = None
    weight: int = 0  # {weight=N} on the trigger, higher sorts first

    @property
    def has_previous(self) -> bool:
        return bool(self.previous)


@dataclass
class Topic:
    """Named group of triggers"""

    name: str
    triggers: list[Trigger] = field(default_factory=list)
    includes: set[str] = field(default_factory=set)  # same priority
    inherits: set[str] = field(default_factory=set)  # lower priority


@dataclass(frozen=True)
class SortedEntry:
    """Sort buffer row: the pattern text and the trigger owning it"""

    pattern: str
    trigger: Trigger


@dataclass
class UserData:
    """Per-user conversation state"""

    user_id: str
    history_size: int = 9
    variables: dict[str, str] = field(default_factory=dict)
    input_history: list[str] = field(default_factory=list)
    reply_history: list[str] = field(default_factory=list)
    last_reply: str = UNDEFINED
    last_match: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.input_history:
            self.input_history = [UNDEFINED] * self.history_size
        if not self.reply_history:
            self.reply_history = [UNDEFINED] * self.history_size
        self.variables.setdefault("topic", DEFAULT_TOPIC)

    def push_history(self, user_input: str, reply: str) -> None:
        """Newest first; the oldest entry falls off the end."""
        self.input_history = ([user_input] + self.input_history)[: self.history_size]
        self.reply_history = ([reply] + self.reply_history)[: self.history_size]
        self.last_reply = reply

