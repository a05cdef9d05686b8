"""Reply engine core (the RiveScript facade lives in src.core.engine)"""
__version__ = "0.1.0"

from src.core.brain import Brain
from src.core.errors import (
    ERR_DEEP_RECURSION,
    ERR_NO_MATCH,
    ERR_NO_REPLY,
    ERR_OBJECT_FAILED,
    ERR_OBJECT_NOT_FOUND,
    DeepRecursionError,
    MacroError,
    MacroNotFoundError,
    RepliesNotSortedError,
    RiveScriptError,
    SessionError,
)
from src.core.matcher import MatchResult, match, tokenize
from src.core.models import DEFAULT_TOPIC, UNDEF_TAG, UNDEFINED, SortedEntry, Topic, Trigger, UserData
from src.core.sorting import SortBuffer, sort_substitutions, sort_triggers
from src.core.topic_index import TopicIndex

__all__ = [
    "Brain",
    "ERR_DEEP_RECURSION",
    "ERR_NO_MATCH",
    "ERR_NO_REPLY",
    "ERR_OBJECT_FAILED",
    "ERR_OBJECT_NOT_FOUND",
    "DeepRecursionError",
    "MacroError",
    "MacroNotFoundError",
    "RepliesNotSortedError",
    "RiveScriptError",
    "SessionError",
    "MatchResult",
    "match",
    "tokenize",
    "DEFAULT_TOPIC",
    "UNDEF_TAG",
    "UNDEFINED",
    "SortedEntry",
    "Topic",
    "Trigger",
    "UserData",
    "SortBuffer",
    "sort_substitutions",
    "sort_triggers",
    "TopicIndex",
]
