"""Trigger Sorter

Builds the per-topic match order. Scanning a sorted buffer top to bottom
and taking the first structural hit selects the most specific trigger.

Order, outermost first:
1. inheritance level (own + included topics = 0, each inherit edge +1)
2. trigger weight ({weight=N}), highest first
3. priority bucket: atomic > optional > _ > # > * > bare '#' > bare '_' > bare '*'
4. literal word count, highest first
5. declaration order (stable)
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from src.core.logging import get_logger
from src.core.matcher import RE_WEIGHT
from src.core.models import SortedEntry, Trigger

logger = get_logger(__name__)

RE_OPTIONAL = re.compile(r"\[[^\]]*\]")
RE_GROUP = re.compile(r"\([^)]*\)")
RE_WORD_SPLIT = re.compile(r"[\s*#_|]+")
RE_ARRAY_REF = re.compile(r"@\w+")


@dataclass
class SortBuffer:
    """Everything sort_replies() precomputes. Replaced, never patched."""

    topics: dict[str, list[SortedEntry]] = field(default_factory=dict)
    thats: dict[str, list[SortedEntry]] = field(default_factory=dict)
    sub: list[str] = field(default_factory=list)
    person: list[str] = field(default_factory=list)


@dataclass
class _SortTrack:
    """Temporary categorization of triggers while sorting"""

    atomic: dict[int, list[Trigger]] = field(default_factory=lambda: defaultdict(list))
    option: dict[int, list[Trigger]] = field(default_factory=lambda: defaultdict(list))
    alpha: dict[int, list[Trigger]] = field(default_factory=lambda: defaultdict(list))
    number: dict[int, list[Trigger]] = field(default_factory=lambda: defaultdict(list))
    wild: dict[int, list[Trigger]] = field(default_factory=lambda: defaultdict(list))
    pound: list[Trigger] = field(default_factory=list)
    under: list[Trigger] = field(default_factory=list)
    star: list[Trigger] = field(default_factory=list)

    def flatten(self) -> list[Trigger]:
        ordered: list[Trigger] = []
        for bucket in (self.atomic, self.option, self.alpha, self.number, self.wild):
            for count in sorted(bucket, reverse=True):
                ordered.extend(bucket[count])
        ordered.extend(self.pound)
        ordered.extend(self.under)
        ordered.extend(self.star)
        return ordered


def word_count(pattern: str) -> int:
    """Number of fixed words: optionals are ignored, a (group) counts once."""
    text = RE_ARRAY_REF.sub(" @array ", pattern)
    text = RE_OPTIONAL.sub(" ", text)
    text = RE_GROUP.sub(" (group) ", text)
    return len([w for w in RE_WORD_SPLIT.split(text) if w])


def classify(pattern: str) -> str:
    """Name of the priority bucket a pattern falls into."""
    pattern = RE_WEIGHT.sub(" ", pattern).strip()
    # @array_name is an option, its underscores are not wildcards
    pattern = RE_ARRAY_REF.sub("@", pattern)
    if pattern == "#":
        return "pound"
    if pattern == "_":
        return "under"
    if pattern == "*":
        return "star"
    if "_" in pattern:
        return "alpha"
    if "#" in pattern:
        return "number"
    if "*" in pattern:
        return "wild"
    if any(char in pattern for char in "[(@"):
        return "option"
    return "atomic"


def _sort_bucketed(triggers: Iterable[Trigger]) -> list[Trigger]:
    track = _SortTrack()
    for trigger in triggers:
        bucket = classify(trigger.pattern)
        target = getattr(track, bucket)
        if isinstance(target, list):
            target.append(trigger)
        else:
            target[word_count(trigger.pattern)].append(trigger)
    return track.flatten()


def sort_triggers(
    entries: Iterable[tuple[Trigger, int]],
    that_only: bool = False,
) -> list[SortedEntry]:
    """Sort (trigger, inheritance level) pairs into a match buffer.

    that_only=False keeps only triggers without %Previous (primary buffer);
    that_only=True keeps only those with one (that buffer).
    """
    by_level: dict[int, list[Trigger]] = defaultdict(list)
    for trigger, level in entries:
        if trigger.has_previous != that_only:
            continue
        by_level[level].append(trigger)

    result: list[SortedEntry] = []
    for level in sorted(by_level):
        by_weight: dict[int, list[Trigger]] = defaultdict(list)
        for trigger in by_level[level]:
            by_weight[trigger.weight].append(trigger)

        for weight in sorted(by_weight, reverse=True):
            for trigger in _sort_bucketed(by_weight[weight]):
                result.append(SortedEntry(trigger.pattern, trigger))

    return result


def sort_substitutions(mapping: Mapping[str, str]) -> list[str]:
    """Substitution keys, most words first, then longest first."""
    keys = sorted(mapping)
    keys.sort(key=lambda k: (len(k.split()), len(k)), reverse=True)
    return keys
