"""Pattern Matcher

Tests one normalized input (a list of words) against one trigger pattern.
The pattern is compiled once into a token tree and matched with a
backtracking walk over the words; no regex translation is involved so
arrays and alternations can nest freely.

Pattern grammar:
- word        exactly one identical input word
- *           one or more words (greedy, backtracks), captured
- #           one all-digit word, captured
- _           one all-letter word, captured
- (a|b c)     exactly one alternative, captured as a group
- [a|b c]     one alternative or nothing, never captured
- @name       alternation over the array entries, not captured
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterator, Mapping, Optional, Sequence, Union

from src.core.logging import get_logger

logger = get_logger(__name__)

RE_WEIGHT = re.compile(r"\s*\{weight=\d+\}\s*")
RE_DIGITS = re.compile(r"\d+")

SPECIAL = set("*#_[]()|@")


# === Tokens ===


@dataclass(frozen=True)
class Word:
    text: str


@dataclass(frozen=True)
class Wildcard:
    kind: str  # "*" | "#" | "_"
    capture: bool = True


@dataclass(frozen=True)
class Group:
    alternatives: tuple[tuple["Token", ...], ...]
    optional: bool = False
    capture: bool = False


@dataclass(frozen=True)
class ArrayRef:
    name: str


Token = Union[Word, Wildcard, Group, ArrayRef]


@dataclass
class MatchResult:
    matched: bool
    captures: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.matched


NO_MATCH = MatchResult(False)


# === Tokenizer ===


class _Tokenizer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse_sequence(self, in_optional: bool) -> tuple[Token, ...]:
        """Read tokens until `|`, a closing bracket or the end of text."""
        tokens: list[Token] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]

            if char.isspace():
                self.pos += 1
            elif char in "|)]":
                break
            elif char in "*#_":
                tokens.append(Wildcard(char, capture=not in_optional))
                self.pos += 1
            elif char == "(":
                self.pos += 1
                alts = self.parse_alternatives(")", in_optional)
                tokens.append(Group(alts, optional=False, capture=not in_optional))
            elif char == "[":
                self.pos += 1
                alts = self.parse_alternatives("]", True)
                tokens.append(Group(alts, optional=True, capture=False))
            elif char == "@":
                self.pos += 1
                tokens.append(ArrayRef(self._read_name()))
            else:
                tokens.append(Word(self._read_word()))
        return tuple(tokens)

    def parse_alternatives(
        self, closer: str, in_optional: bool
    ) -> tuple[tuple[Token, ...], ...]:
        alternatives = [self.parse_sequence(in_optional)]
        while self.pos < len(self.text) and self.text[self.pos] == "|":
            self.pos += 1
            alternatives.append(self.parse_sequence(in_optional))
        if self.pos < len(self.text) and self.text[self.pos] == closer:
            self.pos += 1
        else:
            logger.warning("Unterminated group in pattern: %s", self.text)
        return tuple(alt for alt in alternatives if alt)

    def _read_word(self) -> str:
        start = self.pos
        while (
            self.pos < len(self.text)
            and not self.text[self.pos].isspace()
            and self.text[self.pos] not in SPECIAL
        ):
            self.pos += 1
        return self.text[start : self.pos]

    def _read_name(self) -> str:
        """Array name after @: letters, digits and underscores."""
        start = self.pos
        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] == "_"
        ):
            self.pos += 1
        return self.text[start : self.pos]


@lru_cache(maxsize=4096)
def tokenize(pattern: str) -> tuple[Token, ...]:
    """Compile a pattern into its token tree (cached, tokens are immutable)."""
    text = RE_WEIGHT.sub(" ", pattern).strip().lower()
    tokenizer = _Tokenizer(text)
    tokens: list[Token] = []
    while tokenizer.pos < len(text):
        tokens.extend(tokenizer.parse_sequence(False))
        # stray closers at top level are skipped
        if tokenizer.pos < len(text):
            logger.warning("Unbalanced '%s' in pattern: %s", text[tokenizer.pos], pattern)
            tokenizer.pos += 1
    return tuple(tokens)


# === Matcher ===


class _Walker:
    def __init__(self, words: Sequence[str], arrays: Mapping[str, Sequence[str]]):
        self.words = words
        self.arrays = arrays

    def sequence(
        self, tokens: Sequence[Token], index: int, pos: int
    ) -> Iterator[tuple[int, list[str]]]:
        if index == len(tokens):
            yield pos, []
            return
        for end, caps in self.token(tokens[index], pos):
            for final, rest in self.sequence(tokens, index + 1, end):
                yield final, caps + rest

    def token(self, token: Token, pos: int) -> Iterator[tuple[int, list[str]]]:
        words = self.words

        if isinstance(token, Word):
            if pos < len(words) and words[pos] == token.text:
                yield pos + 1, []

        elif isinstance(token, Wildcard):
            if token.kind == "*":
                # longest first
                for end in range(len(words), pos, -1):
                    yield end, [" ".join(words[pos:end])] if token.capture else []
            elif pos < len(words):
                word = words[pos]
                ok = RE_DIGITS.fullmatch(word) if token.kind == "#" else word.isalpha()
                if ok:
                    yield pos + 1, [word] if token.capture else []

        elif isinstance(token, Group):
            yield from self.alternatives(token.alternatives, pos, token.capture)
            if token.optional:
                yield pos, []

        elif isinstance(token, ArrayRef):
            yield from self.alternatives(self._array(token.name), pos, False)

    def alternatives(
        self, alternatives: Sequence[Sequence[Token]], pos: int, capture: bool
    ) -> Iterator[tuple[int, list[str]]]:
        for alt in alternatives:
            if len(alt) == 1 and isinstance(alt[0], ArrayRef):
                # (@array) captures the array entry
                for end, caps in self.alternatives(self._array(alt[0].name), pos, False):
                    yield end, ([" ".join(self.words[pos:end])] if capture else []) + caps
                continue
            for end, caps in self.sequence(alt, 0, pos):
                if capture:
                    yield end, [" ".join(self.words[pos:end])] + caps
                else:
                    yield end, caps

    def _array(self, name: str) -> tuple[tuple[Token, ...], ...]:
        entries = self.arrays.get(name)
        if entries is None:
            logger.warning("Array @%s used in a pattern is not defined", name)
            return ()
        return tuple(
            tuple(Word(w) for w in entry.lower().split()) for entry in entries if entry.strip()
        )


def match(
    pattern: str,
    words: Union[str, Sequence[str]],
    arrays: Optional[Mapping[str, Sequence[str]]] = None,
) -> MatchResult:
    """Match a normalized input against a pattern.

    Returns MatchResult(True, captures) for the first alignment that
    consumes every word, captures in pattern order. Deterministic: star
    tries the longest span first, groups try alternatives in declared
    order, optional groups try their alternatives before skipping.
    """
    if isinstance(words, str):
        words = words.split()
    words = list(words)

    tokens = tokenize(pattern)

    # bare "*" matches anything, even an empty message
    if tokens == (Wildcard("*"),):
        return MatchResult(True, [" ".join(words)])

    walker = _Walker(words, arrays or {})
    for end, captures in walker.sequence(tokens, 0, 0):
        if end == len(words):
            return MatchResult(True, captures)
    return NO_MATCH
