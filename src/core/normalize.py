"""Message normalization and string helpers shared by the matcher and tags."""

import re
from typing import Iterable, Mapping

# --- Patterns ---
RE_NASTIES = re.compile(r"[^a-z0-9 ]")
RE_UTF8_META = re.compile(r"[\\/<>{}]")
RE_CONTROL = re.compile(r"[\x00-\x08]")
RE_WS = re.compile(r"\s+")
RE_PLACEHOLDER = re.compile(r"\x00(\d+)\x00")
RE_ARGS = re.compile(r'"(.*?)"|(\S+)')


def collapse_whitespace(text: str) -> str:
    return RE_WS.sub(" ", text).strip()


def substitute(
    text: str,
    keys: Iterable[str],
    mapping: Mapping[str, str],
    ignore_case: bool = False,
) -> str:
    """Whole-word replacement of every key by its mapped value.

    keys must already be ordered longest-first (see sort_substitutions).
    Each hit is swapped for a placeholder first so a replacement is never
    itself substituted again.
    """
    keys = list(keys)
    if not keys:
        return text

    flags = re.IGNORECASE if ignore_case else 0
    for index, key in enumerate(keys):
        pattern = re.compile(r"(?<!\w)" + re.escape(key) + r"(?!\w)", flags)
        text = pattern.sub(f"\x00{index}\x00", text)

    return RE_PLACEHOLDER.sub(lambda m: mapping[keys[int(m.group(1))]], text)


def format_message(
    text: str,
    sub_keys: Iterable[str] = (),
    subs: Mapping[str, str] | None = None,
    utf8: bool = False,
    punctuation: re.Pattern | None = None,
) -> str:
    """Normalize user input (or the previous bot reply) for matching.

    1. drop control characters, lower-case
    2. apply substitutions (values are lower-cased too)
    3. strip punctuation (only the configured set in UTF-8 mode)
    4. collapse whitespace
    """
    text = RE_CONTROL.sub("", text).lower()
    if subs:
        text = substitute(text, sub_keys, subs).lower()

    if utf8:
        text = RE_UTF8_META.sub("", text)
        if punctuation is not None:
            text = punctuation.sub("", text)
    else:
        text = RE_NASTIES.sub("", text)

    return collapse_whitespace(text)


def formal(text: str) -> str:
    """Title Case Every Word"""
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


def sentence(text: str) -> str:
    """Upper-case the first letter only"""
    text = text.strip()
    return text[:1].upper() + text[1:].lower()


def split_args(text: str) -> list[str]:
    """Whitespace split that keeps "double quoted" arguments together."""
    return [quoted if quoted else bare for quoted, bare in RE_ARGS.findall(text)]


def is_numeric(value: str) -> bool:
    try:
        int(value)
    except (TypeError, ValueError):
        return False
    return True
