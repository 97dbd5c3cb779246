"""Small string helpers used by the parser, the environment and the executor."""

from __future__ import annotations

from collections.abc import Iterator

WHITESPACE = frozenset("\t\n\v\f\r ")


def is_space(c: str) -> bool:
    """Return True if ``c`` is one of tab, newline, vtab, formfeed, CR or space."""
    return len(c) == 1 and c in WHITESPACE


def strcmp(s1: str, s2: str) -> int:
    """Compare two strings and return the code-point difference at the first mismatch.

    A shorter string compares as if it were followed by a NUL character,
    so the result is 0 only when the strings are identical.
    """
    for a, b in zip(s1, s2):
        if a != b:
            return ord(a) - ord(b)
    if len(s1) == len(s2):
        return 0
    if len(s1) > len(s2):
        return ord(s1[len(s2)])
    return -ord(s2[len(s1)])


def strequ(s1: str | None, s2: str | None) -> bool:
    """Return True when both strings are given and equal."""
    return s1 is not None and s2 is not None and s1 == s2


def strnequ(s1: str | None, s2: str | None, n: int) -> bool:
    """Return True when both strings are given and agree on their first ``n`` characters."""
    if s1 is None or s2 is None:
        return False
    return s1[:n] == s2[:n]


def strcspn(text: str, charset: str) -> int:
    """Length of the leading part of ``text`` containing no character of ``charset``."""
    for index, ch in enumerate(text):
        if ch in charset:
            return index
    return len(text)


def strspn(text: str, charset: str) -> int:
    """Length of the leading part of ``text`` made only of characters of ``charset``."""
    for index, ch in enumerate(text):
        if ch not in charset:
            return index
    return len(text)


def strpbrk(text: str, charset: str) -> int | None:
    """Index of the first character of ``text`` found in ``charset``, or None."""
    for index, ch in enumerate(text):
        if ch in charset:
            return index
    return None


def strcdup(text: str, stop: str) -> str:
    """Copy of ``text`` up to, not including, the first ``stop`` character."""
    index = text.find(stop)
    return text if index < 0 else text[:index]


def strndup(text: str, length: int) -> str:
    """Copy of at most ``length`` leading characters of ``text``."""
    if length < 0:
        raise ValueError("length must not be negative")
    return text[:length]


def tokenize(text: str, delim: str) -> Iterator[str]:
    """Yield the tokens of ``text`` separated by runs of characters from ``delim``."""
    rest = text
    while True:
        rest = rest[strspn(rest, delim):]
        if not rest:
            return
        end = strpbrk(rest, delim)
        if end is None:
            yield rest
            return
        yield rest[:end]
        rest = rest[end + 1:]


def split_size(text: str, sep: str) -> int:
    """Number of non-empty pieces of ``text`` between ``sep`` characters."""
    return sum(1 for piece in text.split(sep) if piece)


def ms_split(text: str, sep: str) -> list[str]:
    """Split ``text`` on ``sep``, dropping empty pieces."""
    return [piece for piece in text.split(sep) if piece]