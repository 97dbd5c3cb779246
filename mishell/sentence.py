"""One pipeline unit of a parsed command line and helpers over lists of them."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import IntEnum


class Flag(IntEnum):
    """Where a sentence takes its input from or sends its output to."""

    STDIN = 0
    STDOUT = 1
    STDERR = 2
    PIPE = 3
    REDIRECT_READ = 4
    HEREDOC = 5
    REDIRECT_TRUNC = 6
    REDIRECT_APPEND = 7


def _show(text: str | None) -> str:
    return "(null)" if text is None else text


@dataclass
class Sentence:
    """A command between pipes: its words and its redirections.

    ``output_argv`` holds a file name for output redirections, or an error
    message when ``output_flag`` is ``Flag.STDERR``.
    """

    p_unit: str = ""
    tokens: list[str] = field(default_factory=list)
    input_flag: Flag = Flag.STDIN
    output_flag: Flag = Flag.STDOUT
    input_argv: str | None = None
    output_argv: str | None = None

    @property
    def tokens_len(self) -> int:
        return len(self.tokens)

    def describe(self) -> str:
        """Return a multi-line dump of the sentence for debugging."""
        words = "".join(f"[{i}: {tok}] " for i, tok in enumerate(self.tokens))
        return (
            f"p_unit: [{self.p_unit}]\n"
            f"input: {int(self.input_flag)}, {_show(self.input_argv)}\n"
            f"output: {int(self.output_flag)}, {_show(self.output_argv)}\n"
            f"{words}\n"
        )


def find_sentence(sentences: Iterable[Sentence], prefix: str) -> Sentence | None:
    """Return the first sentence having a token that starts with ``prefix``."""
    for sentence in sentences:
        if any(token.startswith(prefix) for token in sentence.tokens):
            return sentence
    return None


def update_sentence(
    sentences: Iterable[Sentence], old: str, new: str
) -> Sentence | None:
    """Replace the command word of the sentence found by ``old`` with ``new``.

    Returns the changed sentence, or None when nothing matched.
    """
    target = find_sentence(sentences, old)
    if target is None:
        return None
    if target.tokens:
        target.tokens[0] = new
    else:
        target.tokens.append(new)
    return target


def describe_sentences(sentences: Iterable[Sentence]) -> str:
    """Return a dump of all sentences, head to tail."""
    parts = ["printing sentence(s), head to tail.\n"]
    items = list(sentences)
    if not items:
        parts.append("sentence is empty\n")
    parts.extend(sentence.describe() for sentence in items)
    return "".join(parts)