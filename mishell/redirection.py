"""Opening redirection targets, reading here-documents and wiring them to a command."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import TextIO

from mishell.environment import Environment
from mishell.sentence import Flag, Sentence
from mishell.textutil import is_space

HEREDOC_PROMPT = "heredoc> "

Reader = Callable[[str], "str | None"]


class OpenMode(IntEnum):
    """How a redirection target is opened."""

    APPEND = 0
    TRUNCATE = 1
    READ = 2


class RedirectionError(OSError):
    """Raised when a redirection target cannot be opened."""


_OPEN_FLAGS = {
    OpenMode.APPEND: os.O_WRONLY | os.O_CREAT | os.O_APPEND,
    OpenMode.TRUNCATE: os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    OpenMode.READ: os.O_RDONLY,
}


def open_file(path: str, mode: OpenMode) -> int:
    """Open ``path`` for a redirection and return the file descriptor.

    Files created for output get mode 0777 (less the umask).
    """
    try:
        return os.open(path, _OPEN_FLAGS[OpenMode(mode)], 0o777)
    except OSError as exc:
        raise RedirectionError(exc.errno, f"no such file: {exc.strerror}", path) from exc


def read_line(stream: TextIO) -> str | None:
    """Read one line from ``stream`` and return it ending in a newline.

    The line stops at a newline or a NUL character. None is returned at the
    end of input; a last line without a terminator counts as end of input.
    """
    chars: list[str] = []
    while True:
        ch = stream.read(1)
        if ch == "":
            return None
        if ch in ("\n", "\0"):
            return "".join(chars) + "\n"
        chars.append(ch)


def expand_heredoc_line(line: str, env: Environment) -> str:
    """Replace each ``$NAME`` in a here-document line with its value.

    A name runs up to the next whitespace character or the end of the line.
    An unset name expands to nothing.
    """
    out: list[str] = []
    pos = 0
    while pos < len(line):
        ch = line[pos]
        if ch != "$":
            out.append(ch)
            pos += 1
            continue
        end = pos + 1
        while end < len(line) and not is_space(line[end]):
            end += 1
        value = env.get(line[pos + 1:end])
        if value is not None:
            out.append(value)
        pos = end
    return "".join(out)


def _prompt_reader(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def read_heredoc(end_marker: str, env: Environment, reader: Reader | None = None) -> str:
    """Read lines until ``end_marker`` or end of input and return the expanded text.

    ``reader`` is called with the prompt and returns a line without its
    newline, or None at end of input. Each kept line ends with a newline.
    """
    read = reader if reader is not None else _prompt_reader
    lines: list[str] = []
    while True:
        line = read(HEREDOC_PROMPT)
        if line is None or line == end_marker:
            break
        lines.append(expand_heredoc_line(line, env) + "\n")
    return "".join(lines)


def _text_fd(text: str) -> int:
    """Return a readable descriptor positioned at the start of ``text``."""
    with tempfile.TemporaryFile() as tmp:
        tmp.write(text.encode("utf-8"))
        tmp.flush()
        tmp.seek(0)
        return os.dup(tmp.fileno())


@dataclass
class Redirections:
    """File descriptors a command reads from and writes to; None means inherited."""

    stdin: int | None = None
    stdout: int | None = None

    def close(self) -> None:
        """Close the descriptors that are still open."""
        for fd in (self.stdin, self.stdout):
            if fd is not None:
                try:
                    os.close(fd)
                except OSError:
                    pass
        self.stdin = None
        self.stdout = None

    def __enter__(self) -> Redirections:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _open_input(sentence: Sentence, env: Environment, reader: Reader | None) -> int | None:
    if sentence.input_flag == Flag.HEREDOC:
        return _text_fd(read_heredoc(sentence.input_argv or "", env, reader))
    if sentence.input_flag == Flag.REDIRECT_READ:
        return open_file(sentence.input_argv or "", OpenMode.READ)
    return None


def _open_output(sentence: Sentence) -> int | None:
    if sentence.output_flag == Flag.REDIRECT_APPEND:
        return open_file(sentence.output_argv or "", OpenMode.APPEND)
    if sentence.output_flag == Flag.REDIRECT_TRUNC:
        return open_file(sentence.output_argv or "", OpenMode.TRUNCATE)
    return None


def apply_redirections(
    sentence: Sentence, env: Environment, reader: Reader | None = None
) -> Redirections:
    """Open the input and then the output redirection of ``sentence``.

    Raises RedirectionError when a target cannot be opened; nothing is left
    open in that case.
    """
    redirections = Redirections(stdin=_open_input(sentence, env, reader))
    try:
        redirections.stdout = _open_output(sentence)
    except RedirectionError:
        redirections.close()
        raise
    return redirections