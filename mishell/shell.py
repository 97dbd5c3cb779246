"""The interactive loop: prompting, joining continued lines, parsing and running."""

from __future__ import annotations

import os
import signal
import sys
from collections.abc import Iterable, Iterator, Sequence
from types import FrameType
from typing import TextIO

from mishell.cmdqueue import CommandDeque
from mishell.environment import Environment
from mishell.executor import Executor
from mishell.parser import ParseError, expand_cmd, parse_command, split_words
from mishell.redirection import Reader
from mishell.sentence import describe_sentences

try:
    import readline  # noqa: F401  gives input() line editing and history
except ImportError:
    readline = None

PROMPT = "미쉘> "
DEBUG_PROMPT = "미쉘(debug)> "
INTERRUPTED_STATUS = 130

BANNER = "\n".join([
    "",
    "",
    "  ████████████████████████████████████████████████  ",
    "██░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░██",
    "██░░░░░░░░██░░██░░░░████░░░░██████░░░░████░░░░░░░░██",
    "██░░░░░░██░░██░░██░░░░██░░░░██░░░░██░░░░██░░░░░░░░██",
    "██░░░░░░██░░██░░██░░░░██░░░░██░░░░██░░░░██░░░░░░░░██",
    "██░░░░░░██░░██░░██░░░░██░░░░██░░░░██░░░░██░░░░░░░░██",
    "██░░░░░░██░░██░░██░░░░████░░██░░░░██░░░░████░░░░░░██",
    "██░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░██",
    "██░░░░██████░░████░░░░░░░░░░████░░░░░░░░██░░░░██░░██",
    "██░░██░░░░░░░░░░██░░░░░░░░██░░░░██░░░░██░░░░██░░░░██",
    "██░░██████░░░░░░██████░░░░████████░░░░██░░░░██░░░░██",
    "██░░░░░░░░██░░░░██░░░░██░░██░░░░░░░░░░██░░░░██░░░░██",
    "██░░████████░░░░██░░░░██░░░░██████░░██░░░░██░░░░░░██",
    "██░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░░██",
    "  ████████████████████████████████████████████████  ",
    "",
    "",
]) + "\n"


def is_exit(cmd: str) -> bool:
    """Return True when ``cmd`` is exactly ``exit``."""
    return cmd == "exit"


def join_continuation(pieces: Iterable[str]) -> str | None:
    """Join input lines continued with a trailing backslash into one command.

    Each piece is cut at its first newline. A piece ending in ``\\`` loses
    the backslash and is joined with the next one. Returns None when the
    pieces run out before a command is complete.
    """
    parts: list[str] = []
    for piece in pieces:
        line = piece.split("\n", 1)[0]
        if line.endswith("\\"):
            parts.append(line[:-1])
            continue
        parts.append(line)
        return "".join(parts)
    return None


def _prompt_input(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


class Shell:
    """Reads commands, runs them and keeps the environment between them."""

    def __init__(
        self,
        env: Environment,
        debug: bool = False,
        reader: Reader | None = None,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.env = env
        self.debug = debug
        self.reader: Reader = reader if reader is not None else _prompt_input
        self._out = out
        self._err = err
        self._busy = False
        self.executor = Executor(env, out, err, reader=self.reader)

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    @property
    def prompt(self) -> str:
        return DEBUG_PROMPT if self.debug else PROMPT

    def read_command(self) -> str | None:
        """Read one command, following continuation lines; None at end of input."""
        def lines() -> Iterator[str]:
            while (line := self.reader(self.prompt)) is not None:
                yield line

        command = join_continuation(lines())
        if command is None:
            self.out.write("exit\n")
        return command

    def _debug_dump(self, line: str, commands: CommandDeque) -> str:
        words = "".join(f"[{word}] " for word in split_words(expand_cmd(line, self.env)))
        return (
            f"{words}\n\n"
            f"{describe_sentences(reversed(list(commands)))}\n"
            "------ result ------\n"
        )

    def run_line(self, line: str) -> bool:
        """Parse and run one command line; return True when the shell should stop."""
        try:
            commands = parse_command(line, self.env)
        except ParseError as exc:
            self.err.write(f"error: {exc}\n")
            return False
        if self.debug:
            self.out.write(self._debug_dump(line, commands))
        if commands.is_empty():
            return False
        self._busy = True
        try:
            self.executor.run(commands)
        finally:
            self._busy = False
        return self.executor.exit_requested

    def loop(self) -> int:
        """Run commands until end of input or ``exit``; return the final exit status."""
        while True:
            try:
                line = self.read_command()
            except KeyboardInterrupt:
                self.out.write("\n")
                self.env.exit_status = INTERRUPTED_STATUS
                continue
            if line is None or self.run_line(line):
                break
        return self.env.exit_status

    def _on_interrupt(self, signum: int, frame: FrameType | None) -> None:
        if not self._busy:
            raise KeyboardInterrupt
        self.out.write("\n")
        self.env.exit_status = INTERRUPTED_STATUS


def _install_signals(shell: Shell) -> None:
    signal.signal(signal.SIGINT, shell._on_interrupt)
    if hasattr(signal, "SIGQUIT"):
        signal.signal(signal.SIGQUIT, signal.SIG_IGN)


def main(argv: Sequence[str] | None = None) -> int:
    """Start the interactive shell; ``-d`` or ``--debug`` shows how lines are parsed."""
    args = list(sys.argv[1:] if argv is None else argv)
    debug = False
    if args and args[0] in ("--debug", "-d"):
        debug = True
    elif args:
        sys.stderr.write("Invalid arguments. Try mishell\n")
        return 0
    env = Environment.from_envp(f"{key}={value}" for key, value in os.environ.items())
    shell = Shell(env, debug=debug)
    _install_signals(shell)
    sys.stdout.write(BANNER)
    return shell.loop()


if __name__ == "__main__":
    sys.exit(main())