"""Running parsed commands: builtins inside the shell, other programs as child processes."""

from __future__ import annotations

import io
import os
import signal
import subprocess
import sys
import tempfile
from collections.abc import Sequence
from contextlib import ExitStack
from typing import IO, TextIO, Union

from mishell.builtins import is_builtin, run_builtin
from mishell.cmdqueue import CommandDeque
from mishell.environment import Environment
from mishell.pathsearch import (
    NOT_FOUND_STATUS,
    command_not_found,
    find_command,
    last_path_component,
)
from mishell.redirection import Reader, RedirectionError, apply_redirections
from mishell.sentence import Flag, Sentence

ONLY_PIPE = "syntax error near unexpected token `|'\n"
ONLY_PIPES = "syntax error near unexpected token `||'\n"
SYNTAX_ERROR_STATUS = 2
REDIRECTION_FAILURE_STATUS = 1
_SIGNAL_BASE = 128
_BROKEN_PIPE_STATUS = 141

_StageResult = Union["subprocess.Popen[bytes]", int]


class PipelineError(ValueError):
    """Raised when a command line is made of pipes with no commands between them."""

    status = SYNTAX_ERROR_STATUS


def status_from_returncode(returncode: int) -> int:
    """Turn a child's return code into a shell exit status.

    A child killed by a signal gives 128 plus the signal number, except
    that death by a broken pipe counts as success.
    """
    if returncode < 0:
        status = _SIGNAL_BASE - returncode
        return 0 if status == _BROKEN_PIPE_STATUS else status
    return returncode


def _first_word(sentence: Sentence | None) -> str | None:
    if sentence is None or not sentence.tokens:
        return None
    return sentence.tokens[0]


def check_pipeline(sentences: Sequence[Sentence]) -> None:
    """Reject a pipeline whose pipes have nothing between them.

    ``sentences`` are in the order they were written. Raises PipelineError.
    """
    items = list(sentences)
    if not items:
        return
    first = items[0]
    if not first.tokens and first.output_flag == Flag.PIPE:
        if len(items) == 1:
            raise PipelineError(ONLY_PIPE)
        if _first_word(items[1]) == "|":
            raise PipelineError(ONLY_PIPES)
    for index, sentence in enumerate(items):
        if sentence.output_flag != Flag.PIPE or not sentence.tokens:
            continue
        following = items[index + 1] if index + 1 < len(items) else None
        if sentence.tokens[0] == "|" or _first_word(following) == "|":
            raise PipelineError(ONLY_PIPES)


def _close(fd: int | None) -> None:
    if fd is None:
        return
    try:
        os.close(fd)
    except OSError:
        pass


def _empty_fd() -> int:
    return os.open(os.devnull, os.O_RDONLY)


def _text_fd(text: str) -> int:
    """Return a readable descriptor positioned at the start of ``text``."""
    with tempfile.TemporaryFile() as tmp:
        tmp.write(text.encode("utf-8"))
        tmp.flush()
        tmp.seek(0)
        return os.dup(tmp.fileno())


def _restore_child_signals() -> None:
    signal.signal(signal.SIGQUIT, signal.SIG_DFL)


_PREEXEC = _restore_child_signals if hasattr(signal, "SIGQUIT") and os.name == "posix" else None


def _wait(result: _StageResult) -> int:
    if isinstance(result, int):
        return result
    return status_from_returncode(result.wait())


def _drain(capture: IO[bytes] | None, stream: TextIO) -> None:
    if capture is None:
        return
    capture.seek(0)
    data = capture.read()
    if data:
        stream.write(data.decode("utf-8", errors="replace"))


class Executor:
    """Runs the sentences of one command line and records the exit status in ``env``.

    After ``run``, ``exit_requested`` tells whether the ``exit`` builtin ran
    as a single command, so the shell should stop.
    """

    def __init__(
        self,
        env: Environment,
        out: TextIO | None = None,
        err: TextIO | None = None,
        reader: Reader | None = None,
    ) -> None:
        self.env = env
        self.reader = reader
        self.exit_requested = False
        self._out = out
        self._err = err

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    def run(self, commands: CommandDeque) -> int:
        """Run every sentence of ``commands``, first command first, and return the status."""
        self.exit_requested = False
        sentences: list[Sentence] = []
        while not commands.is_empty():
            sentences.append(commands.pop_back())
        if not sentences:
            return self.env.exit_status
        try:
            check_pipeline(sentences)
        except PipelineError as exc:
            self.err.write(str(exc))
            self.env.exit_status = exc.status
            return exc.status
        if len(sentences) == 1:
            return self.run_single(sentences[0])
        return self.run_pipeline(sentences)

    def run_single(self, sentence: Sentence) -> int:
        """Run one command; a builtin runs in the shell itself and keeps its changes."""
        if is_builtin(sentence):
            return self._run_builtin_here(sentence)
        status = self._execute([sentence], in_pipeline=False)
        self.env.exit_status = status
        return status

    def run_pipeline(self, sentences: Sequence[Sentence]) -> int:
        """Run commands connected by pipes; the status is the last command's.

        Builtins in a pipeline work on a copy of the environment, so their
        changes do not outlive the pipeline.
        """
        status = self._execute(list(sentences), in_pipeline=True)
        self.env.exit_status = status
        return status

    def _report(self, exc: RedirectionError) -> None:
        self.err.write(f"{exc.filename}: {exc.strerror}\n")

    def _run_builtin_here(self, sentence: Sentence) -> int:
        try:
            with apply_redirections(sentence, self.env, self.reader):
                pass
        except RedirectionError as exc:
            self._report(exc)
            self.env.exit_status = REDIRECTION_FAILURE_STATUS
            return REDIRECTION_FAILURE_STATUS
        self.exit_requested = run_builtin(sentence, self.env, self.out, self.err)
        return self.env.exit_status

    def _sink(self, stream: TextIO, stack: ExitStack) -> tuple[int, IO[bytes] | None]:
        """Descriptor children write to for ``stream``, and the capture file if one is needed."""
        try:
            fd = stream.fileno()
        except (AttributeError, OSError, ValueError):
            capture = stack.enter_context(tempfile.TemporaryFile())
            return capture.fileno(), capture
        stream.flush()
        return fd, None

    def _execute(self, sentences: list[Sentence], in_pipeline: bool) -> int:
        last_index = len(sentences) - 1
        results: list[_StageResult] = []
        with ExitStack() as stack:
            out_fd, out_capture = self._sink(self.out, stack)
            err_fd, err_capture = self._sink(self.err, stack)
            feed: int | None = None
            try:
                for index, sentence in enumerate(sentences):
                    result, feed = self._start_stage(
                        sentence, feed, index == last_index, in_pipeline, out_fd, err_fd
                    )
                    results.append(result)
            finally:
                _close(feed)
                statuses = [_wait(result) for result in results]
            _drain(out_capture, self.out)
            _drain(err_capture, self.err)
        return statuses[-1]

    def _start_stage(
        self,
        sentence: Sentence,
        feed: int | None,
        last: bool,
        in_pipeline: bool,
        out_fd: int,
        err_fd: int,
    ) -> tuple[_StageResult, int | None]:
        """Start one command; return its process or status and what the next command reads."""
        if in_pipeline and sentence.tokens:
            sentence.tokens[0] = last_path_component(sentence.tokens[0])
        try:
            redirections = apply_redirections(sentence, self.env, self.reader)
        except RedirectionError as exc:
            _close(feed)
            self._report(exc)
            return REDIRECTION_FAILURE_STATUS, (None if last else _empty_fd())
        with redirections:
            if is_builtin(sentence):
                _close(feed)
                return self._builtin_stage(sentence, last)
            path = self._resolve(sentence)
            if path is None:
                _close(feed)
                return NOT_FOUND_STATUS, (None if last else _empty_fd())
            stdin = feed if feed is not None else redirections.stdin
            next_feed: int | None = None
            write_end: int | None = None
            if last:
                stdout = redirections.stdout if redirections.stdout is not None else out_fd
            else:
                next_feed, write_end = os.pipe()
                stdout = write_end
            result: _StageResult
            try:
                result = subprocess.Popen(
                    sentence.tokens,
                    executable=path,
                    stdin=stdin,
                    stdout=stdout,
                    stderr=err_fd,
                    env=dict(self.env.entries()),
                    preexec_fn=_PREEXEC,
                )
            except OSError as exc:
                self.err.write(f"{sentence.tokens[0]}: {exc.strerror}\n")
                self.err.write("Failed to execute command\n")
                result = NOT_FOUND_STATUS
            finally:
                _close(write_end)
                _close(feed)
            return result, next_feed

    def _resolve(self, sentence: Sentence) -> str | None:
        """Path of the program to start, or None after reporting why there is none."""
        if not sentence.tokens:
            return None
        if sentence.output_flag == Flag.STDERR:
            self.err.write(sentence.output_argv or "")
            return None
        path = find_command(sentence.tokens[0], self.env)
        if path is None:
            self.err.write(command_not_found(sentence.tokens[0]))
        return path

    def _builtin_stage(self, sentence: Sentence, last: bool) -> tuple[int, int | None]:
        isolated = Environment.from_envp(self.env.to_envp())
        isolated.exit_status = self.env.exit_status
        if last:
            run_builtin(sentence, isolated, self.out, self.err)
            return isolated.exit_status, None
        buffer = io.StringIO()
        run_builtin(sentence, isolated, buffer, self.err)
        return isolated.exit_status, _text_fd(buffer.getvalue())