"""Commands the shell runs itself: echo, cd, pwd, env, export, unset and exit."""

from __future__ import annotations

import io
import os
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TextIO

from mishell.environment import Environment
from mishell.sentence import Flag, Sentence
from mishell.textutil import is_space

SHELL_NAME = "미쉘"

Builtin = Callable[[Sentence, Environment, "TextIO | None", "TextIO | None"], int]


def _streams(out: TextIO | None, err: TextIO | None) -> tuple[TextIO, TextIO]:
    return (out if out is not None else sys.stdout, err if err is not None else sys.stderr)


@contextmanager
def _output(sentence: Sentence, out: TextIO, err: TextIO) -> Iterator[TextIO | None]:
    """Yield where a builtin writes its output.

    An output redirection opens its file. When the sentence reads its input
    from a file or a here-document, None is yielded: such a builtin has no
    output of its own.
    """
    if sentence.output_flag in (Flag.REDIRECT_APPEND, Flag.REDIRECT_TRUNC):
        flags = os.O_WRONLY | os.O_CREAT
        flags |= os.O_APPEND if sentence.output_flag == Flag.REDIRECT_APPEND else os.O_TRUNC
        fd: int | None
        try:
            fd = os.open(sentence.output_argv or "", flags, 0o777)
        except OSError as exc:
            err.write(f"Error: {exc.strerror}\nno such file\n")
            err.write(f"Error: {exc.strerror}\nredirection out: unable to read the file\n")
            fd = None
        if fd is None:
            yield io.StringIO()
            return
        with os.fdopen(fd, "w", encoding="utf-8") as stream:
            yield stream
    elif sentence.input_flag in (Flag.REDIRECT_READ, Flag.HEREDOC):
        yield None
    else:
        yield out


def is_valid_key(key: str) -> bool:
    """Return True when ``key`` is a valid variable name: a letter or ``_``, then letters, digits or ``_``."""
    if not key:
        return False
    first, rest = key[0], key[1:]
    if not (first == "_" or (first.isascii() and first.isalpha())):
        return False
    return all(ch == "_" or (ch.isascii() and ch.isalnum()) for ch in rest)


def parse_exit_code(text: str) -> int:
    """Parse the argument of ``exit``: optional spaces, an optional sign, then digits.

    Raises ValueError when anything else follows.
    """
    pos = 0
    while pos < len(text) and is_space(text[pos]):
        pos += 1
    sign = 1
    if pos < len(text) and text[pos] in "+-":
        if text[pos] == "-":
            sign = -1
        pos += 1
    digits = text[pos:]
    if not all(ch in "0123456789" for ch in digits):
        raise ValueError(f"numeric argument required: {text!r}")
    return sign * int(digits) if digits else 0


def suppresses_newline(arg: str) -> bool:
    """Return True when ``arg`` is an ``-n`` option of echo (``-n``, ``-nnn``, blank)."""
    rest = arg.lstrip("\t\n\v\f\r ")
    if rest.startswith("-n"):
        rest = rest[2:].lstrip("n")
    return rest.lstrip("\t\n\v\f\r ") == ""


def echo(sentence: Sentence, env: Environment, out: TextIO | None = None,
         err: TextIO | None = None) -> int:
    """Print the arguments separated by spaces, with a newline unless ``-n`` is given."""
    out, err = _streams(out, err)
    with _output(sentence, out, err) as stream:
        if stream is None:
            return env.exit_status
        args = sentence.tokens[1:]
        if args:
            newline = not suppresses_newline(args[0])
            words = args if newline else args[1:]
            stream.write(" ".join(words))
            if newline:
                stream.write("\n")
        else:
            stream.write("\n")
    env.exit_status = 0
    return env.exit_status


def cd(sentence: Sentence, env: Environment, out: TextIO | None = None,
       err: TextIO | None = None) -> int:
    """Change directory and update PWD and OLDPWD."""
    out, err = _streams(out, err)
    tokens = sentence.tokens
    if len(tokens) <= 1:
        target = env.get("HOME") or ""
    elif tokens[1].startswith("-"):
        target = env.get("OLDPWD") or ""
    elif tokens[1].startswith("~"):
        target = (env.get("HOME") or "") + tokens[1][1:]
    else:
        target = tokens[1]
    try:
        current = os.getcwd()
        os.chdir(target)
    except OSError as exc:
        err.write(f"cd: {exc.strerror}\n")
        env.exit_status = 1
        return env.exit_status
    env.set("OLDPWD", current, True)
    env.set("PWD", os.getcwd(), True)
    env.exit_status = 0
    return env.exit_status


def pwd(sentence: Sentence, env: Environment, out: TextIO | None = None,
        err: TextIO | None = None) -> int:
    """Print the current working directory."""
    out, err = _streams(out, err)
    with _output(sentence, out, err) as stream:
        target = stream if stream is not None else io.StringIO()
        try:
            cwd = os.getcwd()
        except OSError as exc:
            env.exit_status = 1
            err.write(f"Error: {exc.strerror}\n")
            err.write(f"{SHELL_NAME}: pwd: error retrieving current directory\n")
            return env.exit_status
        target.write(cwd + "\n")
    env.exit_status = 0
    return env.exit_status


def env_builtin(sentence: Sentence, env: Environment, out: TextIO | None = None,
                err: TextIO | None = None) -> int:
    """Print every variable as ``KEY=VALUE``; any argument is an error."""
    out, err = _streams(out, err)
    with _output(sentence, out, err) as stream:
        target = stream if stream is not None else io.StringIO()
        if sentence.tokens_len == 1:
            for entry in env.to_envp():
                target.write(entry + "\n")
            env.exit_status = 0
        else:
            err.write(f"{SHELL_NAME} : env: No such file or directory\n")
            env.exit_status = 127
    return env.exit_status


def _export_error(word: str, env: Environment, err: TextIO) -> None:
    env.exit_status = 1
    err.write(f"{SHELL_NAME}: export: `{word}': not a valid identifier\n")


def export(sentence: Sentence, env: Environment, out: TextIO | None = None,
           err: TextIO | None = None) -> int:
    """Set variables from ``KEY=VALUE`` arguments; without arguments, print the environment.

    An empty value is stored as a single space. The key ``_`` is accepted
    but never stored.
    """
    out, err = _streams(out, err)
    if sentence.tokens_len == 1:
        return env_builtin(sentence, env, out, err)
    for word in sentence.tokens[1:]:
        key, sep, value = word.partition("=")
        if not sep:
            if not is_valid_key(word):
                _export_error(word, env, err)
            continue
        if not is_valid_key(key):
            _export_error(word, env, err)
            continue
        if key != "_":
            env.set(key, value or " ", True)
        env.exit_status = 0
    return env.exit_status


def unset(sentence: Sentence, env: Environment, out: TextIO | None = None,
          err: TextIO | None = None) -> int:
    """Remove each named variable; unknown names are ignored."""
    out, err = _streams(out, err)
    with _output(sentence, out, err):
        for key in sentence.tokens[1:]:
            env.unset(key)
    env.exit_status = 0
    return env.exit_status


def exit_builtin(sentence: Sentence, env: Environment, out: TextIO | None = None,
                 err: TextIO | None = None) -> int:
    """Set the status the shell exits with and announce the exit."""
    out, err = _streams(out, err)
    count = sentence.tokens_len
    if count <= 1:
        env.exit_status = 0
        out.write("exit\n")
    elif count == 2:
        out.write("exit\n")
        try:
            env.exit_status = parse_exit_code(sentence.tokens[1])
        except ValueError:
            env.exit_status = 2
            out.write(f"{SHELL_NAME}: exit: numeric argument required\n")
    else:
        env.exit_status = 1
        out.write(f"{SHELL_NAME}: exit: too many arguments\n")
    return env.exit_status


_BUILTINS: dict[str, Builtin] = {
    "cd": cd,
    "unset": unset,
    "export": export,
    "exit": exit_builtin,
    "echo": echo,
    "pwd": pwd,
    "env": env_builtin,
}


def is_builtin(sentence: Sentence) -> bool:
    """Return True when the sentence's command word names a builtin."""
    return bool(sentence.tokens) and sentence.tokens[0] in _BUILTINS


def run_builtin(sentence: Sentence, env: Environment, out: TextIO | None = None,
                err: TextIO | None = None) -> bool:
    """Run the builtin the sentence names.

    Returns True when the shell should stop, which is after ``exit`` whatever
    its arguments. Raises ValueError when the sentence names no builtin.
    """
    if not is_builtin(sentence):
        raise ValueError(f"not a builtin: {sentence.tokens[:1]!r}")
    name = sentence.tokens[0]
    _BUILTINS[name](sentence, env, out, err)
    return name == "exit"