"""Turning a command line into sentences: quoting, expansion, splitting, redirections."""

from __future__ import annotations

from collections.abc import Sequence

from mishell.cmdqueue import CommandDeque
from mishell.environment import Environment
from mishell.sentence import Flag, Sentence
from mishell.textutil import is_space

REDIRECTION_SYNTAX_ERROR = "syntax error: invalid token after redirection\n"

_INPUT_REDIRECTIONS = {"<": Flag.REDIRECT_READ, "<<": Flag.HEREDOC}
_OUTPUT_REDIRECTIONS = {">": Flag.REDIRECT_TRUNC, ">>": Flag.REDIRECT_APPEND}


class ParseError(ValueError):
    """Raised when a command line cannot be parsed."""


def _isalnum(c: str) -> bool:
    return c.isascii() and c.isalnum()


def has_unbalanced_quotes(cmd: str) -> bool:
    """Return True when a single or double quote is opened and never closed."""
    open_quote = None
    for ch in cmd:
        if open_quote is None:
            if ch in "'\"":
                open_quote = ch
        elif ch == open_quote:
            open_quote = None
    return open_quote is not None


def _lookup_prefix(env: Environment, name: str) -> str | None:
    """Value of the first variable whose key starts with ``name``."""
    for key, value in env.entries():
        if key.startswith(name):
            return value
    return None


def _expand_dollar(cmd: str, i: int, env: Environment, out: list[str]) -> int:
    """Expand the ``$`` at ``cmd[i]``; return how many extra characters it used."""
    end = i + 1
    while end < len(cmd) and _isalnum(cmd[end]):
        end += 1
    length = end - (i + 1)
    if length == 0:
        following = cmd[i + 1] if i + 1 < len(cmd) else ""
        if following in ("", '"'):
            out.append("$")
        elif following == "?":
            out.append(str(env.exit_status))
            return 1
        return 0
    value = _lookup_prefix(env, cmd[i + 1:end])
    if value is not None:
        out.append(value)
    return length


def expand_cmd(cmd: str, env: Environment) -> str:
    """Expand ``$NAME``, ``$?`` and ``~`` outside single quotes.

    A variable name is a run of ASCII letters and digits, and it matches the
    first variable whose key starts with it. A ``$`` followed by anything
    else than a name, ``?``, a double quote or the end of the line is dropped.
    """
    out: list[str] = []
    in_single = in_double = False
    i = 0
    while i < len(cmd):
        ch = cmd[i]
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        if ch == "$" and not in_single:
            i += _expand_dollar(cmd, i, env, out)
        elif ch == "~" and not in_single:
            home = _lookup_prefix(env, "HOME")
            if home is not None:
                out.append(home)
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def count_words(cmd: str) -> int:
    """Count the words of ``cmd``; every unquoted ``|`` is a word of its own."""
    count = 0
    in_single = in_double = False
    for i, ch in enumerate(cmd):
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        if in_single or in_double:
            continue
        following = cmd[i + 1] if i + 1 < len(cmd) else ""
        if not is_space(ch) and (following == "" or following == "|" or is_space(following)):
            count += 1
        elif ch == "|":
            count += 1
    return count


def _word_length(text: str) -> int:
    """Length of the raw word at the start of ``text``."""
    in_single = in_double = False
    length = len(text)
    for i, ch in enumerate(text):
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        if not in_single and not in_double and (is_space(ch) or ch == "|"):
            length = i
            break
    return length or 1


def strip_quotes(word: str) -> str:
    """Remove the quote characters that do quoting, keeping quoted quotes."""
    out: list[str] = []
    in_single = in_double = False
    for ch in word:
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        if ch == "'" and not in_double:
            continue
        if ch == '"' and not in_single:
            continue
        out.append(ch)
    return "".join(out)


def split_words(cmd: str) -> list[str]:
    """Split ``cmd`` into words with their quotes removed."""
    words: list[str] = []
    pos = 0
    for _ in range(count_words(cmd)):
        while pos < len(cmd) and is_space(cmd[pos]):
            pos += 1
        if pos >= len(cmd):
            break
        length = _word_length(cmd[pos:])
        words.append(strip_quotes(cmd[pos:pos + length]))
        pos += length
    return words


def join_words(words: Sequence[str]) -> str:
    """Join words back into one line separated by single spaces."""
    return " ".join(words)


def build_sentence(words: Sequence[str], output_flag: Flag) -> Sentence:
    """Make a sentence of ``words``, taking redirections out of its tokens.

    A redirection operator with no word after it turns the sentence into an
    error sentence: its output flag becomes ``Flag.STDERR`` with the message
    in ``output_argv``, and the operator stays among the tokens.
    """
    sentence = Sentence(p_unit=join_words(words), output_flag=output_flag)
    skip = False
    for index, word in enumerate(words):
        if skip:
            skip = False
            continue
        if word in _INPUT_REDIRECTIONS or word in _OUTPUT_REDIRECTIONS:
            if index + 1 >= len(words):
                sentence.output_flag = Flag.STDERR
                sentence.output_argv = REDIRECTION_SYNTAX_ERROR
                sentence.tokens.append(word)
                continue
            target = words[index + 1]
            if word in _INPUT_REDIRECTIONS:
                sentence.input_flag = _INPUT_REDIRECTIONS[word]
                sentence.input_argv = target
            else:
                sentence.output_flag = _OUTPUT_REDIRECTIONS[word]
                sentence.output_argv = target
            skip = True
            continue
        sentence.tokens.append(word)
    return sentence


def parse_command(cmd: str, env: Environment) -> CommandDeque:
    """Parse a command line into a deque of sentences.

    Each sentence is pushed to the front, so the first command ends up at
    the back. The word after a ``|`` is never itself taken as a pipe.
    """
    if has_unbalanced_quotes(cmd):
        raise ParseError("Invalid quotation")
    words = split_words(expand_cmd(cmd, env))
    commands = CommandDeque()
    count = len(words)
    start = 0
    i = 0
    while i < count:
        if words[i] == "|":
            commands.push_front(build_sentence(words[start:i], Flag.PIPE))
            start = i + 1
            i += 1
        if i == count - 1:
            commands.push_front(build_sentence(words[start:count], Flag.STDOUT))
        i += 1
    return commands