"""Finding the executable that a command word names."""

from __future__ import annotations

import os
from collections.abc import Iterable

from mishell.environment import Environment
from mishell.textutil import ms_split

NOT_FOUND_STATUS = 127


def command_not_found(cmd: str) -> str:
    """Return the message printed when ``cmd`` cannot be found."""
    return f"{cmd}: command not found\n"


class CommandNotFound(LookupError):
    """Raised when no executable matches a command word."""

    status = NOT_FOUND_STATUS

    def __init__(self, command: str) -> None:
        super().__init__(command_not_found(command))
        self.command = command

    def __str__(self) -> str:
        return command_not_found(self.command)


def _search(cmd: str, path_value: str) -> str | None:
    for directory in ms_split(path_value, ":"):
        candidate = f"{directory}/{cmd}"
        if os.path.exists(candidate):
            return candidate
    return None


def find_in_envp(cmd: str, envp: Iterable[str]) -> str | None:
    """Search the directories of the first ``PATH...`` entry of ``envp`` for ``cmd``."""
    for entry in envp:
        if entry.startswith("PATH"):
            return _search(cmd, entry[5:])
    return None


def resolve_relative(cmd: str) -> str | None:
    """Return ``cmd`` when it starts with ``./`` and names an existing file."""
    if cmd.startswith("./") and os.path.exists(cmd):
        return cmd
    return None


def find_command(cmd: str, env: Environment) -> str | None:
    """Return the path to run for ``cmd``, or None when it cannot be found.

    An absolute word is used as it is; ``./name`` is used when it exists;
    otherwise the directories of PATH are searched in order.
    """
    if cmd.startswith("/"):
        return cmd
    relative = resolve_relative(cmd)
    if relative is not None:
        return relative
    path_value = env.get("PATH")
    if path_value is None:
        return None
    return _search(cmd, path_value)


def last_path_component(cmd: str) -> str:
    """Return the last component of an absolute command word; other words are returned as they are."""
    if not cmd.startswith("/"):
        return cmd
    parts = ms_split(cmd, "/")
    return parts[-1] if parts else cmd