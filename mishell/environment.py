"""Ordered store of shell environment variables and the last exit status."""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class EnvFormatError(ValueError):
    """Raised when an environment entry is not of the form KEY=VALUE."""


def format_entry(key: str, value: str) -> str:
    """Join a key and a value into ``KEY=VALUE``."""
    return f"{key}={value}"


class Environment:
    """Environment variables kept in insertion order, plus the shell's exit status."""

    def __init__(self) -> None:
        self._vars: dict[str, str] = {}
        self.exit_status: int = 0

    @classmethod
    def from_envp(cls, envp: Iterable[str]) -> Environment:
        """Build an environment from ``KEY=VALUE`` strings.

        The key ends at the first ``=``. When a key repeats, the first
        occurrence wins, as lookups always find the earliest entry.
        """
        env = cls()
        for entry in envp:
            key, sep, value = entry.partition("=")
            if not sep:
                raise EnvFormatError(f"environment entry without '=': {entry!r}")
            env._vars.setdefault(key, value)
        return env

    def get(self, key: str) -> str | None:
        """Return the value of ``key``, or None when it is not set."""
        return self._vars.get(key)

    def set(self, key: str, value: str, overwrite: bool = True) -> None:
        """Set ``key`` to ``value``.

        A new key is appended at the end. An existing key is changed only
        when ``overwrite`` is true.
        """
        if key is None or value is None:
            raise ValueError("key and value must both be given")
        if key in self._vars:
            if overwrite:
                self._vars[key] = value
            return
        self._vars[key] = value

    def unset(self, key: str) -> bool:
        """Remove ``key``; return True if it was present."""
        return self._vars.pop(key, None) is not None

    def to_envp(self) -> list[str]:
        """Return the variables as ``KEY=VALUE`` strings, in order."""
        return [format_entry(key, value) for key, value in self._vars.items()]

    def entries(self) -> Iterator[tuple[str, str]]:
        """Yield ``(key, value)`` pairs in order."""
        yield from self._vars.items()

    def clear(self) -> None:
        """Remove every variable and reset the exit status to 0."""
        self._vars.clear()
        self.exit_status = 0

    def __len__(self) -> int:
        return len(self._vars)

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __contains__(self, key: object) -> bool:
        return key in self._vars