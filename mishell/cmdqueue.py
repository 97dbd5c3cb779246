"""Double-ended queue of parsed sentences awaiting execution."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from mishell.sentence import Sentence


class CommandDeque:
    """Sentences held between a front and a back end.

    The parser pushes each sentence of a command line to the front, so the
    first command of the line sits at the back and ``pop_back`` hands the
    commands out in the order they were written.  Iteration goes from the
    front to the back.
    """

    def __init__(self) -> None:
        self._items: deque[Sentence] = deque()

    def push_front(self, sentence: Sentence) -> None:
        """Add ``sentence`` at the front; None is ignored."""
        if sentence is None:
            return
        self._items.appendleft(sentence)

    def push_back(self, sentence: Sentence) -> None:
        """Add ``sentence`` at the back; None is ignored."""
        if sentence is None:
            return
        self._items.append(sentence)

    def pop_front(self) -> Sentence:
        """Remove and return the front sentence."""
        if not self._items:
            raise IndexError("pop from an empty command deque")
        return self._items.popleft()

    def pop_back(self) -> Sentence:
        """Remove and return the back sentence."""
        if not self._items:
            raise IndexError("pop from an empty command deque")
        return self._items.pop()

    def at(self, index: int) -> Sentence:
        """Return the sentence ``index`` places from the front."""
        if index < 0 or index >= len(self._items):
            raise IndexError("command deque index out of range")
        return self._items[index]

    def update(self, old: Sentence, new: Sentence) -> None:
        """Put ``new`` in the place of ``old``."""
        if old is None or new is None:
            raise ValueError("both the old and the new sentence are required")
        for index, item in enumerate(self._items):
            if item is old:
                self._items[index] = new
                return
        raise ValueError("sentence is not in the command deque")

    def front(self) -> Sentence | None:
        """Return the front sentence without removing it, or None when empty."""
        return self._items[0] if self._items else None

    def back(self) -> Sentence | None:
        """Return the back sentence without removing it, or None when empty."""
        return self._items[-1] if self._items else None

    def is_empty(self) -> bool:
        """Return True when the deque holds no sentence."""
        return not self._items

    def describe(self) -> str:
        """Return a dump of the deque from front to back, for debugging."""
        parts = ["printing deque, begin to end.\n"]
        if not self._items:
            parts.append("deque is empty\n")
        for sentence in self._items:
            parts.append(f"p_unit: [{sentence.p_unit}]\n")
            parts.append("".join(f"{i}:[{tok}] " for i, tok in enumerate(sentence.tokens)))
            parts.append("\n")
        return "".join(parts)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Sentence]:
        return iter(self._items)