from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


class ArgumentTraverseContext:
    """Consumption tracker over the positional candidate values of one match.

    Consumed slots are flagged and the ``[start, end]`` search window shrinks
    whenever a boundary slot is consumed, so repeated scans for the same
    parameter list skip already used values in amortized linear time.
    """

    def __init__(self, arguments: Sequence[Any]) -> None:
        self._arguments = tuple(arguments)
        self._count = len(self._arguments)
        self._used = [False] * self._count
        self._start = 0
        self._end = self._count - 1
        self._cursor = 0

    @property
    def arguments(self) -> tuple[Any, ...]:
        return self._arguments

    def __len__(self) -> int:
        return self._count

    def is_used(self, index: int) -> bool:
        return self._used[index]

    def reset(self) -> None:
        self._cursor = self._start

    def advance(self, predicate: Callable[[Any, int], bool]) -> bool:
        """Offer the next unused candidate to ``predicate``.

        Returns ``False`` once the cursor has passed the end of the window.
        A candidate accepted by ``predicate`` is marked as used.
        """
        while self._cursor <= self._end and self._used[self._cursor]:
            self._cursor += 1
        if self._cursor > self._end:
            return False

        index = self._cursor
        if predicate(self._arguments[index], index):
            self._used[index] = True
            if index == self._start:
                self._start += 1
            while self._start < self._count and self._used[self._start]:
                self._start += 1
            if index == self._end:
                self._end -= 1
            while self._end >= 0 and self._used[self._end]:
                self._end -= 1

        self._cursor += 1
        return True

    def search(self, matcher: Callable[[Any], tuple[bool, Any]]) -> tuple[bool, Any]:
        """Consume the first unused candidate ``matcher`` accepts.

        ``matcher`` returns ``(ok, value)``; the value it produced is returned.
        """
        found: list[Any] = []

        def predicate(candidate: Any, _index: int) -> bool:
            ok, value = matcher(candidate)
            if ok:
                found.append(value)
            return ok

        self.reset()
        while not found and self.advance(predicate):
            pass

        if found:
            return True, found[0]
        return False, None

    def collect(self, matcher: Callable[[Any], tuple[bool, Any]]) -> list[Any]:
        """Consume every unused candidate ``matcher`` accepts, in order."""
        collected: list[Any] = []

        def predicate(candidate: Any, _index: int) -> bool:
            ok, value = matcher(candidate)
            if ok:
                collected.append(value)
            return ok

        self.reset()
        while self.advance(predicate):
            pass
        return collected
