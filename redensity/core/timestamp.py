"""
Logical time for the RED pipeline.

A timestamp is an integer that grows by one for every instance taken from
the stream: the first instance has timestamp 1, the second 2, and so on.
"""

from dataclasses import dataclass
from functools import total_ordering


@total_ordering
@dataclass(frozen=True)
class Timestamp:
    value: int = 0

    def difference(self, other: 'Timestamp') -> int:
        """Ticks elapsed from ``other`` to this timestamp."""
        return self.value - other.value

    def __sub__(self, other: 'Timestamp') -> int:
        return self.difference(other)

    def __lt__(self, other: 'Timestamp') -> bool:
        return self.value < other.value

    def next(self) -> 'Timestamp':
        return Timestamp(self.value + 1)

    def __str__(self) -> str:
        return str(self.value)


class LogicalClock:
    """Hands out strictly increasing timestamps."""

    def __init__(self, start: int = 0):
        self._now = Timestamp(start)

    @property
    def now(self) -> Timestamp:
        """Timestamp of the most recent tick."""
        return self._now

    def tick(self) -> Timestamp:
        self._now = self._now.next()
        return self._now
