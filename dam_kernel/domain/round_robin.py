"""
RoundRobin -- cyclic distribution of configuration values.

Contract:
    ``RoundRobin(values)`` is an infinite, forward-only iterator over
    ``values`` in their original order, wrapping from the last element back
    to the first.  Drawing M values from N yields every value M // N times,
    plus one more for the first M % N values in list order.

    The cursor is stateful and is NOT atomic.  A distributor shared by
    several threads must be guarded by the caller (the catalog holds a
    ``threading.Lock`` per round-robin action).  To restart from the first
    value, construct a new RoundRobin.

Failure modes:
    - EmptyDistributionError if constructed from an empty sequence.
"""

from __future__ import annotations

from typing import Iterable, Iterator, TypeVar

from dam_kernel.exceptions import EmptyDistributionError

T = TypeVar("T")


class RoundRobin(Iterator[T]):
    """Infinite cyclic iterator over a fixed, non-empty list of values."""

    def __init__(self, values: Iterable[T]):
        self._values: tuple[T, ...] = tuple(values)
        if not self._values:
            raise EmptyDistributionError()
        self._position = 0

    @property
    def values(self) -> tuple[T, ...]:
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> RoundRobin[T]:
        return self

    def __next__(self) -> T:
        value = self._values[self._position]
        self._position = (self._position + 1) % len(self._values)
        return value

    def __repr__(self) -> str:
        return f"RoundRobin({list(self._values)!r}, position={self._position})"
