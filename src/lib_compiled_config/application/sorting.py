"""Record ordering strategies.

Purpose
-------
Decide the merge precedence of records by ordering their names. Every
strategy sorts stably, so records sharing a name keep their input order.

Contents
    - ``lexical_key`` / ``natural_key`` / ``numeric_first_key``: sort keys.
    - ``RecordSorter``: the configured strategy applied to named items.
    - ``natural_sorter`` / ``lexical_sorter`` / ``custom_sorter``: builders.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Iterable, TypeVar

from ..domain.errors import InvalidInput

T = TypeVar("T")

_RUNS = re.compile(r"\d+|\D+")
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?(?:inf|infinity)", re.IGNORECASE)


def lexical_key(name: str) -> str:
    return name


def natural_key(name: str) -> tuple[Any, ...]:
    """Sort key comparing digit runs by value and other runs as text.

    At the same position a digit run sorts before a text run, a shorter name
    sorts before a longer one sharing its prefix, and the full name breaks
    any remaining tie (``"01"`` vs ``"1"``).

    Examples
    --------
    >>> sorted(["7alpha10", "7alpha2", "7alpha0", "7alpha"], key=natural_key)
    ['7alpha', '7alpha0', '7alpha2', '7alpha10']
    """

    runs = []
    for run in _RUNS.findall(name):
        if run.isdecimal():
            runs.append((0, int(run), run))
        else:
            runs.append((1, 0, run))
    return (tuple(runs), name)


def numeric_first_key(name: str) -> tuple[Any, ...]:
    """Sort key putting names that parse as numbers first, in numeric order.

    Used for sibling keys in documented output so array indices and struct
    fields each read in their intuitive order.

    Examples
    --------
    >>> sorted(["b", "10", "2", "a", "1.5"], key=numeric_first_key)
    ['1.5', '2', '10', 'a', 'b']
    """

    number = _parse_number(name)
    if number is None:
        return (1, 0.0, name)
    return (0, number, name)


def _parse_number(text: str) -> float | None:
    if not _NUMBER.fullmatch(text):
        return None
    number = float(text)
    if math.isnan(number):
        return None
    return number


@dataclass(frozen=True, slots=True)
class RecordSorter:
    """Order items by name using a key function or a less-than predicate."""

    label: str
    key: Callable[[str], Any] | None = None
    less: Callable[[str, str], bool] | None = None

    def sort(self, items: Iterable[T], name: Callable[[T], str]) -> list[T]:
        """Return *items* ordered by ``name(item)``; equal names keep input order."""

        if self.less is not None:
            less = self.less

            def compare(a: T, b: T) -> int:
                left, right = name(a), name(b)
                if less(left, right):
                    return -1
                if less(right, left):
                    return 1
                return 0

            return sorted(items, key=cmp_to_key(compare))
        key = self.key or lexical_key
        return sorted(items, key=lambda item: key(name(item)))

    def sort_names(self, names: Iterable[str]) -> list[str]:
        return self.sort(names, lambda item: item)


def natural_sorter() -> RecordSorter:
    return RecordSorter("natural", key=natural_key)


def lexical_sorter() -> RecordSorter:
    return RecordSorter("lexical", key=lexical_key)


def custom_sorter(less: Callable[[str, str], bool] | None) -> RecordSorter:
    """Wrap a caller supplied less-than predicate; ``None`` is rejected."""

    if less is None:
        raise InvalidInput("a custom record sort needs a less-than function")
    return RecordSorter("custom", less=less)
