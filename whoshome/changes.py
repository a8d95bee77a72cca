"""Difference between two snapshots of a collection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List


@dataclass(frozen=True)
class Added:
    item: Any


@dataclass(frozen=True)
class Removed:
    item: Any


def changes(before: Iterable, after: Iterable) -> List:
    """
    Items that appeared in ``after`` (``Added``, in ``after`` order) followed by
    items that disappeared from ``before`` (``Removed``, in ``before`` order).
    """
    before = list(before)
    after = list(after)
    added = [Added(item) for item in after if item not in before]
    removed = [Removed(item) for item in before if item not in after]
    return added + removed
