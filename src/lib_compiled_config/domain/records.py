"""Named configuration fragments.

A :class:`Record` is what every source turns into before sorting and merging:
a name (the sort key), the kind of source that produced it and a loader that
returns the decoded tree. Loading is deferred so that buffer and value
functions can see the configuration merged from the records before them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .tree import TreeNode

Loader = Callable[[Callable[..., Any]], TreeNode]


@dataclass(frozen=True, slots=True)
class Record:
    """One decoded (or decodable) configuration fragment.

    Attributes
    ----------
    name:
        Sort key and diagnostic label, usually a file base name.
    source:
        ``"file"``, ``"buffer"`` or ``"value"``.
    load:
        Called with an ``unmarshal`` function over the configuration merged so
        far; returns the record's tree.
    default:
        Default records skip sorting and merge first, in declaration order.
    """

    name: str
    source: str
    load: Loader
    default: bool = False


def loaded(name: str, source: str, tree: TreeNode, *, default: bool = False) -> Record:
    """Wrap an already decoded *tree* as a record."""

    return Record(name=name, source=source, load=lambda _unmarshal: tree, default=default)
