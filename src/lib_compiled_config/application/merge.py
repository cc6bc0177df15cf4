"""Application-layer merge policy.

Purpose
-------
Fold an ordered sequence of record trees into one configuration tree. The
module is free of I/O so it can be reused by any composition root.

Contents
    - ``merge_trees``: public entry point driven by a simple loop.
    - ``merge_pair``: merges one incoming tree into an accumulated tree.
    - ``_merge_mapping`` / ``_set_scalar``: recursive stanzas that keep the
      precedence rules readable.

Rules
-----
* scalar over scalar: the later value wins, origins concatenate;
* map over map: union of keys, shared keys recurse, origins concatenate;
* array over array: the later array replaces the earlier one wholesale;
* any other shape pairing: :class:`TypeMismatch`, never a coercion;
* an empty node on either side yields the other side unchanged.

System Role
-----------
Receives decoded records from :mod:`lib_compiled_config.core` in precedence
order (defaults in declaration order, then sorted records) and returns the
tree handed to the variable expander.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from ..domain.errors import TypeMismatch
from ..domain.tree import EMPTY_TREE, NodeKind, TreeNode


def merge_trees(trees: Iterable[TreeNode], *, delimiter: str = ".") -> TreeNode:
    """Merge *trees* from lowest to highest precedence.

    Parameters
    ----------
    trees:
        Record trees ordered so that later entries override earlier ones.
    delimiter:
        Key delimiter used when naming the path of a conflict.

    Returns
    -------
    TreeNode
        The merged tree; :data:`EMPTY_TREE` when nothing was supplied.

    Examples
    --------
    >>> merged = merge_trees([
    ...     TreeNode.from_raw({"service": {"timeout": 5, "hosts": ["a", "b"]}}),
    ...     TreeNode.from_raw({"service": {"timeout": 10, "hosts": ["c"]}}),
    ... ])
    >>> merged.to_raw()
    {'service': {'timeout': 10, 'hosts': ['c']}}
    """

    merged = EMPTY_TREE
    for tree in trees:
        merged = merge_pair(merged, tree, delimiter=delimiter)
    return merged


def merge_pair(
    base: TreeNode,
    incoming: TreeNode,
    *,
    delimiter: str = ".",
    path: Sequence[str] = (),
) -> TreeNode:
    """Merge *incoming* on top of *base* and return the new tree."""

    if incoming.is_empty():
        return base
    if base.is_empty():
        return incoming
    if base.kind is not incoming.kind:
        where = delimiter.join(path) or "<root>"
        raise TypeMismatch(
            f"cannot merge {incoming.kind.value} into {base.kind.value} at key '{where}'"
        )
    if base.kind is NodeKind.MAP:
        return _merge_mapping(base, incoming, delimiter, path)
    if base.kind is NodeKind.ARRAY:
        return TreeNode(
            array=list(incoming.array or []),
            origins=list(incoming.origins),
            secret=base.secret or incoming.secret,
        )
    return _set_scalar(base, incoming)


def _merge_mapping(
    base: TreeNode,
    incoming: TreeNode,
    delimiter: str,
    path: Sequence[str],
) -> TreeNode:
    """Union the keys of two map nodes, recursing into shared keys."""

    children = dict(base.map or {})
    for key, child in (incoming.map or {}).items():
        existing = children.get(key)
        if existing is None:
            children[key] = child
        else:
            children[key] = merge_pair(existing, child, delimiter=delimiter, path=[*path, key])
    return TreeNode(
        map=children,
        origins=[*base.origins, *incoming.origins],
        secret=base.secret or incoming.secret,
    )


def _set_scalar(base: TreeNode, incoming: TreeNode) -> TreeNode:
    """Later scalar wins; provenance keeps both contributors in order."""

    return TreeNode(
        value=incoming.value,
        origins=[*base.origins, *incoming.origins],
        secret=base.secret or incoming.secret,
    )
