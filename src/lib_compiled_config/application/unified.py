"""Documentation and compiled values zipped into one renderable tree.

Purpose
-------
Combine a :class:`DocObject` tree with a compiled :class:`TreeNode` so a
marshalled document can show, for every key, its documentation, its type,
its default and its live value.

Contents
    - ``UnifiedNode``: an :class:`Encodeable` node for the YAML renderer.
    - ``calc_unified``: recursive builder.

Rules
-----
* Either side may be missing at any level; a node with no children on
  either side becomes a leaf carrying the compiled scalar.
* Array documentation (the ``<array>`` child) is attached to the first
  element only; elements are keyed ``"0"``, ``"1"``, ...
* Array and map data at the same position raise
  :class:`ConflictingDefinitions`.
* ``<key>``/``<value>`` docs stay on the map node; ``<array>`` and
  ``<embedded>`` children of a map are rejected.
* Siblings render in numeric-first natural order.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..domain.documentation import DocObject, DocType, ReservedName
from ..domain.errors import ConflictingDefinitions, InvalidInput
from ..domain.tree import Scalar, ScalarKind, TreeNode, to_string
from .sorting import numeric_first_key

NOTICE_DEPRECATED = "!!! DEPRECATED !!!"


@dataclass(slots=True)
class UnifiedNode:
    """One documented value ready for rendering.

    Examples
    --------
    >>> doc = DocObject(doc="x", type=DocType.STRING, deprecated=True)
    >>> UnifiedNode(doc=doc, name="a", level=0).headers()
    ['!!! DEPRECATED !!!', 'x', 'type: <string>', '!!! DEPRECATED !!!']
    """

    doc: DocObject | None = None
    name: str | None = None
    scalar: Scalar | None = None
    preset: Scalar | None = None
    level: int = -1
    array: bool = False
    key_doc: DocObject | None = None
    value_doc: DocObject | None = None
    nodes: dict[str, UnifiedNode] = field(default_factory=dict)

    def indent(self) -> int:
        return self.level

    def headers(self) -> list[str]:
        lines: list[str] = []
        deprecated = False
        if self.doc is not None:
            lines = self.doc.doc.split("\n") if self.doc.doc else []
            deprecated = self.doc.deprecated
            type_text = self.doc.type_string()
            if type_text and type_text != DocType.ROOT.value:
                type_lines = type_text.split("\n")
                lines.append("type: " + type_lines[0])
                lines.extend(type_lines[1:])
        if self.preset is not None:
            lines.append(f"default: {to_string(self.preset)}")
        if deprecated:
            lines = [NOTICE_DEPRECATED, *lines, NOTICE_DEPRECATED]
        return lines

    def inline(self) -> list[str]:
        return []

    def key(self) -> str | None:
        return self.name

    def value(self) -> str | None:
        if self.scalar is None:
            return None
        return to_string(self.scalar)

    def children(self) -> list[UnifiedNode] | None:
        if not self.nodes:
            return None
        return [self.nodes[key] for key in sorted(self.nodes, key=numeric_first_key)]


def calc_unified(doc: DocObject | None, compiled: TreeNode | None, presets: TreeNode | None = None) -> UnifiedNode:
    """Zip *doc* against *compiled*; *presets* supplies default values.

    A default line is only produced where the preset differs from the live
    value.

    Examples
    --------
    >>> root = calc_unified(None, TreeNode.from_raw({"b": 2, "a": [1]}))
    >>> [child.key() for child in root.children()]
    ['a', 'b']
    """

    return _unify(None, -1, doc, compiled, presets)


def _unify(
    name: str | None,
    level: int,
    doc: DocObject | None,
    compiled: TreeNode | None,
    presets: TreeNode | None,
) -> UnifiedNode:
    node = UnifiedNode(doc=doc, name=name, level=level)
    doc_array = doc is not None and doc.type is DocType.ARRAY
    map_len = len(doc.children) if doc is not None and not doc_array else 0
    array_len = 0
    if compiled is not None:
        array_len = len(compiled.array or [])
        map_len = max(map_len, len(compiled.map or {}))

    if array_len + map_len == 0:
        if compiled is not None:
            node.scalar = _live(compiled)
            node.preset = _preset(presets, node.scalar)
        return node

    if (doc_array and map_len > 0) or (map_len > 0 and array_len > 0):
        raise ConflictingDefinitions("conflicting definitions: array and map cannot coexist in the same object")

    if doc_array or array_len > 0:
        return _unify_array(node, doc, compiled, presets)
    return _unify_map(node, doc, compiled, presets)


def _unify_array(node: UnifiedNode, doc: DocObject | None, compiled: TreeNode | None, presets: TreeNode | None) -> UnifiedNode:
    node.array = True
    element_doc = doc.child(ReservedName.ARRAY) if doc is not None else None
    preset_items = presets.array if presets is not None and presets.array is not None else []
    for index, item in enumerate((compiled.array or []) if compiled is not None else []):
        preset = preset_items[index] if index < len(preset_items) else None
        node.nodes[str(index)] = _unify(None, node.level + 1, element_doc, item, preset)
        element_doc = None
    return node


def _unify_map(node: UnifiedNode, doc: DocObject | None, compiled: TreeNode | None, presets: TreeNode | None) -> UnifiedNode:
    names = set(doc.children) if doc is not None else set()
    if compiled is not None and compiled.map:
        names.update(compiled.map)
    preset_map = presets.map if presets is not None and presets.map is not None else {}

    for key in sorted(names):
        reserved = ReservedName.parse(key)
        if reserved is ReservedName.ARRAY:
            raise InvalidInput("array key cannot be used in a map object")
        if reserved is ReservedName.EMBEDDED:
            raise InvalidInput("embedded key cannot be used in a map object")
        if reserved is ReservedName.KEY:
            node.key_doc = doc.child(key) if doc is not None else None
            continue
        if reserved is ReservedName.VALUE:
            node.value_doc = doc.child(key) if doc is not None else None
            continue
        child_doc = doc.child(key) if doc is not None else None
        child = compiled.map.get(key) if compiled is not None and compiled.map else None
        node.nodes[key] = _unify(key, node.level + 1, child_doc, child, preset_map.get(key))
    return node


def _live(compiled: TreeNode) -> Scalar | None:
    if compiled.value is None or compiled.value.kind is ScalarKind.NULL:
        return None
    return compiled.value


def _preset(presets: TreeNode | None, live: Scalar | None) -> Scalar | None:
    if presets is None or presets.value is None or presets.value.kind is ScalarKind.NULL:
        return None
    if presets.value == live:
        return None
    return presets.value
