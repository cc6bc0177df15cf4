"""Documentation objects describing the intended configuration shape.

Purpose
-------
Hold the documentation tree supplied next to a configuration: doc text, type
tag, deprecation and optionality flags, and named children. Reserved child
names carry array-element, map-key, map-value and embedded-struct docs.

Contents
--------
* :class:`DocType` – the closed set of type tags.
* :class:`ReservedName` – the closed set of reserved child names.
* :class:`DocObject` – one documentation node plus parsing, merging,
  key translation and type description helpers.

System Role
-----------
Consumed by :mod:`lib_compiled_config.application.unified` when a marshal
call asks for documentation. Parsing happens once when the option is
applied; malformed input raises :class:`InvalidInput`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Mapping

from .errors import InvalidInput


class DocType(Enum):
    NONE = ""
    ROOT = "<root>"
    MAP = "<map>"
    STRUCT = "<struct>"
    ARRAY = "<array>"
    STRING = "<string>"
    BOOL = "<bool>"
    INT = "<int>"
    INT8 = "<int8>"
    INT16 = "<int16>"
    INT32 = "<int32>"
    INT64 = "<int64>"
    UINT = "<uint>"
    UINT8 = "<uint8>"
    UINT16 = "<uint16>"
    UINT32 = "<uint32>"
    UINT64 = "<uint64>"
    UINTPTR = "<uintptr>"
    FLOAT32 = "<float32>"
    FLOAT64 = "<float64>"
    COMPLEX64 = "<complex64>"
    COMPLEX128 = "<complex128>"


class ReservedName(Enum):
    """Child names with a structural meaning instead of a configuration key."""

    ARRAY = "<array>"
    KEY = "<key>"
    VALUE = "<value>"
    EMBEDDED = "<embedded>"

    @classmethod
    def parse(cls, name: str) -> ReservedName | None:
        """Return the reserved tag for *name*, or ``None`` for an ordinary key."""

        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class DocObject:
    """One node of a documentation tree."""

    name: str = ""
    doc: str = ""
    tag: str = ""
    type: DocType = DocType.NONE
    deprecated: bool = False
    optional: bool = False
    children: dict[str, DocObject] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: bytes | str) -> DocObject:
        """Parse a JSON documentation tree and validate its root."""

        try:
            parsed = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidInput(f"invalid documentation JSON: {exc}") from exc
        root = cls.from_mapping(parsed)
        if root.name != "" or root.type is not DocType.ROOT:
            raise InvalidInput("documentation root must be unnamed and of type <root>")
        return root

    @classmethod
    def from_mapping(cls, data: Any) -> DocObject:
        """Build a node from the ``{Name, Doc, Tag, Type, Deprecated, Optional, Children}`` shape.

        Examples
        --------
        >>> node = DocObject.from_mapping({"Name": "port", "Type": "<int>", "Doc": "listen port"})
        >>> node.type, node.type_string()
        (<DocType.INT: '<int>'>, '<int>')
        """

        if not isinstance(data, Mapping):
            raise InvalidInput(f"documentation node must be an object, got {type(data).__name__}")
        type_tag = data.get("Type", "")
        try:
            doc_type = DocType(type_tag)
        except ValueError as exc:
            raise InvalidInput(f"unknown documentation type '{type_tag}'") from exc
        raw_children = data.get("Children") or {}
        if not isinstance(raw_children, Mapping):
            raise InvalidInput("documentation Children must be an object")
        children = {}
        for key, child in raw_children.items():
            parsed = cls.from_mapping(child)
            children[key] = parsed if parsed.name else replace(parsed, name=key)
        return cls(
            name=str(data.get("Name", "")),
            doc=str(data.get("Doc", "")),
            tag=str(data.get("Tag", "")),
            type=doc_type,
            deprecated=bool(data.get("Deprecated", False)),
            optional=bool(data.get("Optional", False)),
            children=children,
        )

    def child(self, name: ReservedName | str) -> DocObject | None:
        key = name.value if isinstance(name, ReservedName) else name
        return self.children.get(key)

    def merge(self, other: DocObject) -> DocObject:
        """Overlay *other* on top of this node; children merge recursively."""

        children = dict(self.children)
        for key, child in other.children.items():
            existing = children.get(key)
            children[key] = existing.merge(child) if existing is not None else child
        return DocObject(
            name=other.name or self.name,
            doc=other.doc or self.doc,
            tag=other.tag or self.tag,
            type=other.type if other.type is not DocType.NONE else self.type,
            deprecated=self.deprecated or other.deprecated,
            optional=self.optional or other.optional,
            children=children,
        )

    def translate(self, mapper: Callable[[str], str]) -> DocObject:
        """Rename ordinary children with *mapper*, leaving reserved names alone."""

        children = {}
        for key, child in self.children.items():
            name = key if ReservedName.parse(key) is not None else (mapper(key) or key)
            children[name] = child.translate(mapper)
        return replace(self, children=children)

    def type_string(self) -> str:
        """Describe the type for documentation headers.

        Arrays with element docs read ``array of <elem>``; maps with key and
        value docs read ``map with key <k> -> value <v>`` followed by one
        indented line per documented key and value.

        Examples
        --------
        >>> tags = DocObject(type=DocType.ARRAY, children={"<array>": DocObject(type=DocType.STRING)})
        >>> tags.type_string()
        'array of <string>'
        """

        if self.type is DocType.ARRAY:
            element = self.child(ReservedName.ARRAY)
            if element is not None:
                return "array of " + element.type_string().split("\n")[0]
            return self.type.value

        key = self.child(ReservedName.KEY)
        value = self.child(ReservedName.VALUE)
        if self.type is DocType.MAP and key is not None and value is not None:
            key_type = key.type_string().split("\n")[0]
            value_type = value.type_string().split("\n")[0]
            lines = [f"map with key {key_type} -> value {value_type}"]
            lines.extend(_describe("key", key_type, key.doc))
            lines.extend(_describe("value", value_type, value.doc))
            return "\n".join(lines)

        return self.type.value


def _describe(label: str, type_text: str, doc: str) -> list[str]:
    """Return ``  label(type) doc`` lines with continuations aligned under the doc."""

    if not doc:
        return []
    prefix = f"  {label}({type_text}) "
    first, *rest = doc.split("\n")
    return [prefix + first, *(" " * len(prefix) + line for line in rest)]
