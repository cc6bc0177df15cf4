"""Canonical in-memory configuration tree.

Purpose
-------
Represent every configuration fragment, whatever format it came from, as a
tree of :class:`TreeNode` values. A node is exactly one of three shapes: a
scalar leaf, a map of string keys, or an ordered array. Each node carries the
:class:`Origin` entries of every source that contributed to it.

Contents
--------
* :class:`Origin` – provenance (source name, line, column).
* :class:`ScalarKind` / :class:`Scalar` – the closed set of leaf values.
* :class:`NodeKind` / :class:`TreeNode` – the tree itself plus navigation,
  projection and redaction helpers.
* :func:`to_string` – the single place where values become display text.
* :func:`split_secret` – strips the ``((secret))`` key annotation.

System Role
-----------
Decoders produce trees, the merge engine folds them, the expander rewrites
their string leaves, and the composition root projects them with
:meth:`TreeNode.to_raw` for typed extraction and encoding. Nodes are treated
as immutable: every transformation returns a new node.
"""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from .errors import NotFound, TypeMismatch

SECRET_SUFFIX = "((secret))"
REDACTED = "REDACTED"


@dataclass(frozen=True, slots=True)
class Origin:
    """Where a value came from.

    ``line`` and ``col`` are 1-based; ``0`` means the position is unknown.

    Examples
    --------
    >>> str(Origin("app.yaml", 3, 5))
    'app.yaml:3[5]'
    >>> str(Origin("environment"))
    'environment'
    """

    file: str = ""
    line: int = 0
    col: int = 0

    def __str__(self) -> str:
        name = self.file or "unknown"
        if self.line <= 0:
            return name
        return f"{name}:{self.line}[{self.col}]"


class ScalarKind(Enum):
    """Closed set of scalar kinds a leaf may hold."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"


@dataclass(frozen=True, slots=True)
class Scalar:
    """A leaf value.

    Floats are kept as :class:`decimal.Decimal` so the exact text written in a
    source file survives until the value is consumed.

    Examples
    --------
    >>> Scalar.of(1.25)
    Scalar(kind=<ScalarKind.FLOAT: 'float'>, value=Decimal('1.25'))
    >>> Scalar.of(True).to_raw()
    True
    """

    kind: ScalarKind
    value: None | bool | int | Decimal | str

    @classmethod
    def of(cls, value: Any) -> Scalar:
        """Wrap a decoded Python value, raising ``TypeError`` for unsupported types."""

        if isinstance(value, Scalar):
            return value
        if value is None:
            return cls(ScalarKind.NULL, None)
        if isinstance(value, bool):
            return cls(ScalarKind.BOOL, value)
        if isinstance(value, int):
            return cls(ScalarKind.INT, int(value))
        if isinstance(value, Decimal):
            return cls(ScalarKind.FLOAT, value)
        if isinstance(value, float):
            return cls(ScalarKind.FLOAT, Decimal(repr(value)))
        if isinstance(value, str):
            return cls(ScalarKind.STRING, value)
        if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
            return cls(ScalarKind.STRING, value.isoformat())
        if isinstance(value, Enum):
            return cls.of(value.value)
        raise TypeError(f"unsupported scalar type: {type(value).__name__}")

    def to_raw(self, *, exact_numbers: bool = False) -> Any:
        """Return the plain Python value.

        Floats become ``float`` for struct decoding; encoders pass
        *exact_numbers* to keep the :class:`~decimal.Decimal` text.
        """

        if self.kind is ScalarKind.FLOAT and not exact_numbers:
            return float(self.value)  # type: ignore[arg-type]
        return self.value

    def __str__(self) -> str:
        return to_string(self)


def to_string(value: Any) -> str:
    """Render *value* as display text.

    Strings pass through, booleans and null use their YAML spelling, integers
    use ``%d``, binary floats use ``%f`` and exact decimals keep their text.
    Anything else falls back to ``str``.

    Examples
    --------
    >>> to_string(Scalar.of(8080)), to_string(3.14), to_string(Scalar.of(3.14))
    ('8080', '3.140000', '3.14')
    >>> to_string(False), to_string(None)
    ('false', 'null')
    """

    if isinstance(value, Scalar):
        if value.kind is ScalarKind.FLOAT:
            return str(value.value)
        value = value.value
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return "%d" % value
    if isinstance(value, float):
        return "%f" % value
    return str(value)


def split_secret(key: str) -> tuple[str, bool]:
    """Strip the secret annotation from *key*.

    Examples
    --------
    >>> split_secret("password((secret))")
    ('password', True)
    >>> split_secret("user")
    ('user', False)
    """

    if key.endswith(SECRET_SUFFIX):
        return key[: -len(SECRET_SUFFIX)], True
    return key, False


class NodeKind(Enum):
    SCALAR = "scalar"
    MAP = "map"
    ARRAY = "array"


@dataclass(frozen=True, slots=True)
class TreeNode:
    """One node of a configuration tree.

    Equality compares shape, values and the secret flag; origins are
    diagnostics only and never take part in comparisons.
    """

    value: Scalar | None = None
    map: dict[str, TreeNode] | None = None
    array: list[TreeNode] | None = None
    origins: list[Origin] = field(default_factory=list, compare=False)
    secret: bool = False

    def __post_init__(self) -> None:
        shapes = sum(part is not None for part in (self.value, self.map, self.array))
        if shapes > 1:
            raise TypeMismatch("conflicting definitions: a node holds exactly one of scalar, map or array")

    @classmethod
    def from_raw(cls, raw: Any, origin: Origin | None = None) -> TreeNode:
        """Build a tree from decoded mappings, sequences and scalars.

        Every node is stamped with *origin* when one is given. Keys ending in
        ``((secret))`` mark their subtree secret.

        Examples
        --------
        >>> node = TreeNode.from_raw({"db": {"port": 5432, "pass((secret))": "x"}})
        >>> node.fetch(["db", "port"]).to_raw(), node.fetch(["db", "pass"]).secret
        (5432, True)
        """

        origins = [origin] if origin is not None else []
        if isinstance(raw, TreeNode):
            return raw
        if isinstance(raw, Mapping):
            children: dict[str, TreeNode] = {}
            for key, item in raw.items():
                name, secret = split_secret(str(key))
                child = cls.from_raw(item, origin)
                children[name] = replace(child, secret=True) if secret else child
            return cls(map=children, origins=origins)
        if isinstance(raw, (list, tuple)):
            return cls(array=[cls.from_raw(item, origin) for item in raw], origins=origins)
        return cls(value=Scalar.of(raw), origins=origins)

    @classmethod
    def nest(cls, path: Sequence[str], node: TreeNode, origin: Origin | None = None) -> TreeNode:
        """Wrap *node* in maps so it sits at *path*; an empty path returns it unchanged."""

        origins = [origin] if origin is not None else []
        for segment in reversed(path):
            node = cls(map={segment: node}, origins=list(origins))
        return node

    @property
    def kind(self) -> NodeKind:
        if self.map is not None:
            return NodeKind.MAP
        if self.array is not None:
            return NodeKind.ARRAY
        return NodeKind.SCALAR

    def is_empty(self) -> bool:
        """Return ``True`` for a valueless scalar without children or origins."""

        return self.value is None and not self.map and not self.array and not self.origins

    def with_origins(self, extra: Iterable[Origin]) -> TreeNode:
        """Return a copy with *extra* appended to the origin list."""

        return replace(self, origins=[*self.origins, *extra])

    def fetch(self, path: Sequence[str], delimiter: str = ".") -> TreeNode:
        """Return the node addressed by *path*.

        Map levels are looked up by key and array levels by decimal index.
        A missing key or index raises :class:`NotFound`; indexing a map as an
        array, keying an array, or descending into a scalar raises
        :class:`TypeMismatch`. Messages name the path joined by *delimiter*.

        Examples
        --------
        >>> tree = TreeNode.from_raw({"a": {"b": 5}, "l": [1, 2]})
        >>> tree.fetch(["a", "b"]).to_raw(), tree.fetch(["l", "1"]).to_raw()
        (5, 2)
        """

        node = self
        for depth, segment in enumerate(path):
            where = delimiter.join(path[: depth + 1])
            if node.map is not None:
                try:
                    node = node.map[segment]
                except KeyError as exc:
                    raise NotFound(f"key '{where}' not found") from exc
            elif node.array is not None:
                if not segment.isdecimal():
                    raise TypeMismatch(f"key '{where}': expected an array index, got '{segment}'")
                index = int(segment)
                if index >= len(node.array):
                    raise NotFound(f"key '{where}' not found: index {index} out of range")
                node = node.array[index]
            elif node.is_empty():
                raise NotFound(f"key '{where}' not found")
            else:
                raise TypeMismatch(f"key '{where}': cannot descend into a scalar value")
        return node

    def to_raw(self, *, exact_numbers: bool = False) -> Any:
        """Project the tree into plain dicts, lists and scalars, dropping origins.

        With *exact_numbers* floats stay :class:`~decimal.Decimal`, which is
        what encoders need to write the digits back unchanged.
        """

        if self.map is not None:
            return {key: child.to_raw(exact_numbers=exact_numbers) for key, child in self.map.items()}
        if self.array is not None:
            return [child.to_raw(exact_numbers=exact_numbers) for child in self.array]
        if self.value is None:
            return None
        return self.value.to_raw(exact_numbers=exact_numbers)

    def redacted(self) -> TreeNode:
        """Return a copy with every secret node replaced by the ``REDACTED`` marker."""

        if self.secret:
            return TreeNode(value=Scalar.of(REDACTED), origins=list(self.origins), secret=True)
        if self.map is not None:
            return replace(self, map={key: child.redacted() for key, child in self.map.items()})
        if self.array is not None:
            return replace(self, array=[child.redacted() for child in self.array])
        return self


EMPTY_TREE = TreeNode()
