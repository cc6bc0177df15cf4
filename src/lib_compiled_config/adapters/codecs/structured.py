"""Structured format codecs.

Purpose
-------
Convert bytes in YAML, JSON and TOML into :class:`TreeNode` trees and compiled
trees back into bytes. Codecs are small wrappers around ``yaml``/``json``/
``tomllib`` so error wrapping and the mapping-at-top-level policy live in one
place.

Contents
--------
* :class:`BaseCodec` – shared helpers for decoding text and validating the
  top-level shape.
* :class:`YAMLCodec` – decodes through PyYAML's composer so every node keeps
  its line and column; encodes with a safe dumper that writes
  :class:`~decimal.Decimal` digits unchanged or, with origins, with the
  comment-aware renderer.
* :class:`JSONCodec` – JSON in both directions; the writer lays out the
  same text as ``json.dumps(indent=2)`` but keeps decimal digits.
* :class:`TOMLDecoder` – decode-only TOML support.

System Role
-----------
Registered by :func:`lib_compiled_config.adapters.codecs.registry.default_registry`
and looked up by extension by the record collector and ``Config.marshal``.
Floats decode to :class:`decimal.Decimal` so the written digits survive until
a typed value is extracted or the tree is encoded again.
"""

from __future__ import annotations

import json
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import yaml

from ...application.ports import DecodeContext
from ...domain.errors import DecodingFailure, EncodingFailure
from ...domain.tree import EMPTY_TREE, NodeKind, Origin, Scalar, TreeNode, split_secret, to_string
from ..rendering.yaml import Renderer

_FLOAT_TAG = "tag:yaml.org,2002:float"


class BaseCodec:
    """Common helpers shared by the structured codecs."""

    name = "base"

    @staticmethod
    def _text(ctx: DecodeContext, data: bytes) -> str:
        """Decode *data* as UTF-8, raising :class:`DecodingFailure` otherwise."""

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodingFailure(f"{ctx.filename} is not valid UTF-8: {exc}") from exc

    @staticmethod
    def _ensure_mapping(tree: TreeNode, *, ctx: DecodeContext) -> TreeNode:
        """Ensure the document root is a map (or empty).

        Examples
        --------
        >>> BaseCodec._ensure_mapping(TreeNode.from_raw({"key": 1}), ctx=DecodeContext("demo")).to_raw()
        {'key': 1}
        >>> BaseCodec._ensure_mapping(TreeNode.from_raw(42), ctx=DecodeContext("demo"))
        Traceback (most recent call last):
        ...
        lib_compiled_config.domain.errors.DecodingFailure: File demo did not produce a mapping
        """

        if tree.is_empty() or tree.kind is NodeKind.MAP:
            return tree
        if tree.value is not None and tree.value.value is None:
            return EMPTY_TREE
        raise DecodingFailure(f"File {ctx.filename} did not produce a mapping")


def _yaml_float_text(value: Decimal) -> str:
    """Spell *value* so YAML 1.1 resolvers read it back as a float.

    Examples
    --------
    >>> _yaml_float_text(Decimal("1E+400")), _yaml_float_text(Decimal("2")), _yaml_float_text(Decimal("-Infinity"))
    ('1.0E+400', '2.0', '-.inf')
    """

    if value.is_nan():
        return ".nan"
    if value.is_infinite():
        return "-.inf" if value < 0 else ".inf"
    mantissa, marker, exponent = str(value).partition("E")
    if "." not in mantissa:
        mantissa += ".0"
    return mantissa + marker + exponent


class _Dumper(yaml.SafeDumper):
    """Safe dumper that writes :class:`~decimal.Decimal` as a plain float scalar."""


def _represent_decimal(dumper: yaml.SafeDumper, value: Decimal) -> yaml.ScalarNode:
    return dumper.represent_scalar(_FLOAT_TAG, _yaml_float_text(value))


_Dumper.add_representer(Decimal, _represent_decimal)


class YAMLCodec(BaseCodec):
    """YAML decoder and encoder.

    Examples
    --------
    >>> tree = YAMLCodec().decode(DecodeContext("app.yaml"), b"db:\\n  port: 5432\\n")
    >>> tree.to_raw(), str(tree.fetch(["db", "port"]).origins[0])
    ({'db': {'port': 5432}}, 'app.yaml:2[9]')
    """

    name = "yaml"

    def extensions(self) -> Sequence[str]:
        return ("yaml", "yml")

    def decode(self, ctx: DecodeContext, data: bytes) -> TreeNode:
        text = self._text(ctx, data)
        if not text.strip():
            return EMPTY_TREE
        loader = yaml.SafeLoader(text)
        try:
            node = loader.get_single_node()
            if node is None:
                return EMPTY_TREE
            tree = self._convert(loader, node, ctx.filename)
        except yaml.YAMLError as exc:
            raise DecodingFailure(f"Invalid YAML in {ctx.filename}: {exc}") from exc
        finally:
            loader.dispose()
        return self._ensure_mapping(tree, ctx=ctx)

    def _convert(self, loader: yaml.SafeLoader, node: yaml.Node, filename: str) -> TreeNode:
        origin = Origin(filename, node.start_mark.line + 1, node.start_mark.column + 1)
        if isinstance(node, yaml.MappingNode):
            loader.flatten_mapping(node)
            children: dict[str, TreeNode] = {}
            for key_node, value_node in node.value:
                if not isinstance(key_node, yaml.ScalarNode):
                    raise DecodingFailure(f"{origin}: map keys must be scalars")
                name, secret = split_secret(key_node.value)
                child = self._convert(loader, value_node, filename)
                children[name] = replace(child, secret=True) if secret else child
            return TreeNode(map=children, origins=[origin])
        if isinstance(node, yaml.SequenceNode):
            return TreeNode(array=[self._convert(loader, item, filename) for item in node.value], origins=[origin])
        return TreeNode(value=self._scalar(loader, node, origin), origins=[origin])

    @staticmethod
    def _scalar(loader: yaml.SafeLoader, node: yaml.Node, origin: Origin) -> Scalar:
        if node.tag == _FLOAT_TAG:
            try:
                return Scalar.of(Decimal(node.value.replace("_", "")))
            except InvalidOperation:
                pass
        value = loader.construct_object(node, deep=True)
        try:
            return Scalar.of(value)
        except TypeError as exc:
            raise DecodingFailure(f"{origin}: unsupported YAML value ({node.tag})") from exc

    def encode(self, raw: Any) -> bytes:
        try:
            return yaml.dump(raw, Dumper=_Dumper, sort_keys=False, allow_unicode=True).encode("utf-8")
        except yaml.YAMLError as exc:
            raise EncodingFailure(f"cannot encode YAML: {exc}") from exc

    def encode_extended(self, tree: TreeNode) -> bytes:
        """Render *tree* with the origins of each node as trailing comments."""

        return Renderer().encode(OriginNode(tree, None, -1)).encode("utf-8")


class OriginNode:
    """Adapts a :class:`TreeNode` to the renderer, one origin comment per node."""

    def __init__(self, node: TreeNode, name: str | None, level: int) -> None:
        self._node = node
        self._name = name
        self._level = level

    def indent(self) -> int:
        return self._level

    def headers(self) -> list[str]:
        return []

    def inline(self) -> list[str]:
        if not self._node.origins:
            return []
        return [", ".join(str(origin) for origin in self._node.origins)]

    def key(self) -> str | None:
        return self._name

    def value(self) -> str | None:
        scalar = self._node.value
        if scalar is None or scalar.value is None:
            return None
        return to_string(scalar)

    def children(self) -> list[OriginNode] | None:
        if self._node.map:
            return [OriginNode(child, key, self._level + 1) for key, child in self._node.map.items()]
        if self._node.array:
            return [OriginNode(child, None, self._level + 1) for child in self._node.array]
        return None


class JSONCodec(BaseCodec):
    """JSON decoder and encoder.

    Examples
    --------
    >>> JSONCodec().decode(DecodeContext("a.json"), b'{"ratio": 0.10}').to_raw()
    {'ratio': 0.1}
    >>> JSONCodec().encode({"a": [1, 2]})
    b'{\\n  "a": [\\n    1,\\n    2\\n  ]\\n}'
    """

    name = "json"

    def extensions(self) -> Sequence[str]:
        return ("json",)

    def decode(self, ctx: DecodeContext, data: bytes) -> TreeNode:
        text = self._text(ctx, data)
        if not text.strip():
            return EMPTY_TREE
        try:
            raw = json.loads(text, parse_float=Decimal)
        except json.JSONDecodeError as exc:
            raise DecodingFailure(f"Invalid JSON in {ctx.filename}: {exc}") from exc
        return self._ensure_mapping(TreeNode.from_raw(raw, Origin(ctx.filename)), ctx=ctx)

    def encode(self, raw: Any) -> bytes:
        try:
            return _write_json(raw).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodingFailure(f"cannot encode JSON: {exc}") from exc

    def encode_extended(self, tree: TreeNode) -> bytes:
        """Encode *tree* as nested ``{"map"|"array"|"value", "origins"}`` objects."""

        return self.encode(_extended(tree))


def _extended(node: TreeNode) -> dict[str, Any]:
    origins = [str(origin) for origin in node.origins]
    if node.map is not None:
        return {"map": {key: _extended(child) for key, child in node.map.items()}, "origins": origins}
    if node.array is not None:
        return {"array": [_extended(child) for child in node.array], "origins": origins}
    return {"value": node.to_raw(exact_numbers=True), "origins": origins}


def _write_json(value: Any, level: int = 0) -> str:
    """Lay out *value* like ``json.dumps(indent=2)``, writing decimals verbatim.

    Examples
    --------
    >>> _write_json({"ratio": Decimal("0.1000000000000000000001"), "big": Decimal("1E+400")})
    '{\\n  "ratio": 0.1000000000000000000001,\\n  "big": 1E+400\\n}'
    """

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"{value} is not a finite number")
        return str(value)
    pad = "  " * (level + 1)
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [
            f"{pad}{json.dumps(str(key), ensure_ascii=False)}: {_write_json(item, level + 1)}"
            for key, item in value.items()
        ]
        return "{\n" + ",\n".join(items) + "\n" + "  " * level + "}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [pad + _write_json(item, level + 1) for item in value]
        return "[\n" + ",\n".join(items) + "\n" + "  " * level + "]"
    return json.dumps(value, ensure_ascii=False)


class TOMLDecoder(BaseCodec):
    """Decode TOML documents with ``tomllib`` (``tomli`` before Python 3.11).

    Examples
    --------
    >>> TOMLDecoder().decode(DecodeContext("app.toml"), b'[db]\\nport = 5432').to_raw()
    {'db': {'port': 5432}}
    """

    name = "toml"

    def extensions(self) -> Sequence[str]:
        return ("toml",)

    def decode(self, ctx: DecodeContext, data: bytes) -> TreeNode:
        text = self._text(ctx, data)
        try:
            raw = tomllib.loads(text, parse_float=Decimal)
        except tomllib.TOMLDecodeError as exc:
            raise DecodingFailure(f"Invalid TOML in {ctx.filename}: {exc}") from exc
        if not raw:
            return EMPTY_TREE
        return TreeNode.from_raw(raw, Origin(ctx.filename))
