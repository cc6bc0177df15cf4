"""Typed extraction of compiled configuration with pydantic.

Purpose
-------
Turn the plain projection of a compiled (sub)tree into an instance of a
caller supplied type: a dataclass, a pydantic model, a container type or a
scalar. pydantic's :class:`~pydantic.TypeAdapter` does the validation and
conversion; this module adds what configuration needs on top of it.

Contents
--------
* :class:`PydanticStructDecoder` – the decoder used by ``Config.unmarshal``.
* :class:`_Preparer` – walks the target type and the data together before
  validation.

Behaviour
---------
* Field names of dataclasses and models are mapped to configuration keys by
  the key mappers; a field mapped to ``"-"`` is never populated. When no
  mapper decides, a model field is read from its alias and a dataclass field
  from its ``tag_name`` metadata entry, else from its name.
* Decode hooks run at every level, outermost first, as ``hook(type, data)``.
* ``error_unused`` rejects keys no field consumes; ``error_unset`` rejects
  fields the data does not provide, even when they have defaults.
* Lax conversion (``"8080"`` to ``8080``) is pydantic's lax mode. With weak
  typing disabled, scalar values must already have their annotated type; a
  null is still accepted where the annotation allows ``None``.
* Every failure is raised as :class:`DecodingFailure`.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import types
import typing
from typing import Any, Callable, Iterable, Mapping, Sequence

from pydantic import TypeAdapter, ValidationError

from ...application.keymap import Mapper, field_keys, map_name
from ...domain.errors import DecodingFailure

_SEQUENCES = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
)
_MAPPINGS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


class PydanticStructDecoder:
    """Decode plain data into typed values.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Server:
    ...     host: str
    ...     port: int = 80
    >>> decoder = PydanticStructDecoder()
    >>> decoder.decode({"Host": "db", "port": "5432"}, Server, mappers=(lambda name: name.title() if name == "host" else "",))
    Server(host='db', port=5432)
    """

    def decode(
        self,
        raw: Any,
        type_: Any,
        *,
        mappers: Sequence[Mapper] = (),
        error_unused: bool = False,
        error_unset: bool = False,
        weak: bool = True,
        hooks: Iterable[Callable[[Any, Any], Any]] = (),
        tag: str = "",
        where: str = "",
    ) -> Any:
        preparer = _Preparer(tuple(mappers), tuple(hooks), error_unused, error_unset, strict=not weak, tag=tag)
        target = Any if type_ is None else type_
        prepared = preparer.prepare(target, raw, where)
        if target is Any:
            return prepared
        try:
            return TypeAdapter(target).validate_python(prepared)
        except ValidationError as exc:
            raise DecodingFailure(f"cannot decode key '{where}' into {_type_name(target)}: {exc}") from exc


class _Preparer:
    def __init__(
        self,
        mappers: tuple[Mapper, ...],
        hooks: tuple[Callable[[Any, Any], Any], ...],
        error_unused: bool,
        error_unset: bool,
        *,
        strict: bool = False,
        tag: str = "",
    ) -> None:
        self.mappers = mappers
        self.hooks = hooks
        self.error_unused = error_unused
        self.error_unset = error_unset
        self.strict = strict
        self.tag = tag

    def prepare(self, type_: Any, raw: Any, where: str) -> Any:
        for hook in self.hooks:
            try:
                raw = hook(type_, raw)
            except DecodingFailure:
                raise
            except Exception as exc:
                raise DecodingFailure(f"decode hook failed for key '{where}': {exc}") from exc

        declared = type_
        type_ = _resolve(type_, raw)
        fields = _struct_fields(type_, self.tag)
        if fields is not None and isinstance(raw, Mapping):
            return self._struct(type_, fields, raw, where)

        origin = typing.get_origin(type_)
        args = typing.get_args(type_)
        if origin in _SEQUENCES and isinstance(raw, list):
            if origin is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
                return [
                    self.prepare(args[index] if index < len(args) else Any, item, _join(where, str(index)))
                    for index, item in enumerate(raw)
                ]
            item_type = args[0] if args else Any
            return [self.prepare(item_type, item, _join(where, str(index))) for index, item in enumerate(raw)]
        if origin in _MAPPINGS and isinstance(raw, Mapping):
            value_type = args[1] if len(args) == 2 else Any
            return {key: self.prepare(value_type, item, _join(where, str(key))) for key, item in raw.items()}
        if raw is None and _allows_none(declared):
            return raw
        if self.strict and not _exact(type_, raw):
            raise DecodingFailure(
                f"cannot decode key '{where}' into {_type_name(type_)}: got {type(raw).__name__} and weak typing is off"
            )
        return raw

    def _struct(self, type_: Any, fields: Mapping[str, _Field], raw: Mapping[str, Any], where: str) -> dict[str, Any]:
        result: dict[str, Any] = {}
        consumed: set[str] = set()
        unset: list[str] = []
        for name, item in fields.items():
            key = map_name(name, self.mappers, item.key)
            if key is None:
                continue
            if key not in raw:
                unset.append(name)
                continue
            consumed.add(key)
            result[item.target] = self.prepare(item.annotation, raw[key], _join(where, key))

        if self.error_unused:
            unused = sorted(str(key) for key in raw if key not in consumed)
            if unused:
                raise DecodingFailure(
                    f"key '{where}': {_type_name(type_)} has no field for {', '.join(unused)}"
                )
        if self.error_unset and unset:
            raise DecodingFailure(f"key '{where}': {_type_name(type_)} fields not set: {', '.join(unset)}")
        return result


def _resolve(type_: Any, raw: Any) -> Any:
    """Strip ``Annotated`` and pick the union member the data should go through."""

    origin = typing.get_origin(type_)
    if origin is typing.Annotated:
        return _resolve(typing.get_args(type_)[0], raw)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(type_) if arg is not type(None)]
        if len(members) == 1:
            return _resolve(members[0], raw)
        if isinstance(raw, Mapping):
            for member in members:
                if _struct_fields(member) is not None:
                    return member
    return type_


class _Field(typing.NamedTuple):
    annotation: Any
    key: str
    target: str


def _struct_fields(type_: Any, tag: str = "") -> dict[str, _Field] | None:
    """Describe the fields of dataclasses and pydantic models, else return ``None``.

    ``key`` is where the field is read from when no mapper decides and
    ``target`` is the name pydantic validates it under: the alias for models,
    the field name for dataclasses.
    """

    keys = field_keys(type_, tag)
    if keys is None:
        return None
    if dataclasses.is_dataclass(type_):
        hints = _hints(type_)
        return {
            item.name: _Field(hints.get(item.name, Any), keys[item.name], item.name)
            for item in dataclasses.fields(type_)
            if item.init
        }
    return {name: _Field(info.annotation, keys[name], keys[name]) for name, info in type_.model_fields.items()}


def _allows_none(type_: Any) -> bool:
    if type_ is Any or type_ is None or type_ is type(None):
        return True
    origin = typing.get_origin(type_)
    if origin is typing.Annotated:
        return _allows_none(typing.get_args(type_)[0])
    if origin is typing.Union or origin is types.UnionType:
        return any(_allows_none(arg) for arg in typing.get_args(type_))
    return False


def _hints(type_: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(type_, include_extras=True)
    except (NameError, TypeError):
        # annotations naming local classes cannot be resolved; validate those fields as given
        return {}


def _exact(type_: Any, raw: Any) -> bool:
    """Return whether *raw* already has the scalar type *type_*; other types always pass."""

    if type_ is bool:
        return isinstance(raw, bool)
    if type_ is int:
        return isinstance(raw, int) and not isinstance(raw, bool)
    if type_ is float:
        return isinstance(raw, (int, float)) and not isinstance(raw, bool)
    if type_ is str:
        return isinstance(raw, str)
    return True


def _join(where: str, key: str) -> str:
    return f"{where}.{key}" if where else key


def _type_name(type_: Any) -> str:
    return getattr(type_, "__name__", None) or repr(type_)
