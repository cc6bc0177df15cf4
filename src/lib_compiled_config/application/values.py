"""Programmatic values as records.

Purpose
-------
Let callers contribute configuration straight from Python objects: mappings,
sequences, dataclasses, pydantic models and scalars. Objects are flattened
into plain data, field names pass through the configured key mappers, and the
result is placed under a key path before it becomes a record.

Contents
    - ``ValueSource``: a named producer of a Python value plus its options.
    - ``to_plain``: object graph to plain dicts, lists and scalars.
    - ``value_record``: lazily evaluated record for a ``ValueSource``.
"""

from __future__ import annotations

import dataclasses
import datetime as _dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Mapping

from ..domain.errors import DuplicateFound, InvalidInput
from ..domain.records import Record
from ..domain.tree import EMPTY_TREE, Origin, TreeNode
from ..observability import log_debug, make_event
from .keymap import Mapper, field_keys, map_name
from .ports import UnmarshalFunc

_SCALARS = (bool, int, float, Decimal, str, _dt.datetime, _dt.date, _dt.time)
_CONVERTED = (Enum, _dt.datetime, _dt.date, _dt.time)


class _Dropped:
    def __repr__(self) -> str:
        return "<dropped>"


DROPPED = _Dropped()


@dataclass(frozen=True, slots=True)
class ValueSource:
    """A programmatic contribution.

    Attributes
    ----------
    name:
        Record name used for sorting and origins.
    key:
        Where the value lands; split by the key delimiter, ``""`` is the root.
    fetch:
        Called with the record name and an ``unmarshal`` function over the
        configuration merged so far.
    default:
        Merge before every sorted record.
    mappers:
        Field-name mappers applied to dataclass and model fields.
    fail_on_non_serializable:
        Raise instead of dropping values that have no configuration form.
    hooks:
        ``hook(type(obj), obj)`` callables run on every object before it is
        flattened; each returns the object to use instead.
    error_unset:
        Raise when a dataclass or model field holds ``None``.
    weak:
        Convert enums and date/time objects implicitly; when off they must be
        converted by a hook.
    tag:
        Metadata key naming the configuration key of dataclass fields.
    """

    name: str
    key: str
    fetch: Callable[[str, UnmarshalFunc], Any]
    default: bool = False
    mappers: tuple[Mapper, ...] = field(default_factory=tuple)
    fail_on_non_serializable: bool = False
    hooks: tuple[Callable[[Any, Any], Any], ...] = field(default_factory=tuple)
    error_unset: bool = False
    weak: bool = True
    tag: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidInput("a value needs a non-empty record name")
        if self.fetch is None:
            raise InvalidInput(f"value '{self.name}' needs a producer function")


def to_plain(
    value: Any,
    mappers: tuple[Mapper, ...] = (),
    *,
    strict: bool = False,
    hooks: tuple[Callable[[Any, Any], Any], ...] = (),
    error_unset: bool = False,
    weak: bool = True,
    tag: str = "",
) -> Any:
    """Flatten *value* into dicts, lists and scalars.

    Dataclass and pydantic model fields are renamed through *mappers*, falling
    back to the model alias or the *tag* metadata entry; mapping keys are kept
    as written. Unsupported values become :data:`DROPPED` and are left out of
    their container, or raise :class:`InvalidInput` when *strict*.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Db:
    ...     host: str
    ...     port: int
    >>> to_plain({"db": Db("localhost", 5432), "tags": ("a", object())})
    {'db': {'host': 'localhost', 'port': 5432}, 'tags': ['a']}
    """

    return _Flattener(mappers, strict, hooks, error_unset, weak, tag).plain(value)


class _Flattener:
    def __init__(
        self,
        mappers: tuple[Mapper, ...],
        strict: bool,
        hooks: tuple[Callable[[Any, Any], Any], ...],
        error_unset: bool,
        weak: bool,
        tag: str,
    ) -> None:
        self.mappers = mappers
        self.strict = strict
        self.hooks = hooks
        self.error_unset = error_unset
        self.weak = weak
        self.tag = tag

    def plain(self, value: Any) -> Any:
        for hook in self.hooks:
            try:
                value = hook(type(value), value)
            except InvalidInput:
                raise
            except Exception as exc:
                raise InvalidInput(f"decode hook failed for {type(value).__name__}: {exc}") from exc

        if not self.weak and isinstance(value, _CONVERTED):
            raise InvalidInput(f"value of type {type(value).__name__} needs a decode hook when weak typing is off")
        if value is None or isinstance(value, _SCALARS):
            return value
        if isinstance(value, Enum):
            return self.plain(value.value)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            fields = {item.name: getattr(value, item.name) for item in dataclasses.fields(value)}
            return self._fields(type(value), fields)
        if _is_model(value):
            fields = {name: getattr(value, name) for name in type(value).model_fields}
            return self._fields(type(value), fields)
        if isinstance(value, Mapping):
            result: dict[str, Any] = {}
            for key, item in value.items():
                plain = self.plain(item)
                if plain is not DROPPED:
                    result[str(key)] = plain
            return result
        if isinstance(value, (list, tuple)):
            items = (self.plain(item) for item in value)
            return [item for item in items if item is not DROPPED]
        if self.strict:
            raise InvalidInput(f"value of type {type(value).__name__} cannot be used as configuration")
        return DROPPED

    def _fields(self, owner: type, fields: Mapping[str, Any]) -> dict[str, Any]:
        own_keys = field_keys(owner, self.tag) or {}
        result: dict[str, Any] = {}
        for name, item in fields.items():
            key = map_name(name, self.mappers, own_keys.get(name))
            if key is None:
                continue
            if key in result:
                raise DuplicateFound(f"more than one field maps to the key '{key}'")
            if item is None and self.error_unset:
                raise InvalidInput(f"{owner.__name__}.{name} is not set")
            plain = self.plain(item)
            if plain is not DROPPED:
                result[key] = plain
        return result


def _is_model(value: Any) -> bool:
    return not isinstance(value, type) and isinstance(getattr(type(value), "model_fields", None), dict)


def value_record(source: ValueSource, *, delimiter: str = ".") -> Record:
    """Wrap *source* as a lazily evaluated record.

    Examples
    --------
    >>> record = value_record(ValueSource("cli", "server.port", lambda name, un: 8080))
    >>> record.load(None).to_raw()
    {'server': {'port': 8080}}
    """

    def load(unmarshal: UnmarshalFunc) -> TreeNode:
        value = source.fetch(source.name, unmarshal)
        plain = to_plain(
            value,
            source.mappers,
            strict=source.fail_on_non_serializable,
            hooks=source.hooks,
            error_unset=source.error_unset,
            weak=source.weak,
            tag=source.tag,
        )
        if plain is None or plain is DROPPED:
            return EMPTY_TREE
        for segment in reversed(source.key.split(delimiter) if source.key else []):
            plain = {segment: plain}
        log_debug("record_loaded", **make_event("value", source.name, {"key": source.key}))
        return TreeNode.from_raw(plain, Origin(source.name))

    return Record(name=source.name, source="value", load=load, default=source.default)
