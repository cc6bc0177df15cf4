"""Field-name to configuration-key mapping.

A mapper is any callable taking a field name and returning the configuration
key to use. Mappers chain: the first one returning a non-empty string decides,
``"-"`` means "skip this field", and when every mapper declines the field's
own key is used. That key is the pydantic alias of a model field, the
``tag_name`` metadata entry of a dataclass field, or else the field name.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Iterable, Mapping

Mapper = Callable[[str], str]

SKIP = "-"


def mapping_mapper(table: Mapping[str, str]) -> Mapper:
    """Build a mapper from a ``{field: key}`` table; unknown fields decline.

    Examples
    --------
    >>> mapper = mapping_mapper({"user_name": "user"})
    >>> mapper("user_name"), mapper("other")
    ('user', '')
    """

    frozen = dict(table)

    def _map(name: str) -> str:
        return frozen.get(name, "")

    return _map


def map_name(name: str, mappers: Iterable[Mapper], fallback: str | None = None) -> str | None:
    """Return the configuration key for *name*, or ``None`` to skip the field.

    *fallback* is the key used when every mapper declines; it defaults to
    *name* and may itself be ``"-"``.

    Examples
    --------
    >>> map_name("Host", [str.lower])
    'host'
    >>> map_name("Secret", [mapping_mapper({"Secret": "-"})]) is None
    True
    >>> map_name("Port", [])
    'Port'
    >>> map_name("port", [], "Port")
    'Port'
    """

    for mapper in mappers:
        mapped = mapper(name)
        if not mapped:
            continue
        if mapped == SKIP:
            return None
        return mapped
    if fallback is None or fallback == "":
        return name
    return None if fallback == SKIP else fallback


def field_keys(type_: Any, tag: str = "") -> dict[str, str] | None:
    """Return ``{field: own key}`` for a dataclass or pydantic model class.

    Model fields use their validation alias or alias; dataclass fields use
    ``field(metadata={tag: key})`` when *tag* is given. Other types give
    ``None``.

    Examples
    --------
    >>> from dataclasses import dataclass, field
    >>> @dataclass
    ... class Db:
    ...     host: str = field(metadata={"cfg": "Host"})
    ...     port: int = 5432
    >>> field_keys(Db, "cfg")
    {'host': 'Host', 'port': 'port'}
    >>> field_keys(Db)
    {'host': 'host', 'port': 'port'}
    """

    if not isinstance(type_, type):
        return None
    if dataclasses.is_dataclass(type_):
        keys = {}
        for item in dataclasses.fields(type_):
            key = item.metadata.get(tag) if tag else None
            keys[item.name] = key if isinstance(key, str) and key else item.name
        return keys
    model_fields = getattr(type_, "model_fields", None)
    if isinstance(model_fields, dict):
        return {name: _alias(name, info) for name, info in model_fields.items()}
    return None


def _alias(name: str, info: Any) -> str:
    for alias in (getattr(info, "validation_alias", None), getattr(info, "alias", None)):
        if isinstance(alias, str) and alias:
            return alias
    return name
