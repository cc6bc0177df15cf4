"""Composition root for ``lib_compiled_config``.

Purpose
-------
Provide the :class:`Config` aggregate: it owns the applied options, the codec
registry and the compiled tree, and orchestrates record collection, sorting,
merging and expansion. Typed extraction and re-serialisation read the compiled
tree under the same lock a re-compile takes.

Contents
--------
* :data:`ROOT` – the key addressing the whole tree.
* :class:`Config` – options in, compiled tree out.

System Role
-----------
This module connects the application services (collector, sorter, merge
engine, expander, documentation unifier) with the adapters (codecs, struct
decoder, YAML renderer) while emitting structured observability signals. It
is the canonical place for adjusting precedence rules or wiring new adapters.

Compile order
-------------
1. Default buffers and values, in declaration order.
2. Files of every file group plus the remaining buffers and values, ordered
   by the configured record sorter.
3. Each record is merged on top of the previous ones; buffer and value
   producers receive an ``unmarshal`` over the expanded tree merged so far.
4. The expansion directives run over the merged tree.

A failing compile raises and leaves the previously compiled state untouched.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from .adapters.codecs.registry import CodecRegistry, default_registry
from .adapters.structs.default import PydanticStructDecoder
from .application.collect import BufferSource, buffer_record, filegroups_to_records
from .application.expand import expand_tree
from .application.keymap import map_name
from .application.merge import merge_pair
from .application.ports import UnmarshalFunc
from .application.unified import calc_unified
from .application.values import value_record
from .domain.errors import ConfigError, DecodingFailure, NotCompiledYet, NotFound
from .domain.records import Record
from .domain.tree import EMPTY_TREE, TreeNode
from .observability import log_debug, log_error, log_info, make_event
from .options import (
    ConfigOption,
    ConfigSettings,
    MarshalOption,
    UnmarshalOption,
    UnmarshalSettings,
    apply_config_options,
    apply_marshal_options,
    apply_unmarshal_options,
)

ROOT = ""


class Config:
    """A configuration assembled from records and compiled on demand.

    Parameters
    ----------
    *options:
        :class:`ConfigOption` values applied in order.
    registry:
        Codec registry to start from; it is copied, so later
        ``with_decoder``/``with_encoder`` options never leak into it.
        Defaults to :func:`default_registry`.

    Examples
    --------
    >>> from lib_compiled_config.options import add_buffer, add_value, as_default
    >>> cfg = Config(
    ...     add_buffer("defaults.json", b'{"Status": "default", "Port": 80}', as_default()),
    ...     add_value("cli", "Port", 8080),
    ... )
    >>> cfg.compile()
    >>> cfg.unmarshal(ROOT)
    {'Status': 'default', 'Port': 8080}
    >>> cfg.records
    ['defaults.json', 'cli']
    """

    def __init__(self, *options: ConfigOption, registry: CodecRegistry | None = None) -> None:
        self._lock = threading.Lock()
        base = ConfigSettings(registry=registry.copy() if registry is not None else default_registry())
        self._settings = apply_config_options(base, options)
        self._structs = PydanticStructDecoder()
        self._tree: TreeNode | None = None
        self._records: list[str] = []
        self._compiled_at: datetime | None = None
        if self._settings.auto_compile:
            self.compile()

    def with_options(self, *options: ConfigOption) -> None:
        """Apply more options; recompiles when ``auto_compile`` is on.

        A rejected option leaves the configuration unchanged.
        """

        with self._lock:
            self._settings = apply_config_options(self._settings, options)
            auto = self._settings.auto_compile
        if auto:
            self.compile()

    @property
    def compiled_at(self) -> datetime | None:
        """UTC time of the last successful compile, ``None`` before the first."""

        return self._compiled_at

    @property
    def records(self) -> list[str]:
        """Record names in the order they were merged by the last compile."""

        return list(self._records)

    @property
    def delimiter(self) -> str:
        return self._settings.delimiter

    def compile(self) -> None:
        """Collect, sort, merge and expand every record.

        Raises
        ------
        ConfigError
            Any collection, decoding, merge or expansion failure. The
            previously compiled tree stays in place.
        """

        with self._lock:
            settings = self._settings
            try:
                tree, names = self._build(settings, only_defaults=False)
            except Exception as exc:
                log_error("compile_failed", **make_event("config", None, {"error": str(exc)}))
                raise
            self._tree = tree
            self._records = names
            self._compiled_at = datetime.now(timezone.utc)
        log_info("config_compiled", **make_event("config", None, {"records": len(names)}))

    def fetch(self, key: str) -> TreeNode:
        """Return the compiled node at *key*, origins included."""

        with self._lock:
            tree = self._require_tree("fetch")
            return tree.fetch(self._split(key, self._settings.delimiter), self._settings.delimiter)

    def unmarshal(self, key: str, type_: Any = None, *options: UnmarshalOption) -> Any:
        """Decode the value at *key* into *type_*.

        With no type the plain projection (dicts, lists, scalars) is returned.
        Options passed here apply after the configured default unmarshal
        options.

        Raises
        ------
        NotCompiledYet
            Before the first successful compile.
        NotFound
            *key* does not exist and the lookup is not optional.
        DecodingFailure
            The value does not fit *type_* or the validator rejected it.
        """

        with self._lock:
            tree = self._require_tree("unmarshal")
            return self._extract(tree, self._settings, key, type_, options)

    def unmarshal_fn(self, key: str, type_: Any = None, *options: UnmarshalOption) -> Callable[[], Any]:
        """Return a zero argument callable performing :meth:`unmarshal` later."""

        def _unmarshal() -> Any:
            return self.unmarshal(key, type_, *options)

        return _unmarshal

    def marshal(self, *options: MarshalOption) -> bytes:
        """Serialise the compiled tree.

        The encoder is chosen by ``format_as`` (default: the first registered
        encoder). With ``include_documentation`` the documentation tree is
        zipped with the values and rendered as commented YAML. An empty tree
        marshals to ``b""``.
        """

        with self._lock:
            tree = self._require_tree("marshal")
            settings = self._settings
            marshal = apply_marshal_options([*settings.marshal_defaults, *options])

            if marshal.only_defaults:
                tree, _names = self._build(settings, only_defaults=True)
            if tree.is_empty():
                return b""
            if marshal.redact:
                tree = tree.redacted()

            if marshal.documentation:
                presets = tree if marshal.only_defaults else self._build(settings, only_defaults=True)[0]
                if marshal.redact:
                    presets = presets.redacted()
                docs = settings.docs
                if docs is not None:
                    mappers = apply_unmarshal_options(settings.unmarshal_defaults).mappers
                    docs = docs.translate(lambda name: map_name(name, mappers) or name)
                output = marshal.renderer.encode(calc_unified(docs, tree, presets)).encode("utf-8")
                fmt = "yaml"
            else:
                fmt = marshal.format or _first(settings.registry.encoder_extensions())
                encoder = settings.registry.find_encoder(fmt)
                if marshal.origins:
                    output = encoder.encode_extended(tree)
                else:
                    output = encoder.encode(tree.to_raw(exact_numbers=True))

        log_debug("config_marshalled", **make_event("config", None, {"format": fmt, "size": len(output)}))
        return output

    # ------------------------------------------------------------------
    # internals; callers hold the lock
    # ------------------------------------------------------------------

    def _require_tree(self, operation: str) -> TreeNode:
        if self._tree is None:
            raise NotCompiledYet(f"{operation} needs a compiled configuration; call compile() first")
        return self._tree

    def _build(self, settings: ConfigSettings, *, only_defaults: bool) -> tuple[TreeNode, list[str]]:
        defaults = [self._source_record(source, settings) for source in settings.sources if source.default]
        ordered = list(defaults)
        if not only_defaults:
            records = filegroups_to_records(settings.filegroups, settings.registry, delimiter=settings.delimiter)
            records.extend(self._source_record(source, settings) for source in settings.sources if not source.default)
            ordered.extend(settings.sorter.sort(records, lambda record: record.name))
            log_debug(
                "records_sorted",
                **make_event("config", None, {"sorter": settings.sorter.label, "records": len(records)}),
            )

        merged = EMPTY_TREE
        for record in ordered:
            tree = record.load(self._partial_unmarshal(merged, settings))
            merged = merge_pair(merged, tree, delimiter=settings.delimiter)
        merged = expand_tree(merged, settings.directives)
        return merged, [record.name for record in ordered]

    def _source_record(self, source: Any, settings: ConfigSettings) -> Record:
        if isinstance(source, BufferSource):
            return buffer_record(source, settings.registry, delimiter=settings.delimiter)
        return value_record(source, delimiter=settings.delimiter)

    def _partial_unmarshal(self, merged: TreeNode, settings: ConfigSettings) -> UnmarshalFunc:
        """Return ``unmarshal(key, type_, *options)`` over the expanded *merged* tree."""

        cache: dict[str, TreeNode] = {}

        def unmarshal(key: str, type_: Any = None, *options: UnmarshalOption) -> Any:
            if "tree" not in cache:
                cache["tree"] = expand_tree(merged, settings.directives)
            return self._extract(cache["tree"], settings, key, type_, options)

        return unmarshal

    def _extract(
        self,
        tree: TreeNode,
        settings: ConfigSettings,
        key: str,
        type_: Any,
        options: Sequence[UnmarshalOption],
    ) -> Any:
        unmarshal: UnmarshalSettings = apply_unmarshal_options([*settings.unmarshal_defaults, *options])
        try:
            node = tree.fetch(self._split(key, settings.delimiter), settings.delimiter)
        except NotFound:
            if unmarshal.optional:
                return None
            raise
        result = self._structs.decode(
            node.to_raw(),
            type_,
            mappers=unmarshal.mappers,
            error_unused=unmarshal.error_unused,
            error_unset=unmarshal.error_unset,
            weak=unmarshal.weak,
            hooks=unmarshal.hooks,
            tag=unmarshal.tag,
            where=key,
        )
        if unmarshal.validator is not None:
            try:
                unmarshal.validator(result)
            except ConfigError:
                raise
            except Exception as exc:
                raise DecodingFailure(f"validation of key '{key}' failed: {exc}") from exc
        return result

    @staticmethod
    def _split(key: str, delimiter: str) -> list[str]:
        return key.split(delimiter) if key else []


def _first(extensions: Sequence[str]) -> str:
    return extensions[0] if extensions else ""
