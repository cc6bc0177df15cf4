"""Option values accepted by :class:`~lib_compiled_config.core.Config`.

Purpose
-------
Describe everything a configuration can be told (where to find sources, how
to sort and expand them, how to marshal and unmarshal) as small tagged values.
Every option is an instance of one of four classes, one per category, whose
``kind`` names the variant and whose ``payload`` carries its arguments. Each
category has exactly one dispatch function that folds a sequence of options
into a settings object.

Contents
--------
* :class:`ConfigOption` / :func:`apply_config_options` – sources, sorting,
  expansion, codecs, documentation and defaults.
* :class:`MarshalOption` / :func:`apply_marshal_options` – output format,
  origins, redaction and documentation.
* :class:`UnmarshalOption` / :func:`apply_unmarshal_options` – typed
  extraction.
* :class:`ValueOption` / :func:`apply_value_options` – per buffer/value
  behaviour. Key mapping options are accepted here as well.
* The public constructors (``add_file``, ``expand_env``, ``format_as_yaml``,
  ``keymap``, ``as_default``, ...).

System Role
-----------
Constructors validate their arguments eagerly and raise
:class:`InvalidInput`, so a malformed option never reaches the compile
pipeline. Dispatchers never mutate their input settings; they return a new
settings object, which is what lets ``Config.with_options`` fail atomically.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import PurePath
from typing import Any, Callable, Iterable, Mapping, Sequence

from .adapters.codecs.registry import CodecRegistry, default_registry
from .adapters.env.default import EnvironmentExpander
from .adapters.filesystem.default import DirectoryFS
from .adapters.path_resolvers.default import StandardLayoutResolver
from .adapters.rendering.yaml import Renderer
from .application.collect import BufferSource, FileGroup
from .application.expand import DEFAULT_END, DEFAULT_START, ExpansionDirective, make_directive
from .application.keymap import Mapper, mapping_mapper
from .application.ports import Decoder, Encoder, FileSystem, UnmarshalFunc
from .application.sorting import RecordSorter, custom_sorter, lexical_sorter, natural_sorter
from .application.values import ValueSource
from .domain.documentation import DocObject
from .domain.errors import InvalidInput

DecodeHook = Callable[[Any, Any], Any]
"""``hook(target_type, data) -> data`` run before each level is validated."""


class ConfigKind(Enum):
    FILE_GROUPS = "file_groups"
    SOURCE = "source"
    EXPAND = "expand"
    SORT = "sort"
    DELIMITER = "delimiter"
    DECODER = "decoder"
    ENCODER = "encoder"
    DOCS = "docs"
    DEFAULT_MARSHAL = "default_marshal"
    DEFAULT_UNMARSHAL = "default_unmarshal"
    AUTO_COMPILE = "auto_compile"
    GROUP = "group"


class MarshalKind(Enum):
    REDACT = "redact"
    ORIGINS = "origins"
    FORMAT = "format"
    DOCUMENTATION = "documentation"
    ONLY_DEFAULTS = "only_defaults"
    YAML = "yaml"


class UnmarshalKind(Enum):
    OPTIONAL = "optional"
    VALIDATOR = "validator"
    KEYMAP = "keymap"
    ERROR_UNUSED = "error_unused"
    ERROR_UNSET = "error_unset"
    WEAK = "weak"
    HOOK = "hook"
    TAG_NAME = "tag_name"


class ValueKind(Enum):
    AS_DEFAULT = "as_default"
    FAIL_ON_NON_SERIALIZABLE = "fail_on_non_serializable"


@dataclass(frozen=True, slots=True)
class ConfigOption:
    kind: ConfigKind
    payload: Any = None
    label: str = ""

    def __str__(self) -> str:
        return self.label or self.kind.value


@dataclass(frozen=True, slots=True)
class MarshalOption:
    kind: MarshalKind
    payload: Any = None
    label: str = ""

    def __str__(self) -> str:
        return self.label or self.kind.value


@dataclass(frozen=True, slots=True)
class UnmarshalOption:
    kind: UnmarshalKind
    payload: Any = None
    label: str = ""

    def __str__(self) -> str:
        return self.label or self.kind.value


@dataclass(frozen=True, slots=True)
class ValueOption:
    kind: ValueKind
    payload: Any = None
    label: str = ""

    def __str__(self) -> str:
        return self.label or self.kind.value


# --------------------------------------------------------------------------
# Settings
# --------------------------------------------------------------------------


@dataclass(slots=True)
class ConfigSettings:
    """Everything a :class:`Config` was told, in declaration order."""

    registry: CodecRegistry = field(default_factory=default_registry)
    filegroups: list[FileGroup] = field(default_factory=list)
    sources: list[BufferSource | ValueSource] = field(default_factory=list)
    directives: list[ExpansionDirective] = field(default_factory=list)
    sorter: RecordSorter = field(default_factory=natural_sorter)
    delimiter: str = "."
    docs: DocObject | None = None
    marshal_defaults: list[MarshalOption] = field(default_factory=list)
    unmarshal_defaults: list[UnmarshalOption] = field(default_factory=list)
    auto_compile: bool = False

    def copy(self) -> ConfigSettings:
        return replace(
            self,
            registry=self.registry.copy(),
            filegroups=list(self.filegroups),
            sources=list(self.sources),
            directives=list(self.directives),
            marshal_defaults=list(self.marshal_defaults),
            unmarshal_defaults=list(self.unmarshal_defaults),
        )


@dataclass(slots=True)
class MarshalSettings:
    redact: bool = True
    origins: bool = False
    format: str = ""
    documentation: bool = False
    only_defaults: bool = False
    renderer: Renderer = field(default_factory=Renderer)


@dataclass(slots=True)
class UnmarshalSettings:
    optional: bool = False
    validator: Callable[[Any], Any] | None = None
    mappers: tuple[Mapper, ...] = ()
    error_unused: bool = False
    error_unset: bool = False
    weak: bool = True
    hooks: tuple[DecodeHook, ...] = ()
    tag: str = ""


@dataclass(slots=True)
class ValueSettings:
    default: bool = False
    strict: bool = False
    mappers: tuple[Mapper, ...] = ()
    hooks: tuple[DecodeHook, ...] = ()
    error_unused: bool = False
    error_unset: bool = False
    weak: bool = True
    tag: str = ""


# --------------------------------------------------------------------------
# Dispatchers
# --------------------------------------------------------------------------


def apply_config_options(settings: ConfigSettings, options: Iterable[ConfigOption]) -> ConfigSettings:
    """Return a copy of *settings* with *options* applied in order.

    Examples
    --------
    >>> applied = apply_config_options(ConfigSettings(), [set_key_delimiter("/"), sort_records_lexically()])
    >>> applied.delimiter, applied.sorter.label
    ('/', 'lexical')
    """

    result = settings.copy()
    for option in options:
        _apply_config(result, option)
    return result


def _apply_config(settings: ConfigSettings, option: ConfigOption) -> None:
    if not isinstance(option, ConfigOption):
        raise InvalidInput(f"not a configuration option: {option!r}")
    kind, payload = option.kind, option.payload
    if kind is ConfigKind.FILE_GROUPS:
        settings.filegroups.extend(payload)
    elif kind is ConfigKind.SOURCE:
        settings.sources.append(payload)
    elif kind is ConfigKind.EXPAND:
        settings.directives.append(payload)
    elif kind is ConfigKind.SORT:
        settings.sorter = payload
    elif kind is ConfigKind.DELIMITER:
        settings.delimiter = payload
    elif kind is ConfigKind.DECODER:
        settings.registry.register_decoder(payload)
    elif kind is ConfigKind.ENCODER:
        settings.registry.register_encoder(payload)
    elif kind is ConfigKind.DOCS:
        settings.docs = payload if settings.docs is None else settings.docs.merge(payload)
    elif kind is ConfigKind.DEFAULT_MARSHAL:
        settings.marshal_defaults.extend(payload)
    elif kind is ConfigKind.DEFAULT_UNMARSHAL:
        settings.unmarshal_defaults.extend(payload)
    elif kind is ConfigKind.AUTO_COMPILE:
        settings.auto_compile = payload
    elif kind is ConfigKind.GROUP:
        for item in payload:
            _apply_config(settings, item)


def apply_marshal_options(options: Iterable[MarshalOption], settings: MarshalSettings | None = None) -> MarshalSettings:
    """Fold *options* into :class:`MarshalSettings`."""

    result = replace(settings) if settings is not None else MarshalSettings()
    for option in options:
        if not isinstance(option, MarshalOption):
            raise InvalidInput(f"not a marshal option: {option!r}")
        kind, payload = option.kind, option.payload
        if kind is MarshalKind.REDACT:
            result.redact = payload
        elif kind is MarshalKind.ORIGINS:
            result.origins = payload
        elif kind is MarshalKind.FORMAT:
            result.format = payload
        elif kind is MarshalKind.DOCUMENTATION:
            result.documentation = payload
        elif kind is MarshalKind.ONLY_DEFAULTS:
            result.only_defaults = payload
        elif kind is MarshalKind.YAML:
            result.format = "yaml"
            result.renderer = payload
    return result


def apply_unmarshal_options(options: Iterable[UnmarshalOption]) -> UnmarshalSettings:
    """Fold *options* into :class:`UnmarshalSettings`.

    A later key mapper takes precedence over the ones before it.

    Examples
    --------
    >>> settings = apply_unmarshal_options([keymap({"a": "x"}), keymap({"a": "y"}), optional()])
    >>> settings.mappers[0]("a"), settings.optional
    ('y', True)
    """

    result = UnmarshalSettings()
    for option in options:
        if not isinstance(option, UnmarshalOption):
            raise InvalidInput(f"not an unmarshal option: {option!r}")
        kind, payload = option.kind, option.payload
        if kind is UnmarshalKind.OPTIONAL:
            result.optional = payload
        elif kind is UnmarshalKind.VALIDATOR:
            result.validator = payload
        elif kind is UnmarshalKind.KEYMAP:
            result.mappers = (payload, *result.mappers)
        elif kind is UnmarshalKind.ERROR_UNUSED:
            result.error_unused = payload
        elif kind is UnmarshalKind.ERROR_UNSET:
            result.error_unset = payload
        elif kind is UnmarshalKind.WEAK:
            result.weak = payload
        elif kind is UnmarshalKind.HOOK:
            result.hooks = (*result.hooks, payload)
        elif kind is UnmarshalKind.TAG_NAME:
            result.tag = payload
    return result


_VALUE_UNMARSHAL_KINDS = frozenset(
    {
        UnmarshalKind.KEYMAP,
        UnmarshalKind.HOOK,
        UnmarshalKind.ERROR_UNUSED,
        UnmarshalKind.ERROR_UNSET,
        UnmarshalKind.WEAK,
        UnmarshalKind.TAG_NAME,
    }
)


def apply_value_options(options: Iterable[ValueOption | UnmarshalOption]) -> ValueSettings:
    """Fold buffer/value options.

    Unmarshal options that shape how an object is turned into configuration
    are accepted too: key mappers, tag names, decode hooks, ``error_unused``,
    ``error_unset`` and ``weakly_typed_input``. ``optional`` and
    ``with_validator`` are refused.

    Examples
    --------
    >>> settings = apply_value_options([as_default(), error_unset(), tag_name("cfg")])
    >>> settings.default, settings.error_unset, settings.tag
    (True, True, 'cfg')
    """

    result = ValueSettings()
    for option in options:
        if isinstance(option, UnmarshalOption) and option.kind in _VALUE_UNMARSHAL_KINDS:
            kind, payload = option.kind, option.payload
            if kind is UnmarshalKind.KEYMAP:
                result.mappers = (payload, *result.mappers)
            elif kind is UnmarshalKind.HOOK:
                result.hooks = (*result.hooks, payload)
            elif kind is UnmarshalKind.ERROR_UNUSED:
                result.error_unused = payload
            elif kind is UnmarshalKind.ERROR_UNSET:
                result.error_unset = payload
            elif kind is UnmarshalKind.WEAK:
                result.weak = payload
            else:
                result.tag = payload
            continue
        if not isinstance(option, ValueOption):
            raise InvalidInput(f"option '{option}' cannot be used with buffers or values")
        if option.kind is ValueKind.AS_DEFAULT:
            result.default = option.payload
        elif option.kind is ValueKind.FAIL_ON_NON_SERIALIZABLE:
            result.strict = option.payload
    return result


# --------------------------------------------------------------------------
# Configuration options
# --------------------------------------------------------------------------


def _fs(fs: FileSystem | str | os.PathLike[str]) -> FileSystem:
    if fs is None:
        raise InvalidInput("a file group needs a filesystem")
    if isinstance(fs, (str, os.PathLike)):
        return DirectoryFS(fs)
    return fs


def _quoted(paths: Sequence[str]) -> str:
    return ", ".join(f"'{path}'" for path in paths)


def options(*items: ConfigOption) -> ConfigOption:
    """Bundle several options into one, applied in order."""

    return ConfigOption(ConfigKind.GROUP, tuple(items), f"options({', '.join(str(item) for item in items)})")


def add_file(fs: FileSystem | str, path: str) -> ConfigOption:
    """Add one file that must exist and must have a decoder.

    *fs* is a :class:`FileSystem` or a directory path.
    """

    group = FileGroup(_fs(fs), (path,), exact=True)
    return ConfigOption(ConfigKind.FILE_GROUPS, (group,), f"add_file('{path}')")


def add_files(fs: FileSystem | str, *paths: str) -> ConfigOption:
    """Add files, directories or glob patterns; unsupported or missing entries are skipped."""

    group = FileGroup(_fs(fs), tuple(paths))
    return ConfigOption(ConfigKind.FILE_GROUPS, (group,), f"add_files({_quoted(paths)})")


def add_dir(fs: FileSystem | str, path: str) -> ConfigOption:
    """Add the files directly inside *path*."""

    group = FileGroup(_fs(fs), (path,))
    return ConfigOption(ConfigKind.FILE_GROUPS, (group,), f"add_dir('{path}')")


def add_dirs(fs: FileSystem | str, *paths: str) -> ConfigOption:
    group = FileGroup(_fs(fs), tuple(paths))
    return ConfigOption(ConfigKind.FILE_GROUPS, (group,), f"add_dirs({_quoted(paths)})")


def add_tree(fs: FileSystem | str, path: str) -> ConfigOption:
    """Add every file below *path*, recursively."""

    group = FileGroup(_fs(fs), (path,), recurse=True)
    return ConfigOption(ConfigKind.FILE_GROUPS, (group,), f"add_tree('{path}')")


def add_trees(fs: FileSystem | str, *paths: str) -> ConfigOption:
    group = FileGroup(_fs(fs), tuple(paths), recurse=True)
    return ConfigOption(ConfigKind.FILE_GROUPS, (group,), f"add_trees({_quoted(paths)})")


def add_jumbled(abs_fs: FileSystem | str, rel_fs: FileSystem | str, *paths: str) -> ConfigOption:
    """Add a mix of absolute and relative paths.

    Absolute paths are looked up in *abs_fs* with their anchor removed,
    relative ones in *rel_fs*.

    Examples
    --------
    >>> from lib_compiled_config.adapters.filesystem.default import MemoryFS
    >>> option = add_jumbled(MemoryFS({}), MemoryFS({}), "/etc/app.yaml", "local.yaml")
    >>> [group.paths for group in option.payload]
    [('etc/app.yaml',), ('local.yaml',)]
    """

    groups = jumbled_groups(_fs(abs_fs), _fs(rel_fs), paths)
    return ConfigOption(ConfigKind.FILE_GROUPS, tuple(groups), f"add_jumbled({_quoted(paths)})")


def jumbled_groups(abs_fs: FileSystem, rel_fs: FileSystem, paths: Iterable[str], *, halt: bool = False) -> list[FileGroup]:
    """Split *paths* into an absolute and a relative group.

    With *halt* only the last group halts, so the explicit files are always
    examined together.
    """

    absolute: list[str] = []
    relative: list[str] = []
    for path in paths:
        if not path:
            continue
        pure = PurePath(path)
        if pure.is_absolute():
            absolute.append(pure.relative_to(pure.anchor).as_posix() or ".")
        else:
            relative.append(path)
    groups = []
    if absolute:
        groups.append(FileGroup(abs_fs, tuple(absolute)))
    if relative:
        groups.append(FileGroup(rel_fs, tuple(relative)))
    if halt and groups:
        groups[-1] = replace(groups[-1], halt=True)
    return groups


def std_cfg_layout(app_name: str, files: Sequence[str] | None = None, *, resolver: StandardLayoutResolver | None = None) -> ConfigOption:
    """Search the usual places for the configuration of *app_name*.

    When *files* names anything, exactly those files and directories are
    used. Otherwise the first location holding ``<app_name>.*`` or a
    ``conf.d`` tree wins: the working directory, then the user location,
    then the system location.
    """

    resolver = resolver or StandardLayoutResolver(app_name)
    locations = resolver.locations()
    groups: list[FileGroup] = []
    wanted = [path for path in (files or ()) if path]
    if wanted:
        groups.extend(jumbled_groups(locations.root, locations.local, wanted, halt=True))
    else:
        defaults = (f"{resolver.app}.*", "conf.d")
        for fs in (locations.local, locations.home, locations.etc):
            if fs is not None:
                groups.append(FileGroup(fs, defaults, recurse=True, halt=True))
    return ConfigOption(ConfigKind.FILE_GROUPS, tuple(groups), f"std_cfg_layout('{app_name}')")


def add_buffer(name: str, data: bytes | str, *opts: ValueOption | UnmarshalOption) -> ConfigOption:
    """Add in-memory bytes; the extension of *name* selects the decoder.

    Examples
    --------
    >>> option = add_buffer("defaults.json", b'{"a": 1}', as_default())
    >>> option.payload.name, option.payload.default
    ('defaults.json', True)
    """

    if data is None:
        raise InvalidInput(f"buffer '{name}' needs data")
    payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return add_buffer_fn(name, lambda _name, _unmarshal: payload, *opts)


def add_buffer_fn(name: str, fn: Callable[[str, UnmarshalFunc], bytes], *opts: ValueOption | UnmarshalOption) -> ConfigOption:
    """Add bytes produced at compile time by ``fn(name, unmarshal)``."""

    settings = apply_value_options(opts)
    source = BufferSource(name, fn, default=settings.default)
    return ConfigOption(ConfigKind.SOURCE, source, f"add_buffer('{name}')")


def add_value(name: str, key: str, value: Any, *opts: ValueOption | UnmarshalOption) -> ConfigOption:
    """Add a Python value under *key* (``ROOT``/``""`` for the whole tree)."""

    return add_value_fn(name, key, lambda _name, _unmarshal: value, *opts)


def add_value_fn(name: str, key: str, fn: Callable[[str, UnmarshalFunc], Any], *opts: ValueOption | UnmarshalOption) -> ConfigOption:
    settings = apply_value_options(opts)
    source = ValueSource(
        name,
        key,
        fn,
        default=settings.default,
        mappers=settings.mappers,
        fail_on_non_serializable=settings.strict or settings.error_unused,
        hooks=settings.hooks,
        error_unset=settings.error_unset,
        weak=settings.weak,
        tag=settings.tag,
    )
    return ConfigOption(ConfigKind.SOURCE, source, f"add_value('{name}', '{key}')")


def expand(
    provider: Any,
    *,
    origin: str = "",
    start: str = DEFAULT_START,
    end: str = DEFAULT_END,
    maximum: int = 0,
) -> ConfigOption:
    """Expand ``start``...``end`` placeholders using *provider*.

    *provider* is an object with ``expand(name) -> (str, bool)``, a mapping or
    a callable. ``maximum`` below one selects the default budget.
    """

    directive = make_directive(provider, origin=origin, start=start, end=end, maximum=maximum)
    return ConfigOption(ConfigKind.EXPAND, directive, f"expand(origin='{origin}')")


def expand_env(
    *,
    origin: str = "environment",
    start: str = DEFAULT_START,
    end: str = DEFAULT_END,
    maximum: int = 0,
    environ: Mapping[str, str] | None = None,
) -> ConfigOption:
    """Expand placeholders from the process environment."""

    directive = make_directive(EnvironmentExpander(environ), origin=origin, start=start, end=end, maximum=maximum)
    return ConfigOption(ConfigKind.EXPAND, directive, "expand_env()")


def sort_records_lexically() -> ConfigOption:
    return ConfigOption(ConfigKind.SORT, lexical_sorter(), "sort_records_lexically()")


def sort_records_naturally() -> ConfigOption:
    return ConfigOption(ConfigKind.SORT, natural_sorter(), "sort_records_naturally()")


def sort_records_custom(less: Callable[[str, str], bool] | None) -> ConfigOption:
    """Order records with a caller supplied ``less(a, b)`` predicate."""

    return ConfigOption(ConfigKind.SORT, custom_sorter(less), "sort_records_custom()")


def set_key_delimiter(delimiter: str) -> ConfigOption:
    """Use *delimiter* to split keys; the empty string is rejected.

    Examples
    --------
    >>> set_key_delimiter("")
    Traceback (most recent call last):
    ...
    lib_compiled_config.domain.errors.InvalidInput: the key delimiter must not be empty
    """

    if not delimiter:
        raise InvalidInput("the key delimiter must not be empty")
    return ConfigOption(ConfigKind.DELIMITER, delimiter, f"set_key_delimiter('{delimiter}')")


def with_decoder(decoder: Decoder | None) -> ConfigOption:
    """Register *decoder* for its extensions; ``None`` is ignored."""

    return ConfigOption(ConfigKind.DECODER, decoder, "with_decoder()")


def with_encoder(encoder: Encoder | None) -> ConfigOption:
    """Register *encoder* for its extensions; ``None`` is ignored."""

    return ConfigOption(ConfigKind.ENCODER, encoder, "with_encoder()")


def add_docs(doc: DocObject) -> ConfigOption:
    """Attach documentation; several documentation trees merge."""

    if doc is None:
        raise InvalidInput("documentation must not be None")
    return ConfigOption(ConfigKind.DOCS, doc, "add_docs()")


def add_docs_json(data: bytes | str) -> ConfigOption:
    """Attach documentation given as JSON ``{Name, Doc, Type, Children, ...}``."""

    return ConfigOption(ConfigKind.DOCS, DocObject.from_json(data), "add_docs_json()")


def default_marshal_options(*opts: MarshalOption) -> ConfigOption:
    """Options applied before the ones passed to every ``marshal`` call."""

    return ConfigOption(ConfigKind.DEFAULT_MARSHAL, tuple(opts), "default_marshal_options()")


def default_unmarshal_options(*opts: UnmarshalOption) -> ConfigOption:
    """Options applied before the ones passed to every ``unmarshal`` call."""

    return ConfigOption(ConfigKind.DEFAULT_UNMARSHAL, tuple(opts), "default_unmarshal_options()")


def auto_compile(enabled: bool = True) -> ConfigOption:
    """Compile as soon as options are applied."""

    return ConfigOption(ConfigKind.AUTO_COMPILE, bool(enabled), f"auto_compile({enabled})")


# --------------------------------------------------------------------------
# Marshal options
# --------------------------------------------------------------------------


def redact_secrets(redact: bool = True) -> MarshalOption:
    return MarshalOption(MarshalKind.REDACT, bool(redact), f"redact_secrets({redact})")


def include_origins(origins: bool = True) -> MarshalOption:
    return MarshalOption(MarshalKind.ORIGINS, bool(origins), f"include_origins({origins})")


def format_as(extension: str) -> MarshalOption:
    """Marshal with the encoder registered for *extension*."""

    return MarshalOption(MarshalKind.FORMAT, extension.lstrip(".").lower(), f"format_as('{extension}')")


def include_documentation(documentation: bool = True) -> MarshalOption:
    return MarshalOption(MarshalKind.DOCUMENTATION, bool(documentation), f"include_documentation({documentation})")


def only_defaults(only: bool = True) -> MarshalOption:
    """Marshal what the default records alone compile to."""

    return MarshalOption(MarshalKind.ONLY_DEFAULTS, bool(only), f"only_defaults({only})")


def format_as_yaml(max_line_length: int = 80, trailing_comment_column: int = 80, spaces_per_indent: int = 2) -> MarshalOption:
    """Marshal as YAML with explicit layout; values below one take the defaults.

    Examples
    --------
    >>> format_as_yaml(0, 40, -1).payload
    Renderer(max_line_length=80, trailing_comment_column=40, spaces_per_indent=2)
    """

    renderer = Renderer(
        max_line_length=max_line_length if max_line_length >= 1 else 80,
        trailing_comment_column=trailing_comment_column if trailing_comment_column >= 1 else 80,
        spaces_per_indent=spaces_per_indent if spaces_per_indent >= 1 else 2,
    )
    return MarshalOption(MarshalKind.YAML, renderer, "format_as_yaml()")


# --------------------------------------------------------------------------
# Unmarshal options
# --------------------------------------------------------------------------


def optional(value: bool = True) -> UnmarshalOption:
    """A missing key unmarshals to ``None`` instead of raising :class:`NotFound`."""

    return UnmarshalOption(UnmarshalKind.OPTIONAL, bool(value), f"optional({value})")


def required(value: bool = True) -> UnmarshalOption:
    return UnmarshalOption(UnmarshalKind.OPTIONAL, not value, f"required({value})")


def with_validator(fn: Callable[[Any], Any] | None) -> UnmarshalOption:
    """Call ``fn(result)`` after decoding; ``None`` removes the validator."""

    return UnmarshalOption(UnmarshalKind.VALIDATOR, fn, "with_validator()")


def keymap(table: Mapping[str, str]) -> UnmarshalOption:
    """Map field names to configuration keys with a ``{field: key}`` table."""

    return UnmarshalOption(UnmarshalKind.KEYMAP, mapping_mapper(table), f"keymap({dict(table)!r})")


def keymap_fn(fn: Mapper) -> UnmarshalOption:
    """Map field names with ``fn(name) -> key``; ``""`` declines, ``"-"`` skips."""

    if fn is None:
        raise InvalidInput("keymap_fn needs a function")
    return UnmarshalOption(UnmarshalKind.KEYMAP, fn, "keymap_fn()")


def error_unused(value: bool = True) -> UnmarshalOption:
    return UnmarshalOption(UnmarshalKind.ERROR_UNUSED, bool(value), f"error_unused({value})")


def error_unset(value: bool = True) -> UnmarshalOption:
    return UnmarshalOption(UnmarshalKind.ERROR_UNSET, bool(value), f"error_unset({value})")


def weakly_typed_input(value: bool = True) -> UnmarshalOption:
    """Allow lax conversions such as ``"8080"`` to ``8080`` (the default)."""

    return UnmarshalOption(UnmarshalKind.WEAK, bool(value), f"weakly_typed_input({value})")


def decode_hook(fn: DecodeHook) -> UnmarshalOption:
    if fn is None:
        raise InvalidInput("decode_hook needs a function")
    return UnmarshalOption(UnmarshalKind.HOOK, fn, "decode_hook()")


def tag_name(name: str) -> UnmarshalOption:
    """Read dataclass field keys from ``field(metadata={name: key})``.

    Examples
    --------
    >>> str(tag_name("cfg"))
    "tag_name('cfg')"
    """

    if not name:
        raise InvalidInput("tag_name needs a non-empty metadata key")
    return UnmarshalOption(UnmarshalKind.TAG_NAME, name, f"tag_name('{name}')")


# --------------------------------------------------------------------------
# Buffer and value options
# --------------------------------------------------------------------------


def as_default(value: bool = True) -> ValueOption:
    """Merge before every sorted record, in declaration order."""

    return ValueOption(ValueKind.AS_DEFAULT, bool(value), f"as_default({value})")


def fail_on_non_serializable(value: bool = True) -> ValueOption:
    return ValueOption(ValueKind.FAIL_ON_NON_SERIALIZABLE, bool(value), f"fail_on_non_serializable({value})")


def value_keymap(table: Mapping[str, str]) -> UnmarshalOption:
    """Same as :func:`keymap`, spelled for use with values."""

    return keymap(table)


def value_keymap_fn(fn: Mapper) -> UnmarshalOption:
    return keymap_fn(fn)
