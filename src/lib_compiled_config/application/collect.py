"""Turn file groups and buffers into records.

Purpose
-------
Enumerate the files described by each :class:`FileGroup`, pick a decoder by
extension, decode the bytes and wrap each result as a :class:`Record` named
by the file's base name. Buffers follow the same decode path but are loaded
lazily so their producer functions can read the configuration merged before
them.

Contents
    - ``FileGroup``: a filesystem plus path patterns and collection flags.
    - ``BufferSource``: a named byte producer.
    - ``clean`` / ``is_valid_path`` / ``enumerate_group``: path handling and listing.
    - ``filegroups_to_records`` / ``buffer_record``: record construction.
    - ``decode_record``: the shared, error-wrapping decode step.

Edge policy
-----------
* An entry without a matching decoder is skipped, unless the group is exact.
* Unreadable entries and entries that vanish while listing are skipped.
* A missing file in an exact group raises :class:`FileMissing`; a directory
  given to an exact group raises :class:`InvalidInput`.
* A halting group that yields records stops the remaining groups.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Callable, Iterable

from ..domain.errors import CodecNotFound, DecodingFailure, FileMissing, InvalidInput, SourceUnreadable
from ..domain.records import Record, loaded
from ..domain.tree import TreeNode
from ..observability import log_debug, log_error, make_event
from .ports import CodecLookup, DecodeContext, Decoder, FileSystem, UnmarshalFunc


@dataclass(frozen=True, slots=True)
class FileGroup:
    """Paths to examine on one filesystem.

    Attributes
    ----------
    fs:
        Filesystem the paths are relative to.
    paths:
        Files, directories or glob patterns; empty means ``"."``.
    recurse:
        Walk directories recursively instead of one level deep.
    exact:
        Every path must be an existing, decodable file.
    halt:
        Stop examining later groups once this one yields a record.
    as_ext:
        Decode every file with the decoder of this extension.
    """

    fs: FileSystem
    paths: tuple[str, ...] = (".",)
    recurse: bool = False
    exact: bool = False
    halt: bool = False
    as_ext: str = ""

    def __post_init__(self) -> None:
        if self.fs is None:
            raise InvalidInput("a file group needs a filesystem")
        paths = tuple(self.paths) or (".",)
        for path in paths:
            if not is_valid_path(path):
                raise InvalidInput(f"path '{path}' is not a valid relative path")
        object.__setattr__(self, "paths", paths)


@dataclass(frozen=True, slots=True)
class BufferSource:
    """A named producer of encoded bytes; the name's extension selects the decoder."""

    name: str
    fetch: Callable[[str, UnmarshalFunc], bytes]
    default: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidInput("a buffer needs a non-empty record name")
        if self.fetch is None:
            raise InvalidInput(f"buffer '{self.name}' needs a producer function")


def clean(path: str) -> str:
    """Normalise a relative path; the empty path becomes ``"."``.

    Examples
    --------
    >>> clean(""), clean("a//b/./c/"), clean("./x")
    ('.', 'a/b/c', 'x')
    """

    return posixpath.normpath(path) if path else "."


def is_valid_path(path: str) -> bool:
    """Return whether *path* is relative and stays inside its filesystem.

    Examples
    --------
    >>> is_valid_path("conf.d/*.yaml"), is_valid_path("."), is_valid_path("")
    (True, True, True)
    >>> is_valid_path("/etc/app"), is_valid_path("../secrets")
    (False, False)
    """

    cleaned = clean(path)
    if cleaned.startswith("/"):
        return False
    return ".." not in cleaned.split("/")


def enumerate_group(group: FileGroup) -> list[str]:
    """Return the sorted file paths *group* describes.

    Globs that match nothing fall back to the literal path so a missing
    exact file is reported as missing rather than silently ignored.
    """

    files: list[str] = []
    for raw in group.paths:
        pattern = clean(raw)
        candidates = [pattern]
        if not group.exact:
            candidates = group.fs.glob(pattern) or candidates
        for path in candidates:
            files.extend(_enumerate_path(group, path))
    return sorted(files)


def _enumerate_path(group: FileGroup, path: str) -> list[str]:
    try:
        is_dir = group.fs.is_dir(path)
    except PermissionError:
        log_debug("record_skipped", **make_event("file", path, {"reason": "permission denied"}))
        return []
    except FileNotFoundError as exc:
        if group.exact:
            raise FileMissing(f"file '{path}' does not exist") from exc
        log_debug("record_skipped", **make_event("file", path, {"reason": "missing"}))
        return []
    except OSError as exc:
        raise SourceUnreadable(f"cannot inspect '{path}': {exc}") from exc
    if not is_dir:
        return [path]
    if group.exact:
        raise InvalidInput(f"path '{path}' is a directory, expected a file")
    return _walk(group.fs, path, group.recurse)


def _walk(fs: FileSystem, directory: str, recurse: bool) -> list[str]:
    try:
        entries = fs.list_dir(directory)
    except (PermissionError, FileNotFoundError):
        log_debug("record_skipped", **make_event("file", directory, {"reason": "unlistable directory"}))
        return []
    except OSError as exc:
        raise SourceUnreadable(f"cannot list directory '{directory}': {exc}") from exc
    found: list[str] = []
    for name, is_dir in entries:
        child = name if directory == "." else f"{directory}/{name}"
        if not is_dir:
            found.append(child)
        elif recurse:
            found.extend(_walk(fs, child, recurse))
    return found


def filegroups_to_records(
    groups: Iterable[FileGroup],
    codecs: CodecLookup,
    *,
    delimiter: str = ".",
) -> list[Record]:
    """Decode every group into records, honouring each group's halt flag."""

    records: list[Record] = []
    for index, group in enumerate(groups):
        found = [record for path in enumerate_group(group) if (record := _to_record(group, path, codecs, delimiter))]
        records.extend(found)
        if found and group.halt:
            log_debug("filegroup_halted", **make_event("file", None, {"group": index, "records": len(found)}))
            break
    return records


def _to_record(group: FileGroup, path: str, codecs: CodecLookup, delimiter: str) -> Record | None:
    basename = posixpath.basename(path)
    ext = group.as_ext or posixpath.splitext(basename)[1]
    ext = ext.lstrip(".")
    try:
        decoder = codecs.find_decoder(ext)
    except CodecNotFound:
        if group.exact:
            raise
        log_debug("record_skipped", **make_event("file", basename, {"reason": "no decoder", "extension": ext}))
        return None
    try:
        data = group.fs.read_bytes(path)
    except FileNotFoundError as exc:
        if group.exact:
            raise FileMissing(f"file '{path}' does not exist") from exc
        log_debug("record_skipped", **make_event("file", basename, {"reason": "vanished"}))
        return None
    except PermissionError:
        log_debug("record_skipped", **make_event("file", basename, {"reason": "permission denied"}))
        return None
    except OSError as exc:
        raise SourceUnreadable(f"cannot read file '{path}': {exc}") from exc
    tree = decode_record(decoder, DecodeContext(basename, delimiter), data, ext=ext, kind="file")
    log_debug("record_loaded", **make_event("file", basename, {"extension": ext, "size": len(data)}))
    return loaded(basename, "file", tree)


def decode_record(decoder: Decoder, ctx: DecodeContext, data: bytes, *, ext: str, kind: str) -> TreeNode:
    """Decode *data*, wrapping any failure with the record identity.

    Raises
    ------
    DecodingFailure
        Whatever the decoder raised, chained as the cause.
    """

    try:
        return decoder.decode(ctx, data)
    except Exception as exc:
        log_error("codec_decode_failed", **make_event(kind, ctx.filename, {"extension": ext, "error": str(exc)}))
        raise DecodingFailure(
            f"decoder error for extension '{ext}' processing {kind} '{ctx.filename}': {exc}"
        ) from exc


def buffer_record(source: BufferSource, codecs: CodecLookup, *, delimiter: str = ".") -> Record:
    """Wrap *source* as a lazily decoded record."""

    ext = posixpath.splitext(source.name)[1].lstrip(".")

    def load(unmarshal: UnmarshalFunc) -> TreeNode:
        data = source.fetch(source.name, unmarshal)
        decoder = codecs.find_decoder(ext)
        tree = decode_record(decoder, DecodeContext(source.name, delimiter), data, ext=ext, kind="buffer")
        log_debug("record_loaded", **make_event("buffer", source.name, {"extension": ext, "size": len(data)}))
        return tree

    return Record(name=source.name, source="buffer", load=load, default=source.default)

