"""Read-only filesystem adapters.

Purpose
-------
Give the record collector one small, uniform view of "somewhere files live":
a real directory on disk or an in-memory mapping used by tests and embedded
defaults. Paths are always relative and ``/`` separated; ``"."`` names the
root.

Contents
--------
* :class:`DirectoryFS` – rooted at a directory of the host filesystem.
* :class:`MemoryFS` – files held in a mapping; directories are implied by the
  file paths.
* :func:`match_glob` – segment-wise glob shared by both adapters.

System Role
-----------
Implements :class:`~lib_compiled_config.application.ports.FileSystem`. Errors
are the builtin :class:`OSError` family so the collector can tell a vanished
or unreadable entry (swallowed) from anything else (fatal).
"""

from __future__ import annotations

import os
import posixpath
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Mapping

from ...application.collect import clean
from ...application.ports import FileSystem

_MAGIC = frozenset("*?[")


class DirectoryFS:
    """Expose the directory *root* of the host filesystem.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> with TemporaryDirectory() as tmp:
    ...     _ = (Path(tmp) / "app.yaml").write_text("a: 1")
    ...     fs = DirectoryFS(tmp)
    ...     fs.list_dir("."), fs.read_bytes("app.yaml")
    ([('app.yaml', False)], b'a: 1')
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"DirectoryFS({str(self.root)!r})"

    def _resolve(self, path: str) -> Path:
        return self.root / clean(path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.exists():
            raise FileNotFoundError(path)
        return target.is_dir()

    def read_bytes(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def list_dir(self, path: str) -> list[tuple[str, bool]]:
        with os.scandir(self._resolve(path)) as entries:
            return sorted((entry.name, entry.is_dir()) for entry in entries)

    def glob(self, pattern: str) -> list[str]:
        return match_glob(self, pattern)


class MemoryFS:
    """Serve files from a mapping of relative paths to contents.

    ``unreadable`` lists paths whose reads raise :class:`PermissionError`,
    which lets tests exercise the collector's tolerance for such entries.

    Examples
    --------
    >>> fs = MemoryFS({"conf/a.json": '{"a": 1}', "conf/sub/b.json": "{}"})
    >>> fs.list_dir("conf")
    [('a.json', False), ('sub', True)]
    >>> fs.glob("conf/*.json")
    ['conf/a.json']
    """

    def __init__(self, files: Mapping[str, bytes | str] | None = None, unreadable: Iterable[str] = ()) -> None:
        self._files: dict[str, bytes] = {}
        for name, data in (files or {}).items():
            self._files[clean(name)] = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        self._unreadable = {clean(name) for name in unreadable}
        self._dirs = {"."}
        for name in self._files:
            parent = posixpath.dirname(name)
            while parent:
                self._dirs.add(parent)
                parent = posixpath.dirname(parent)

    def __repr__(self) -> str:
        return f"MemoryFS({sorted(self._files)!r})"

    def exists(self, path: str) -> bool:
        path = clean(path)
        return path in self._files or path in self._dirs

    def is_dir(self, path: str) -> bool:
        path = clean(path)
        if path in self._dirs:
            return True
        if path in self._files:
            return False
        raise FileNotFoundError(path)

    def read_bytes(self, path: str) -> bytes:
        path = clean(path)
        if path in self._dirs:
            raise IsADirectoryError(path)
        if path in self._unreadable:
            raise PermissionError(path)
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def list_dir(self, path: str) -> list[tuple[str, bool]]:
        path = clean(path)
        if path in self._unreadable:
            raise PermissionError(path)
        if path not in self._dirs:
            if path in self._files:
                raise NotADirectoryError(path)
            raise FileNotFoundError(path)
        prefix = "" if path == "." else path + "/"
        entries: dict[str, bool] = {}
        for candidate in (*self._files, *self._dirs):
            if candidate == "." or not candidate.startswith(prefix):
                continue
            rest = candidate[len(prefix) :]
            if rest and "/" not in rest:
                entries[rest] = candidate in self._dirs
        return sorted(entries.items())

    def glob(self, pattern: str) -> list[str]:
        return match_glob(self, pattern)


def has_magic(pattern: str) -> bool:
    return any(ch in _MAGIC for ch in pattern)


def match_glob(fs: FileSystem, pattern: str) -> list[str]:
    """Expand *pattern* one path segment at a time; ``*`` never crosses ``/``.

    A pattern without wildcards yields itself when it exists. Directories
    that vanish or cannot be listed simply contribute nothing.
    """

    pattern = clean(pattern)
    if not has_magic(pattern):
        return [pattern] if fs.exists(pattern) else []
    candidates = ["."]
    for segment in pattern.split("/"):
        matched: list[str] = []
        for base in candidates:
            if not has_magic(segment):
                joined = _join(base, segment)
                if fs.exists(joined):
                    matched.append(joined)
                continue
            try:
                entries = fs.list_dir(base)
            except (FileNotFoundError, NotADirectoryError, PermissionError):
                continue
            matched.extend(_join(base, name) for name, _ in entries if fnmatchcase(name, segment))
        candidates = matched
    return sorted(candidates)


def _join(base: str, name: str) -> str:
    return name if base == "." else f"{base}/{name}"
