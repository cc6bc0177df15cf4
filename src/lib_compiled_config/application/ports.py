"""Application-layer ports describing collaborator responsibilities.

Purpose
-------
Define the structural contracts the compile pipeline relies on so the
composition root can wire concrete adapters without the application layer
depending on them.

Contents
--------
* :class:`DecodeContext` – what a decoder learns about its input.
* :class:`Decoder` / :class:`Encoder` – per-format codecs.
* :class:`FileSystem` – read-only hierarchical filesystem.
* :class:`Expander` – lookup used by variable expansion.
* :class:`Encodeable` – a node the YAML renderer knows how to print.
* :data:`UnmarshalFunc` – callable handed to deferred buffer/value producers.
* :class:`CodecLookup` – extension based codec registry.

System Role
-----------
These protocols enforce Dependency Inversion. Adapters implement them and
the tests check the default adapters against them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol, Sequence, runtime_checkable

from ..domain.tree import TreeNode


@dataclass(frozen=True, slots=True)
class DecodeContext:
    """Input identity handed to decoders.

    ``filename`` is the record name used for origins; ``delimiter`` is the
    key delimiter of the owning configuration.
    """

    filename: str
    delimiter: str = "."


@runtime_checkable
class Decoder(Protocol):
    """Turn raw bytes into a :class:`TreeNode`."""

    def extensions(self) -> Sequence[str]:
        """Return the file extensions handled, without leading dots."""

    def decode(self, ctx: DecodeContext, data: bytes) -> TreeNode:
        """Decode *data* or raise :class:`DecodingFailure`."""


@runtime_checkable
class Encoder(Protocol):
    """Turn a compiled tree back into bytes."""

    def extensions(self) -> Sequence[str]:
        """Return the file extensions produced, without leading dots."""

    def encode(self, raw: Any) -> bytes:
        """Encode a plain projection (see :meth:`TreeNode.to_raw`)."""

    def encode_extended(self, tree: TreeNode) -> bytes:
        """Encode *tree* including origin information."""


@runtime_checkable
class FileSystem(Protocol):
    """Read-only filesystem rooted somewhere; paths are relative and ``/`` separated.

    Missing entries raise :class:`FileNotFoundError` and unreadable ones
    :class:`PermissionError`, exactly like the builtin file API.
    """

    def exists(self, path: str) -> bool:
        """Return whether *path* names a file or directory."""

    def is_dir(self, path: str) -> bool:
        """Return whether *path* is a directory."""

    def read_bytes(self, path: str) -> bytes:
        """Return the contents of the file at *path*."""

    def list_dir(self, path: str) -> list[tuple[str, bool]]:
        """Return ``(name, is_dir)`` for the direct entries of *path*."""

    def glob(self, pattern: str) -> list[str]:
        """Return the paths matching *pattern*; ``*`` never crosses ``/``."""


@runtime_checkable
class Expander(Protocol):
    """Map a placeholder's inner text to a replacement."""

    def expand(self, name: str) -> tuple[str, bool]:
        """Return ``(replacement, found)``."""


@runtime_checkable
class Encodeable(Protocol):
    """A node printable by the YAML renderer."""

    def indent(self) -> int: ...

    def headers(self) -> list[str]: ...

    def inline(self) -> list[str]: ...

    def key(self) -> str | None: ...

    def value(self) -> str | None: ...

    def children(self) -> Iterable[Encodeable] | None: ...


UnmarshalFunc = Callable[..., Any]
"""``unmarshal(key, type_, *options)`` over the configuration merged so far."""


@runtime_checkable
class CodecLookup(Protocol):
    """Find codecs by file extension."""

    def find_decoder(self, extension: str) -> Decoder:
        """Return the decoder for *extension* or raise :class:`CodecNotFound`."""

    def find_encoder(self, extension: str) -> Encoder:
        """Return the encoder for *extension* or raise :class:`CodecNotFound`."""
