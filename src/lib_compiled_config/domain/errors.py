"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by the collector, the merge engine, the
expander, codecs and the composition root. The hierarchy lives in the domain
layer so inner layers never import from outer ones.

Contents
--------
* :class:`ConfigError` – umbrella base class for every library failure.
* :class:`DecodingFailure` / :class:`EncodingFailure` – codec problems.
* :class:`NotCompiledYet` – an operation needed a compiled tree.
* :class:`CodecNotFound` – no decoder/encoder registered for an extension.
* :class:`InvalidInput` – malformed option arguments or paths.
* :class:`FileMissing` – an exact-file source is absent.
* :class:`SourceUnreadable` – a file or directory exists but cannot be read.
* :class:`DuplicateFound` – two inputs claim the same name.
* :class:`NotFound` – key path lookup miss.
* :class:`TypeMismatch` / :class:`ConflictingDefinitions` – shape conflicts.
* :class:`ExpansionNotConverged` – variable expansion exceeded its budget.

System Role
-----------
Every error leaves the library as one of these types. Callers catch
:class:`ConfigError` to handle all library failures uniformly, or a subclass
for targeted recovery (for example :class:`NotFound` for optional keys).
"""

from __future__ import annotations


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_compiled_config``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class DecodingFailure(ConfigError):
    """Raised when bytes cannot be decoded into a tree, or a tree into a type.

    Typical Sources
    ---------------
    Structured codecs (:mod:`json`, :mod:`yaml`, :mod:`tomllib`) and the
    pydantic backed struct decoder.
    """


class EncodingFailure(ConfigError):
    """Raised when a compiled tree cannot be serialised."""


class NotCompiledYet(ConfigError):
    """Raised by fetch, marshal and unmarshal before the first successful compile."""


class CodecNotFound(ConfigError):
    """Raised when no decoder or encoder is registered for an extension."""


class InvalidInput(ConfigError):
    """Raised for malformed option arguments.

    Examples are empty record names, empty delimiters, missing providers,
    paths that escape their filesystem and unparseable documentation objects.
    """


class FileMissing(ConfigError):
    """Raised when a file declared as "must exist exactly" is absent.

    Why
    ----
    Distinguish a required file that is missing from the generic
    :class:`NotFound` used for key lookups.
    """


class DuplicateFound(ConfigError):
    """Raised when two inputs map onto the same configuration key."""


class NotFound(ConfigError):
    """Represents a key path that does not exist in the compiled tree."""


class TypeMismatch(ConfigError):
    """Raised when map, array and scalar shapes collide.

    Typical Sources
    ---------------
    Merging a map with an array, fetching an index from a map and similar
    shape conflicts. There is never an implicit coercion.
    """


class ConflictingDefinitions(TypeMismatch):
    """Array and map definitions met at the same position of a documented tree."""


class ExpansionNotConverged(ConfigError):
    """Variable expansion still produced changes after its iteration budget."""


class SourceUnreadable(ConfigError):
    """Raised when the filesystem refuses to list or read a source.

    Missing files and permission problems are handled by the collector; any
    other operating system error surfaces as this type, with the path in the
    message and the original error chained as the cause.
    """
