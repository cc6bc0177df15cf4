"""Public package surface for ``lib_compiled_config``.

Build a :class:`Config` from options, call :meth:`Config.compile`, then
extract typed values with :meth:`Config.unmarshal` or serialise the result
with :meth:`Config.marshal`.
"""

from __future__ import annotations

from .adapters.codecs.registry import CodecRegistry, default_registry
from .adapters.filesystem.default import DirectoryFS, MemoryFS
from .adapters.rendering.yaml import Renderer
from .application.expand import MappingExpander, expander_func
from .core import ROOT, Config
from .domain.documentation import DocObject, DocType, ReservedName
from .domain.errors import (
    CodecNotFound,
    ConfigError,
    ConflictingDefinitions,
    DecodingFailure,
    DuplicateFound,
    EncodingFailure,
    ExpansionNotConverged,
    FileMissing,
    InvalidInput,
    NotCompiledYet,
    NotFound,
    SourceUnreadable,
    TypeMismatch,
)
from .domain.tree import Origin, Scalar, TreeNode
from .observability import bind_trace_id, get_logger
from .options import (
    add_buffer,
    add_buffer_fn,
    add_dir,
    add_dirs,
    add_docs,
    add_docs_json,
    add_file,
    add_files,
    add_jumbled,
    add_tree,
    add_trees,
    add_value,
    add_value_fn,
    as_default,
    auto_compile,
    decode_hook,
    default_marshal_options,
    default_unmarshal_options,
    error_unset,
    error_unused,
    expand,
    expand_env,
    fail_on_non_serializable,
    format_as,
    format_as_yaml,
    include_documentation,
    include_origins,
    keymap,
    keymap_fn,
    only_defaults,
    optional,
    options,
    redact_secrets,
    required,
    set_key_delimiter,
    sort_records_custom,
    sort_records_lexically,
    sort_records_naturally,
    std_cfg_layout,
    tag_name,
    value_keymap,
    value_keymap_fn,
    weakly_typed_input,
    with_decoder,
    with_encoder,
    with_validator,
)

__all__ = [
    "ROOT",
    "CodecNotFound",
    "CodecRegistry",
    "Config",
    "ConfigError",
    "ConflictingDefinitions",
    "DecodingFailure",
    "DirectoryFS",
    "DocObject",
    "DocType",
    "DuplicateFound",
    "EncodingFailure",
    "ExpansionNotConverged",
    "FileMissing",
    "InvalidInput",
    "MappingExpander",
    "MemoryFS",
    "NotCompiledYet",
    "NotFound",
    "Origin",
    "Renderer",
    "ReservedName",
    "Scalar",
    "SourceUnreadable",
    "TreeNode",
    "TypeMismatch",
    "add_buffer",
    "add_buffer_fn",
    "add_dir",
    "add_dirs",
    "add_docs",
    "add_docs_json",
    "add_file",
    "add_files",
    "add_jumbled",
    "add_tree",
    "add_trees",
    "add_value",
    "add_value_fn",
    "as_default",
    "auto_compile",
    "bind_trace_id",
    "decode_hook",
    "default_marshal_options",
    "default_registry",
    "default_unmarshal_options",
    "error_unset",
    "error_unused",
    "expand",
    "expand_env",
    "expander_func",
    "fail_on_non_serializable",
    "format_as",
    "format_as_yaml",
    "get_logger",
    "include_documentation",
    "include_origins",
    "keymap",
    "keymap_fn",
    "only_defaults",
    "optional",
    "options",
    "redact_secrets",
    "required",
    "set_key_delimiter",
    "sort_records_custom",
    "sort_records_lexically",
    "sort_records_naturally",
    "std_cfg_layout",
    "tag_name",
    "value_keymap",
    "value_keymap_fn",
    "weakly_typed_input",
    "with_decoder",
    "with_encoder",
    "with_validator",
]
