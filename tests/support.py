"""Shared helpers for the test-suite.

Keeps fixture construction (in-memory filesystems, on-disk trees, a
position-stamping decoder) in one place so individual tests read as
scenarios rather than setup code.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from lib_compiled_config.adapters.filesystem.default import MemoryFS
from lib_compiled_config.application.ports import DecodeContext
from lib_compiled_config.domain.errors import DecodingFailure
from lib_compiled_config.domain.tree import Origin, TreeNode


def memory_fs(files: Mapping[str, object], unreadable: Sequence[str] = ()) -> MemoryFS:
    """Build a :class:`MemoryFS` whose mapping values are JSON encoded unless already text."""

    encoded = {name: body if isinstance(body, (str, bytes)) else json.dumps(body) for name, body in files.items()}
    return MemoryFS(encoded, unreadable=unreadable)


def write_tree(root: Path, files: Mapping[str, str]) -> Path:
    """Create *files* below *root* and return *root*."""

    for relative, body in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(body, encoding="utf-8")
    return root


class OriginJSONDecoder:
    """JSON decoder stamping every node with ``Origin(filename, 1, 1)``."""

    def __init__(self, *extensions: str) -> None:
        self._extensions = extensions or ("json",)

    def extensions(self) -> Sequence[str]:
        return self._extensions

    def decode(self, ctx: DecodeContext, data: bytes) -> TreeNode:
        try:
            raw = json.loads(data)
        except json.JSONDecodeError as exc:
            raise DecodingFailure(str(exc)) from exc
        return TreeNode.from_raw(raw, Origin(ctx.filename, 1, 1))


@dataclass
class RecordingEncoder:
    """Encoder capturing what it was asked to encode."""

    extension: str = "rec"
    seen: list | None = None

    def extensions(self) -> Sequence[str]:
        return (self.extension,)

    def encode(self, raw: object) -> bytes:
        if self.seen is None:
            self.seen = []
        self.seen.append(raw)
        return b"encoded"

    def encode_extended(self, tree: TreeNode) -> bytes:
        return b"extended"
