"""Comment-aware YAML document renderer.

Purpose
-------
Print a tree of :class:`~lib_compiled_config.application.ports.Encodeable`
nodes as a YAML document with header comments, trailing comments and values
wrapped to a maximum line length. PyYAML's emitter cannot place comments, so
this renderer writes the text itself and only borrows PyYAML's implicit
resolver to decide when a plain scalar would be read back as something other
than a string.

Contents
--------
* :class:`Renderer` – the configurable document writer.
* :func:`format_value` – picks the first formatter that can represent a value.
* ``_try_*`` formatters and the small character-class helpers they use.

Layout
------
Every node is rendered as::

    # header comment
    key: short_value   # single trailing comment
      # trailing comment 1
      # trailing comment 2
      [block indicator]
      long or multi-line value

Sequence entries use ``-`` in place of ``key:``. Nodes with a negative
indent (the document root) contribute only their children.
"""

from __future__ import annotations

import json
import re
import sys
from dataclasses import dataclass
from typing import Callable, Iterable

import yaml

from ...application.ports import Encodeable
from ...application.sorting import numeric_first_key

_KEYWORDS = frozenset({"null", "true", "false", "~", ".inf", "-.inf", ".nan", "yes", "no", "on", "off"})
_SPECIAL = set("#&*!|'\"%@`")
_LEADING_INDICATORS = set("-?:,[]{}>")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_STR_TAG = "tag:yaml.org,2002:str"
_RESOLVER = yaml.resolver.Resolver()

Formatter = Callable[[str, int], "tuple[list[str], str] | None"]


@dataclass(frozen=True, slots=True)
class Renderer:
    """Render :class:`Encodeable` trees as YAML text.

    Attributes
    ----------
    max_line_length:
        Wrap values longer than this; ``<= 0`` disables wrapping.
    trailing_comment_column:
        Column where a single trailing comment starts; at least one space
        always separates it from the value.
    spaces_per_indent:
        Spaces per indent level; ``<= 0`` selects two.

    Examples
    --------
    >>> Renderer().encode(SimpleNode(name="a", text="b"))
    '---\\na: b\\n\\n'
    """

    max_line_length: int = 0
    trailing_comment_column: int = 0
    spaces_per_indent: int = 0

    def encode(self, item: Encodeable) -> str:
        """Return the complete document for *item*, starting with ``---``."""

        parts: list[str] = ["---\n"]
        self._encode(parts, item)
        parts.append("\n")
        text = "".join(parts)
        if text.startswith("---\n\n"):
            text = "---\n" + text[len("---\n\n") :]
        return text

    def _encode(self, parts: list[str], item: Encodeable) -> None:
        self._headers(parts, item)
        self._node(parts, item)
        children = item.children()
        if children is None:
            return
        for child in sort_encodeables(children):
            self._encode(parts, child)

    def _headers(self, parts: list[str], item: Encodeable) -> None:
        if item.indent() < 0:
            return
        started = False
        for header in item.headers() or []:
            header = header.removesuffix("\n")
            if not started and not header.strip():
                continue
            if not started:
                parts.append("\n")
                started = True
            parts.append(f"{self._indent(item.indent())}# {header}\n")

    def _node(self, parts: list[str], item: Encodeable) -> None:
        inline = list(item.inline() or [])
        line, lines, block = self._prepare_line(item, inline)
        out: list[str] = []
        if item.indent() >= 0:
            self._main_line(out, line, inline, block)
        self._additional(out, item, inline, lines, block)
        text = "".join(out)
        if text.strip():
            parts.append(text)

    def _prepare_line(self, item: Encodeable, inline: list[str]) -> tuple[str, list[str], str]:
        key = item.key()
        line = f"{self._indent(item.indent())}-" if key is None else f"{self._indent(item.indent())}{key}:"
        lines: list[str] = []
        block = ""
        if item.value() is not None or item.children() is None:
            lines, block = format_value(item.value(), self._max_line_length(len(line) - 1))
        if len(inline) <= 1 and len(lines) == 1 and not block:
            line += " " + lines[0]
        elif len(lines) > 1 and not block:
            line += " "
        return line, lines, block

    def _main_line(self, out: list[str], line: str, inline: list[str], block: str) -> None:
        out.append(line)
        if len(inline) == 1:
            spaces = max(self.trailing_comment_column - len(line), 1)
            out.append(f"{' ' * spaces}# {inline[0]}")
        if not inline and block:
            out.append(f" {block}")
        out.append("\n")

    def _additional(self, out: list[str], item: Encodeable, inline: list[str], lines: list[str], block: str) -> None:
        left = self._indent(item.indent() + 1)
        if len(inline) > 1:
            out.extend(f"{left}# {comment}\n" for comment in inline)
        if len(inline) <= 1 and len(lines) <= 1 and not block:
            return
        if inline and block:
            out.append(f"{left}{block}\n")
        lines, _ = format_value(item.value(), self._max_line_length(len(left)))
        out.extend(f"{left}{text}\n" for text in lines)

    def _max_line_length(self, prefix: int) -> int:
        if self.max_line_length <= 0:
            return sys.maxsize
        width = self.max_line_length - prefix
        factor = 2
        while width < 1:
            width = self.max_line_length * factor - prefix
            factor += 1
        return width

    def _indent(self, level: int) -> str:
        if level <= 0:
            return ""
        spaces = self.spaces_per_indent if self.spaces_per_indent > 0 else 2
        return " " * (level * spaces)


@dataclass(frozen=True, slots=True)
class SimpleNode:
    """Minimal :class:`Encodeable` for ad-hoc documents and doctests."""

    name: str | None = None
    text: str | None = None
    level: int = 0
    header_lines: tuple[str, ...] = ()
    inline_lines: tuple[str, ...] = ()
    nodes: tuple[SimpleNode, ...] = ()

    def indent(self) -> int:
        return self.level

    def headers(self) -> list[str]:
        return list(self.header_lines)

    def inline(self) -> list[str]:
        return list(self.inline_lines)

    def key(self) -> str | None:
        return self.name

    def value(self) -> str | None:
        return self.text

    def children(self) -> list[SimpleNode] | None:
        return list(self.nodes) or None


def sort_encodeables(items: Iterable[Encodeable]) -> list[Encodeable]:
    """Stable sort: sequence entries (no key) first, then keys numeric-first."""

    def key(item: Encodeable) -> tuple[int, tuple]:
        name = item.key()
        if name is None:
            return (0, ())
        return (1, numeric_first_key(name))

    return sorted(items, key=key)


def format_value(value: str | None, max_line_length: int) -> tuple[list[str], str]:
    """Return ``(lines, block_indicator)`` for *value*.

    Examples
    --------
    >>> format_value("plain", 80)
    (['plain'], '')
    >>> format_value("8080", 80)
    (["'8080'"], '')
    >>> format_value("a\\nb", 80)
    (['a', 'b'], '|-')
    """

    if value is None:
        return [""], ""
    for formatter in _FORMATTERS:
        result = formatter(value, max_line_length)
        if result is not None:
            return result
    return [value], ""


def _try_plain(val: str, width: int) -> tuple[list[str], str] | None:
    if (
        val
        and "\n" not in val
        and not _has_special_chars(val)
        and not _has_special_spaces(val)
        and not _is_keyword(val)
        and not _is_numeric(val)
        and val[0] not in _LEADING_INDICATORS
        and not val.endswith(":")
        and _resolves_as_string(val)
        and (width <= 0 or len(val) <= width)
    ):
        return [val], ""
    return None


def _try_single_quotes(val: str, width: int) -> tuple[list[str], str] | None:
    if (
        "'" not in val
        and "\n" not in val
        and "\t" not in val
        and not _has_control_chars(val)
        and (width <= 0 or len(val) + 2 <= width)
    ):
        return [f"'{val}'"], ""
    return None


def _try_whitespace_only(val: str, width: int) -> tuple[list[str], str] | None:
    if not _has_normal_content(val):
        return ['"' + val.replace("\n", "\\n") + '"'], ""
    return None


def _try_leading_trailing_spaces(val: str, width: int) -> tuple[list[str], str] | None:
    if _has_special_spaces(val) and "\n" not in val:
        return chunk_string(_quote(val), width), ""
    return None


def _try_literal_block(val: str, width: int) -> tuple[list[str], str] | None:
    if "\n" not in val or not _has_normal_content(val):
        return None
    lines = val.split("\n")
    if val.endswith("\n"):
        return lines[:-1], "|"
    return lines, "|-"


def _try_folded_block(val: str, width: int) -> tuple[list[str], str] | None:
    if width <= 0 or len(val) <= width or _has_special_chars(val):
        return None
    words = val.split()
    if len(words) <= 1 or not any(len(word) <= width for word in words):
        return None
    lines: list[str] = []
    current = ""
    for word in words:
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= width:
            current += " " + word
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines, ">-"


def _try_quoted_default(val: str, width: int) -> tuple[list[str], str] | None:
    quoted = _quote(val)
    if _has_special_chars(val) or (width > 0 and len(quoted) > width):
        return chunk_string(quoted, width), ""
    return [quoted], ""


_FORMATTERS: tuple[Formatter, ...] = (
    _try_plain,
    _try_single_quotes,
    _try_whitespace_only,
    _try_leading_trailing_spaces,
    _try_literal_block,
    _try_folded_block,
    _try_quoted_default,
)


def chunk_string(text: str, width: int) -> list[str]:
    """Split a double-quoted string into ``\\``-continued lines of at most *width*.

    Splits prefer the last space in the second half of the window and never
    separate a backslash from the character it escapes.

    Examples
    --------
    >>> chunk_string("abcdefgh", 5)
    ['"abc\\\\', 'defg\\\\', 'h"']
    """

    if not text.startswith('"'):
        text = f'"{text}"'
    if width <= 0:
        return [text]
    lines: list[str] = []
    remaining = text
    while remaining:
        split = _best_split(remaining, width)
        if split >= len(remaining):
            lines.append(remaining)
            break
        lines.append(remaining[:split] + "\\")
        remaining = remaining[split:]
    return lines


def _best_split(text: str, width: int) -> int:
    if len(text) <= width:
        return len(text)
    limit = max(width - 1, 1)
    for index in range(limit, limit // 2, -1):
        if index < len(text) and text[index] == " ":
            return index + 1
    split = limit
    while split > 1 and _odd_backslashes_before(text, split):
        split -= 1
    return split


def _odd_backslashes_before(text: str, index: int) -> bool:
    count = 0
    while index - count - 1 >= 0 and text[index - count - 1] == "\\":
        count += 1
    return count % 2 == 1


def _quote(val: str) -> str:
    """Double-quote *val* when escaping changes it; otherwise return it bare."""

    quoted = json.dumps(val, ensure_ascii=False)
    if quoted == f'"{val}"':
        return val
    return quoted


def _is_keyword(text: str) -> bool:
    return text.lower() in _KEYWORDS


def _is_numeric(text: str) -> bool:
    if not text:
        return False
    body = text[1:] if text[0] in "+-" else text
    if body and all(ch.isdigit() for ch in body):
        return True
    return "." in text and _FLOAT_PREFIX.match(text) is not None


def _resolves_as_string(text: str) -> bool:
    return _RESOLVER.resolve(yaml.ScalarNode, text, (True, False)) == _STR_TAG


def _has_special_chars(text: str) -> bool:
    if ": " in text or "\\" in text:
        return True
    for ch in text:
        if ch in "\n\t":
            continue
        if ord(ch) < 128 and not ch.isprintable():
            return True
        if ch in _SPECIAL:
            return True
    return False


def _has_control_chars(text: str) -> bool:
    return any(ch not in "\n\t" and ord(ch) < 128 and not ch.isprintable() for ch in text)


def _has_special_spaces(text: str) -> bool:
    if not text:
        return False
    first, last = text[0], text[-1]
    return (first != "\n" and first.isspace()) or (last != "\n" and last.isspace())


def _has_normal_content(text: str) -> bool:
    return any(not ch.isspace() for ch in text)
