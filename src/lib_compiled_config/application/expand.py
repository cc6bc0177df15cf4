"""Bounded variable expansion over string leaves.

Purpose
-------
Replace ``${name}`` style placeholders in every string leaf of a merged tree
using one or more providers. Expansion repeats until a full pass over all
directives changes nothing, so one provider's output may contain another
provider's placeholders. Each directive carries an iteration budget; a
directive that is still changing values after its budget is exhausted raises
:class:`ExpansionNotConverged`.

Contents
    - ``ExpansionDirective`` / ``make_directive``: validated directive values.
    - ``MappingExpander`` / ``expander_func``: small provider adapters.
    - ``substitute``: one left-to-right substitution pass over a string.
    - ``expand_tree``: the fixed-point loop over a whole tree.

System Role
-----------
Called by the composition root after the merge step and before the compiled
tree is published. Missing names leave the placeholder untouched; only a
missing fixed point is an error.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Sequence

from ..domain.errors import ExpansionNotConverged, InvalidInput
from ..domain.tree import Origin, Scalar, ScalarKind, TreeNode
from ..observability import log_debug
from .ports import Expander

DEFAULT_START = "${"
DEFAULT_END = "}"
DEFAULT_MAXIMUM = 10_000


class MappingExpander:
    """Look placeholders up in a mapping.

    Examples
    --------
    >>> MappingExpander({"HOST": "db"}).expand("HOST"), MappingExpander({}).expand("HOST")
    (('db', True), ('', False))
    """

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values = values

    def expand(self, name: str) -> tuple[str, bool]:
        if name in self._values:
            return str(self._values[name]), True
        return "", False


class _FunctionExpander:
    def __init__(self, fn: Callable[[str], Any]) -> None:
        self._fn = fn

    def expand(self, name: str) -> tuple[str, bool]:
        result = self._fn(name)
        if result is None:
            return "", False
        if isinstance(result, tuple):
            text, found = result
            return str(text), bool(found)
        return str(result), True


def expander_func(fn: Callable[[str], Any]) -> Expander:
    """Adapt a callable returning ``str``, ``None`` or ``(str, found)``."""

    return _FunctionExpander(fn)


@dataclass(frozen=True, slots=True)
class ExpansionDirective:
    provider: Expander
    origin: str = ""
    start: str = DEFAULT_START
    end: str = DEFAULT_END
    maximum: int = DEFAULT_MAXIMUM


def make_directive(
    provider: Any,
    *,
    origin: str = "",
    start: str = DEFAULT_START,
    end: str = DEFAULT_END,
    maximum: int = 0,
) -> ExpansionDirective:
    """Validate arguments and build an :class:`ExpansionDirective`.

    *provider* may be an :class:`Expander`, a mapping or a callable. A missing
    provider or an empty delimiter raises :class:`InvalidInput`; a maximum
    below one selects :data:`DEFAULT_MAXIMUM`.
    """

    if provider is None:
        raise InvalidInput("an expansion needs a provider")
    if not start or not end:
        raise InvalidInput("expansion delimiters must not be empty")
    if isinstance(provider, Mapping):
        provider = MappingExpander(provider)
    elif not isinstance(provider, Expander):
        if not callable(provider):
            raise InvalidInput(f"unsupported expansion provider: {type(provider).__name__}")
        provider = expander_func(provider)
    return ExpansionDirective(
        provider=provider,
        origin=origin,
        start=start,
        end=end,
        maximum=maximum if maximum >= 1 else DEFAULT_MAXIMUM,
    )


def substitute(text: str, directive: ExpansionDirective) -> tuple[str, bool, bool]:
    """Run one substitution pass over *text*.

    Returns ``(result, changed, unterminated)``. Replacements are not rescanned
    in the same pass. A start delimiter without a matching end stops the scan
    and leaves the rest of the text untouched.

    Examples
    --------
    >>> directive = make_directive({"a": "1", "b": "${a}"})
    >>> substitute("x=${b} y=${zz}", directive)
    ('x=${a} y=${zz}', True, False)
    """

    start, end = directive.start, directive.end
    parts: list[str] = []
    pos = 0
    changed = False
    unterminated = False
    while True:
        begin = text.find(start, pos)
        if begin < 0:
            parts.append(text[pos:])
            break
        finish = text.find(end, begin + len(start))
        if finish < 0:
            unterminated = True
            parts.append(text[pos:])
            break
        replacement, found = directive.provider.expand(text[begin + len(start) : finish])
        if found:
            parts.append(text[pos:begin])
            parts.append(replacement)
            pos = finish + len(end)
            changed = True
        else:
            parts.append(text[pos : begin + len(start)])
            pos = begin + len(start)
    return "".join(parts), changed, unterminated


def expand_tree(tree: TreeNode, directives: Sequence[ExpansionDirective]) -> TreeNode:
    """Apply *directives* in order, pass after pass, until nothing changes.

    Raises
    ------
    ExpansionNotConverged
        When a directive changes values on more passes than its maximum.

    Examples
    --------
    >>> tree = TreeNode.from_raw({"url": "http://${host}:${port}"})
    >>> directive = make_directive({"host": "${name}.local", "name": "db", "port": "5432"})
    >>> expand_tree(tree, [directive]).to_raw()
    {'url': 'http://db.local:5432'}
    """

    if not directives:
        return tree
    changing_passes = [0] * len(directives)
    passes = 0
    while True:
        passes += 1
        changed_any = False
        for index, directive in enumerate(directives):
            tree, changed = _expand_node(tree, directive)
            if not changed:
                continue
            changed_any = True
            changing_passes[index] += 1
            if changing_passes[index] > directive.maximum:
                raise ExpansionNotConverged(
                    f"expansion '{directive.origin or directive.start + directive.end}' did not converge "
                    f"after {directive.maximum} iterations"
                )
        if not changed_any:
            log_debug("expansion_finished", source="expand", passes=passes, directives=len(directives))
            return tree


def _expand_node(node: TreeNode, directive: ExpansionDirective) -> tuple[TreeNode, bool]:
    """Expand every string leaf below *node* once."""

    if node.map is not None:
        children: dict[str, TreeNode] = {}
        changed = False
        for key, child in node.map.items():
            children[key], child_changed = _expand_node(child, directive)
            changed = changed or child_changed
        return (replace(node, map=children), True) if changed else (node, False)

    if node.array is not None:
        items: list[TreeNode] = []
        changed = False
        for child in node.array:
            item, child_changed = _expand_node(child, directive)
            items.append(item)
            changed = changed or child_changed
        return (replace(node, array=items), True) if changed else (node, False)

    if node.value is None or node.value.kind is not ScalarKind.STRING:
        return node, False
    text, changed, unterminated = substitute(str(node.value.value), directive)
    if unterminated:
        log_debug("expansion_unterminated", source="expand", value_origin=[str(o) for o in node.origins])
    if not changed:
        return node, False
    return replace(node, value=Scalar.of(text), origins=_annotate(node.origins, directive.origin)), True


def _annotate(origins: list[Origin], label: str) -> list[Origin]:
    """Record the directive label once per leaf."""

    if not label:
        return list(origins)
    marker = Origin(label)
    if origins and origins[-1] == marker:
        return list(origins)
    return [*origins, marker]
