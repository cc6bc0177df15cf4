"""Unit tests for the configuration tree: construction, lookup, projection and redaction."""

from __future__ import annotations

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_compiled_config.domain.errors import NotFound, TypeMismatch
from lib_compiled_config.domain.tree import (
    EMPTY_TREE,
    REDACTED,
    NodeKind,
    Origin,
    Scalar,
    ScalarKind,
    TreeNode,
    split_secret,
    to_string,
)

KEY = st.text(alphabet="abcdefghij", min_size=1, max_size=5)
SCALAR = st.one_of(st.none(), st.booleans(), st.integers(), st.text(max_size=8))
VALUE = st.recursive(
    SCALAR,
    lambda children: st.one_of(
        st.lists(children, max_size=3),
        st.dictionaries(KEY, children, max_size=3),
    ),
    max_leaves=10,
)


def test_origin_renders_position_when_known() -> None:
    """Origins print file, line and column, or only the file without a line."""

    assert str(Origin("app.yaml", 3, 7)) == "app.yaml:3[7]"
    assert str(Origin("cli")) == "cli"
    assert str(Origin()) == "unknown"


def test_scalar_kinds_cover_plain_values() -> None:
    """Each decoded Python value maps onto one scalar kind."""

    assert Scalar.of(None).kind is ScalarKind.NULL
    assert Scalar.of(True).kind is ScalarKind.BOOL
    assert Scalar.of(7).kind is ScalarKind.INT
    assert Scalar.of(1.5) == Scalar(ScalarKind.FLOAT, Decimal("1.5"))
    assert Scalar.of("x").kind is ScalarKind.STRING


def test_scalar_rejects_unknown_types() -> None:
    with pytest.raises(TypeError):
        Scalar.of(object())


def test_to_string_spelling() -> None:
    """Display text uses YAML spellings and keeps exact decimals."""

    assert to_string(Scalar.of(Decimal("0.10"))) == "0.10"
    assert to_string(2.5) == "2.500000"
    assert to_string(True) == "true"
    assert to_string(None) == "null"
    assert to_string(-3) == "-3"


def test_split_secret_strips_annotation() -> None:
    assert split_secret("token((secret))") == ("token", True)
    assert split_secret("token") == ("token", False)


def test_secret_keys_mark_whole_subtree() -> None:
    """A secret key marks its node; redaction replaces the node wholesale."""

    tree = TreeNode.from_raw({"db": {"credentials((secret))": {"user": "u", "pass": "p"}, "host": "h"}})
    credentials = tree.fetch(["db", "credentials"])
    assert credentials.secret is True
    redacted = tree.redacted().to_raw()
    assert redacted == {"db": {"credentials": REDACTED, "host": "h"}}


def test_fetch_walks_maps_and_arrays() -> None:
    tree = TreeNode.from_raw({"servers": [{"name": "a"}, {"name": "b"}]})
    assert tree.fetch(["servers", "1", "name"]).to_raw() == "b"
    assert tree.fetch([]) is tree


def test_fetch_reports_missing_keys_with_delimiter() -> None:
    tree = TreeNode.from_raw({"a": {"b": 1}})
    with pytest.raises(NotFound, match="a/c"):
        tree.fetch(["a", "c"], "/")


def test_fetch_reports_index_out_of_range() -> None:
    tree = TreeNode.from_raw({"list": [1]})
    with pytest.raises(NotFound):
        tree.fetch(["list", "4"])


def test_fetch_shape_conflicts_raise_type_mismatch() -> None:
    """Keying an array or descending into a scalar never coerces."""

    tree = TreeNode.from_raw({"list": [1], "leaf": "x"})
    with pytest.raises(TypeMismatch):
        tree.fetch(["list", "name"])
    with pytest.raises(TypeMismatch):
        tree.fetch(["leaf", "deeper"])


def test_node_holds_exactly_one_shape() -> None:
    with pytest.raises(TypeMismatch):
        TreeNode(value=Scalar.of(1), map={})


def test_nest_places_node_under_path() -> None:
    node = TreeNode.nest(["a", "b"], TreeNode.from_raw(5))
    assert node.to_raw() == {"a": {"b": 5}}
    assert node.kind is NodeKind.MAP


def test_empty_tree_is_empty() -> None:
    assert EMPTY_TREE.is_empty()
    assert EMPTY_TREE.to_raw() is None
    assert not TreeNode.from_raw({}, Origin("x")).is_empty()


def test_origins_do_not_affect_equality() -> None:
    """Origins are diagnostics; two trees with the same data are equal."""

    assert TreeNode.from_raw({"a": 1}, Origin("one")) == TreeNode.from_raw({"a": 1}, Origin("two"))


def test_with_origins_appends() -> None:
    node = TreeNode.from_raw(1, Origin("a")).with_origins([Origin("b")])
    assert [origin.file for origin in node.origins] == ["a", "b"]


@given(VALUE)
def test_from_raw_projection_preserves_data(value) -> None:
    """Projecting a freshly built tree yields the input (tuples become lists)."""

    assert TreeNode.from_raw(value).to_raw() == value
