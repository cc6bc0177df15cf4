from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_compiled_config.application.merge import merge_pair, merge_trees
from lib_compiled_config.domain.errors import TypeMismatch
from lib_compiled_config.domain.tree import EMPTY_TREE, Origin, TreeNode

SCALAR = st.one_of(st.booleans(), st.integers(), st.text(min_size=1, max_size=5))
VALUE = st.recursive(
    SCALAR,
    lambda children: st.dictionaries(st.text(alphabet="abcxyz", min_size=1, max_size=5), children, min_size=1, max_size=3),
    max_leaves=10,
)
MAPPING = st.dictionaries(st.text(alphabet="abcxyz", min_size=1, max_size=5), VALUE, max_size=4)


def _tree(raw, name: str | None = None) -> TreeNode:
    return TreeNode.from_raw(raw, Origin(name) if name else None)


def _merge(*raws) -> object:
    return merge_trees(_tree(raw) for raw in raws).to_raw()


def test_later_scalar_wins() -> None:
    assert _merge({"feature": {"enabled": False}}, {"feature": {"enabled": True}}) == {"feature": {"enabled": True}}


def test_nested_merge_retains_previous_keys() -> None:
    merged = _merge({"db": {"host": "localhost", "port": 5432}}, {"db": {"password": "secret"}})
    assert merged == {"db": {"host": "localhost", "port": 5432, "password": "secret"}}


def test_arrays_are_replaced_not_appended() -> None:
    assert _merge({"hosts": ["a", "b"]}, {"hosts": ["c"]}) == {"hosts": ["c"]}


def test_empty_nodes_leave_the_other_side() -> None:
    tree = _tree({"a": 1})
    assert merge_pair(EMPTY_TREE, tree) is tree
    assert merge_pair(tree, EMPTY_TREE) is tree
    assert merge_trees([]) is EMPTY_TREE


def test_shape_conflict_names_the_path() -> None:
    """Map over scalar is a type mismatch reported at the conflicting key."""

    with pytest.raises(TypeMismatch, match="a/b"):
        merge_trees([_tree({"a": {"b": 1}}), _tree({"a": {"b": {"c": 2}}})], delimiter="/")


def test_array_over_map_is_a_type_mismatch() -> None:
    with pytest.raises(TypeMismatch):
        merge_trees([_tree({"a": {"b": 1}}), _tree({"a": [1]})])


def test_origins_accumulate_in_merge_order() -> None:
    merged = merge_trees([_tree({"port": 1}, "first"), _tree({"port": 2}, "second")])
    assert [origin.file for origin in merged.fetch(["port"]).origins] == ["first", "second"]


def test_secret_flag_survives_merge() -> None:
    merged = merge_trees([_tree({"token((secret))": "a"}), _tree({"token": "b"})])
    node = merged.fetch(["token"])
    assert node.secret is True
    assert node.to_raw() == "b"


def _outcome(build):
    try:
        return build().to_raw()
    except TypeMismatch:
        return "conflict"


@given(MAPPING, MAPPING, MAPPING)
def test_merge_associative(lhs, mid, rhs) -> None:
    left = _outcome(lambda: merge_pair(merge_pair(_tree(lhs), _tree(mid)), _tree(rhs)))
    right = _outcome(lambda: merge_pair(_tree(lhs), merge_pair(_tree(mid), _tree(rhs))))
    assert left == right


@given(MAPPING)
def test_merge_is_idempotent(mapping) -> None:
    tree = _tree(mapping)
    assert merge_pair(tree, tree).to_raw() == mapping


def _assert_contains(actual, expected):
    if isinstance(expected, dict):
        assert isinstance(actual, dict)
        for sub_key, sub_val in expected.items():
            assert sub_key in actual
            _assert_contains(actual[sub_key], sub_val)
    else:
        assert actual == expected


@given(MAPPING, MAPPING)
def test_last_tree_wins(lhs, rhs) -> None:
    try:
        merged = merge_pair(_tree(lhs), _tree(rhs)).to_raw()
    except TypeMismatch:
        return
    if not rhs:
        return
    _assert_contains(merged, rhs)
