"""Documentation object parsing, merging and type descriptions."""

from __future__ import annotations

import json

import pytest

from lib_compiled_config.domain.documentation import DocObject, DocType, ReservedName
from lib_compiled_config.domain.errors import InvalidInput

ROOT_DOC = {
    "Type": "<root>",
    "Children": {
        "Port": {"Type": "<int>", "Doc": "listen port", "Optional": True},
        "Hosts": {"Type": "<array>", "Children": {"<array>": {"Type": "<string>", "Doc": "a host"}}},
    },
}


def test_from_json_parses_tree_and_names_children() -> None:
    """Children without an explicit Name take their key."""

    doc = DocObject.from_json(json.dumps(ROOT_DOC))
    assert doc.type is DocType.ROOT
    port = doc.child("Port")
    assert port is not None
    assert (port.name, port.doc, port.type, port.optional) == ("Port", "listen port", DocType.INT, True)
    hosts = doc.child("Hosts")
    assert hosts is not None and hosts.child(ReservedName.ARRAY) is not None


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        json.dumps({"Type": "<map>"}),
        json.dumps({"Name": "x", "Type": "<root>"}),
        json.dumps({"Type": "<root>", "Children": {"a": {"Type": "<quaternion>"}}}),
        json.dumps({"Type": "<root>", "Children": [1]}),
        json.dumps([1, 2]),
    ],
)
def test_from_json_rejects_malformed_documents(payload) -> None:
    with pytest.raises(InvalidInput):
        DocObject.from_json(payload)


def test_reserved_names_parse() -> None:
    assert ReservedName.parse("<key>") is ReservedName.KEY
    assert ReservedName.parse("<embedded>") is ReservedName.EMBEDDED
    assert ReservedName.parse("key") is None


def test_merge_overlays_fields_and_children() -> None:
    """The later tree wins per field while children combine."""

    base = DocObject.from_mapping({"Type": "<root>", "Children": {"a": {"Doc": "old", "Type": "<int>"}}})
    extra = DocObject.from_mapping({"Children": {"a": {"Doc": "new"}, "b": {"Type": "<bool>"}}})
    merged = base.merge(extra)
    assert merged.type is DocType.ROOT
    assert merged.children["a"].doc == "new"
    assert merged.children["a"].type is DocType.INT
    assert merged.children["b"].type is DocType.BOOL


def test_translate_renames_ordinary_children_only() -> None:
    doc = DocObject.from_mapping(
        {"Type": "<map>", "Children": {"ServerName": {"Type": "<string>"}, "<key>": {"Type": "<string>"}}}
    )
    translated = doc.translate(str.lower)
    assert set(translated.children) == {"servername", "<key>"}


def test_type_string_for_arrays() -> None:
    doc = DocObject(type=DocType.ARRAY)
    assert doc.type_string() == "<array>"
    nested = DocObject(
        type=DocType.ARRAY,
        children={"<array>": DocObject(type=DocType.ARRAY, children={"<array>": DocObject(type=DocType.INT)})},
    )
    assert nested.type_string() == "array of array of <int>"


def test_type_string_for_documented_maps() -> None:
    """Key and value docs follow the summary line, continuation lines aligned."""

    doc = DocObject(
        type=DocType.MAP,
        children={
            "<key>": DocObject(type=DocType.STRING, doc="the user name"),
            "<value>": DocObject(type=DocType.INT, doc="their age\nin years"),
        },
    )
    assert doc.type_string().split("\n") == [
        "map with key <string> -> value <int>",
        "  key(<string>) the user name",
        "  value(<int>) their age",
        " " * len("  value(<int>) ") + "in years",
    ]


def test_type_string_for_plain_map_without_key_docs() -> None:
    assert DocObject(type=DocType.MAP).type_string() == "<map>"
    assert DocObject().type_string() == ""
