"""Tests for $ref resolution."""

import copy
import textwrap
import warnings

import pytest
import yaml

from openapi_tool_proxy.errors import UnresolvedReferenceWarning
from openapi_tool_proxy.parser.resolver import dereference, lookup, resolve

_DOC: dict = {
    "components": {
        "schemas": {
            "Pet": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "owner": {"$ref": "#/components/schemas/Owner"},
                    "tags": {"type": "array", "items": {"$ref": "#/components/schemas/Tag"}},
                },
            },
            "Owner": {"type": "object", "properties": {"name": {"type": "string"}}},
            "Tag": {"type": "string"},
            "Composed": {
                "allOf": [
                    {"$ref": "#/components/schemas/Owner"},
                    {"type": "object", "properties": {"extra": {"type": "boolean"}}},
                ],
                "oneOf": [{"$ref": "#/components/schemas/Tag"}],
                "anyOf": [{"$ref": "#/components/schemas/Tag"}, {"type": "integer"}],
            },
            "Map": {"type": "object", "additionalProperties": {"$ref": "#/components/schemas/Tag"}},
            "Node": {
                "type": "object",
                "properties": {
                    "value": {"type": "string"},
                    "next": {"$ref": "#/components/schemas/Node"},
                },
            },
            "A": {"type": "object", "properties": {"b": {"$ref": "#/components/schemas/B"}}},
            "B": {"type": "object", "properties": {"a": {"$ref": "#/components/schemas/A"}}},
            "a/b": {"type": "string", "format": "escaped"},
        },
        "parameters": {
            "Limit": {"name": "limit", "in": "query", "schema": {"$ref": "#/components/schemas/Tag"}},
            "Alias": {"$ref": "#/components/parameters/Limit"},
        },
    },
    "tags": [{"name": "first"}],
}


def _contains_ref(node) -> bool:
    if isinstance(node, dict):
        return "$ref" in node or any(_contains_ref(v) for v in node.values())
    if isinstance(node, list):
        return any(_contains_ref(v) for v in node)
    return False


class TestLookup:
    def test_walks_components(self):
        assert lookup(_DOC, "#/components/schemas/Tag") == {"type": "string"}

    def test_missing_key(self):
        assert lookup(_DOC, "#/components/schemas/Nope") is None

    def test_list_index(self):
        assert lookup(_DOC, "#/tags/0/name") == "first"

    def test_escaped_slash(self):
        assert lookup(_DOC, "#/components/schemas/a~1b")["format"] == "escaped"

    def test_external_reference(self):
        assert lookup(_DOC, "other.yaml#/Pet") is None


class TestResolve:
    def test_nested_properties_and_items(self):
        result = resolve({"$ref": "#/components/schemas/Pet"}, _DOC)
        assert result["properties"]["owner"]["properties"]["name"] == {"type": "string"}
        assert result["properties"]["tags"]["items"] == {"type": "string"}
        assert not _contains_ref(result)

    def test_compositions(self):
        result = resolve({"$ref": "#/components/schemas/Composed"}, _DOC)
        assert result["allOf"][0]["properties"]["name"] == {"type": "string"}
        assert result["oneOf"] == [{"type": "string"}]
        assert result["anyOf"] == [{"type": "string"}, {"type": "integer"}]

    def test_additional_properties(self):
        result = resolve({"$ref": "#/components/schemas/Map"}, _DOC)
        assert result["additionalProperties"] == {"type": "string"}

    def test_sibling_keys_override(self):
        result = resolve({"$ref": "#/components/schemas/Tag", "description": "A tag"}, _DOC)
        assert result == {"type": "string", "description": "A tag"}

    def test_does_not_mutate_document(self):
        before = copy.deepcopy(_DOC)
        resolve({"$ref": "#/components/schemas/Pet"}, _DOC)
        assert _DOC == before

    def test_idempotent_for_acyclic_schemas(self):
        for name in ("Pet", "Composed", "Map", "Owner"):
            once = resolve({"$ref": f"#/components/schemas/{name}"}, _DOC)
            assert resolve(once, _DOC) == once

    def test_non_mapping_passes_through(self):
        assert resolve(None, _DOC) is None
        assert resolve(True, _DOC) is True


class TestCycles:
    def test_self_reference_is_cut(self):
        result = resolve({"$ref": "#/components/schemas/Node"}, _DOC)
        assert result["properties"]["value"] == {"type": "string"}
        assert result["properties"]["next"] == {"$ref": "#/components/schemas/Node"}

    def test_mutual_reference_is_cut(self):
        result = resolve({"$ref": "#/components/schemas/A"}, _DOC)
        inner = result["properties"]["b"]
        assert inner["type"] == "object"
        assert inner["properties"]["a"] == {"$ref": "#/components/schemas/A"}

    def test_yaml_alias_cycle(self):
        doc = yaml.safe_load(textwrap.dedent(
            """
            tree: &tree
              type: object
              properties:
                child: *tree
            """
        ))
        result = resolve(doc["tree"], doc)
        assert result["type"] == "object"
        assert result["properties"]["child"] is doc["tree"]


class TestUnresolved:
    def test_missing_target_warns_and_keeps_node(self):
        node = {"$ref": "#/components/schemas/Missing"}
        with pytest.warns(UnresolvedReferenceWarning, match="Missing"):
            result = resolve({"type": "object", "properties": {"x": node}}, _DOC)
        assert result["properties"]["x"] is node

    def test_external_reference_warns(self):
        with pytest.warns(UnresolvedReferenceWarning):
            assert resolve({"$ref": "common.yaml#/Pet"}, _DOC) == {"$ref": "common.yaml#/Pet"}

    def test_resolvable_reference_does_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            resolve({"$ref": "#/components/schemas/Pet"}, _DOC)


class TestDereference:
    def test_follows_chain(self):
        result = dereference({"$ref": "#/components/parameters/Alias"}, _DOC)
        assert result["name"] == "limit"
        # nested schema is left for resolve()
        assert result["schema"] == {"$ref": "#/components/schemas/Tag"}

    def test_plain_node_unchanged(self):
        node = {"name": "x", "in": "query"}
        assert dereference(node, _DOC) is node

    def test_missing_chain_warns(self):
        with pytest.warns(UnresolvedReferenceWarning):
            result = dereference({"$ref": "#/components/parameters/Nope"}, _DOC)
        assert result == {"$ref": "#/components/parameters/Nope"}
