"""Inline ``$ref`` pointers in OpenAPI schemas.

``resolve`` never mutates its input: it returns a new tree in which
every local reference reachable through ``items``, ``properties``,
``additionalProperties`` and ``allOf``/``oneOf``/``anyOf`` is replaced by
the referenced content.

Recursive schemas are cut where the cycle closes: a reference (or a
node shared through YAML aliases) that is already being expanded on the
current branch is returned unexpanded, so the result stays finite.
"""

import logging
import warnings
from typing import Any
from urllib.parse import unquote

from openapi_tool_proxy.errors import UnresolvedReferenceWarning

logger = logging.getLogger(__name__)

COMPOSITION_KEYS = ("allOf", "oneOf", "anyOf")

_MISSING = object()


def lookup(document: dict, ref: str) -> Any:
    """Walk a local JSON pointer (``#/a/b/c``) through the document.

    Returns the target node, or ``None`` when any step is missing or the
    reference is not local to the document.
    """
    target = _walk(document, ref)
    return None if target is _MISSING else target


def _walk(document: dict, ref: str) -> Any:
    if ref == "#":
        return document
    if not ref.startswith("#/"):
        return _MISSING

    node: Any = document
    for raw in ref[2:].split("/"):
        part = unquote(raw).replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return _MISSING
    return node


def _unresolved(ref: str) -> None:
    warnings.warn(f"Unresolved reference {ref!r}", UnresolvedReferenceWarning, stacklevel=3)


def dereference(node: Any, document: dict) -> Any:
    """Follow a chain of ``$ref`` pointers at the top of ``node`` only.

    Used for parameter and request-body objects, whose nested schemas are
    resolved separately. Unresolvable or circular chains return the last
    reference-bearing node.
    """
    seen: set[str] = set()
    while isinstance(node, dict) and isinstance(node.get("$ref"), str):
        ref = node["$ref"]
        if ref in seen:
            logger.debug("Circular reference chain at %s", ref)
            return node
        seen.add(ref)
        target = _walk(document, ref)
        if target is _MISSING:
            _unresolved(ref)
            return node
        node = target
    return node


def resolve(schema: Any, document: dict) -> Any:
    """Return ``schema`` with every reachable ``$ref`` inlined."""
    return _resolve(schema, document, frozenset(), frozenset())


def _resolve(node: Any, document: dict, active_refs: frozenset, active_nodes: frozenset) -> Any:
    if not isinstance(node, dict):
        return node
    if id(node) in active_nodes:
        return node
    active_nodes = active_nodes | {id(node)}

    ref = node.get("$ref")
    if not isinstance(ref, str):
        return _resolve_children(node, document, active_refs, active_nodes)

    if ref in active_refs:
        logger.debug("Recursive schema at %s left unexpanded", ref)
        return node

    target = _walk(document, ref)
    if target is _MISSING:
        _unresolved(ref)
        return node

    resolved = _resolve(target, document, active_refs | {ref}, active_nodes)
    siblings = {k: v for k, v in node.items() if k != "$ref"}
    if siblings and isinstance(resolved, dict):
        merged = dict(resolved)
        merged.update(_resolve_children(siblings, document, active_refs, active_nodes))
        return merged
    return resolved


def _resolve_children(node: dict, document: dict, active_refs: frozenset, active_nodes: frozenset) -> dict:
    def sub(child):
        return _resolve(child, document, active_refs, active_nodes)

    result = dict(node)
    if "items" in node:
        result["items"] = sub(node["items"])

    properties = node.get("properties")
    if isinstance(properties, dict):
        result["properties"] = {name: sub(prop) for name, prop in properties.items()}

    if isinstance(node.get("additionalProperties"), dict):
        result["additionalProperties"] = sub(node["additionalProperties"])

    for key in COMPOSITION_KEYS:
        members = node.get(key)
        if isinstance(members, list):
            result[key] = [sub(member) for member in members]
    return result
