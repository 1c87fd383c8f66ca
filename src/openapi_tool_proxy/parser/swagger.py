"""OpenAPI document parser.

Builds the operation catalog from parsed OpenAPI 3.x documents.
"""

import logging
import re
from pathlib import Path

from openapi_tool_proxy.errors import EmptyCatalogError
from openapi_tool_proxy.parser.base import (
    HTTP_METHODS,
    PARAM_LOCATIONS,
    Catalog,
    DocumentCatalog,
    Operation,
    Parameter,
    path_placeholders,
)
from openapi_tool_proxy.parser.loader import load_document
from openapi_tool_proxy.parser.resolver import dereference, resolve
from openapi_tool_proxy.parser.servers import base_path_from_servers, service_prefix

logger = logging.getLogger(__name__)


def parse_openapi(file_path: Path) -> DocumentCatalog:
    """Load an OpenAPI file and build its catalog."""
    return build(load_document(file_path), source=Path(file_path))


def build(doc: dict, source: Path | None = None) -> DocumentCatalog:
    """Build the operations and server metadata of one parsed document."""
    base_path = base_path_from_servers(doc.get("servers"))
    prefix = service_prefix(base_path)

    operations = []
    paths = doc.get("paths") or {}
    if not paths:
        logger.warning("No paths found in %s", source or "OpenAPI document")

    for path, path_item in paths.items():
        path_item = dereference(path_item, doc)
        if not isinstance(path_item, dict):
            continue
        shared_params = path_item.get("parameters") or []

        for method, operation in path_item.items():
            method = str(method).lower()
            if method not in HTTP_METHODS or not isinstance(operation, dict):
                continue

            operations.append(
                _build_operation(doc, str(path), method, operation, shared_params, prefix, base_path)
            )
            logger.debug("Parsed operation: %s %s", method.upper(), path)

    logger.info("Parsed %d operations from %s", len(operations), source or "OpenAPI document")
    info = doc.get("info") or {}
    return DocumentCatalog(
        operations=tuple(operations),
        base_path=base_path,
        service_prefix=prefix,
        title=_text(info.get("title")) if isinstance(info, dict) else None,
        source=source,
    )


def build_catalog(documents: list[DocumentCatalog]) -> Catalog:
    """Combine document catalogs into one catalog with unique tool names.

    Raises NameCollisionError on duplicate tool names and EmptyCatalogError
    when no document contributes an operation.
    """
    operations = tuple(op for doc in documents for op in doc.operations)
    if not operations:
        raise EmptyCatalogError("No operations found in the OpenAPI documents")
    return Catalog(operations=operations)


def generate_operation_id(method: str, path: str) -> str:
    """Synthesize an identifier such as ``get_posts_id`` for ``GET /posts/{id}``."""
    clean_path = re.sub(r"[{}]", "", path).replace("/", "_")
    # only the leading separator is dropped; "/posts/" keeps its trailing "_"
    if clean_path.startswith("_"):
        clean_path = clean_path[1:]
    return f"{method}_{clean_path}"


def _build_operation(
    doc: dict,
    path: str,
    method: str,
    operation: dict,
    shared_params: list,
    prefix: str,
    base_path: str,
) -> Operation:
    operation_id = operation.get("operationId") or generate_operation_id(method, path)
    body_schema, body_required = _parse_request_body(doc, operation.get("requestBody"))

    return Operation(
        path=path,
        method=method,
        operation_id=str(operation_id),
        summary=_text(operation.get("summary")),
        description=_text(operation.get("description")),
        parameters=tuple(_parse_parameters(doc, path, shared_params, operation.get("parameters") or [])),
        request_body=body_schema,
        request_body_required=body_required,
        responses=_parse_responses(operation.get("responses") or {}),
        tags=tuple(str(t) for t in operation.get("tags") or []),
        service_prefix=prefix,
        server_base_path=base_path,
    )


def _parse_parameters(doc: dict, path: str, shared: list, own: list) -> list[Parameter]:
    # operation-level declarations override path-level ones with the same name and location
    merged: dict[tuple, dict] = {}
    for raw in list(shared) + list(own):
        p = dereference(raw, doc)
        if not isinstance(p, dict):
            continue
        name, location = p.get("name"), p.get("in")
        if not name or not location:
            continue
        merged[(name, location)] = p

    placeholders = path_placeholders(path)
    result = []
    for (name, location), p in merged.items():
        if location not in PARAM_LOCATIONS:
            logger.warning("Skipping parameter %r of %s: unknown location %r", name, path, location)
            continue
        if location == "path" and name not in placeholders:
            logger.warning("Skipping path parameter %r: no placeholder in %s", name, path)
            continue

        schema = resolve(p.get("schema"), doc) if isinstance(p.get("schema"), dict) else None
        param_type = schema.get("type") if schema else None
        result.append(
            Parameter(
                name=str(name),
                location=location,
                required=bool(p.get("required", False)),
                param_type=param_type if isinstance(param_type, str) else None,
                description=_text(p.get("description")),
                raw_schema=schema,
            )
        )
    return result


def _select_content(content: dict) -> dict | None:
    """Pick the JSON media type entry, falling back to the first one."""
    for content_type, entry in content.items():
        if str(content_type).startswith("application/json"):
            return entry
    for entry in content.values():
        return entry
    return None


def _parse_request_body(doc: dict, body) -> tuple[dict | None, bool]:
    body = dereference(body, doc)
    if not isinstance(body, dict):
        return None, False
    content = body.get("content")
    if not isinstance(content, dict):
        return None, False

    entry = _select_content(content)
    if not isinstance(entry, dict) or entry.get("schema") is None:
        return None, False
    schema = resolve(entry["schema"], doc)
    return (schema if isinstance(schema, dict) else None), bool(body.get("required", False))


def _parse_responses(responses: dict) -> dict:
    result = {}
    for status_code, resp in responses.items():
        schema = resp
        if isinstance(resp, dict) and isinstance(resp.get("content"), dict):
            entry = _select_content(resp["content"])
            if isinstance(entry, dict) and "schema" in entry:
                schema = entry["schema"]
        result[str(status_code)] = schema
    return result


def _text(value) -> str | None:
    return str(value) if value is not None else None
