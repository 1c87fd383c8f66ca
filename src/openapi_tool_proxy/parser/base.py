"""Data models for the operation catalog.

The catalog builder converts each OpenAPI document into these models.
They are frozen once built so a catalog can be shared between
concurrent invocations without locking.
"""

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

from openapi_tool_proxy.errors import NameCollisionError

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options")
PARAM_LOCATIONS = ("path", "query", "header", "cookie")

# argument key carrying the JSON request body of an invocation
REQUEST_BODY_KEY = "requestBody"

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


def path_placeholders(path: str) -> set[str]:
    """Return the names of the ``{name}`` placeholders in a path template."""
    return set(_PLACEHOLDER.findall(path))


class Parameter(BaseModel):
    """A single operation parameter (path, query, header, or cookie)."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: Literal["path", "query", "header", "cookie"]
    required: bool = False
    param_type: str | None = None  # primitive hint from schema.type
    description: str | None = None
    raw_schema: dict | None = None


class Operation(BaseModel):
    """One (path, method) pair of a document with its metadata."""

    model_config = ConfigDict(frozen=True)

    path: str  # /posts/{id}
    method: Literal["get", "post", "put", "delete", "patch", "head", "options"]
    operation_id: str
    summary: str | None = None
    description: str | None = None
    parameters: tuple[Parameter, ...] = ()
    request_body: dict | None = None
    request_body_required: bool = False
    responses: dict[str, Any] = {}
    tags: tuple[str, ...] = ()
    service_prefix: str = ""
    server_base_path: str = "/"

    @model_validator(mode="after")
    def _check_path_parameters(self):
        placeholders = path_placeholders(self.path)
        for param in self.parameters:
            if param.location == "path" and param.name not in placeholders:
                raise ValueError(
                    f"Path parameter {param.name!r} has no placeholder in {self.path}"
                )
        return self

    @property
    def tool_name(self) -> str:
        if self.service_prefix:
            return f"{self.service_prefix}_{self.operation_id}"
        return self.operation_id

    @property
    def label(self) -> str:
        return f"{self.method.upper()} {self.path}"


class DocumentCatalog(BaseModel):
    """Everything derived from one loaded document."""

    model_config = ConfigDict(frozen=True)

    operations: tuple[Operation, ...]
    base_path: str = "/"
    service_prefix: str = "api"
    title: str | None = None
    source: Path | None = None


class Catalog(BaseModel):
    """Operations from all loaded documents, keyed by unique tool name."""

    model_config = ConfigDict(frozen=True)

    operations: tuple[Operation, ...]

    @model_validator(mode="after")
    def _check_unique_names(self):
        seen: dict[str, Operation] = {}
        for op in self.operations:
            if op.tool_name in seen:
                raise NameCollisionError(op.tool_name, seen[op.tool_name].label, op.label)
            seen[op.tool_name] = op
        return self

    @property
    def tool_names(self) -> list[str]:
        return [op.tool_name for op in self.operations]

    def get(self, tool_name: str) -> Operation | None:
        for op in self.operations:
            if op.tool_name == tool_name:
                return op
        return None
