"""Tool manifest builder — converts catalog operations into tool descriptors."""

import logging

from pydantic import BaseModel, ConfigDict, Field

from openapi_tool_proxy.parser.base import REQUEST_BODY_KEY, Catalog, Operation

logger = logging.getLogger(__name__)

# OpenAPI type/format names -> JSON schema types understood by tool callers
_JSON_SCHEMA_TYPES = {
    "integer": "number",
    "int32": "number",
    "int64": "number",
    "number": "number",
    "float": "number",
    "double": "number",
    "boolean": "boolean",
    "array": "array",
    "object": "object",
}


class ToolDescriptor(BaseModel):
    """The manifest entry advertised for one invocable operation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str
    input_schema: dict = Field(alias="inputSchema")

    def to_manifest(self) -> dict:
        return self.model_dump(by_alias=True)


def json_schema_type(openapi_type: str | None) -> str:
    if openapi_type is None:
        return "string"
    return _JSON_SCHEMA_TYPES.get(openapi_type.lower(), "string")


def build_description(operation: Operation) -> str:
    description = operation.summary or operation.label
    if operation.description:
        description += f" - {operation.description}"
    return description


def _body_schema(operation: Operation) -> dict:
    schema = operation.request_body
    if not isinstance(schema, dict) or not schema or "$ref" in schema:
        return {"type": "object", "description": "Request body"}
    return schema


def build_input_schema(operation: Operation) -> dict:
    properties: dict[str, dict] = {}
    required: list[str] = []

    for param in operation.parameters:
        prop = {"type": json_schema_type(param.param_type)}
        if param.description:
            prop["description"] = param.description
        if param.name in properties:
            # arguments are keyed by name only; the later location wins
            logger.warning(
                "Parameter %r of %s is declared in more than one location; keeping the %s one",
                param.name, operation.tool_name, param.location,
            )
        properties[param.name] = prop
        if param.required and param.name not in required:
            required.append(param.name)

    if operation.request_body is not None:
        properties[REQUEST_BODY_KEY] = _body_schema(operation)
        if operation.request_body_required:
            required.append(REQUEST_BODY_KEY)

    return {"type": "object", "properties": properties, "required": required}


def to_descriptor(operation: Operation) -> ToolDescriptor:
    return ToolDescriptor(
        name=operation.tool_name,
        description=build_description(operation),
        input_schema=build_input_schema(operation),
    )


def to_descriptors(catalog: Catalog) -> list[ToolDescriptor]:
    """Build descriptors for every operation, in catalog order."""
    return [to_descriptor(op) for op in catalog.operations]
