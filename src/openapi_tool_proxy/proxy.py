"""Tool proxy — the entry point used by a tool transport.

Loads the documents once, keeps the resulting catalog and manifests, and
dispatches invocations by tool name.
"""

import logging
from typing import Any

from openapi_tool_proxy.client.dispatcher import RequestDispatcher, ResponseEnvelope
from openapi_tool_proxy.config import ProxySettings
from openapi_tool_proxy.generator.manifest import ToolDescriptor, to_descriptors
from openapi_tool_proxy.parser.base import Catalog
from openapi_tool_proxy.parser.swagger import build_catalog, parse_openapi

logger = logging.getLogger(__name__)


class ToolProxy:
    """Serves the tools of a catalog through a shared dispatcher."""

    def __init__(self, catalog: Catalog, dispatcher: RequestDispatcher):
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.tools = tuple(to_descriptors(catalog))
        self.closed = False

    @classmethod
    def from_settings(cls, settings: ProxySettings) -> "ToolProxy":
        """Load every document and build the proxy.

        Raises DocumentLoadError, NameCollisionError or EmptyCatalogError;
        no partially loaded proxy is returned.
        """
        catalog = build_catalog([parse_openapi(path) for path in settings.documents])
        logger.info("Loaded %d tools from %d documents", len(catalog.operations), len(settings.documents))
        dispatcher = RequestDispatcher(
            settings.target_url,
            timeout=settings.timeout,
            headers=settings.headers,
            max_connections=settings.max_connections,
        )
        return cls(catalog, dispatcher)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def list_tools(self) -> list[ToolDescriptor]:
        return list(self.tools)

    def invoke(self, tool_name: str, arguments: dict[str, Any] | None = None) -> ResponseEnvelope:
        if self.closed:
            return ResponseEnvelope.failure("Proxy is shut down")
        operation = self.catalog.get(tool_name)
        if operation is None:
            return ResponseEnvelope.failure(f"Unknown tool: {tool_name}")
        logger.info("Invoking %s (%s)", tool_name, operation.label)
        return self.dispatcher.execute(operation, arguments)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.dispatcher.close()
            logger.info("Proxy closed")
