"""HTTP dispatch of tool invocations.

Maps an untyped argument map onto the operation's path, query, header and
cookie parameters, sends the request through one pooled ``httpx.Client``
and wraps whatever comes back in a ``ResponseEnvelope``.
"""

import json
import logging
from typing import Any
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ConfigDict

from openapi_tool_proxy.errors import InvocationError, InvocationTransportError, UnsupportedMethodError
from openapi_tool_proxy.parser.base import REQUEST_BODY_KEY, Operation

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}
BODY_METHODS = {"POST", "PUT", "PATCH"}

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_CONNECTIONS = 100


class RequestPlan(BaseModel):
    """A fully resolved outbound request."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: dict[str, str] = {}
    body: str | None = None


class ResponseEnvelope(BaseModel):
    """Result of one invocation: the upstream response, or an error message."""

    model_config = ConfigDict(frozen=True)

    success: bool
    status_code: int | None = None
    data: Any = None
    headers: dict[str, str] = {}
    error: str | None = None

    @classmethod
    def ok(cls, status_code: int, data: Any, headers: dict[str, str]) -> "ResponseEnvelope":
        return cls(success=True, status_code=status_code, data=data, headers=headers)

    @classmethod
    def failure(cls, message: str) -> "ResponseEnvelope":
        return cls(success=False, error=message)

    def to_result(self) -> dict:
        """JSON-ready result in the shape tool callers expect."""
        if self.success:
            return {
                "success": True,
                "statusCode": self.status_code,
                "data": self.data,
                "headers": dict(self.headers),
            }
        return {"success": False, "error": self.error}


def stringify(value: Any) -> str:
    """Render an argument value the way it is written into a URL or header."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


class RequestDispatcher:
    """Executes operations against the target API.

    One dispatcher is shared by all invocations; ``httpx.Client`` pools
    connections and is safe to use from several threads at once.
    """

    def __init__(
        self,
        target_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        client: httpx.Client | None = None,
    ):
        self.target_url = target_url.rstrip("/")
        self.default_headers = dict(headers or {})
        self.client = client or httpx.Client(
            timeout=timeout,
            limits=httpx.Limits(max_connections=max_connections),
            follow_redirects=True,
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        self.client.close()

    def build_url(self, operation: Operation, path: str, query: list[tuple[str, str]]) -> str:
        url = self.target_url
        if operation.server_base_path != "/":
            url += "/" + operation.server_base_path.strip("/")
        url += path if path.startswith("/") else "/" + path
        if query:
            url += "?" + urlencode(query)
        return url

    def plan(self, operation: Operation, arguments: dict[str, Any]) -> RequestPlan:
        """Place arguments into the request. Raises InvocationError subclasses."""
        method = operation.method.upper()
        if method not in SUPPORTED_METHODS:
            raise UnsupportedMethodError(f"Unsupported HTTP method: {method}")

        path = operation.path
        query: list[tuple[str, str]] = []
        headers = dict(self.default_headers)
        cookies: list[str] = []

        for param in operation.parameters:
            value = arguments.get(param.name)
            if value is None:
                continue
            text = stringify(value)
            if param.location == "path":
                path = path.replace(f"{{{param.name}}}", quote(text, safe=""))
            elif param.location == "query":
                query.append((param.name, text))
            elif param.location == "header":
                headers[param.name] = text
            elif param.location == "cookie":
                cookies.append(f"{param.name}={text}")

        if cookies:
            if headers.get("Cookie"):
                cookies.insert(0, headers["Cookie"])
            headers["Cookie"] = "; ".join(cookies)

        body = None
        payload = arguments.get(REQUEST_BODY_KEY)
        if payload is not None and method in BODY_METHODS:
            try:
                body = json.dumps(payload)
            except (TypeError, ValueError) as e:
                raise InvocationTransportError(f"Cannot serialize request body: {e}") from e
            headers["Content-Type"] = "application/json"
        elif payload is not None:
            logger.debug("Ignoring request body for %s %s", method, operation.path)

        return RequestPlan(
            method=method,
            url=self.build_url(operation, path, query),
            headers=headers,
            body=body,
        )

    def execute(self, operation: Operation, arguments: dict[str, Any] | None) -> ResponseEnvelope:
        """Run one invocation. Never raises; failures become failure envelopes."""
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            logger.warning("Invocation of %s failed: arguments are a %s", operation.tool_name, type(arguments).__name__)
            return ResponseEnvelope.failure("Arguments must be an object")
        try:
            plan = self.plan(operation, arguments)
            response = self._send(plan)
            return self._envelope(response)
        except InvocationError as e:
            logger.warning("Invocation of %s failed: %s", operation.tool_name, e)
            return ResponseEnvelope.failure(str(e))

    def _send(self, plan: RequestPlan) -> httpx.Response:
        logger.debug("Executing %s request to: %s", plan.method, plan.url)
        try:
            return self.client.request(plan.method, plan.url, headers=plan.headers, content=plan.body)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise InvocationTransportError(f"{type(e).__name__}: {e}") from e

    def _envelope(self, response: httpx.Response) -> ResponseEnvelope:
        text = response.text
        if not text:
            data = None
        else:
            try:
                data = response.json()
            except (ValueError, RecursionError):
                # nesting too deep for the json module is kept as raw text
                data = text
        logger.debug("Response status: %s, body: %s", response.status_code, text)
        return ResponseEnvelope.ok(response.status_code, data, dict(response.headers))
