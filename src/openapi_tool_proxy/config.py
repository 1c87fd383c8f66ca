"""Proxy configuration: which documents to load and where to send requests."""

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from openapi_tool_proxy.client.dispatcher import DEFAULT_MAX_CONNECTIONS, DEFAULT_TIMEOUT

ENV_DOCUMENTS = "OPENAPI_PROXY_DOCUMENTS"
ENV_TARGET = "OPENAPI_PROXY_TARGET"
ENV_TIMEOUT = "OPENAPI_PROXY_TIMEOUT"


class ProxySettings(BaseModel):
    """Settings consumed by ``ToolProxy.from_settings``."""

    documents: list[Path] = Field(min_length=1)
    target_url: str
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    headers: dict[str, str] = {}
    max_connections: int = Field(DEFAULT_MAX_CONNECTIONS, ge=1)

    @field_validator("target_url")
    @classmethod
    def _check_target_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("Target URL must start with http:// or https://")
        return value

    @classmethod
    def from_env(cls, **overrides) -> "ProxySettings":
        """Build settings from OPENAPI_PROXY_* variables; keyword arguments win."""
        values: dict = {}
        documents = os.environ.get(ENV_DOCUMENTS, "")
        if documents:
            values["documents"] = [Path(d.strip()) for d in documents.split(",") if d.strip()]
        if os.environ.get(ENV_TARGET):
            values["target_url"] = os.environ[ENV_TARGET]
        if os.environ.get(ENV_TIMEOUT):
            values["timeout"] = os.environ[ENV_TIMEOUT]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
