"""Read an OpenAPI document from disk.

YAML is the expected serialization; JSON documents load too since
JSON is a subset of YAML.
"""

import logging
from pathlib import Path

import yaml

from openapi_tool_proxy.errors import DocumentLoadError

logger = logging.getLogger(__name__)


def load_document(file_path: Path) -> dict:
    """Load and parse an OpenAPI document into a mapping."""
    file_path = Path(file_path)
    logger.info("Loading OpenAPI document %s", file_path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentLoadError(file_path, e.strerror or str(e)) from e

    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentLoadError(file_path, f"invalid YAML: {e}") from e

    if not isinstance(doc, dict):
        raise DocumentLoadError(file_path, "top-level node is not a mapping")
    if "openapi" not in doc and "swagger" not in doc and "paths" not in doc:
        raise DocumentLoadError(file_path, "not an OpenAPI/Swagger document")
    return doc
