"""Server base path and service prefix derivation."""

import re
from urllib.parse import urlparse

DEFAULT_PREFIX = "api"

# Generic path tokens that never make a useful service name
PREFIX_STOPWORDS = {
    "api", "apis", "rest", "restapi", "service", "services", "public", "internal", "latest",
}

_VERSION_TOKEN = re.compile(r"^(v|version)\d+(\.\d+)*$", re.IGNORECASE)
_SERVER_VARIABLE = re.compile(r"\{([^{}]+)\}")


def _expand_variables(url: str, variables: dict) -> str:
    """Substitute ``{var}`` tokens with the declared default values."""

    def replace(match):
        variable = variables.get(match.group(1))
        if isinstance(variable, dict) and "default" in variable:
            return str(variable["default"])
        return ""

    return _SERVER_VARIABLE.sub(replace, url)


def normalize_base_path(path: str) -> str:
    """Normalize to a single leading and trailing slash; empty becomes ``/``."""
    segments = [s for s in path.split("/") if s]
    if not segments:
        return "/"
    return "/" + "/".join(segments) + "/"


def base_path_from_servers(servers) -> str:
    """Return the base path of the first declared server, or ``/``."""
    if not isinstance(servers, list) or not servers:
        return "/"
    first = servers[0]
    if not isinstance(first, dict) or not isinstance(first.get("url"), str):
        return "/"

    url = _expand_variables(first["url"], first.get("variables") or {})
    # relative server URLs ("/api/v3") have no authority to strip
    path = urlparse(url).path if "://" in url else url
    return normalize_base_path(path)


def is_version_token(token: str) -> bool:
    return bool(_VERSION_TOKEN.match(token))


def service_prefix(base_path: str) -> str:
    """Derive a short service name from a base path.

    The longest token that is neither a version marker nor a generic
    stopword wins (first one on ties). Falls back to the last non-version
    token, then to ``api``.
    """
    tokens = [t for t in base_path.split("/") if t]
    non_version = [t for t in tokens if not is_version_token(t)]
    candidates = [t for t in non_version if t.lower() not in PREFIX_STOPWORDS]

    if candidates:
        chosen = max(candidates, key=len)  # max keeps the first of equal lengths
    elif non_version:
        chosen = non_version[-1]
    else:
        return DEFAULT_PREFIX

    prefix = re.sub(r"[^a-z0-9]", "", chosen.lower())
    return prefix or DEFAULT_PREFIX
