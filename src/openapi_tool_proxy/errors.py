"""Exception and warning types raised by the proxy.

Startup errors abort loading; invocation errors never leave the
dispatcher and are turned into failure envelopes instead.
"""


class ProxyError(Exception):
    """Base class for all proxy errors."""


class StartupError(ProxyError):
    """A problem that prevents the catalog from being built."""


class DocumentLoadError(StartupError):
    """An OpenAPI document is missing or cannot be parsed."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load OpenAPI document {path}: {reason}")


class EmptyCatalogError(StartupError):
    """No operations were found in any loaded document."""


class NameCollisionError(StartupError):
    """Two operations map to the same tool name."""

    def __init__(self, name: str, first: str, second: str):
        self.name = name
        super().__init__(f"Tool name {name!r} is used by both {first} and {second}")


class InvocationError(ProxyError):
    """A single tool invocation failed before a response was received."""


class UnsupportedMethodError(InvocationError):
    """The HTTP method cannot be dispatched."""


class InvocationTransportError(InvocationError):
    """Connection, timeout or serialization failure while dispatching."""


class UnresolvedReferenceWarning(UserWarning):
    """A $ref pointer could not be followed; the node was kept as-is."""
