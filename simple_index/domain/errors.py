"""
Error taxonomy for the package registry.

Every failure the core can surface is one of the subclasses below. The HTTP
layer maps ``NotFound`` to 404 and everything else to a generic 500.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for all registry failures."""


class IOFailure(RegistryError):
    """Disk (or network) I/O failed."""


class SerializationFailure(RegistryError):
    """The snapshot could not be encoded or decoded."""


class NotFound(RegistryError):
    """The requested package (or release) does not exist."""

    def __init__(self, name: str, detail: str | None = None):
        self.name = name
        super().__init__(detail or f"Package not found: {name}")


class InvalidFormat(RegistryError):
    """An uploaded filename or part does not have the expected shape."""


class ProtocolError(RegistryError):
    """The incoming multipart stream was malformed."""
