"""Error taxonomy shared by the ingestion and query paths."""

from __future__ import annotations


class CaoRagError(RuntimeError):
    """Base class for every error raised by caorag."""


class ConfigurationError(CaoRagError):
    """Raised when required configuration (such as the API credential) is missing."""


class NotFoundError(CaoRagError):
    """Raised when a named resource cannot be resolved."""


class StoreNotFoundError(NotFoundError):
    """Raised when no store carries the requested display name."""

    def __init__(self, display_name: str) -> None:
        super().__init__(f"store {display_name!r} not found")
        self.display_name = display_name


class TransportError(CaoRagError):
    """Raised when a call to the document source or the store gateway fails."""


class MalformedResponseError(CaoRagError):
    """Raised when a generation response cannot be interpreted at all."""


__all__ = [
    "CaoRagError",
    "ConfigurationError",
    "MalformedResponseError",
    "NotFoundError",
    "StoreNotFoundError",
    "TransportError",
]
