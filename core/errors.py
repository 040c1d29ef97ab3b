# Exceptions raised by the analytics layer and the data stores behind it.
# Callers (API routes, CLI commands) translate these into status codes or
# console messages; nothing in the core retries or swallows them.

from typing import Any, Dict, Optional


class MarketAnalyticsError(Exception):
    """Base exception for market analytics failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary suitable for a JSON body."""
        payload: Dict[str, Any] = {"detail": self.message}
        if self.details:
            payload["context"] = self.details
        return payload


class NotFoundError(MarketAnalyticsError):
    """The requested key has no matching data.

    Raised for unknown item tags, a store without any bazaar pull, or a tag
    with no active fixed-price auctions.
    """


class InvalidArgumentError(MarketAnalyticsError, ValueError):
    """A required value is blank or a parameter is nonsensical after clamping."""


class DataStoreUnavailableError(MarketAnalyticsError):
    """The data store could not be read."""
