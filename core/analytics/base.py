from datetime import datetime, timezone
from typing import Optional

from config.settings import Settings, get_settings
from core.errors import InvalidArgumentError
from core.store.base import MarketDataStore


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the way the store persists it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(value, maximum))


def clamp_limit(limit: int, maximum: int) -> int:
    """Cap a result limit at ``maximum``.

    Oversized limits are silently reduced; a negative limit has no sensible
    meaning and is rejected.
    """
    if limit < 0:
        raise InvalidArgumentError(
            f"limit must not be negative, got {limit}", details={"limit": limit}
        )
    return min(limit, maximum)


def require_text(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(f"{name} is required")
    return value.strip()


class MarketAnalyzer:
    """Base class for the analytics components.

    Holds the store every read goes through and the settings that provide
    sampling caps and parameter bounds.
    """

    def __init__(self, store: MarketDataStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    @staticmethod
    def _now(now: Optional[datetime] = None) -> datetime:
        return now if now is not None else utcnow()
