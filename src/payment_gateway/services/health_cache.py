"""Per-provider TTL cache for provider health checks."""

import threading
import time
from dataclasses import dataclass
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_HEALTH_CHECK_TTL = 300


@dataclass
class _HealthEntry:
    healthy: bool
    expires_at: float


class HealthCheckCache:
    """
    Caches provider health results so repeated checks don't hammer provider endpoints.

    Entries expire individually: each provider key has its own expiry,
    set when its result is stored.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_HEALTH_CHECK_TTL) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: dict[str, _HealthEntry] = {}
        self._mu = threading.Lock()

    def _now(self) -> float:
        return time.monotonic()

    def get(self, provider: str) -> bool | None:
        """Cached result for ``provider``, or None if absent or expired."""
        with self._mu:
            entry = self._entries.get(provider)
            if entry is None:
                return None
            if entry.expires_at <= self._now():
                self._entries.pop(provider, None)
                return None
            return entry.healthy

    def set(self, provider: str, healthy: bool) -> None:
        with self._mu:
            self._entries[provider] = _HealthEntry(
                healthy=healthy,
                expires_at=self._now() + self.ttl_seconds,
            )

    def remember(self, provider: str, check: Callable[[], bool]) -> bool:
        """Return the cached result, running ``check`` and caching it on a miss."""
        cached = self.get(provider)
        if cached is not None:
            return cached

        healthy = bool(check())
        if self.ttl_seconds > 0:
            self.set(provider, healthy)

        logger.debug("provider_health_checked", provider=provider, healthy=healthy)
        return healthy

    def forget(self, provider: str | None = None) -> None:
        """Drop one provider's entry, or every entry when ``provider`` is None."""
        with self._mu:
            if provider is None:
                self._entries.clear()
            else:
                self._entries.pop(provider, None)
