"""Short-lived read-through cache for upstream payloads and result snapshots."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Cache(Protocol):
    """Key-value store whose entries may vanish at any time."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a value for ``ttl_seconds``."""


@dataclass(frozen=True)
class _Entry:
    value: object
    expires_at: datetime

    def expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class InMemoryCache(Cache):
    """Bounded in-memory cache.

    Expired entries are dropped first when room is needed; after that the
    oldest insertion is evicted. Staleness within the TTL is acceptable.
    """

    def __init__(self, max_entries: int = 50) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: dict[str, _Entry] = {}

    def get(self, key: str) -> object | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(_now()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        now = _now()
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries:
            self._purge_expired(now)
        while len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]
        self._entries[key] = _Entry(
            value=value, expires_at=now + timedelta(seconds=ttl_seconds)
        )

    def _purge_expired(self, now: datetime) -> None:
        for key in [k for k, entry in self._entries.items() if entry.expired(now)]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


def _now() -> datetime:
    return datetime.now(tz=UTC)
