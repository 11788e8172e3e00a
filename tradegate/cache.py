"""Key/value cache collaborator.

Anything with ``get(key)`` and ``set(key, value, ttl)`` satisfies
:class:`CacheProtocol`.  Every caller also accepts ``cache=None``.
"""

import time
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheProtocol(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: int) -> None: ...


class InMemoryCache:
    """Process-local TTL cache on the monotonic clock."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        now = self._clock()
        self.purge_expired(now)
        self._entries[key] = (now + ttl, value)

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop every expired entry and return how many were removed."""
        if now is None:
            now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
