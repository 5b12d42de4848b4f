import time
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """
    Small in-memory cache with per-entry expiry.
    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_sec: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = float(ttl_sec)
        self._clock = clock
        self._data: Dict[Hashable, Tuple[float, V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        hit = self._data.get(key)
        if hit is None:
            return None
        expires_at, value = hit
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    def put(self, key: Hashable, value: V) -> None:
        self._data[key] = (self._clock() + self._ttl, value)

    def invalidate(self, key: Hashable) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[V]]) -> V:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await fetch()
        self.put(key, value)
        return value
