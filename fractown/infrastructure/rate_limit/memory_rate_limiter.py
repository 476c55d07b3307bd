import time
from threading import Lock
from typing import Callable, Dict, List

from ...application.ports.rate_limiter import RateLimiter


class InMemoryRateLimiter(RateLimiter):
    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval: float = 60.0) -> None:
        self._store: Dict[str, List[float]] = {}
        # key -> time after which every recorded hit is outside its window
        self._expires: Dict[str, float] = {}
        self._lock = Lock()
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = self._clock()
        window_start = now - window_seconds
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            # prune
            times = [t for t in self._store.get(key, []) if t > window_start]
            if len(times) >= max_requests:
                self._store[key] = times
                return False
            times.append(now)
            self._store[key] = times
            self._expires[key] = now + window_seconds
            return True

    def reset(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)
            self._expires.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)

    def _sweep(self, now: float) -> None:
        for key in [k for k, expires in self._expires.items() if expires <= now]:
            self._store.pop(key, None)
            del self._expires[key]
        self._next_sweep = now + self._sweep_interval
