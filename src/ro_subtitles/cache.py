from __future__ import annotations

import asyncio
import concurrent.futures
import threading
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

DEFAULT_TTL = 24 * 60 * 60
DEFAULT_MAX_SIZE = 1024

_MISSING = object()


def make_cache_key(
    subtitle_id: Union[int, str],
    season: Union[int, str, None] = None,
    episode: Union[int, str, None] = None,
) -> str:
    """Canonical ``srt:<id>:<season>:<episode>`` key; absent parts are empty."""

    def _part(value: Union[int, str, None]) -> str:
        if value is None:
            return ""
        text = str(value).strip()
        if text.isdigit():
            return str(int(text))
        return text

    return f"srt:{str(subtitle_id).strip()}:{_part(season)}:{_part(episode)}"


class TTLCache:
    """Small in-memory cache with optional TTL semantics.

    ``default_ttl=None`` keeps entries for the life of the process. When
    ``max_size`` is set and exceeded, expired entries are dropped first and
    then the oldest insertions.
    """

    def __init__(self, default_ttl: Optional[float] = DEFAULT_TTL, max_size: Optional[int] = DEFAULT_MAX_SIZE) -> None:
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._lock = threading.Lock()
        self._store: "OrderedDict[str, Tuple[Optional[float], Any]]" = OrderedDict()

    def _now(self) -> float:
        return time.monotonic()

    def _expiry(self, ttl: Optional[float]) -> Optional[float]:
        ttl_value = self._default_ttl if ttl is None else ttl
        if ttl_value is None:
            return None
        return self._now() + ttl_value

    def _live(self, key: str) -> Any:
        item = self._store.get(key)
        if item is None:
            return _MISSING
        expiry, value = item
        if expiry is not None and expiry < self._now():
            del self._store[key]
            return _MISSING
        return value

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._live(key)
            return None if value is _MISSING else value

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> Any:
        """Store ``value`` unless a live entry exists; return the stored value."""
        with self._lock:
            existing = self._live(key)
            if existing is not _MISSING:
                return existing
            self._store[key] = (self._expiry(ttl), value)
            self._prune()
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._store.pop(key, None)
            self._store[key] = (self._expiry(ttl), value)
            self._prune()

    def _prune(self) -> None:
        if self._max_size is None or len(self._store) <= self._max_size:
            return
        now = self._now()
        expired_keys = [k for k, (exp, _v) in self._store.items() if exp is not None and exp < now]
        for k in expired_keys:
            if len(self._store) <= self._max_size:
                break
            self._store.pop(k, None)
        while len(self._store) > self._max_size:
            self._store.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not _MISSING


class SingleFlight:
    """Share one in-flight computation per key across tasks, loops and threads.

    The first caller for a key runs ``producer``; concurrent callers await the
    same outcome, misses included, instead of repeating the work. The table
    holds ``concurrent.futures.Future`` objects so a waiter on another event
    loop (or thread) is woken when the owner settles.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._inflight: Dict[str, "concurrent.futures.Future[Any]"] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._inflight)

    async def run(self, key: str, check: Callable[[], Optional[Any]], producer: Callable[[], Awaitable[Any]]) -> Any:
        with self._lock:
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                cached = check()
                if cached is not None:
                    return cached
                future = concurrent.futures.Future()
                self._inflight[key] = future

        if not owner:
            # shield keeps a cancelled waiter from cancelling the shared future
            return await asyncio.shield(asyncio.wrap_future(future))

        try:
            value = await producer()
        except asyncio.CancelledError:
            _settle(future, result=None)
            raise
        except Exception as exc:
            _settle(future, exc=exc)
            raise
        else:
            _settle(future, result=value)
            return value
        finally:
            with self._lock:
                if self._inflight.get(key) is future:
                    del self._inflight[key]


def _settle(future: "concurrent.futures.Future[Any]", result: Any = None, exc: Optional[BaseException] = None) -> None:
    if future.done():
        return
    if exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(result)


__all__ = ["DEFAULT_MAX_SIZE", "DEFAULT_TTL", "SingleFlight", "TTLCache", "make_cache_key"]
