from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from typing import Awaitable, Callable, Optional, Union

from .cache import SingleFlight, TTLCache, make_cache_key
from .common import REQUEST_ID
from .encoding import normalize
from .errors import ArchiveError, FetchError, NoMatchError
from .extract import open_archive
from .fetch import TitrariFetcher
from .matching import SelectionCriteria, require_member
from .settings import Settings, settings as default_settings
from .sniff import sniff

log = logging.getLogger("ro_subtitles.service")

FetchRaw = Callable[[str], Awaitable[bytes]]
Number = Union[int, str, None]


def extract_text(data: bytes, criteria: Optional[SelectionCriteria] = None) -> str:
    """Run sniff → list → match → extract → normalize over one payload.

    Raises ArchiveOpenError, ExtractionError or NoMatchError.
    """
    kind = sniff(data)
    with open_archive(data, kind) as archive:
        entries = archive.list()
        if not entries:
            # last resort: any member at all beats nothing
            entries = archive.list_all()[:1]
            if entries:
                log.info("extract_text: no .srt/.sub in %s archive, trying %s", kind.value, entries[0].name)
        member = require_member(entries, criteria)
        log.debug("extract_text: kind=%s member=%s", kind.value, member.name)
        payload = archive.extract(member)
    return normalize(payload)


class SubtitleResolver:
    """Resolve a subtitle id (optionally narrowed to an episode) into text.

    Failures of any kind are logged and reported as ``None``; only successful
    results are cached.
    """

    def __init__(
        self,
        fetch_raw: FetchRaw,
        cache: Optional[TTLCache] = None,
        single_flight: Optional[SingleFlight] = None,
    ) -> None:
        self._fetch_raw = fetch_raw
        self.cache = cache if cache is not None else TTLCache(default_ttl=None)
        self._single_flight = single_flight

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, fetch_raw: Optional[FetchRaw] = None) -> "SubtitleResolver":
        config = config or default_settings
        return cls(
            fetch_raw or TitrariFetcher(config),
            cache=TTLCache(default_ttl=config.cache_ttl, max_size=config.cache_max_size),
            single_flight=SingleFlight() if config.single_flight else None,
        )

    async def resolve(self, subtitle_id: str, season: Number = None, episode: Number = None) -> Optional[str]:
        key = make_cache_key(subtitle_id, season, episode)
        cached = self.cache.get(key)
        if cached is not None:
            log.debug("resolve: cache hit %s", key)
            return cached

        token = REQUEST_ID.set(uuid.uuid4().hex[:8])
        try:
            criteria = SelectionCriteria.from_optional(season, episode)
            if self._single_flight is None:
                return await self._compute(key, str(subtitle_id), criteria)
            return await self._single_flight.run(
                key,
                lambda: self.cache.get(key),
                lambda: self._compute(key, str(subtitle_id), criteria),
            )
        finally:
            REQUEST_ID.reset(token)

    async def _compute(self, key: str, subtitle_id: str, criteria: Optional[SelectionCriteria]) -> Optional[str]:
        t0 = time.time()
        try:
            data = await self._fetch_raw(subtitle_id)
        except FetchError as exc:
            log.warning("resolve %s: fetch failed: %s", key, exc)
            return None
        except Exception:  # noqa: BLE001
            log.exception("resolve %s: fetch collaborator crashed", key)
            return None

        try:
            text = await asyncio.to_thread(extract_text, data, criteria)
        except NoMatchError as exc:
            log.warning("resolve %s: %s", key, exc)
            return None
        except ArchiveError as exc:
            log.warning("resolve %s: %s: %s", key, type(exc).__name__, exc)
            return None
        except Exception:  # noqa: BLE001
            log.exception("resolve %s: unexpected extraction failure", key)
            return None

        if not text.strip():
            log.warning("resolve %s: empty subtitle text", key)
            return None

        stored = self.cache.put(key, text)
        log.info(
            "[metrics] resolve key=%s chars=%d duration_ms=%.0f",
            key,
            len(stored),
            (time.time() - t0) * 1000,
        )
        return stored


_DEFAULT_RESOLVER: Optional[SubtitleResolver] = None
_DEFAULT_RESOLVER_LOCK = threading.Lock()


def get_resolver() -> SubtitleResolver:
    global _DEFAULT_RESOLVER
    resolver = _DEFAULT_RESOLVER
    if resolver is not None:
        return resolver
    with _DEFAULT_RESOLVER_LOCK:
        if _DEFAULT_RESOLVER is None:
            _DEFAULT_RESOLVER = SubtitleResolver.from_settings()
        return _DEFAULT_RESOLVER


async def resolve_subtitle(subtitle_id: str, season: Number = None, episode: Number = None) -> Optional[str]:
    """Module-level convenience over a settings-built resolver."""
    return await get_resolver().resolve(subtitle_id, season, episode)


__all__ = ["SubtitleResolver", "extract_text", "get_resolver", "resolve_subtitle"]
