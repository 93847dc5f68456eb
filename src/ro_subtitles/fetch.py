from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Optional

import httpx

from .errors import FetchError
from .settings import Settings, settings as default_settings

log = logging.getLogger("ro_subtitles.fetch")


def build_headers(config: Settings) -> Dict[str, str]:
    # titrari.ro blocks requests without a browser UA and a same-site referer
    return {
        "User-Agent": config.user_agent,
        "Accept-Language": config.accept_language,
        "Referer": config.referer,
    }


class TitrariFetcher:
    """Download the raw archive for a numeric subtitle id.

    Pass ``client`` to reuse a shared ``httpx.AsyncClient``; otherwise a
    short-lived client is opened per download.
    """

    def __init__(self, config: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config or default_settings
        self._client = client

    async def __call__(self, subtitle_id: str) -> bytes:
        sub_id = str(subtitle_id).strip()
        if not sub_id.isdigit():
            raise FetchError(f"Invalid subtitle id: {subtitle_id!r}", subtitle_id=subtitle_id)

        t0 = time.time()
        try:
            data = await asyncio.wait_for(self._download(sub_id), timeout=self.config.fetch_timeout)
        except asyncio.TimeoutError as exc:
            raise FetchError(
                f"Timed out after {self.config.fetch_timeout:.0f}s", subtitle_id=sub_id
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"Upstream returned HTTP {exc.response.status_code}",
                subtitle_id=sub_id,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Upstream request failed: {exc}", subtitle_id=sub_id) from exc

        log.info(
            "[metrics] fetch id=%s bytes=%d duration_ms=%.0f",
            sub_id,
            len(data),
            (time.time() - t0) * 1000,
        )
        return data

    async def _download(self, sub_id: str) -> bytes:
        if self._client is not None:
            return await self._get(self._client, sub_id)
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.config.fetch_timeout,
            headers=build_headers(self.config),
        ) as client:
            return await self._get(client, sub_id)

    async def _get(self, client: httpx.AsyncClient, sub_id: str) -> bytes:
        response = await client.get(
            self.config.base_url,
            params={"id": sub_id},
            headers=build_headers(self.config),
            follow_redirects=True,
        )
        response.raise_for_status()
        return response.content
