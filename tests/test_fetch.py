import asyncio
import sys
from pathlib import Path

SRC_DIR = str((Path(__file__).resolve().parents[1] / "src").resolve())
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

import httpx  # noqa: E402
import pytest  # noqa: E402

from ro_subtitles.errors import FetchError  # noqa: E402
from ro_subtitles.fetch import TitrariFetcher, build_headers  # noqa: E402
from ro_subtitles.settings import Settings  # noqa: E402


def _fetch(handler, subtitle_id="123", **overrides):
    config = Settings(**overrides)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await TitrariFetcher(config, client=client)(subtitle_id)

    return asyncio.run(run())


def test_fetch_sends_browser_headers_and_id():
    seen = {}

    def handler(request):
        seen["url"] = request.url
        seen["headers"] = request.headers
        return httpx.Response(200, content=b"PK\x03\x04payload")

    data = _fetch(handler, "4567")
    assert data == b"PK\x03\x04payload"
    assert seen["url"].params["id"] == "4567"
    assert seen["url"].path == "/get.php"
    assert seen["headers"]["Referer"] == "https://titrari.ro/"
    assert "Mozilla/5.0" in seen["headers"]["User-Agent"]
    assert seen["headers"]["Accept-Language"].startswith("ro-RO")


def test_build_headers_follow_settings():
    headers = build_headers(Settings(referer="https://example.org/", user_agent="UA"))
    assert headers["Referer"] == "https://example.org/"
    assert headers["User-Agent"] == "UA"


def test_non_2xx_is_fetch_error():
    with pytest.raises(FetchError) as info:
        _fetch(lambda request: httpx.Response(404))
    assert info.value.context["status_code"] == 404


def test_transport_error_is_fetch_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError):
        _fetch(handler)


def test_timeout_is_fetch_error():
    async def handler(request):
        await asyncio.sleep(1.0)
        return httpx.Response(200, content=b"late")

    with pytest.raises(FetchError, match="Timed out"):
        _fetch(handler, fetch_timeout=0.05)


def test_non_numeric_id_rejected_before_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    with pytest.raises(FetchError):
        _fetch(handler, "../admin")
    assert calls == []
