from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest

from renderscreenshot import Client, ClientConfig
from renderscreenshot.cache import CacheManager
from renderscreenshot.errors import ErrorCode, RenderScreenshotError
from renderscreenshot.signing import canonical_query, sign


def make_client(handler, **overrides: Any) -> Client:
    cfg = ClientConfig(api_key="rs_live_test", base_url="https://api.example.com", **overrides)
    return Client(cfg, transport=httpx.MockTransport(handler))


@pytest.fixture()
def captured() -> List[httpx.Request]:
    return []


def test_take_returns_bytes(captured: List[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, content=b"\x89PNG", headers={"Content-Type": "image/png"})

    with make_client(handler) as client:
        data = client.take({"url": "https://example.com", "viewport": {"width": 1200}})

    assert data == b"\x89PNG"
    request = captured[0]
    assert request.url.path == "/v1/screenshot"
    assert request.headers["Authorization"] == "Bearer rs_live_test"
    assert json.loads(request.content) == {"url": "https://example.com", "viewport": {"width": 1200}}


def test_take_json_asks_for_json(captured: List[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"id": "scr_1", "status": "completed", "cache": {"hit": True}})

    result = make_client(handler).take_json({"url": "https://example.com"})

    assert result["id"] == "scr_1"
    assert captured[0].headers["Accept"] == "application/json"


def test_rate_limited_call_surfaces_retry_after() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "Rate limited"}}, headers={"Retry-After": "60"})

    with pytest.raises(RenderScreenshotError) as excinfo:
        make_client(handler).take({"url": "https://example.com"})

    assert excinfo.value.code == ErrorCode.RATE_LIMITED
    assert excinfo.value.retry_after == 60
    assert excinfo.value.http_status == 429


def test_generate_url_uses_configured_credentials() -> None:
    client = make_client(lambda request: httpx.Response(200), signing_key="rs_secret_x", public_key_id="rs_pub_x")
    expires = datetime(2030, 1, 1, tzinfo=timezone.utc)

    url = client.generate_url({"url": "https://example.com", "width": "1200"}, expires)

    parts = urlsplit(url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://api.example.com/v1/screenshot"
    query = dict(parse_qsl(parts.query))
    assert query["key_id"] == "rs_pub_x"
    assert query["expires"] == str(int(expires.timestamp()))
    signed_part = parts.query.rsplit("&signature=", 1)[0]
    assert signed_part == canonical_query({k: v for k, v in query.items() if k != "signature"})
    assert query["signature"] == sign(signed_part, "rs_secret_x")


def test_generate_url_explicit_credentials_override() -> None:
    client = make_client(lambda request: httpx.Response(200), signing_key="rs_secret_x", public_key_id="rs_pub_x")

    url = client.generate_url({"url": "https://example.com"}, 1900000000, signing_key="rs_secret_y", public_key_id="rs_pub_y")

    query = dict(parse_qsl(urlsplit(url).query))
    assert query["key_id"] == "rs_pub_y"
    signed_part = urlsplit(url).query.rsplit("&signature=", 1)[0]
    assert query["signature"] == sign(signed_part, "rs_secret_y")


@pytest.mark.parametrize(
    "overrides",
    [{}, {"signing_key": "rs_secret_x"}, {"public_key_id": "rs_pub_x"}],
)
def test_generate_url_requires_credentials(overrides: Dict[str, str]) -> None:
    client = make_client(lambda request: httpx.Response(200), **overrides)

    with pytest.raises(RenderScreenshotError) as excinfo:
        client.generate_url({"url": "https://example.com"}, 1900000000)

    assert excinfo.value.code == ErrorCode.INVALID_REQUEST
    assert not excinfo.value.is_retryable


def test_batch(captured: List[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"id": "batch_1", "status": "processing", "total": 2})

    result = make_client(handler).batch(["https://a.com", "https://b.com"], {"output": {"format": "png"}})

    assert result["id"] == "batch_1"
    assert captured[0].url.path == "/v1/batch"
    assert json.loads(captured[0].content) == {
        "urls": ["https://a.com", "https://b.com"],
        "options": {"output": {"format": "png"}},
    }


def test_batch_without_options(captured: List[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={})

    make_client(handler).batch(["https://a.com"])
    assert json.loads(captured[0].content) == {"urls": ["https://a.com"]}


def test_batch_advanced_never_overrides_url(captured: List[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"id": "batch_2"})

    make_client(handler).batch_advanced(
        [
            {"url": "https://a.com", "options": {"url": "https://evil.com", "viewport": {"width": 800}}},
            {"url": "https://b.com"},
        ]
    )

    assert json.loads(captured[0].content) == {
        "requests": [
            {"url": "https://a.com", "viewport": {"width": 800}},
            {"url": "https://b.com"},
        ]
    }


def test_get_batch(captured: List[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"id": "batch_1", "status": "completed", "results": []})

    assert make_client(handler).get_batch("batch_1")["status"] == "completed"
    assert captured[0].url.path == "/v1/batch/batch_1"


def test_presets_and_devices() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/presets":
            return httpx.Response(200, json={"presets": [{"id": "og_card", "width": 1200}, "junk"]})
        if request.url.path == "/v1/presets/og_card":
            return httpx.Response(200, json={"id": "og_card", "name": "OG Card"})
        if request.url.path == "/v1/devices":
            return httpx.Response(200, json={"devices": [{"id": "iphone_14_pro"}]})
        return httpx.Response(404)

    client = make_client(handler)
    assert client.presets() == [{"id": "og_card", "width": 1200}]
    assert client.preset("og_card")["name"] == "OG Card"
    assert client.devices() == [{"id": "iphone_14_pro"}]


def test_presets_missing_field_is_empty() -> None:
    assert make_client(lambda request: httpx.Response(200, json={})).presets() == []


def test_usage() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/usage"
        return httpx.Response(200, json={"credits": 1000, "used": 10, "remaining": 990})

    assert make_client(handler).usage()["remaining"] == 990


def test_cache_manager_is_created_once() -> None:
    client = make_client(lambda request: httpx.Response(200))
    managers: List[CacheManager] = []

    def grab() -> None:
        managers.append(client.cache)

    threads = [threading.Thread(target=grab) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(manager is managers[0] for manager in managers)
    assert client.cache is managers[0]


def test_from_api_key() -> None:
    client = Client.from_api_key(
        "rs_live_test",
        base_url="https://api.example.com/",
        max_retries=2,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True})),
    )
    assert client.config.base_url == "https://api.example.com"
    assert client.config.max_retries == 2
    assert client.usage() == {"ok": True}


def test_empty_api_key_rejected() -> None:
    with pytest.raises(RenderScreenshotError) as excinfo:
        Client.from_api_key("")
    assert excinfo.value.code == ErrorCode.UNAUTHORIZED
    assert excinfo.value.http_status == 401
