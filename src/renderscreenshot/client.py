"""Python client for the RenderScreenshot API."""

from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from .cache import CacheManager
from .config import ClientConfig
from .errors import ErrorCode, RenderScreenshotError
from .http import HttpClient
from .signing import Expiry, build_signed_url

SCREENSHOT_PATH = "/v1/screenshot"
BATCH_PATH = "/v1/batch"


class Client:
    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._config = config
        self._http = HttpClient(config, transport=transport, cancel_event=cancel_event)
        self._cache: Optional[CacheManager] = None
        self._cache_lock = threading.Lock()

    @classmethod
    def from_api_key(cls, api_key: str, **options: Any) -> "Client":
        transport = options.pop("transport", None)
        cancel_event = options.pop("cancel_event", None)
        return cls(ClientConfig(api_key=api_key, **options), transport=transport, cancel_event=cancel_event)

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def cache(self) -> CacheManager:
        if self._cache is None:
            with self._cache_lock:
                if self._cache is None:
                    self._cache = CacheManager(self._http)
        return self._cache

    def take(self, params: Mapping[str, Any]) -> bytes:
        """Capture a screenshot and return the raw image or PDF bytes."""
        return self._http.post_binary(SCREENSHOT_PATH, dict(params)).content

    def take_json(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Capture a screenshot and return the JSON metadata response."""
        return self._http.post(SCREENSHOT_PATH, dict(params), headers={"Accept": "application/json"})

    def generate_url(
        self,
        params: Mapping[str, str],
        expires_at: Expiry,
        signing_key: Optional[str] = None,
        public_key_id: Optional[str] = None,
    ) -> str:
        """Build a signed screenshot URL usable without the API key.

        ``params`` is the flat mapping of screenshot options, with values
        already in their wire form as strings (``"true"``, ``"1.5"``); other
        value types raise ``TypeError``.
        Explicit credentials take precedence over the configured ones.
        """
        secret = signing_key or self._config.signing_key
        key_id = public_key_id or self._config.public_key_id
        if not secret or not key_id:
            raise RenderScreenshotError(
                "Signed URLs require signing_key (rs_secret_*) and public_key_id (rs_pub_*). "
                "Pass them to ClientConfig or to generate_url directly.",
                http_status=400,
                code=ErrorCode.INVALID_REQUEST,
            )
        return build_signed_url(
            self._http.base_url,
            SCREENSHOT_PATH,
            params,
            secret=secret,
            key_id=key_id,
            expires=expires_at,
        )

    def batch(self, urls: Iterable[str], options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"urls": list(urls)}
        if options is not None:
            body["options"] = dict(options)
        return self._http.post(BATCH_PATH, body)

    def batch_advanced(self, requests: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        """Submit a batch with per-URL options.

        Each request is ``{"url": ..., "options": {...}}``; options are merged
        into the entry but never replace its ``url``.
        """
        formatted: List[Dict[str, Any]] = []
        for request in requests:
            entry: Dict[str, Any] = {"url": request["url"]}
            for key, value in (request.get("options") or {}).items():
                if key != "url":
                    entry[key] = value
            formatted.append(entry)
        return self._http.post(BATCH_PATH, {"requests": formatted})

    def get_batch(self, batch_id: str) -> Dict[str, Any]:
        return self._http.get(f"{BATCH_PATH}/{batch_id}")

    def presets(self) -> List[Dict[str, Any]]:
        return _list_field(self._http.get("/v1/presets"), "presets")

    def preset(self, preset_id: str) -> Dict[str, Any]:
        return self._http.get(f"/v1/presets/{preset_id}")

    def devices(self) -> List[Dict[str, Any]]:
        return _list_field(self._http.get("/v1/devices"), "devices")

    def usage(self) -> Dict[str, Any]:
        return self._http.get("/v1/usage")

    def close(self) -> None:
        self._http.close()


def _list_field(result: Mapping[str, Any], name: str) -> List[Dict[str, Any]]:
    items = result.get(name)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


__all__ = ["Client"]
