"""Cache management operations for stored screenshots."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from .errors import RenderScreenshotError, is_not_found
from .http import HttpClient

PURGE_PATH = "/v1/cache/purge"


class CacheManager:
    def __init__(self, http: HttpClient) -> None:
        self._http = http

    def get(self, key: str) -> Optional[bytes]:
        """Return the cached screenshot for ``key``, or None if it is not cached."""
        try:
            response = self._http.get_binary(f"/v1/cache/{key}")
        except RenderScreenshotError as exc:
            if is_not_found(exc):
                return None
            raise
        return response.content

    def delete(self, key: str) -> bool:
        """Delete one cache entry; False means there was nothing to delete."""
        try:
            self._http.delete(f"/v1/cache/{key}")
        except RenderScreenshotError as exc:
            if is_not_found(exc):
                return False
            raise
        return True

    def purge(self, keys: Iterable[str]) -> Dict[str, Any]:
        return self._http.post(PURGE_PATH, {"keys": list(keys)})

    def purge_url(self, pattern: str) -> Dict[str, Any]:
        """Purge entries whose source URL matches a glob pattern."""
        return self._http.post(PURGE_PATH, {"url": pattern})

    def purge_before(self, before: datetime) -> Dict[str, Any]:
        if before.tzinfo is None:
            before = before.replace(tzinfo=timezone.utc)
        stamp = before.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return self._http.post(PURGE_PATH, {"before": stamp})

    def purge_pattern(self, pattern: str) -> Dict[str, Any]:
        """Purge entries whose storage path matches ``pattern``."""
        return self._http.post(PURGE_PATH, {"pattern": pattern})


__all__ = ["CacheManager", "PURGE_PATH"]
