"""HTTP transport with error classification and retry/backoff."""

from __future__ import annotations

import json
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from .config import MAX_RETRY_DELAY, ClientConfig
from .errors import ErrorCode, RenderScreenshotError, error_from_response, parse_retry_after

logger = logging.getLogger("renderscreenshot.http")

Params = Optional[Mapping[str, str]]
Headers = Optional[Mapping[str, str]]


@dataclass(frozen=True)
class BinaryResponse:
    content: bytes
    headers: httpx.Headers


class HttpClient:
    """Executes API calls against the RenderScreenshot service.

    Failed calls raise :class:`RenderScreenshotError`. Retryable failures
    are retried up to ``config.max_retries`` times, sequentially, with
    exponential backoff and jitter unless the server sent ``Retry-After``.
    Setting ``cancel_event`` interrupts a pending backoff wait and raises
    the last error without another attempt.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout, transport=transport)
        self._cancel_event = cancel_event

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def get(self, path: str, params: Params = None, headers: Headers = None) -> Dict[str, Any]:
        return self._request_json("GET", path, params=params, headers=headers)

    def get_binary(self, path: str, params: Params = None, headers: Headers = None) -> BinaryResponse:
        return self._request_binary("GET", path, params=params, headers=headers)

    def post(self, path: str, body: Any = None, headers: Headers = None) -> Dict[str, Any]:
        return self._request_json("POST", path, body=body, headers=headers)

    def post_binary(self, path: str, body: Any = None, headers: Headers = None) -> BinaryResponse:
        return self._request_binary("POST", path, body=body, headers=headers)

    def delete(self, path: str, params: Params = None, headers: Headers = None) -> Dict[str, Any]:
        return self._request_json("DELETE", path, params=params, headers=headers)

    def calculate_delay(self, error: RenderScreenshotError, attempt: int) -> float:
        if error.retry_after > 0:
            return float(error.retry_after)
        base = self._config.retry_delay
        delay = base * (2**attempt) + random.random() * base * 0.5
        return min(delay, MAX_RETRY_DELAY)

    def close(self) -> None:
        self._client.close()

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: Params = None,
        body: Any = None,
        headers: Headers = None,
    ) -> Dict[str, Any]:
        response = self._request(method, path, params=params, body=body, headers=headers)
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {"body": response.text}
        if not isinstance(data, dict):
            return {"body": response.text}
        return data

    def _request_binary(
        self,
        method: str,
        path: str,
        *,
        params: Params = None,
        body: Any = None,
        headers: Headers = None,
    ) -> BinaryResponse:
        response = self._request(method, path, params=params, body=body, headers=headers)
        return BinaryResponse(content=response.content, headers=response.headers)

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Params,
        body: Any,
        headers: Headers,
    ) -> httpx.Response:
        content = self._encode_body(body)
        attempt = 0
        while True:
            try:
                return self._send(method, path, params=params, content=content, headers=headers)
            except RenderScreenshotError as exc:
                if not exc.is_retryable or attempt >= self._config.max_retries:
                    logger.debug("%s %s failed after %s attempt(s): %s", method, path, attempt + 1, exc)
                    raise
                delay = self.calculate_delay(exc, attempt)
                logger.warning(
                    "%s %s failed code=%s status=%s; retry %s/%s in %.2fs",
                    method,
                    path,
                    exc.code,
                    exc.http_status,
                    attempt + 1,
                    self._config.max_retries,
                    delay,
                )
                if self._wait(delay):
                    logger.info("%s %s retry cancelled", method, path)
                    raise
                attempt += 1

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: Params,
        content: Optional[str],
        headers: Headers,
    ) -> httpx.Response:
        request_headers = self._headers(has_body=content is not None, extra=headers)
        try:
            response = self._client.request(
                method,
                path,
                params=dict(params) if params else None,
                content=content,
                headers=request_headers,
            )
        except httpx.InvalidURL as exc:
            raise RenderScreenshotError(
                f"Failed to create request: {exc}",
                code=ErrorCode.CONNECTION_ERROR,
            ) from exc
        except httpx.TimeoutException as exc:
            raise RenderScreenshotError("Request timed out", http_status=408, code=ErrorCode.TIMEOUT) from exc
        except httpx.RequestError as exc:
            raise RenderScreenshotError(
                f"Failed to connect to server: {exc}",
                code=ErrorCode.CONNECTION_ERROR,
            ) from exc

        if response.status_code >= 400:
            raise self._error_from(response)
        return response

    def _headers(self, *, has_body: bool, extra: Headers) -> httpx.Headers:
        headers = httpx.Headers(
            {
                "Authorization": f"Bearer {self._config.api_key}",
                "User-Agent": self._config.user_agent,
            }
        )
        if has_body:
            headers["Content-Type"] = "application/json"
        headers.update(self._config.headers)
        if extra:
            headers.update(extra)
        return headers

    def _wait(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds; return True if the wait was cancelled."""
        delay = min(delay, threading.TIMEOUT_MAX)
        if self._cancel_event is None:
            time.sleep(delay)
            return False
        return self._cancel_event.wait(delay)

    @staticmethod
    def _encode_body(body: Any) -> Optional[str]:
        if body is None:
            return None
        try:
            return json.dumps(body, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise RenderScreenshotError(
                f"failed to encode request body: {exc}",
                code=ErrorCode.INVALID_REQUEST,
            ) from exc

    @staticmethod
    def _error_from(response: httpx.Response) -> RenderScreenshotError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return error_from_response(
            response.status_code,
            body,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
            request_id=response.headers.get("X-Request-Id") or None,
        )


__all__ = ["BinaryResponse", "HttpClient"]
