"""Typed API errors and HTTP outcome classification."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Union


class ErrorCode(str, Enum):
    INVALID_URL = "invalid_url"
    INVALID_REQUEST = "invalid_request"
    MISSING_REQUIRED = "missing_required"
    UNAUTHORIZED = "unauthorized"
    INVALID_API_KEY = "invalid_api_key"
    EXPIRED_SIGNATURE = "expired_signature"
    FORBIDDEN = "forbidden"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    RENDER_FAILED = "render_failed"
    INTERNAL_ERROR = "internal_error"
    CONNECTION_ERROR = "connection_error"

    def __str__(self) -> str:
        return self.value


RETRYABLE_CODES = frozenset(
    {
        ErrorCode.RATE_LIMITED,
        ErrorCode.TIMEOUT,
        ErrorCode.RENDER_FAILED,
        ErrorCode.INTERNAL_ERROR,
        ErrorCode.CONNECTION_ERROR,
    }
)

_STATUS_CODES = {
    400: ErrorCode.INVALID_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    408: ErrorCode.TIMEOUT,
    422: ErrorCode.INVALID_REQUEST,
    429: ErrorCode.RATE_LIMITED,
}

Code = Union[ErrorCode, str]

# Retry-After values outside a signed 64-bit integer are unusable.
MAX_RETRY_AFTER = 2**63 - 1
MAX_RETRY_AFTER_DIGITS = len(str(MAX_RETRY_AFTER))


def _coerce_code(code: Optional[Code]) -> Optional[Code]:
    if not code:
        return None
    try:
        return ErrorCode(code)
    except ValueError:
        # Codes the server adds later are kept as plain strings.
        return str(code)


class RenderScreenshotError(Exception):
    """The single error type raised for every failed API interaction.

    ``http_status`` is 0 when the request never reached the server and
    ``retry_after`` is 0 when the server gave no ``Retry-After`` hint.
    Attributes are read-only.
    """

    def __init__(
        self,
        message: str,
        *,
        http_status: int = 0,
        code: Optional[Code] = None,
        request_id: Optional[str] = None,
        retry_after: int = 0,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._http_status = http_status
        self._code = _coerce_code(code)
        self._request_id = request_id or None
        self._retry_after = retry_after

    @property
    def message(self) -> str:
        return self._message

    @property
    def http_status(self) -> int:
        return self._http_status

    @property
    def code(self) -> Optional[Code]:
        return self._code

    @property
    def request_id(self) -> Optional[str]:
        return self._request_id

    @property
    def retry_after(self) -> int:
        return self._retry_after

    @property
    def is_retryable(self) -> bool:
        if self._code in RETRYABLE_CODES:
            return True
        return 500 <= self._http_status < 600

    def __str__(self) -> str:
        if self._request_id:
            return (
                f"{self._message} (status={self._http_status}, code={self._code}, "
                f"request_id={self._request_id})"
            )
        if self._http_status:
            return f"{self._message} (status={self._http_status}, code={self._code})"
        return f"{self._message} (code={self._code})"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self._message!r}, http_status={self._http_status}, "
            f"code={self._code!r}, request_id={self._request_id!r}, retry_after={self._retry_after})"
        )


def parse_retry_after(value: Optional[str]) -> int:
    """Parse a ``Retry-After`` header as whole seconds, 0 when unusable."""
    if not value or not value.isascii() or not value.isdigit():
        return 0
    if len(value) > MAX_RETRY_AFTER_DIGITS:
        return 0
    seconds = int(value)
    if seconds > MAX_RETRY_AFTER:
        return 0
    return seconds


def error_from_response(
    http_status: int,
    body: Optional[Mapping[str, Any]],
    retry_after: int = 0,
    request_id: Optional[str] = None,
) -> RenderScreenshotError:
    """Build a :class:`RenderScreenshotError` from an HTTP error response.

    The body's ``error`` object supplies message and code when present.
    The request id comes from the header first, then ``error.request_id``,
    then a top-level ``request_id``. A missing code is inferred from the
    status; statuses without a mapping leave it unset.
    """
    body = body or {}
    message = f"HTTP {http_status} error"
    code: Optional[str] = None

    error_obj = body.get("error")
    if isinstance(error_obj, Mapping):
        if isinstance(error_obj.get("message"), str):
            message = error_obj["message"]
        if isinstance(error_obj.get("code"), str):
            code = error_obj["code"]
        if not request_id and isinstance(error_obj.get("request_id"), str):
            request_id = error_obj["request_id"]

    if not request_id and isinstance(body.get("request_id"), str):
        request_id = body["request_id"]

    if not code:
        if http_status >= 500:
            code = ErrorCode.INTERNAL_ERROR
        else:
            code = _STATUS_CODES.get(http_status)

    return RenderScreenshotError(
        message,
        http_status=http_status,
        code=code,
        request_id=request_id,
        retry_after=retry_after,
    )


def is_not_found(exc: BaseException) -> bool:
    if not isinstance(exc, RenderScreenshotError):
        return False
    return exc.http_status == 404 or exc.code == ErrorCode.NOT_FOUND


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, RenderScreenshotError) and exc.is_retryable


def is_rate_limited(exc: BaseException) -> bool:
    if not isinstance(exc, RenderScreenshotError):
        return False
    return exc.code == ErrorCode.RATE_LIMITED or exc.http_status == 429


def is_authentication(exc: BaseException) -> bool:
    return isinstance(exc, RenderScreenshotError) and exc.http_status == 401


def is_validation(exc: BaseException) -> bool:
    if not isinstance(exc, RenderScreenshotError):
        return False
    if exc.http_status == 400:
        return True
    return exc.http_status == 422 and exc.code != ErrorCode.RENDER_FAILED


__all__ = [
    "ErrorCode",
    "RETRYABLE_CODES",
    "RenderScreenshotError",
    "error_from_response",
    "is_authentication",
    "is_not_found",
    "is_rate_limited",
    "is_retryable",
    "is_validation",
    "parse_retry_after",
]
