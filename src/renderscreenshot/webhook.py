"""Webhook signature verification and payload parsing.

Signatures are ``sha256=<hex>`` where the hex digest is the HMAC-SHA256
of ``"<timestamp>.<payload>"`` keyed with the webhook secret. Timestamps
outside the tolerance window (in either direction) are rejected to
bound replay exposure. Call :func:`verify_webhook` before trusting the
``data`` of a :func:`parse_webhook` result.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field

from .errors import ErrorCode, RenderScreenshotError

logger = logging.getLogger("renderscreenshot.webhook")

SIGNATURE_HEADER = "X-Webhook-Signature"
TIMESTAMP_HEADER = "X-Webhook-Timestamp"
ID_HEADER = "X-Webhook-ID"
DEFAULT_TOLERANCE = 300

Payload = Union[str, bytes]


class WebhookEvent(BaseModel):
    event: str = ""
    id: str = ""
    timestamp: int = 0
    data: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class WebhookHeaders:
    signature: str = ""
    timestamp: str = ""
    id: str = ""


def _as_bytes(value: Payload) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def compute_signature(payload: Payload, timestamp: str, secret: str) -> str:
    signed = _as_bytes(timestamp) + b"." + _as_bytes(payload)
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_webhook(
    payload: Payload,
    signature: str,
    timestamp: str,
    secret: str,
    tolerance: Optional[int] = DEFAULT_TOLERANCE,
) -> bool:
    """Return True if ``signature`` is valid for ``payload`` and ``timestamp``.

    Never raises: empty arguments, malformed timestamps, timestamps more
    than ``tolerance`` seconds from now and mismatched signatures all
    return False. Signatures are compared in constant time.
    """
    if not payload or not signature or not timestamp or not secret:
        return False

    tolerance = tolerance or DEFAULT_TOLERANCE
    if not _is_integer_text(timestamp):
        logger.debug("Rejecting webhook: malformed timestamp")
        return False
    ts = int(timestamp)

    age = abs(int(time.time()) - ts)
    if age > tolerance:
        logger.debug("Rejecting webhook: timestamp outside tolerance age=%ss tolerance=%ss", age, tolerance)
        return False

    expected = compute_signature(payload, timestamp, secret)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
        logger.debug("Rejecting webhook: signature mismatch")
        return False
    return True


def parse_webhook(payload: Payload) -> WebhookEvent:
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise RenderScreenshotError(
            f"Invalid webhook payload: {exc}",
            http_status=400,
            code=ErrorCode.INVALID_REQUEST,
        ) from exc
    if not isinstance(data, dict):
        raise RenderScreenshotError(
            "Invalid webhook payload: expected a JSON object",
            http_status=400,
            code=ErrorCode.INVALID_REQUEST,
        )

    event = data.get("type")
    if not isinstance(event, str):
        event = data.get("event")
    timestamp = data.get("timestamp")
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        timestamp = 0
    elif not math.isfinite(timestamp):
        timestamp = 0
    body = data.get("data")
    return WebhookEvent(
        event=event if isinstance(event, str) else "",
        id=data["id"] if isinstance(data.get("id"), str) else "",
        timestamp=int(timestamp),
        data=body if isinstance(body, dict) else {},
    )


def _is_integer_text(value: str) -> bool:
    # Plain ASCII decimal seconds, optional leading minus, within int64.
    if not isinstance(value, str):
        return False
    digits = value[1:] if value.startswith("-") else value
    return digits.isascii() and digits.isdigit() and len(digits) <= 19


def _normalize_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {key.replace("_", "-").lower(): value for key, value in headers.items()}


def extract_webhook_headers(headers: Mapping[str, str]) -> WebhookHeaders:
    """Pull signature, timestamp and id out of request headers.

    Hyphenated, lowercase and underscored spellings are all accepted.
    Missing headers come back as empty strings, which
    :func:`verify_webhook` rejects.
    """
    normalized = _normalize_headers(headers)
    return WebhookHeaders(
        signature=normalized.get(SIGNATURE_HEADER.lower(), ""),
        timestamp=normalized.get(TIMESTAMP_HEADER.lower(), ""),
        id=normalized.get(ID_HEADER.lower(), ""),
    )


__all__ = [
    "DEFAULT_TOLERANCE",
    "ID_HEADER",
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "WebhookEvent",
    "WebhookHeaders",
    "compute_signature",
    "extract_webhook_headers",
    "parse_webhook",
    "verify_webhook",
]
