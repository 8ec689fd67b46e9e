"""HMAC-SHA256 signing for URL-embedded screenshot requests.

The signature covers a canonical query string: keys sorted
lexicographically, values form-encoded, pairs joined with ``&``. Any
mapping with the same key/value pairs therefore signs identically,
which is what lets the server verify the URL independently.
"""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Mapping, Union
from urllib.parse import quote_plus

Expiry = Union[datetime, int]


def canonical_query(params: Mapping[str, str]) -> str:
    """Sort and form-encode ``params``; values must already be strings."""
    for key, value in params.items():
        if not isinstance(value, str):
            raise TypeError(f"signed parameter {key!r} must be a str, got {type(value).__name__}")
    return "&".join(f"{key}={quote_plus(params[key])}" for key in sorted(params))


def sign(canonical: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha256)
    return digest.hexdigest()


def expiry_timestamp(expires: Expiry) -> int:
    if isinstance(expires, datetime):
        # Naive datetimes are UTC.
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return int(expires.timestamp())
    return int(expires)


def build_signed_url(
    base_url: str,
    path: str,
    params: Mapping[str, str],
    *,
    secret: str,
    key_id: str,
    expires: Expiry,
) -> str:
    """Return ``base_url + path`` with a signed, canonical query string.

    ``expires`` and ``key_id`` are added to ``params`` before signing and
    override any values of the same name already present.
    """
    signed = dict(params)
    signed["expires"] = str(expiry_timestamp(expires))
    signed["key_id"] = key_id
    query = canonical_query(signed)
    return f"{base_url}{path}?{query}&signature={sign(query, secret)}"


__all__ = ["build_signed_url", "canonical_query", "expiry_timestamp", "sign"]
