"""RenderScreenshot Python SDK."""

from .cache import CacheManager
from .client import Client
from .config import ClientConfig
from .errors import (
    ErrorCode,
    RenderScreenshotError,
    is_authentication,
    is_not_found,
    is_rate_limited,
    is_retryable,
    is_validation,
)
from .http import BinaryResponse, HttpClient
from .version import __version__
from .webhook import WebhookEvent, WebhookHeaders, extract_webhook_headers, parse_webhook, verify_webhook

__all__ = [
    "BinaryResponse",
    "CacheManager",
    "Client",
    "ClientConfig",
    "ErrorCode",
    "HttpClient",
    "RenderScreenshotError",
    "WebhookEvent",
    "WebhookHeaders",
    "__version__",
    "extract_webhook_headers",
    "is_authentication",
    "is_not_found",
    "is_rate_limited",
    "is_retryable",
    "is_validation",
    "parse_webhook",
    "verify_webhook",
]
