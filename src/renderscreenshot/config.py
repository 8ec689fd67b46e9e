"""Configuration objects for the RenderScreenshot Python SDK."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import ErrorCode, RenderScreenshotError
from .version import __version__

DEFAULT_BASE_URL = "https://api.renderscreenshot.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 30.0
USER_AGENT = f"renderscreenshot-python/{__version__}"


@dataclass(frozen=True)
class ClientConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = 0
    retry_delay: float = DEFAULT_RETRY_DELAY
    signing_key: Optional[str] = None
    public_key_id: Optional[str] = None
    user_agent: str = USER_AGENT
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.api_key:
            raise RenderScreenshotError(
                "Invalid or missing API key",
                http_status=401,
                code=ErrorCode.UNAUTHORIZED,
            )
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries must be zero or greater")
        if self.retry_delay <= 0:
            raise ValueError("retry_delay must be positive")
        object.__setattr__(self, "base_url", (self.base_url or DEFAULT_BASE_URL).rstrip("/"))

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        values = {
            "api_key": os.environ.get("RENDERSCREENSHOT_API_KEY", ""),
            "base_url": os.environ.get("RENDERSCREENSHOT_BASE_URL", DEFAULT_BASE_URL),
            "timeout": float(os.environ.get("RENDERSCREENSHOT_TIMEOUT", DEFAULT_TIMEOUT)),
            "max_retries": int(os.environ.get("RENDERSCREENSHOT_MAX_RETRIES", "0")),
            "retry_delay": float(os.environ.get("RENDERSCREENSHOT_RETRY_DELAY", DEFAULT_RETRY_DELAY)),
            "signing_key": os.environ.get("RENDERSCREENSHOT_SIGNING_KEY") or None,
            "public_key_id": os.environ.get("RENDERSCREENSHOT_PUBLIC_KEY_ID") or None,
        }
        values.update(overrides)
        return cls(**values)


__all__ = [
    "ClientConfig",
    "DEFAULT_BASE_URL",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT",
    "MAX_RETRY_DELAY",
    "USER_AGENT",
]
