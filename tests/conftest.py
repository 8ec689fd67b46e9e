from __future__ import annotations

from typing import Callable, List

import httpx
import pytest

from renderscreenshot.config import ClientConfig
from renderscreenshot.http import HttpClient

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture()
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    recorded: List[float] = []
    monkeypatch.setattr("renderscreenshot.http.time.sleep", recorded.append)
    return recorded


@pytest.fixture()
def make_http() -> Callable[..., HttpClient]:
    def factory(handler: Handler, **overrides) -> HttpClient:
        cfg = ClientConfig(api_key="test_key", base_url="https://api.example.com", **overrides)
        return HttpClient(cfg, transport=httpx.MockTransport(handler))

    return factory
