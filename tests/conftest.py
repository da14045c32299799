import os

import pytest

# Config is read at import time, so the environment is prepared up front
os.environ["UPSTREAM_WEBHOOK_URL"] = "https://hooks.test/webhook/lead"
os.environ["ALLOWED_ORIGINS"] = "https://form.test"
os.environ["TURNSTILE_SECRET_KEY"] = ""
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "20"
os.environ["RATE_LIMIT_WINDOW_SECONDS"] = "60"

from fastapi.testclient import TestClient  # noqa: E402

from lead_proxy import config  # noqa: E402
from lead_proxy.core import kv_store, rate_limit  # noqa: E402
from lead_proxy.main import app  # noqa: E402

UPSTREAM_URL = "https://hooks.test/webhook/lead"
SITEVERIFY_URL = "https://turnstile.test/siteverify"
ALLOWED_ORIGIN = "https://form.test"


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return kv_store.InMemoryStore(clock=clock)


@pytest.fixture(autouse=True)
def gateway_config(monkeypatch):
    """Known configuration and fresh rate-limit state for every test."""
    monkeypatch.setattr(config, "UPSTREAM_WEBHOOK_URL", UPSTREAM_URL)
    monkeypatch.setattr(config, "ALLOWED_ORIGINS", ALLOWED_ORIGIN)
    monkeypatch.setattr(config, "STRICT_ORIGINS", False)
    monkeypatch.setattr(config, "TURNSTILE_SECRET", None)
    monkeypatch.setattr(config, "TURNSTILE_VERIFY_URL", SITEVERIFY_URL)
    monkeypatch.setattr(config, "HONEYPOT_FIELD", "website")
    monkeypatch.setattr(config, "TURNSTILE_TOKEN_FIELD", "turnstile_token")
    monkeypatch.setattr(config, "RATE_LIMIT_MAX_REQUESTS", 20)
    monkeypatch.setattr(config, "RATE_LIMIT_WINDOW_SECONDS", 60)
    monkeypatch.setattr(config, "TRUST_FORWARDED_FOR", False)

    kv_store.reset_store(kv_store.InMemoryStore())
    monkeypatch.setattr(rate_limit, "_rate_limiter", None)
    yield config
    kv_store.reset_store(None)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def form_headers():
    return {
        "Origin": ALLOWED_ORIGIN,
        "CF-Connecting-IP": "203.0.113.7",
        "User-Agent": "pytest-browser/1.0",
        "Referer": "https://form.test/contact",
    }
