"""Shared fixtures: test settings, a fake upstream and an HTTP client."""

import base64
import json

import pytest
import requests
from fastapi.testclient import TestClient

import main
from config import Settings
from main import app, get_settings
from ratelimit import RateLimiter

API_KEY = "test-rapidapi-key-0123456789"

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 32 + b"\xff\xd9"


def make_response(status_code=200, json_body=None, content=b"", reason="OK"):
    """Build a real ``requests.Response`` without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    if json_body is not None:
        content = json.dumps(json_body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    response._content = content
    response.encoding = "utf-8"
    return response


class FakeUpstream:
    """Stands in for ``requests.post`` / ``requests.get`` and records every call."""

    def __init__(self):
        self.calls = []
        self._post = None
        self._get = None

    def on_post(self, outcome):
        self._post = outcome

    def on_get(self, outcome):
        self._get = outcome

    def _answer(self, outcome, url, kwargs):
        if outcome is None:
            raise AssertionError(f"unexpected upstream call to {url}")
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(url, **kwargs)
        return outcome

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        return self._answer(self._post, url, kwargs)

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self._answer(self._get, url, kwargs)


@pytest.fixture(autouse=True)
def fresh_rate_limiter(monkeypatch):
    limiter = RateLimiter(max_requests=50, window_seconds=900)
    monkeypatch.setattr(main, "rate_limiter", limiter)
    return limiter


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(requests, "post", fake.post)
    monkeypatch.setattr(requests, "get", fake.get)
    return fake


@pytest.fixture
def test_settings():
    return Settings(rapidapi_key=API_KEY)


@pytest.fixture
def client(test_settings):
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client_without_key():
    app.dependency_overrides[get_settings] = lambda: Settings(rapidapi_key=None)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def png_upload():
    return {"file": ("photo.png", PNG_BYTES, "image/png")}


@pytest.fixture
def removal_payload():
    return {"results": [{"entities": [{"image": base64.b64encode(PNG_BYTES).decode("ascii")}]}]}
