import pytest
from fastapi import HTTPException
from starlette.requests import Request

from config import settings
from main import app
from routers import rate_limit


def _request(headers=None, client=("10.0.0.1", 5000)):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()],
        "client": client,
        "app": app,
    }
    return Request(scope)


def test_callers_are_keyed_by_token_then_address():
    by_token = rate_limit._client_identifier(_request({"Authorization": "Bearer abc"}))
    assert by_token.startswith("token:")
    assert "abc" not in by_token

    forwarded = rate_limit._client_identifier(_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}))
    assert forwarded == "203.0.113.5"

    assert rate_limit._client_identifier(_request()) == "10.0.0.1"


@pytest.mark.asyncio
async def test_local_fallback_enforces_the_window(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", "redis://127.0.0.1:1/0")
    app.state.disable_rate_limits = False
    dependency = rate_limit.rate_limit("unit_test", limit=2, window_seconds=60)
    request = _request({"Authorization": "Bearer caller-one"})

    await dependency(request)
    await dependency(request)
    with pytest.raises(HTTPException) as exc_info:
        await dependency(request)

    assert exc_info.value.status_code == 429
    assert int(exc_info.value.headers["Retry-After"]) >= 1

    # A different caller has its own window.
    await dependency(_request({"Authorization": "Bearer caller-two"}))


@pytest.mark.asyncio
async def test_rate_limits_can_be_disabled(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", "redis://127.0.0.1:1/0")
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
    app.state.disable_rate_limits = False
    dependency = rate_limit.rate_limit("unit_test_disabled", limit=1, window_seconds=60)

    for _ in range(3):
        await dependency(_request())
