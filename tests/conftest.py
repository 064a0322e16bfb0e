import base64
from typing import Any, Dict, Optional

import pytest

from core.config import reset_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for name in ("MAX_BODY_BYTES", "LOG_LEVEL", "CORS_ALLOW_ORIGIN"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def make_event():
    """Build an API Gateway HTTP API (v2) proxy event."""

    def _make(
        body: Optional[Any] = None,
        *,
        method: str = "POST",
        path: str = "/handle",
        route_key: Optional[str] = None,
        base64_encoded: bool = False,
    ) -> Dict[str, Any]:
        if isinstance(body, str):
            body = body.encode("utf-8")
        if body is not None:
            body = base64.b64encode(body).decode("ascii") if base64_encoded else body.decode("utf-8")

        return {
            "version": "2.0",
            "routeKey": route_key or f"{method} {path}",
            "rawPath": path,
            "requestContext": {
                "http": {"method": method, "path": path},
                "routeKey": route_key or f"{method} {path}",
            },
            "body": body,
            "isBase64Encoded": base64_encoded,
        }

    return _make
