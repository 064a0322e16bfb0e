from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from core.config import get_settings
from core.errors import RequestBodyError
from core.request import StrictModel, read_json
from core.response import JSONEnvelope, ResponseSink, empty_response, error_json, write_json


logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]
ALLOWED_HEADERS = ["Accept", "Authorization", "Content-Type", "X-CSRF-Token"]


class EchoPayload(StrictModel):
    message: str
    tags: List[str] = []


class RequestPayload(StrictModel):
    action: str
    echo: Optional[EchoPayload] = None


def _cors_headers() -> Dict[str, Any]:
    """CORS headers for browser clients, empty when CORS_ALLOW_ORIGIN is unset."""
    origin = get_settings().cors_allow_origin
    if not origin:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


def preflight(event: Dict[str, Any]):
    """OPTIONS * - CORS preflight, no body."""
    return empty_response(204, _cors_headers())


def broker(event: Dict[str, Any]):
    """POST / - Liveness reply in the broker envelope."""
    sink = ResponseSink()
    write_json(sink, 200, JSONEnvelope(message="Hit the broker"), _cors_headers())
    return sink.to_proxy()


def handle_submission(event: Dict[str, Any]):
    """POST /handle - Dispatch a JSON action payload.

    Supported actions:
    - ping: answers "pong"
    - echo: answers 202 with the `echo` payload as data
    """
    sink = ResponseSink()

    try:
        payload = read_json(sink, event, RequestPayload, max_bytes=get_settings().max_body_bytes)
    except RequestBodyError as exc:
        logger.info("Rejected request body: %s", exc)
        error_json(sink, exc, exc.status, _cors_headers())
        return sink.to_proxy()

    if payload.action == "ping":
        write_json(sink, 200, JSONEnvelope(message="pong"), _cors_headers())
    elif payload.action == "echo":
        if payload.echo is None:
            error_json(sink, "echo payload is required", 400, _cors_headers())
        else:
            write_json(sink, 202, JSONEnvelope(message="Echo", data=payload.echo), _cors_headers())
    else:
        error_json(sink, f"unknown action: {payload.action}", 400, _cors_headers())

    return sink.to_proxy()
