from __future__ import annotations

import logging
from typing import Any, Dict

from core.config import get_settings
from core.logging import configure_logging
from core.response import json_response, not_found, server_error
from routes.broker import broker, handle_submission, preflight


configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)


def _route_key(event: Dict[str, Any]) -> str:
    request_ctx = event.get("requestContext", {})
    http = request_ctx.get("http", {})

    route_key = request_ctx.get("routeKey") or event.get("routeKey")
    if route_key and route_key != "$default":
        return route_key

    # Fallback for the $default route and REST API (v1) payloads
    method = http.get("method") or event.get("httpMethod") or ""
    path = event.get("rawPath") or http.get("path") or event.get("path") or "/"
    return f"{method.upper()} {path.rstrip('/') or '/'}"


def handler(event: Dict[str, Any], context: Any):
    route_key = _route_key(event)
    logger.debug("Dispatching %s", route_key)

    try:
        if route_key == "GET /health":
            return json_response({"ok": True, "message": "Backend alive"})

        if route_key == "POST /":
            return broker(event)

        if route_key == "POST /handle":
            return handle_submission(event)

        if route_key.startswith("OPTIONS "):
            return preflight(event)
    except Exception:
        logger.exception("Unhandled error for %s", route_key)
        return server_error()

    logger.info("Route not matched: %s", route_key)
    return not_found("Route not matched")
