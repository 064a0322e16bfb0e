"""Response helpers.

API Gateway (Lambda proxy integration) expects responses with:
- statusCode: int
- headers / multiValueHeaders: dict (REST API, v1 payload)
- cookies: list (HTTP API, v2 payload; `headers` never carries set-cookie)
- body: JSON string

Handlers build a `ResponseSink`, write to it exactly once through
`write_json` or `error_json`, then return `sink.to_proxy()`.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, model_serializer

from core.errors import ResponseAlreadyWrittenError, ResponseNotWrittenError, SerializationError


JSON_CONTENT_TYPE = "application/json"

HeaderValues = Union[str, Sequence[str]]


class ErrorEnvelope(BaseModel):
    """Fixed error payload: `{"error": true, "message": "..."}`."""

    error: Literal[True] = True
    message: str


class JSONEnvelope(BaseModel):
    """General purpose reply envelope; `data` is left out when empty."""

    error: bool = False
    message: str
    data: Any = None

    @model_serializer(mode="wrap")
    def _omit_empty_data(self, handler):
        payload = handler(self)
        if payload.get("data") is None:
            payload.pop("data", None)
        return payload


class ResponseSink:
    """Collects status, headers and body for a single proxy response.

    Header names are case-insensitive and stored lowercase. A key may carry
    several values.
    """

    def __init__(self) -> None:
        self._headers: Dict[str, List[str]] = {}
        self.status: Optional[int] = None
        self.body: Optional[str] = None
        self.close_after_reply = False

    @property
    def written(self) -> bool:
        return self.status is not None

    def add_header(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def set_header(self, key: str, value: str) -> None:
        self._headers[key.lower()] = [value]

    def header_values(self, key: str) -> List[str]:
        return list(self._headers.get(key.lower(), []))

    def _write(self, status: int, body: str) -> None:
        if self.written:
            raise ResponseAlreadyWrittenError("response has already been written")
        self.status = status
        self.body = body

    def to_proxy(self) -> Dict[str, Any]:
        """Render the Lambda proxy response dict."""
        if not self.written:
            raise ResponseNotWrittenError("response has not been written")

        multi = {key: list(values) for key, values in self._headers.items()}
        if self.close_after_reply:
            multi["connection"] = ["close"]

        return _proxy(self.status, multi, self.body)


def _proxy(status: int, multi: Dict[str, List[str]], body: str) -> Dict[str, Any]:
    response: Dict[str, Any] = {
        "statusCode": status,
        "headers": {key: ",".join(values) for key, values in multi.items() if key != "set-cookie"},
        "multiValueHeaders": multi,
        "body": body,
        "isBase64Encoded": False,
    }
    # Cookies cannot be comma-joined; HTTP API takes them as a separate list
    if "set-cookie" in multi:
        response["cookies"] = list(multi["set-cookie"])
    return response


def _normalize_headers(headers: Sequence[Mapping[str, HeaderValues]]) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for header_set in headers:
        for key, value in header_set.items():
            values = [value] if isinstance(value, str) else value
            if not isinstance(values, (list, tuple)) or not all(isinstance(item, str) for item in values):
                raise TypeError(f"header {key!r} must be a str or a list of str, got {value!r}")
            pairs.extend((key, item) for item in values)
    return pairs


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_json(data: Any) -> str:
    """Serialize `data` compactly, raising `SerializationError` on failure."""
    try:
        return json.dumps(
            data,
            default=_to_jsonable,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise SerializationError(str(exc)) from exc


def write_json(sink: ResponseSink, status: int, data: Any, *headers: Mapping[str, HeaderValues]) -> None:
    """Write `data` as the JSON body of `sink`.

    Custom headers are applied first; the content type is set last so it can
    never be overridden. The sink is left untouched when serialization fails or
    a header value is invalid.
    """
    if sink.written:
        raise ResponseAlreadyWrittenError("response has already been written")

    body = encode_json(data)
    header_pairs = _normalize_headers(headers)

    for key, value in header_pairs:
        sink.add_header(key, value)

    sink.set_header("content-type", JSON_CONTENT_TYPE)
    sink._write(status, body)


def error_json(
    sink: ResponseSink,
    err: Union[BaseException, str],
    status: int = 400,
    *headers: Mapping[str, HeaderValues],
) -> None:
    """Write the standard error envelope for `err`."""
    write_json(sink, status, ErrorEnvelope(message=str(err)), *headers)


def json_response(body: Any, status: int = 200, headers: Optional[Mapping[str, HeaderValues]] = None) -> Dict[str, Any]:
    """Return a standard JSON Lambda proxy response."""
    sink = ResponseSink()
    if headers:
        write_json(sink, status, body, headers)
    else:
        write_json(sink, status, body)
    return sink.to_proxy()


def empty_response(status: int = 204, headers: Optional[Mapping[str, HeaderValues]] = None) -> Dict[str, Any]:
    """Return a body-less proxy response (CORS preflight)."""
    multi: Dict[str, List[str]] = {}
    for key, value in _normalize_headers([headers] if headers else []):
        multi.setdefault(key.lower(), []).append(value)
    return _proxy(status, multi, "")


def _error_response(message: str, status: int) -> Dict[str, Any]:
    sink = ResponseSink()
    error_json(sink, message, status)
    return sink.to_proxy()


def bad_request(message: str) -> Dict[str, Any]:
    return _error_response(message, 400)


def not_found(message: str = "Not Found") -> Dict[str, Any]:
    return _error_response(message, 404)


def server_error(message: str = "Internal Server Error") -> Dict[str, Any]:
    return _error_response(message, 500)
