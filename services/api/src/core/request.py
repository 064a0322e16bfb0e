"""Request helpers.

API Gateway hands the raw body to Lambda as `event["body"]`, base64 encoded
when `event["isBase64Encoded"]` is true. We keep the extraction logic here so
routes don't have to know the event shape.
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
import json
import math
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Set, Type, TypeVar, get_args, get_origin, get_type_hints

from pydantic import BaseModel, ConfigDict, ValidationError, create_model
from typing_extensions import is_typeddict

from core.errors import MalformedJSONError, MultipleValuesError, PayloadTooLargeError
from core.response import ResponseSink


MAX_BODY_BYTES = 1_048_576

_JSON_WHITESPACE = " \t\n\r"

# Plain dataclasses and TypedDicts inherit this from the body model they are validated in
_BODY_CONFIG = ConfigDict(extra="forbid", allow_inf_nan=False)

T = TypeVar("T")


class StrictModel(BaseModel):
    """Base for request payloads; unknown fields and non-finite floats are rejected."""

    model_config = _BODY_CONFIG


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid number literal {name}")


def _parse_finite_float(literal: str) -> float:
    value = float(literal)
    if math.isinf(value):
        raise ValueError(f"number {literal} is out of range")
    return value


_DECODER = json.JSONDecoder(parse_constant=_reject_constant, parse_float=_parse_finite_float)


def get_body_bytes(event: Dict[str, Any]) -> bytes:
    """Return the raw request body, or b"" when the event has none."""
    body = event.get("body")
    if body is None:
        return b""

    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MalformedJSONError("body is not valid base64") from exc

    if isinstance(body, bytes):
        return body
    return body.encode("utf-8")


def _loose_models(annotation: Any, seen: Set[type]) -> Iterator[type]:
    """Yield every pydantic model reachable from `annotation` that accepts extra fields."""
    nested: List[Any] = []

    if get_origin(annotation) is not None:
        nested = list(get_args(annotation))
    elif isinstance(annotation, type) and annotation not in seen:
        seen.add(annotation)
        if issubclass(annotation, BaseModel):
            if annotation.model_config.get("extra") != "forbid":
                yield annotation
            nested = [field.annotation for field in annotation.model_fields.values()]
        elif dataclasses.is_dataclass(annotation) or is_typeddict(annotation):
            nested = list(get_type_hints(annotation).values())

    for item in nested:
        yield from _loose_models(item, seen)


@lru_cache(maxsize=None)
def _body_model(target: Any) -> Type[BaseModel]:
    loose = next(_loose_models(target, set()), None)
    if loose is not None:
        raise TypeError(f"{loose.__name__} must forbid extra fields to be used in a request body")
    return create_model("RequestBody", __config__=_BODY_CONFIG, body=(target, ...))


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    # Drop the leading "body" wrapper field
    field = ".".join(str(part) for part in first["loc"][1:])

    if first["type"] == "json_invalid":
        return "body contains badly-formed JSON"
    if first["type"] in ("extra_forbidden", "unexpected_keyword_argument"):
        return f'body contains unknown field "{field}"'
    if first["type"] == "missing":
        return f'body is missing required field "{field}"'
    if field:
        return f'body contains incorrect JSON type for field "{field}"'
    return "body contains incorrect JSON type"


def _validate(target: Any, document: str) -> Any:
    model = _body_model(target)
    try:
        return model.model_validate_json('{"body":' + document + "}", strict=True).body
    except ValidationError as exc:
        raise MalformedJSONError(_describe_validation_error(exc)) from exc


def read_json(sink: ResponseSink, event: Dict[str, Any], target: Type[T], *, max_bytes: int = MAX_BODY_BYTES) -> T:
    """Decode exactly one JSON value from the request body into `target`.

    `target` is a `StrictModel` subclass or any type pydantic can validate
    (dataclasses, TypedDicts, containers). Every pydantic model reachable
    from it must forbid extra fields. The sink is only touched when the body
    is too large: its reply closes the connection.
    """
    raw = get_body_bytes(event)
    if len(raw) > max_bytes:
        sink.close_after_reply = True
        raise PayloadTooLargeError(f"body must not be larger than {max_bytes} bytes")

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedJSONError("body must be UTF-8 encoded JSON") from exc

    text = text.lstrip(_JSON_WHITESPACE)
    if not text:
        raise MalformedJSONError("body must not be empty")

    try:
        _, end = _DECODER.raw_decode(text)
    except json.JSONDecodeError as exc:
        raise MalformedJSONError(f"body contains badly-formed JSON (at character {exc.pos})") from exc
    except ValueError as exc:
        raise MalformedJSONError(f"body contains badly-formed JSON ({exc})") from exc
    except RecursionError as exc:
        raise MalformedJSONError("body contains JSON nested too deeply") from exc

    value = _validate(target, text[:end])

    if text[end:].strip(_JSON_WHITESPACE):
        raise MultipleValuesError("body must only contain a single JSON value")

    return value
