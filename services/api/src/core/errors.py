"""Error taxonomy for the JSON transport helpers.

Client-input faults (`RequestBodyError` and its subclasses) carry the HTTP
status a handler should answer with. Everything else is a programming or
serialization fault and is fatal for the response being built.
"""

from __future__ import annotations


class JSONTransportError(Exception):
    """Base class for every error raised by the transport helpers."""


class SerializationError(JSONTransportError):
    """The value handed to `write_json` cannot be represented as JSON."""


class ResponseAlreadyWrittenError(JSONTransportError):
    """A second write was attempted on the same response sink."""


class ResponseNotWrittenError(JSONTransportError):
    """The response sink was rendered before anything was written to it."""


class RequestBodyError(JSONTransportError):
    status: int = 400


class PayloadTooLargeError(RequestBodyError):
    status = 413


class MalformedJSONError(RequestBodyError):
    status = 400


class MultipleValuesError(RequestBodyError):
    status = 400
