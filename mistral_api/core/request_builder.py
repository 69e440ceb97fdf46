"""Payload classification and serialization for outgoing requests.

Architectural role:
    Decides how caller options travel to the API (JSON body, multipart body or
    query string), serializes them, and computes the request headers. The
    dispatcher only ever sees the finished `RequestPayload`.

Decision rules:
    - GET / DELETE: every option becomes a query parameter; no body and no
      `Content-Type`.
    - POST / PUT / PATCH with a `file` option naming an existing local file:
      multipart/form-data (see `create_multipart_body`).
    - POST / PUT / PATCH otherwise: one compact JSON object.
    - The reserved `_query` option is never part of a body. Its mapping is
      appended to the query string, so one call can carry both.

Headers:
    `Authorization: Bearer <key>` always. `Accept: text/event-stream` only when
    `options["stream"] is True`, else `application/json`. `Content-Type` only
    when a body is present.

Failure behavior:
    Options that have no JSON representation raise `EncodingError`. There is no
    silent empty-body fallback.
"""

import os
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from urllib3 import encode_multipart_formdata

from mistral_api.core.endpoints import BODILESS_METHODS
from mistral_api.core.errors import InvalidArgument
from mistral_api.core.url_builder import dump_json, form_value


QUERY_OPTION = "_query"
FILE_OPTION = "file"
BOUNDARY_PREFIX = "----MistralAI"

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_EVENT_STREAM = "text/event-stream"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"


@dataclass
class RequestPayload:
    """Serialized request data for one call.

    Attributes:
        headers: Final header map (auth, accept, optional content type).
        body: Encoded body, `b""` for bodiless requests.
        is_multipart: Body is multipart/form-data.
        query: Parameters the caller layer must append to the URL.
    """

    headers: Dict[str, str]
    body: bytes = b""
    is_multipart: bool = False
    query: Dict[str, Any] = field(default_factory=dict)


def generate_multipart_boundary() -> str:
    """Return a fresh boundary: fixed marker plus 16 random bytes in hex."""
    return BOUNDARY_PREFIX + secrets.token_hex(16)


def wants_stream(options: Optional[Mapping[str, Any]]) -> bool:
    """True only when the caller explicitly set `stream: true`."""
    return bool(options) and options.get("stream") is True


def is_file_upload(options: Optional[Mapping[str, Any]]) -> bool:
    """True when `options["file"]` points at an existing local file."""
    if not options:
        return False
    path = options.get(FILE_OPTION)
    if not isinstance(path, (str, os.PathLike)):
        return False
    return os.path.isfile(path)


def create_headers(
    api_key: str,
    content_type: Optional[str] = None,
    stream: bool = False,
) -> Dict[str, str]:
    """Build request headers.

    Args:
        api_key: Bearer token.
        content_type: Body content type, or `None` when there is no body.
        stream: Ask for `text/event-stream` instead of JSON.
    """
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Accept": CONTENT_TYPE_EVENT_STREAM if stream else CONTENT_TYPE_JSON,
    }
    if content_type:
        headers["Content-Type"] = content_type
    return headers


def create_json_body(params: Mapping[str, Any]) -> bytes:
    """Encode options as one compact JSON object.

    Raises:
        EncodingError: A value has no JSON representation (objects, NaN,
            circular references).
    """
    if not params:
        return b""
    return dump_json(dict(params)).encode("utf-8")


def create_multipart_body(params: Mapping[str, Any], boundary: str) -> bytes:
    """Encode options as multipart/form-data.

    The `file` part carries the local file's bytes with its base name as
    `filename` and an octet-stream content type. Every other option is a plain
    form field; booleans are written as `true`/`false`, lists and dicts as
    JSON text, `None` values are skipped. Any other value type raises
    `EncodingError`.
    """
    fields = []
    for name, value in params.items():
        if value is None:
            continue
        if name == FILE_OPTION and is_file_upload(params):
            with open(value, "rb") as handle:
                data = handle.read()
            fields.append((name, (os.path.basename(value), data, CONTENT_TYPE_OCTET_STREAM)))
        else:
            fields.append((name, form_value(value)))

    body, _ = encode_multipart_formdata(fields, boundary=boundary)
    return body


def split_query(options: Mapping[str, Any]) -> tuple:
    """Separate the reserved `_query` mapping from the remaining options.

    Returns:
        `(options_without_query, query_mapping)`.
    """
    remaining = dict(options or {})
    query = remaining.pop(QUERY_OPTION, None) or {}
    if not isinstance(query, Mapping):
        raise InvalidArgument(f'Option "{QUERY_OPTION}" must be a mapping of query parameters.')
    return remaining, dict(query)


def build_request(
    method: str,
    options: Optional[Mapping[str, Any]],
    api_key: str,
) -> RequestPayload:
    """Classify and serialize options for one HTTP method.

    Args:
        method: Upper-case HTTP method from the endpoint spec.
        options: Caller options (may include `_query`).
        api_key: Bearer token for the `Authorization` header.

    Returns:
        `RequestPayload` with headers, body and the query mapping.
    """
    stream = wants_stream(options)
    remaining, query = split_query(options)

    if method.upper() in BODILESS_METHODS:
        merged = dict(remaining)
        merged.update(query)
        return RequestPayload(
            headers=create_headers(api_key, stream=stream),
            query=merged,
        )

    if is_file_upload(remaining):
        boundary = generate_multipart_boundary()
        body = create_multipart_body(remaining, boundary)
        return RequestPayload(
            headers=create_headers(
                api_key,
                content_type=f"multipart/form-data; boundary={boundary}",
                stream=stream,
            ),
            body=body,
            is_multipart=True,
            query=query,
        )

    body = create_json_body(remaining)
    return RequestPayload(
        headers=create_headers(api_key, content_type=CONTENT_TYPE_JSON if body else None, stream=stream),
        body=body,
        query=query,
    )
