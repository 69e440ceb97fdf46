"""Absolute URL construction for registry endpoints.

Architectural role:
    Turns an `EndpointSpec` plus caller-supplied path parameters into the
    request URL: `https://{origin}/{version}{path}?{query}`.

Processing flow:
    1. Substitute every `{key}` in the path template.
    2. Prefix the version segment (`v1` unless overridden).
    3. Percent-encode query parameters (RFC 3986, insertion order preserved).
    4. Assemble with `urllib.parse.urlunsplit`.

Determinism:
    Pure functions. Identical inputs always produce identical URLs.

Failure behavior:
    - Missing placeholder value -> `MissingPathParameter`.
    - Non-scalar placeholder value -> `InvalidParameterType`.
    - Query value without a text or JSON form -> `EncodingError`.
"""

import json
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlencode, urlunsplit

from mistral_api.core.endpoints import PLACEHOLDER_PATTERN, EndpointSpec
from mistral_api.core.errors import EncodingError, InvalidParameterType, MissingPathParameter


DEFAULT_ORIGIN = "api.mistral.ai"
DEFAULT_API_VERSION = "v1"
SCHEME = "https"

# RFC 3986 `pchar` minus the characters the generic quoting already keeps.
_PATH_SAFE = ":@!$&'()*+,;="


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def stringify_scalar(value: Any) -> str:
    """Render a scalar the way it appears on the wire (`true`/`false` for booleans)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def dump_json(value: Any) -> str:
    """Compact JSON text, or `EncodingError` when `value` has no JSON form."""
    try:
        return json.dumps(value, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"JSON encode error: {exc}") from exc


def form_value(value: Any) -> str:
    """Render one query or form-field value.

    Scalars are stringified, dicts/lists/tuples become JSON text and anything
    else raises `EncodingError`.
    """
    if _is_scalar(value):
        return stringify_scalar(value)
    if isinstance(value, (dict, list, tuple)):
        return dump_json(value)
    raise EncodingError(f"JSON encode error: {type(value).__name__} value cannot be sent as text")


def replace_path_parameters(path_template: str, parameters: Optional[Mapping[str, Any]]) -> str:
    """Substitute `{key}` tokens with percent-encoded parameter values.

    Args:
        path_template: Template such as `/models/{model_id}`.
        parameters: Values keyed by placeholder name. Extra keys are ignored.

    Returns:
        Resolved path.

    Raises:
        MissingPathParameter: A placeholder has no value.
        InvalidParameterType: A value is a list/dict/None or other composite.
    """
    parameters = parameters or {}

    def substitute(match):
        key = match.group(1)
        if key not in parameters:
            raise MissingPathParameter(key)
        value = parameters[key]
        if not _is_scalar(value):
            raise InvalidParameterType(key, value)
        return quote(stringify_scalar(value), safe=_PATH_SAFE)

    return PLACEHOLDER_PATTERN.sub(substitute, path_template)


def encode_query(query: Optional[Mapping[str, Any]]) -> str:
    """Percent-encode query parameters in insertion order.

    Booleans become `true`/`false`, `None` values are dropped and sequences
    repeat the key once per item. Mappings (and mappings inside sequences)
    are sent as JSON text.

    Raises:
        EncodingError: A value has neither a scalar nor a JSON form.
    """
    if not query:
        return ""

    pairs = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, form_value(item)) for item in value if item is not None)
        else:
            pairs.append((key, form_value(value)))

    return urlencode(pairs, quote_via=quote)


def build_url(
    spec: EndpointSpec,
    path_parameters: Optional[Mapping[str, Any]] = None,
    origin: Optional[str] = None,
    api_version: Optional[str] = None,
    query: Optional[Mapping[str, Any]] = None,
) -> str:
    """Build the absolute URL for one call.

    Args:
        spec: Registry entry being called.
        path_parameters: Values for the template placeholders.
        origin: Host (optionally `host:port`) replacing `api.mistral.ai`.
        api_version: Version segment replacing `v1`.
        query: Parameters appended as a query string when non-empty.

    Returns:
        Absolute `https` URL string.
    """
    path = replace_path_parameters(spec.path_template, path_parameters)
    version = (api_version or DEFAULT_API_VERSION).strip("/")

    return urlunsplit((
        SCHEME,
        origin or DEFAULT_ORIGIN,
        f"/{version}{path}",
        encode_query(query),
        "",
    ))
