"""Canonicalization of loosely-shaped call arguments.

Architectural role:
    `MistralAI.call(name, *args)` accepts up to three positional values: a
    path-parameter mapping, an options mapping and a stream callback, any of
    which may be omitted. This module turns them into one `CallArguments`.

Disambiguation rules:
    - A trailing callable is always the stream callback.
    - The first remaining value must be a mapping (or `None`).
    - Endpoint path has placeholders: first mapping is path parameters, second
      (if any) is options.
    - Endpoint path has no placeholders: a lone mapping is options. When two
      mappings are given they shift into (path parameters, options).
    - Inherently streaming endpoints always get `options["stream"] = True`.

Keyword form:
    `from_keywords` builds the same triple from named values and skips the
    positional guessing entirely.

Side effects:
    None. Caller mappings are copied, never mutated.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from mistral_api.core.endpoints import EndpointSpec
from mistral_api.core.errors import InvalidArgument


StreamCallback = Callable[[Dict[str, Any]], None]


@dataclass
class CallArguments:
    """Normalized arguments for one call."""

    path_parameters: Dict[str, Any] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    stream_callback: Optional[StreamCallback] = None


def _is_callback(value: Any) -> bool:
    return callable(value) and not isinstance(value, Mapping)


def _finalize(spec: EndpointSpec, parameters, options, callback) -> CallArguments:
    options = dict(options or {})
    if spec.is_streaming:
        options["stream"] = True
    return CallArguments(
        path_parameters=dict(parameters or {}),
        options=options,
        stream_callback=callback,
    )


def normalize(spec: EndpointSpec, raw_args: Sequence[Any]) -> CallArguments:
    """Resolve positional call arguments against an endpoint.

    Args:
        spec: Endpoint being called; its template decides slot meaning.
        raw_args: Zero to three positional values.

    Returns:
        `CallArguments` with copied mappings.

    Raises:
        InvalidArgument: Too many values, or a map slot holds a non-mapping.
    """
    args = list(raw_args)
    callback = None

    if args and _is_callback(args[-1]):
        callback = args.pop()

    if len(args) > 2:
        raise InvalidArgument(
            f"{spec.name} accepts at most path parameters, options and a stream callback."
        )

    if args and args[0] is not None and not isinstance(args[0], Mapping):
        raise InvalidArgument("First argument must be an array of parameters.")

    if len(args) > 1 and args[1] is not None and not isinstance(args[1], Mapping):
        raise InvalidArgument("Second argument must be an array of options.")

    first = args[0] if args else None
    second = args[1] if len(args) > 1 else None

    if spec.has_placeholders or len(args) > 1:
        return _finalize(spec, first, second, callback)

    return _finalize(spec, None, first, callback)


def from_keywords(
    spec: EndpointSpec,
    parameters: Optional[Mapping[str, Any]] = None,
    options: Optional[Mapping[str, Any]] = None,
    stream_callback: Optional[StreamCallback] = None,
) -> CallArguments:
    """Build `CallArguments` from explicitly named values."""
    if parameters is not None and not isinstance(parameters, Mapping):
        raise InvalidArgument("parameters must be a mapping.")
    if options is not None and not isinstance(options, Mapping):
        raise InvalidArgument("options must be a mapping.")
    if stream_callback is not None and not _is_callback(stream_callback):
        raise InvalidArgument("stream_callback must be callable.")
    return _finalize(spec, parameters, options, stream_callback)
