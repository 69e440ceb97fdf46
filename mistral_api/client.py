"""Caller-facing Mistral AI client.

Architectural role:
    Single entry point over the dispatch engine. Application code calls
    `MistralAI.call(name, ...)` or one of the generated wrapper methods
    (`create_chat_completion`, `retrieve_model`, ...) instead of building
    HTTP requests by hand.

Call flow:
    `call(name, *args)` -> `endpoints.resolve` -> `arguments.normalize` ->
    `url_builder.build_url` -> `request_builder.build_request` ->
    `dispatcher.send` -> `requests.Response` or frames to the callback.

Argument forms:
    - Positional (compatible form): `call(name, parameters?, options?, callback?)`,
      disambiguated by `arguments.normalize`.
    - Keyword (typed form): `call(name, parameters=..., options=...,
      stream_callback=...)`. Positional and keyword forms cannot be mixed.

Concurrency:
    Every call builds its own request, boundary and buffer. The registry is
    read-only. A client holds no per-call state; thread safety of the shared
    transport is that of `requests.Session`.
"""

import logging
import re
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

import requests

from mistral_api import config
from mistral_api.core import arguments, endpoints
from mistral_api.core.arguments import CallArguments
from mistral_api.core.errors import ConfigurationError, InvalidArgument
from mistral_api.core.request_builder import build_request, wants_stream
from mistral_api.core.url_builder import build_url
from mistral_api.transport import dispatcher


logger = logging.getLogger(__name__)


class MistralAI:
    """Client bound to one API key, origin and API version.

    Args:
        api_key: Bearer token sent with every request.
        origin: Host override (defaults to `api.mistral.ai`).
        api_version: Version prefix override (defaults to `v1`).
        transport: Object with `requests.Session.send` semantics. A new
            `requests.Session` is created when omitted.
        timeout: Transport timeout in seconds.
        chunk_size: Bytes per read when consuming event streams.
    """

    def __init__(
        self,
        api_key: str,
        origin: Optional[str] = None,
        api_version: Optional[str] = None,
        transport: Optional[dispatcher.Transport] = None,
        timeout: Optional[float] = dispatcher.DEFAULT_TIMEOUT,
        chunk_size: int = dispatcher.DEFAULT_CHUNK_SIZE,
    ):
        self.api_key = api_key
        self.origin = origin or None
        self.api_version = api_version or None
        self.transport = transport if transport is not None else requests.Session()
        self.timeout = timeout
        self.chunk_size = chunk_size

    def __repr__(self) -> str:
        return f"MistralAI(origin={self.origin!r}, api_version={self.api_version!r})"

    # =========================================================
    # REQUEST ASSEMBLY
    # =========================================================

    def _arguments(self, spec, args, parameters, options, stream_callback) -> CallArguments:
        maps_by_keyword = parameters is not None or options is not None
        if args and maps_by_keyword:
            raise InvalidArgument(
                "Pass parameters/options either positionally or by keyword, not both."
            )
        if maps_by_keyword or (not args and stream_callback is not None):
            return arguments.from_keywords(spec, parameters, options, stream_callback)
        if stream_callback is not None:
            args = (*args, stream_callback)
        return arguments.normalize(spec, args)

    def prepare(self, name: str, call_args: CallArguments) -> requests.PreparedRequest:
        """Build the transport request for an operation without sending it."""
        spec = endpoints.resolve(name)
        payload = build_request(spec.http_method, call_args.options, self.api_key)
        url = build_url(
            spec,
            call_args.path_parameters,
            origin=self.origin,
            api_version=self.api_version,
            query=payload.query,
        )
        return dispatcher.prepare_request(spec.http_method, url, payload.headers, payload.body)

    # =========================================================
    # PUBLIC ENTRYPOINTS
    # =========================================================

    def call(
        self,
        name: str,
        *args: Any,
        parameters: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
        stream_callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> Optional[requests.Response]:
        """Invoke one registry operation.

        Returns:
            The raw `requests.Response` for buffered calls; `None` for
            streaming calls, whose frames go to the callback.

        Raises:
            UnknownOperation, InvalidArgument, MissingPathParameter,
            InvalidParameterType, EncodingError: before any network traffic.
            APIError: status >= 400 or transport failure.
            StreamDecodeError: malformed frame in a streamed response.
        """
        spec = endpoints.resolve(name)
        call_args = self._arguments(spec, args, parameters, options, stream_callback)
        request = self.prepare(name, call_args)

        return dispatcher.send(
            self.transport,
            request,
            stream_callback=call_args.stream_callback,
            stream=wants_stream(call_args.options),
            timeout=self.timeout,
            chunk_size=self.chunk_size,
        )

    def stream(
        self,
        name: str,
        *args: Any,
        parameters: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Iterator[Any]:
        """Invoke an operation and iterate its event-stream frames.

        `stream: true` is added to the options. The request is built eagerly
        (so caller-input errors surface here) and sent on first iteration.
        """
        spec = endpoints.resolve(name)
        call_args = self._arguments(spec, args, parameters, options, None)
        if call_args.stream_callback is not None:
            raise InvalidArgument("stream() delivers frames by iteration; do not pass a callback.")
        call_args.options["stream"] = True
        request = self.prepare(name, call_args)

        return dispatcher.iter_frames(
            self.transport,
            request,
            timeout=self.timeout,
            chunk_size=self.chunk_size,
        )

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


# =========================================================
# GENERATED OPERATION WRAPPERS
# =========================================================

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    """`createChatCompletion` -> `create_chat_completion`."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _make_operation(spec: endpoints.EndpointSpec):
    def operation(self, *args, parameters=None, options=None, stream_callback=None):
        return self.call(
            spec.name,
            *args,
            parameters=parameters,
            options=options,
            stream_callback=stream_callback,
        )

    operation.__name__ = snake_case(spec.name)
    operation.__qualname__ = f"MistralAI.{operation.__name__}"
    operation.__doc__ = f"{spec.http_method} /{{version}}{spec.path_template} ({spec.name})."
    return operation


def operation_names() -> Tuple[str, ...]:
    """Return `(snake_name, ...)` for every generated wrapper."""
    return tuple(snake_case(name) for name in endpoints.ENDPOINTS)


for _spec in endpoints.ENDPOINTS.values():
    setattr(MistralAI, snake_case(_spec.name), _make_operation(_spec))
del _spec


_CLIENT_OVERRIDES = ("api_key", "origin", "api_version", "timeout", "chunk_size")


def create_client(transport: Optional[dispatcher.Transport] = None, **overrides: Any) -> MistralAI:
    """Build a client from the environment (see `mistral_api.config`).

    Keyword overrides (`api_key`, `origin`, `api_version`, `timeout`,
    `chunk_size`) win over environment values.

    Raises:
        InvalidArgument: An override name is not one of the above.
        ConfigurationError: No API key could be resolved.
    """
    unknown = sorted(set(overrides) - set(_CLIENT_OVERRIDES))
    if unknown:
        raise InvalidArgument(f"Unknown create_client override(s): {', '.join(unknown)}")

    settings = config.load_settings()
    values = {
        "api_key": settings.api_key,
        "origin": settings.origin,
        "api_version": settings.api_version,
        "timeout": settings.timeout,
        "chunk_size": settings.chunk_size,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    if not values["api_key"]:
        raise ConfigurationError(
            "MISTRAL_API_KEY is not set and no key file was found at "
            f"{config.DEFAULT_KEY_FILE}"
        )

    logger.debug("Creating Mistral AI client for origin=%s", values["origin"] or "default")
    return MistralAI(transport=transport, **values)
