"""Request dispatch and server-sent-event stream handling.

Architectural role:
    Hands a prepared request to the injected transport (a `requests.Session`
    or anything with the same `send` signature) and either returns the
    response or drives a callback over the decoded event-stream frames.

Dispatch flow:
    `client.MistralAI.call` -> `prepare_request(...)` -> `send(...)` ->
    buffered `requests.Response`, or `EventStreamReader` frames -> callback.

Streaming protocol:
    - Body is read with `iter_content(chunk_size)` and split on `\\n`; a line
      may span any number of chunks.
    - Lines are stripped; blank lines are skipped.
    - `data: [DONE]` terminates the stream normally.
    - `data: <json>` is decoded and delivered as one frame; the payload must
      be a JSON object.
    - Any other line (`event:`, `id:`, comments) is ignored.
    - End of body without `[DONE]` is a normal termination.

Reader states:
    `reading` -> `terminated` (sentinel or end of body) or `errored` (decode
    failure, transport failure, callback failure). No state returns to
    `reading`.

Failure handling model:
    - Status >= 400 -> `APIError(status_code, body)`, raised before any frame
      is read.
    - `requests` transport exceptions -> `APIError` with status code 0.
    - Malformed frame JSON, or a payload that is not a JSON object ->
      `StreamDecodeError`; the stream is aborted.
    - Exceptions raised by the callback propagate unchanged.
    Nothing is retried and nothing is swallowed.
"""

import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Protocol

import requests

from mistral_api.core.errors import APIError, StreamDecodeError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120
DEFAULT_CHUNK_SIZE = 1024

DATA_PREFIX = "data: "
DONE_SENTINEL = "data: [DONE]"


class Transport(Protocol):
    """Minimal HTTP capability consumed by the dispatcher."""

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        """Send a prepared request and return the response."""
        ...


class StreamState(Enum):
    READING = "reading"
    TERMINATED = "terminated"
    ERRORED = "errored"


def prepare_request(
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: bytes = b"",
) -> requests.PreparedRequest:
    """Create the transport-level request object.

    An empty body is sent as no body at all.
    """
    return requests.Request(
        method=method,
        url=url,
        headers=dict(headers),
        data=body or None,
    ).prepare()


def _error_body(response: requests.Response) -> str:
    try:
        return response.text
    except requests.exceptions.RequestException as exc:
        return str(exc)


def raise_for_status(response: requests.Response) -> None:
    """Turn a status >= 400 into `APIError`, closing the response first."""
    if response.status_code < 400:
        return

    body = _error_body(response)
    response.close()
    logger.warning("Mistral AI request failed with status %s", response.status_code)
    raise APIError(body, response.status_code)


def _decode_frame(line: bytes) -> Any:
    """Classify one raw line.

    Returns:
        Decoded frame, `None` for ignorable lines, or `StreamState.TERMINATED`
        for the sentinel.
    """
    try:
        text = line.decode("utf-8").strip()
    except UnicodeDecodeError as exc:
        raise StreamDecodeError(f"JSON decode error: {exc.reason}", repr(line)) from exc

    if not text:
        return None
    if text == DONE_SENTINEL:
        return StreamState.TERMINATED
    if not text.startswith(DATA_PREFIX):
        return None

    payload = text[len(DATA_PREFIX):]
    try:
        frame = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise StreamDecodeError(f"JSON decode error: {exc.msg}", text) from exc

    if not isinstance(frame, dict):
        raise StreamDecodeError(
            f"JSON decode error: frame is {type(frame).__name__}, expected object", text
        )
    return frame


class EventStreamReader:
    """Incremental `data: ` frame reader over a streamed `requests.Response`.

    Iterating the reader yields decoded frames. `state` reports where the
    reader stopped. A reader is single-use.
    """

    def __init__(self, response: requests.Response, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.response = response
        self.chunk_size = chunk_size
        self.state = StreamState.READING
        self._started = False

    def abort(self) -> None:
        """Mark the stream as failed by a consumer (callback raised)."""
        if self.state is StreamState.READING:
            self.state = StreamState.ERRORED

    def __iter__(self) -> Iterator[Any]:
        if self._started or self.state is not StreamState.READING:
            return
        self._started = True

        buffer = b""
        try:
            for chunk in self.response.iter_content(chunk_size=self.chunk_size):
                if not chunk:
                    continue
                buffer += chunk
                while b"\n" in buffer:
                    line, buffer = buffer.split(b"\n", 1)
                    frame = _decode_frame(line)
                    if frame is StreamState.TERMINATED:
                        self.state = StreamState.TERMINATED
                        logger.debug("Event stream terminated by [DONE] sentinel")
                        return
                    if frame is not None:
                        yield frame

            # Trailing line without a newline before end of body.
            frame = _decode_frame(buffer)
            if frame is not None and frame is not StreamState.TERMINATED:
                yield frame
        except StreamDecodeError:
            self.state = StreamState.ERRORED
            raise
        except requests.exceptions.RequestException as exc:
            self.state = StreamState.ERRORED
            raise APIError(str(exc), 0) from exc

        self.state = StreamState.TERMINATED
        logger.debug("Event stream reached end of body")


def _transport_send(
    transport: Transport,
    request: requests.PreparedRequest,
    stream: bool,
    timeout: Optional[float],
) -> requests.Response:
    logger.debug("Dispatching %s %s (stream=%s)", request.method, request.url, stream)
    try:
        response = transport.send(request, stream=stream, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        logger.warning("Transport failure for %s %s", request.method, request.url)
        raise APIError(str(exc), 0) from exc

    raise_for_status(response)
    return response


def send(
    transport: Transport,
    request: requests.PreparedRequest,
    stream_callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    stream: bool = False,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Optional[requests.Response]:
    """Send one request.

    Args:
        transport: Object exposing `requests.Session.send`.
        request: Prepared request owned by this call.
        stream_callback: Frame sink for streaming calls.
        stream: Options explicitly asked for `stream: true`.
        timeout: Transport timeout in seconds.
        chunk_size: Bytes per incremental body read.

    Returns:
        The `requests.Response` for non-streaming calls, `None` once a
        streaming call has finished delivering frames.

    Streaming is used only when a callback is given and `stream` is true.
    """
    streaming = stream_callback is not None and stream

    response = _transport_send(transport, request, streaming, timeout)
    if not streaming:
        return response

    reader = EventStreamReader(response, chunk_size=chunk_size)
    try:
        for frame in reader:
            try:
                stream_callback(frame)
            except Exception:
                reader.abort()
                raise
    finally:
        response.close()

    return None


def iter_frames(
    transport: Transport,
    request: requests.PreparedRequest,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[Any]:
    """Lazy alternative to `send` with a callback.

    The request is only sent when iteration starts. Termination and error
    semantics match the callback form.
    """
    response = _transport_send(transport, request, True, timeout)
    try:
        yield from EventStreamReader(response, chunk_size=chunk_size)
    finally:
        response.close()
