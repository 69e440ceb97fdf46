import io

import pytest
import requests

from mistral_api.core.errors import APIError, StreamDecodeError
from mistral_api.transport.dispatcher import (
    EventStreamReader,
    StreamState,
    iter_frames,
    prepare_request,
    send,
)

from tests.conftest import FakeTransport, make_response


STREAM_BODY = b'data: {"text":"a"}\ndata: {"text":"b"}\ndata: [DONE]\n'


def post_request():
    return prepare_request(
        "POST",
        "https://example.com/v1/chat/completions",
        {"Authorization": "Bearer k", "Content-Type": "application/json"},
        b'{"stream":true}',
    )


class ChunkedRaw:
    """Raw body returning pre-split chunks, then optionally failing."""

    def __init__(self, chunks, error=None):
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    def read(self, amount=None):
        if self.chunks:
            return self.chunks.pop(0)
        if self.error is not None:
            raise self.error
        return b""

    def close(self):
        self.closed = True


def collect():
    frames = []
    return frames, frames.append


def test_prepare_request_without_body():
    request = prepare_request("GET", "https://example.com/v1/models?limit=5", {"Accept": "application/json"})
    assert request.body is None
    assert request.method == "GET"
    assert request.url == "https://example.com/v1/models?limit=5"


def test_non_streaming_returns_response_unmodified():
    transport = FakeTransport(lambda r: make_response(200, b'{"id": "x"}', {"Content-Type": "application/json"}))
    response = send(transport, post_request())
    assert response.status_code == 200
    assert response.json() == {"id": "x"}
    assert transport.send_kwargs[0]["stream"] is False


@pytest.mark.parametrize("streaming", [False, True])
def test_error_status_raises_api_error(streaming):
    transport = FakeTransport(lambda r: make_response(400, "Bad Request"))
    frames, sink = collect()

    with pytest.raises(APIError) as exc:
        send(transport, post_request(), stream_callback=sink if streaming else None, stream=streaming)

    assert exc.value.status_code == 400
    assert exc.value.body == "Bad Request"
    assert str(exc.value) == "Bad Request"
    assert frames == []


def test_transport_failure_is_wrapped_with_status_zero():
    def fail(request):
        raise requests.exceptions.ConnectionError("Client error")

    with pytest.raises(APIError) as exc:
        send(FakeTransport(fail), post_request())

    assert exc.value.status_code == 0
    assert "Client error" in str(exc.value)
    assert isinstance(exc.value.__cause__, requests.exceptions.ConnectionError)


def test_stream_delivers_frames_until_done():
    transport = FakeTransport(lambda r: make_response(200, STREAM_BODY))
    frames, sink = collect()

    result = send(transport, post_request(), stream_callback=sink, stream=True)

    assert result is None
    assert frames == [{"text": "a"}, {"text": "b"}]
    assert transport.send_kwargs[0]["stream"] is True


def test_stream_ignores_content_after_done():
    body = STREAM_BODY + b"data: not_json\n"
    frames, sink = collect()
    send(FakeTransport(lambda r: make_response(200, body)), post_request(), stream_callback=sink, stream=True)
    assert frames == [{"text": "a"}, {"text": "b"}]


def test_stream_lines_split_across_chunks():
    raw = ChunkedRaw([b'data: {"te', b'xt":"a"}\n\nda', b'ta: {"text":"b"}', b"\n", b"data: [DONE]\n"])
    frames, sink = collect()
    send(FakeTransport(lambda r: make_response(200, raw=raw)), post_request(), stream_callback=sink, stream=True)
    assert frames == [{"text": "a"}, {"text": "b"}]


def test_stream_small_read_size():
    frames, sink = collect()
    send(
        FakeTransport(lambda r: make_response(200, STREAM_BODY)),
        post_request(),
        stream_callback=sink,
        stream=True,
        chunk_size=3,
    )
    assert frames == [{"text": "a"}, {"text": "b"}]


def test_stream_without_done_ends_normally():
    body = b'data: {"text":"a"}\n\ndata: {"text":"b"}'
    frames, sink = collect()
    send(FakeTransport(lambda r: make_response(200, body)), post_request(), stream_callback=sink, stream=True)
    assert frames == [{"text": "a"}, {"text": "b"}]


def test_stream_blank_body_never_calls_back():
    def fail(frame):
        raise AssertionError("Streaming callback should not be called on empty data.")

    send(FakeTransport(lambda r: make_response(200, b"\n")), post_request(), stream_callback=fail, stream=True)


def test_stream_ignores_non_data_lines():
    body = b': keep-alive\nevent: message\nid: 7\n  data: {"n": 1}  \r\n'
    frames, sink = collect()
    send(FakeTransport(lambda r: make_response(200, body)), post_request(), stream_callback=sink, stream=True)
    assert frames == [{"n": 1}]


def test_stream_decode_error_aborts():
    body = b'data: {"text":"a"}\ndata: not_json\ndata: {"text":"b"}\n'
    frames, sink = collect()

    with pytest.raises(StreamDecodeError) as exc:
        send(FakeTransport(lambda r: make_response(200, body)), post_request(), stream_callback=sink, stream=True)

    assert str(exc.value).startswith("JSON decode error:")
    assert exc.value.line == "data: not_json"
    assert frames == [{"text": "a"}]


@pytest.mark.parametrize("line", [b"data: 5", b'data: "s"', b"data: [1, 2]", b"data: null"])
def test_stream_rejects_frames_that_are_not_objects(line):
    body = b'data: {"a":1}\n' + line + b'\ndata: {"a":2}\n'
    frames, sink = collect()

    with pytest.raises(StreamDecodeError) as exc:
        send(FakeTransport(lambda r: make_response(200, body)), post_request(), stream_callback=sink, stream=True)

    assert str(exc.value).startswith("JSON decode error:")
    assert exc.value.line == line.decode()
    assert frames == [{"a": 1}]


def test_callback_errors_propagate_and_stop_reading():
    frames = []

    def sink(frame):
        frames.append(frame)
        raise RuntimeError("stop")

    with pytest.raises(RuntimeError, match="stop"):
        send(FakeTransport(lambda r: make_response(200, STREAM_BODY)), post_request(), stream_callback=sink, stream=True)

    assert frames == [{"text": "a"}]


def test_callback_without_stream_flag_is_buffered():
    frames, sink = collect()
    response = send(FakeTransport(lambda r: make_response(200, STREAM_BODY)), post_request(), stream_callback=sink)
    assert frames == []
    assert response.status_code == 200


def test_mid_stream_transport_failure():
    raw = ChunkedRaw([b'data: {"text":"a"}\n'], error=requests.exceptions.ChunkedEncodingError("reset"))
    frames, sink = collect()

    with pytest.raises(APIError) as exc:
        send(FakeTransport(lambda r: make_response(200, raw=raw)), post_request(), stream_callback=sink, stream=True)

    assert exc.value.status_code == 0
    assert frames == [{"text": "a"}]


def test_reader_states():
    done = EventStreamReader(make_response(200, STREAM_BODY))
    assert done.state is StreamState.READING
    assert list(done) == [{"text": "a"}, {"text": "b"}]
    assert done.state is StreamState.TERMINATED
    assert list(done) == []

    eof = EventStreamReader(make_response(200, b'data: {"x": 1}\n'))
    list(eof)
    assert eof.state is StreamState.TERMINATED

    broken = EventStreamReader(make_response(200, b"data: {oops\n"))
    with pytest.raises(StreamDecodeError):
        list(broken)
    assert broken.state is StreamState.ERRORED
    assert list(broken) == []


def test_iter_frames_is_lazy_and_closes():
    raw = io.BytesIO(STREAM_BODY)
    transport = FakeTransport(lambda r: make_response(200, raw=raw))

    frames = iter_frames(transport, post_request())
    assert transport.requests == []

    assert list(frames) == [{"text": "a"}, {"text": "b"}]
    assert len(transport.requests) == 1
    assert transport.send_kwargs[0]["stream"] is True
    assert raw.closed


def test_iter_frames_error_status():
    transport = FakeTransport(lambda r: make_response(500, "boom"))
    with pytest.raises(APIError) as exc:
        list(iter_frames(transport, post_request()))
    assert exc.value.status_code == 500
