import io

import pytest
import requests

from mistral_api.client import MistralAI


API_KEY = "jUsTaRaNdOmStRiNg"
ORIGIN = "example.com"


def make_response(status_code=200, body=b"", headers=None, raw=None):
    if isinstance(body, str):
        body = body.encode("utf-8")
    response = requests.Response()
    response.status_code = status_code
    response.raw = raw if raw is not None else io.BytesIO(body)
    response.headers.update(headers or {})
    response.encoding = "utf-8"
    return response


class FakeTransport:
    """Records prepared requests and answers through `handler(request)`."""

    def __init__(self, handler=None):
        self.handler = handler or (lambda request: make_response(200, b'{"ok": true}'))
        self.requests = []
        self.send_kwargs = []
        self.closed = False

    def send(self, request, **kwargs):
        self.requests.append(request)
        self.send_kwargs.append(kwargs)
        return self.handler(request)

    def close(self):
        self.closed = True

    @property
    def last(self):
        return self.requests[-1]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    return MistralAI(API_KEY, origin=ORIGIN, transport=transport)
