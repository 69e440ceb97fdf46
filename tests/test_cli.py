import json

import pytest

from mistral_api import cli
from mistral_api.client import MistralAI
from mistral_api.core.endpoints import resolve

from tests.conftest import API_KEY, FakeTransport, make_response


@pytest.fixture
def fake_client(monkeypatch):
    transport = FakeTransport()
    monkeypatch.setattr(cli, "create_client", lambda: MistralAI(API_KEY, transport=transport))
    return transport


def test_split_call_arguments():
    assert cli.split_call_arguments(resolve("retrieveModel"), [{"model_id": "m"}]) == ({"model_id": "m"}, {})
    assert cli.split_call_arguments(resolve("uploadFile"), [{"purpose": "x"}]) == ({}, {"purpose": "x"})
    assert cli.split_call_arguments(resolve("appendConversation"), [{"a": 1}, {"b": 2}]) == ({"a": 1}, {"b": 2})


def test_frame_text():
    assert cli.frame_text({"choices": [{"delta": {"content": "hi"}}]}) == "hi"
    assert cli.frame_text({"text": "chunk"}) == "chunk"
    assert cli.frame_text({"type": "done"}) is None


def test_buffered_call_pretty_prints_json(fake_client, capsys):
    fake_client.handler = lambda r: make_response(
        200, b'{"id": "mistral-small-latest"}', {"Content-Type": "application/json"}
    )

    code = cli.main(["retrieveModel", '{"model_id": "mistral-small-latest"}'])

    out = capsys.readouterr().out
    assert code == 0
    assert '"id": "mistral-small-latest"' in out
    assert fake_client.last.url == "https://api.mistral.ai/v1/models/mistral-small-latest"


def test_streaming_call_prints_deltas(fake_client, capsys):
    fake_client.handler = lambda r: make_response(
        200,
        b'data: {"choices":[{"delta":{"content":"Hello"}}]}\n'
        b'data: {"choices":[{"delta":{"content":" knight"}}]}\n'
        b"data: [DONE]\n",
    )
    options = {"model": "mistral-small-latest", "messages": [], "stream": True}

    code = cli.main(["createChatCompletion", json.dumps(options)])

    assert code == 0
    assert "Hello knight" in capsys.readouterr().out


def test_error_is_reported(fake_client, capsys):
    fake_client.handler = lambda r: make_response(400, "Bad Request")

    code = cli.main(["createChatCompletion", '{"model": "m"}'])

    assert code == 1
    assert "Error: Bad Request" in capsys.readouterr().out


def test_unknown_operation(fake_client, capsys):
    assert cli.main(["nope"]) == 1
    assert 'Error: Invalid Mistral AI URL key "nope".' in capsys.readouterr().out


def test_invalid_json_argument(fake_client, capsys):
    assert cli.main(["listModels", "{not json"]) == 1
    assert "PARAMS_JSON is not valid JSON" in capsys.readouterr().out


def test_usage(capsys):
    assert cli.main([]) == 2
    out = capsys.readouterr().out
    assert "Usage:" in out
    assert "createChatCompletion" in out
