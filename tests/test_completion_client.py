from __future__ import annotations

import json as jsonlib
from typing import Any

import pytest
import requests

from completion_client import CompletionClient, CompletionError, StreamDecoder
from models import Attachment, ChatMessage
from services.prompt_service import LANGUAGE_DIRECTIVES


def _line(content: str) -> str:
    return "data: " + jsonlib.dumps({"choices": [{"delta": {"content": content}}]}) + "\n"


HELLO_STREAM = (_line("Hel") + _line("lo") + "data: [DONE]\n").encode("utf-8")


class DummyStreamResponse:
    def __init__(
        self,
        chunks: list[bytes] | None = None,
        *,
        status_code: int = 200,
        body: Any = None,
        text: str = "",
    ) -> None:
        self._chunks = chunks or []
        self.status_code = status_code
        self._body = body
        self.text = text
        self.closed = False
        self.chunks_read = 0

    def iter_content(self, chunk_size=None):
        for chunk in self._chunks:
            self.chunks_read += 1
            yield chunk

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("not json")
        return self._body

    def close(self) -> None:
        self.closed = True


def _client() -> CompletionClient:
    return CompletionClient("https://llm.example/v1/chat/completions", "secret", model="demo-model")


def _install(monkeypatch: pytest.MonkeyPatch, response: DummyStreamResponse, captured: dict[str, Any]) -> None:
    def fake_post(url, *, json=None, headers=None, timeout=None, stream=False):
        captured.update(url=url, json=json, headers=headers, timeout=timeout, stream=stream)
        return response

    monkeypatch.setattr("requests.post", fake_post)


def test_decoder_reassembles_byte_by_byte_chunks() -> None:
    decoder = StreamDecoder()
    deltas: list[str] = []
    for index in range(len(HELLO_STREAM)):
        deltas.extend(decoder.feed(HELLO_STREAM[index:index + 1]))

    assert "".join(deltas) == "Hello"
    assert decoder.done


def test_decoder_keeps_multibyte_characters_split_across_chunks() -> None:
    raw = (_line("¡Olá, señor!") + "data: [DONE]\n").encode("utf-8")
    split_at = raw.index("ñ".encode("utf-8")) + 1
    decoder = StreamDecoder()

    deltas = decoder.feed(raw[:split_at]) + decoder.feed(raw[split_at:])

    assert deltas == ["¡Olá, señor!"]


def test_decoder_skips_malformed_record_between_valid_lines() -> None:
    raw = (_line("Good") + "data: {not json\n" + _line(" day") + "data: [DONE]\n").encode("utf-8")
    decoder = StreamDecoder()

    assert decoder.feed(raw) == ["Good", " day"]


def test_decoder_ignores_comments_blank_lines_and_empty_deltas() -> None:
    raw = (
        ": keep-alive\n\n"
        + 'data: {"choices":[{"delta":{"role":"assistant"}}]}\r\n'
        + _line("")
        + _line("Hi")
    ).encode("utf-8")
    decoder = StreamDecoder()

    assert decoder.feed(raw) == ["Hi"]
    assert not decoder.done


def test_decoder_ignores_everything_after_done() -> None:
    decoder = StreamDecoder()

    assert decoder.feed(("data: [DONE]\n" + _line("late")).encode("utf-8")) == []
    assert decoder.feed(_line("later").encode("utf-8")) == []
    assert decoder.close() == []


def test_decoder_flushes_unterminated_final_line() -> None:
    decoder = StreamDecoder()

    assert decoder.feed(_line("tail").rstrip("\n").encode("utf-8")) == []
    assert decoder.close() == ["tail"]


def test_build_payload_orders_system_history_and_message() -> None:
    client = _client()
    history = [ChatMessage("user", "Hola"), ChatMessage("assistant", "¡Hola!")]
    docs = [Attachment(name="notes.txt", content="Teide is 3715 m tall.", mime="text/plain")]

    payload = client.build_payload(history, ChatMessage("user", "How tall?"), language="de", documents=docs)

    roles = [entry["role"] for entry in payload["messages"]]
    assert roles == ["system", "user", "assistant", "user"]
    system = payload["messages"][0]["content"]
    assert LANGUAGE_DIRECTIVES["de"] in system
    assert "Teide is 3715 m tall." in system
    assert payload["messages"][-1] == {"role": "user", "content": "How tall?"}
    assert payload["model"] == "demo-model"
    assert payload["max_tokens"] == 2000
    assert payload["temperature"] == 0.7
    assert payload["stream"] is True


def test_build_payload_uses_higher_temperature_for_dialect() -> None:
    payload = _client().build_payload([], ChatMessage("user", "¿Qué hay?"), language="palmero")

    assert payload["temperature"] == 0.8


def test_stream_reply_yields_growing_text(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}
    response = DummyStreamResponse([HELLO_STREAM[:9], HELLO_STREAM[9:40], HELLO_STREAM[40:]])
    _install(monkeypatch, response, captured)

    partials = list(_client().stream_reply([], ChatMessage("user", "Hi"), language="en"))

    assert partials == ["Hel", "Hello"]
    assert captured["stream"] is True
    assert captured["headers"]["Authorization"] == "Bearer secret"
    assert captured["headers"]["Content-Type"] == "application/json"
    assert captured["json"]["stream"] is True
    assert response.closed


def test_stream_without_done_keeps_accumulated_text(monkeypatch: pytest.MonkeyPatch) -> None:
    response = DummyStreamResponse([(_line("Partial") + _line(" reply")).encode("utf-8")])
    _install(monkeypatch, response, {})

    partials = list(_client().stream_reply([], ChatMessage("user", "Hi"), language="en"))

    assert partials[-1] == "Partial reply"
    assert response.closed


def test_stream_interrupted_by_transport_error_keeps_accumulated_text(monkeypatch: pytest.MonkeyPatch) -> None:
    class BrokenResponse(DummyStreamResponse):
        def iter_content(self, chunk_size=None):
            yield _line("Half").encode("utf-8")
            raise requests.exceptions.ChunkedEncodingError("connection reset")

    response = BrokenResponse()
    _install(monkeypatch, response, {})

    deltas = list(_client().iter_deltas([], ChatMessage("user", "Hi"), language="en"))

    assert deltas == ["Half"]
    assert response.closed


def test_consumer_stopping_early_closes_response(monkeypatch: pytest.MonkeyPatch) -> None:
    chunks = [_line(str(index)).encode("utf-8") for index in range(10)]
    response = DummyStreamResponse(chunks)
    _install(monkeypatch, response, {})

    stream = _client().iter_deltas([], ChatMessage("user", "Count"), language="en")
    assert next(stream) == "0"
    stream.close()

    assert response.closed
    assert response.chunks_read == 1


def test_error_status_uses_api_error_message(monkeypatch: pytest.MonkeyPatch) -> None:
    response = DummyStreamResponse(status_code=500, body={"error": {"message": "boom"}})
    _install(monkeypatch, response, {})

    with pytest.raises(CompletionError) as excinfo:
        list(_client().stream_reply([], ChatMessage("user", "Hi"), language="en"))

    assert excinfo.value.message == "boom"
    assert str(excinfo.value) == "boom"
    assert excinfo.value.status_code == 500


def test_error_status_with_unparseable_body_mentions_status(monkeypatch: pytest.MonkeyPatch) -> None:
    response = DummyStreamResponse(status_code=500, text="<html>oops</html>")
    _install(monkeypatch, response, {})

    with pytest.raises(CompletionError) as excinfo:
        list(_client().iter_deltas([], ChatMessage("user", "Hi"), language="en"))

    assert "500" in excinfo.value.message


def test_network_failure_raises_completion_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(url, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr("requests.post", fake_post)

    with pytest.raises(CompletionError) as excinfo:
        list(_client().iter_deltas([], ChatMessage("user", "Hi"), language="en"))

    assert "unreachable" in excinfo.value.message


def test_complete_reads_message_content(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}
    body = {"choices": [{"message": {"role": "assistant", "content": "La Palma"}}]}
    _install(monkeypatch, DummyStreamResponse(body=body), captured)

    reply = _client().complete([], ChatMessage("user", "Which island?"), language="es")

    assert reply == "La Palma"
    assert captured["json"]["stream"] is False
    assert captured["stream"] is False


def test_complete_rejects_malformed_body(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, DummyStreamResponse(body={"choices": []}), {})

    with pytest.raises(CompletionError) as excinfo:
        _client().complete([], ChatMessage("user", "Hi"), language="en")

    assert "Malformed" in excinfo.value.message
