"""HTTP client for the hosted chat-completion endpoint."""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping, Sequence

import requests

from models import Attachment, ChatMessage
from services.prompt_service import build_system_prompt, temperature_for

if TYPE_CHECKING:
    from app_settings import AppSettings


logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class CompletionError(RuntimeError):
    """Raised when a completion request cannot produce a reply."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StreamDecoder:
    """Incrementally decode ``data:`` lines from a streamed completion body.

    Chunks may split multi-byte characters and lines at arbitrary offsets, so
    bytes are decoded with an incremental UTF-8 decoder and partial lines are
    buffered until their newline arrives. Once the ``[DONE]`` sentinel has been
    seen every further byte is ignored.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    def feed(self, chunk: bytes) -> list[str]:
        if self.done or not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        deltas: list[str] = []
        while not self.done and "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            delta = self._parse_line(line)
            if delta:
                deltas.append(delta)
        return deltas

    def close(self) -> list[str]:
        """Flush an unterminated trailing line at end of transport."""

        if self.done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        line, self._buffer = self._buffer, ""
        delta = self._parse_line(line)
        return [delta] if delta else []

    def _parse_line(self, raw_line: str) -> str | None:
        line = raw_line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return None
        payload = line[len(DATA_PREFIX):].strip()
        if not payload:
            return None
        if payload == DONE_SENTINEL:
            self.done = True
            return None
        try:
            record = json.loads(payload)
            delta = record["choices"][0]["delta"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Skipping malformed stream record %r: %s", payload[:200], exc)
            return None
        if not isinstance(delta, Mapping):
            return None
        content = delta.get("content")
        return content if isinstance(content, str) and content else None


def _extract_error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, Mapping):
        error = payload.get("error")
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if payload.get("message"):
            return str(payload["message"])
    return f"API request failed with status {response.status_code}"


@dataclass
class CompletionClient:
    """Send conversations to an OpenAI-compatible ``/chat/completions`` URL."""

    api_url: str
    api_key: str | None
    model: str = "deepseek-chat"
    max_tokens: int = 2000
    timeout: int = 60

    @classmethod
    def from_settings(cls, settings: "AppSettings") -> "CompletionClient":
        return cls(
            api_url=settings.completion_api_url,
            api_key=settings.completion_api_key,
            model=settings.completion_model,
            max_tokens=settings.max_tokens,
            timeout=settings.request_timeout,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_payload(
        self,
        history: Sequence[ChatMessage],
        message: ChatMessage,
        *,
        language: str,
        documents: Iterable[Attachment] = (),
        stream: bool = True,
    ) -> dict[str, Any]:
        """Return the JSON body for one completion request."""

        messages = [{"role": "system", "content": build_system_prompt(language, documents)}]
        messages.extend(entry.asdict() for entry in history)
        messages.append(message.asdict())
        return {
            "model": self.model,
            "messages": messages,
            "temperature": temperature_for(language),
            "max_tokens": self.max_tokens,
            "stream": stream,
        }

    def _post(self, payload: Mapping[str, Any], *, stream: bool) -> requests.Response:
        try:
            response = requests.post(
                self.api_url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
                stream=stream,
            )
        except requests.Timeout as exc:
            logger.exception("Completion request to %s timed out", self.api_url)
            raise CompletionError("The request timed out") from exc
        except requests.RequestException as exc:
            logger.exception("Completion request to %s failed", self.api_url)
            raise CompletionError(f"Network error: {exc}") from exc

        if response.status_code != 200:
            message = _extract_error_message(response)
            logger.error("Completion API error (%s): %s", response.status_code, message)
            response.close()
            raise CompletionError(message, status_code=response.status_code)
        return response

    def iter_deltas(
        self,
        history: Sequence[ChatMessage],
        message: ChatMessage,
        *,
        language: str,
        documents: Iterable[Attachment] = (),
    ) -> Iterator[str]:
        """Yield reply fragments in arrival order.

        The sequence ends at ``[DONE]`` or when the transport closes, whichever
        comes first; a stream cut short without the sentinel simply ends.
        """

        payload = self.build_payload(history, message, language=language, documents=documents, stream=True)
        response = self._post(payload, stream=True)
        decoder = StreamDecoder()
        try:
            for chunk in response.iter_content(chunk_size=None):
                yield from decoder.feed(chunk)
                if decoder.done:
                    break
            else:
                yield from decoder.close()
        except requests.RequestException as exc:
            logger.warning("Completion stream interrupted: %s", exc)
        finally:
            response.close()
        if not decoder.done:
            logger.info("Completion stream ended without %s sentinel", DONE_SENTINEL)

    def stream_reply(
        self,
        history: Sequence[ChatMessage],
        message: ChatMessage,
        *,
        language: str,
        documents: Iterable[Attachment] = (),
    ) -> Iterator[str]:
        """Yield the growing reply text once per received fragment."""

        accumulated = ""
        for delta in self.iter_deltas(history, message, language=language, documents=documents):
            accumulated += delta
            yield accumulated

    def complete(
        self,
        history: Sequence[ChatMessage],
        message: ChatMessage,
        *,
        language: str,
        documents: Iterable[Attachment] = (),
    ) -> str:
        """Return the full reply from a single non-streamed response."""

        payload = self.build_payload(history, message, language=language, documents=documents, stream=False)
        response = self._post(payload, stream=False)
        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Malformed completion response: %s", exc)
            raise CompletionError("Malformed response from the completion API") from exc
        if not isinstance(content, str):
            raise CompletionError("Malformed response from the completion API")
        return content


__all__ = ["CompletionClient", "CompletionError", "StreamDecoder"]
