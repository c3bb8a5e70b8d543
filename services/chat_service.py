"""Conversation turns: quota checks, completion calls and failure messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from completion_client import CompletionClient, CompletionError
from i18n import get_strings
from models import Attachment, ChatMessage
from plantnet_client import PlantIdentificationError, PlantNetClient, describe_matches
from services.quota_service import QuotaTracker


__all__ = ["EMPTY_REPLY", "ChatService", "TurnResult", "error_message", "plant_request"]

logger = logging.getLogger(__name__)

EMPTY_REPLY = "Empty response from the completion API"


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one user action, always carrying a message to display."""

    message: ChatMessage
    ok: bool
    remaining: int | None = None


def plant_request(filename: str) -> ChatMessage:
    return ChatMessage("user", f"Identify plant: {filename}")


def error_message(detail: str) -> ChatMessage:
    return ChatMessage("assistant", f"Sorry, I encountered an error: {detail}. Please try again.")


@dataclass
class ChatService:
    """Glue between the UI, the completion client and the daily quotas.

    Limits are checked before any request is issued and counters only move
    after a successful reply.
    """

    completion: CompletionClient
    quota: QuotaTracker
    plants: PlantNetClient | None = None
    stream: bool = True

    def ask(
        self,
        history: Sequence[ChatMessage],
        text: str,
        *,
        language: str,
        documents: Iterable[Attachment] = (),
        on_partial: Callable[[str], None] | None = None,
    ) -> TurnResult:
        strings = get_strings(language)
        if self.quota.questions.has_reached_limit():
            return TurnResult(ChatMessage("assistant", strings["daily_limit_reached"]), ok=False, remaining=0)

        message = ChatMessage("user", text)
        documents = list(documents)
        try:
            if self.stream:
                reply = ""
                for partial in self.completion.stream_reply(
                    history, message, language=language, documents=documents
                ):
                    reply = partial
                    if on_partial is not None:
                        on_partial(reply)
            else:
                reply = self.completion.complete(history, message, language=language, documents=documents)
                if on_partial is not None:
                    on_partial(reply)
        except CompletionError as exc:
            logger.warning("Completion failed: %s", exc.message)
            return TurnResult(error_message(exc.message), ok=False)
        if not reply.strip():
            logger.warning("Completion returned no text")
            return TurnResult(error_message(EMPTY_REPLY), ok=False)

        remaining = self.quota.questions.increment()
        return TurnResult(ChatMessage("assistant", reply), ok=True, remaining=remaining)

    def identify_plant(self, data: bytes, filename: str, mime: str, *, language: str) -> TurnResult:
        strings = get_strings(language)
        if self.quota.plants.has_reached_limit():
            return TurnResult(ChatMessage("assistant", strings["plant_limit_reached"]), ok=False, remaining=0)
        if self.plants is None:
            return TurnResult(error_message("plant identification is not configured"), ok=False)

        try:
            matches = self.plants.identify(data, filename, mime)
        except PlantIdentificationError as exc:
            return TurnResult(ChatMessage("assistant", exc.message), ok=False)

        remaining = self.quota.plants.increment()
        return TurnResult(ChatMessage("assistant", describe_matches(matches)), ok=True, remaining=remaining)
