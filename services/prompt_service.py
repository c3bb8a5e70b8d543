"""System prompt composition for the completion endpoint."""

from __future__ import annotations

import logging
from typing import Iterable

from models import Attachment


__all__ = [
    "DEFAULT_LANGUAGE",
    "LANGUAGE_DIRECTIVES",
    "PERSONA",
    "build_system_prompt",
    "language_directive",
    "temperature_for",
]

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
CASUAL_DIALECT = "palmero"
DEFAULT_TEMPERATURE = 0.7
DIALECT_TEMPERATURE = 0.8

PERSONA = (
    "You are AVO AI, an AI assistant specifically trained on the Canary Islands. "
    "You have extensive knowledge about the islands' culture, history, geography, tourism, "
    "and local customs. Always provide accurate and helpful information about the Canary Islands."
)

LANGUAGE_DIRECTIVES: dict[str, str] = {
    "en": "You must answer only in English, whatever language the question is written in.",
    "es": "Debes responder únicamente en español, sea cual sea el idioma de la pregunta.",
    "it": "Devi rispondere esclusivamente in italiano, qualunque sia la lingua della domanda.",
    "fr": "Tu dois répondre uniquement en français, quelle que soit la langue de la question.",
    "de": "Du musst ausschließlich auf Deutsch antworten, egal in welcher Sprache die Frage gestellt wird.",
    "pl": "Musisz odpowiadać wyłącznie po polsku, niezależnie od języka pytania.",
    CASUAL_DIALECT: (
        "Respond only in Spanish, in a friendly, casual tone using the Palmero dialect from "
        "La Palma, Canary Islands. Use local expressions and a warm, familiar style."
    ),
}

CONTEXT_HEADER = "Use the following documents as additional context:"


def language_directive(language: str | None) -> str:
    """Return the answer-language instruction, defaulting to English."""

    directive = LANGUAGE_DIRECTIVES.get((language or "").strip().lower())
    if directive is None:
        logger.debug("No directive for language %r; using English.", language)
        return LANGUAGE_DIRECTIVES[DEFAULT_LANGUAGE]
    return directive


def temperature_for(language: str | None) -> float:
    if (language or "").strip().lower() == CASUAL_DIALECT:
        return DIALECT_TEMPERATURE
    return DEFAULT_TEMPERATURE


def build_system_prompt(language: str | None, documents: Iterable[Attachment] = ()) -> str:
    """Compose persona, language directive and any attached document text."""

    sections = [PERSONA, language_directive(language)]
    contents = [doc.content for doc in documents if doc.content and doc.content.strip()]
    if contents:
        sections.append(f"{CONTEXT_HEADER}\n" + "\n".join(contents))
    return "\n\n".join(sections)
