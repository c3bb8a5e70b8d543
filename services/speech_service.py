"""Dictation through the OpenAI Whisper transcription endpoint."""

from __future__ import annotations

import io
import logging
from typing import Any

from openai import OpenAI, OpenAIError


logger = logging.getLogger(__name__)

WHISPER_MODEL = "whisper-1"
WHISPER_LANGUAGES = {
    "en": "en",
    "es": "es",
    "it": "it",
    "fr": "fr",
    "de": "de",
    "pl": "pl",
    "palmero": "es",
}


class TranscriptionError(RuntimeError):
    """Raised when recorded audio cannot be turned into text."""


def extract_transcript_text(transcript: Any) -> str | None:
    if not transcript:
        return None
    direct = getattr(transcript, "text", None)
    if isinstance(direct, str) and direct.strip():
        return direct.strip()
    data = None
    if isinstance(transcript, dict):
        data = transcript
    else:
        for attr in ("model_dump", "dict", "to_dict"):
            method = getattr(transcript, attr, None)
            if callable(method):
                try:
                    candidate = method()
                except TypeError:
                    continue
                if isinstance(candidate, dict):
                    data = candidate
                    break
    if data:
        text = data.get("text")
        if isinstance(text, str) and text.strip():
            return text.strip()
        segments = data.get("segments")
        if isinstance(segments, list):
            combined = " ".join(
                seg.get("text", "").strip() for seg in segments if isinstance(seg, dict) and seg.get("text")
            ).strip()
            if combined:
                return combined
    return None


def transcribe(audio: bytes, *, language: str, client: OpenAI, filename: str = "input.wav") -> str:
    """Return the transcript of ``audio`` or raise :class:`TranscriptionError`."""

    if not audio:
        raise TranscriptionError("No audio was recorded.")
    # The API expects a file-like object with a name.
    buf = io.BytesIO(audio)
    buf.name = filename
    kwargs: dict[str, Any] = {"model": WHISPER_MODEL, "file": buf}
    hint = WHISPER_LANGUAGES.get(language)
    if hint:
        kwargs["language"] = hint
    try:
        transcript = client.audio.transcriptions.create(**kwargs)
    except OpenAIError as exc:
        logger.exception("Transcription failed")
        raise TranscriptionError(f"Transcription failed: {exc}") from exc
    text = extract_transcript_text(transcript)
    if not text:
        raise TranscriptionError("No transcript returned from Whisper.")
    return text


def create_client(api_key: str | None) -> OpenAI | None:
    if not api_key:
        return None
    return OpenAI(api_key=api_key)


__all__ = [
    "TranscriptionError",
    "WHISPER_LANGUAGES",
    "create_client",
    "extract_transcript_text",
    "transcribe",
]
