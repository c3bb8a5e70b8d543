"""Turn uploaded files into conversation context."""

from __future__ import annotations

import codecs
import importlib
import io
import logging
import mimetypes
import re
from typing import Iterable, Protocol, Sequence

from pypdf import PdfReader

from models import Attachment, Prediction


logger = logging.getLogger(__name__)

MAX_FILES = 5
MAX_DOCUMENT_CHARS = 8_000
DOCUMENT_TYPES = ("text/plain", "text/markdown", "application/pdf")
IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


class AttachmentError(ValueError):
    """Raised with a user-facing message when an upload cannot be used."""


class ImageClassifier(Protocol):
    def classify(self, image: bytes) -> Sequence[Prediction]:
        ...


def resolve_mime(name: str, mime: str | None) -> str:
    return mime or mimetypes.guess_type(name)[0] or "application/octet-stream"


def check_capacity(documents: Sequence[Attachment], *, limit: int = MAX_FILES, message: str | None = None) -> None:
    if len(documents) >= limit:
        raise AttachmentError(message or f"You can attach at most {limit} files.")


def _normalize_text(text: str) -> str:
    text = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _decode_text(data: bytes) -> str:
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return data.decode("utf-16")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _read_pdf(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    return "\n\n".join(filter(None, (page.extract_text() for page in reader.pages)))


def ingest_document(name: str, mime: str | None, data: bytes) -> Attachment:
    """Decode a text or PDF upload into an :class:`Attachment`."""

    mime = resolve_mime(name, mime)
    if mime not in DOCUMENT_TYPES:
        raise AttachmentError("Sorry, only TXT, Markdown and PDF files are supported.")
    if not data:
        raise AttachmentError(f"The file \"{name}\" is empty.")

    if mime == "application/pdf":
        try:
            text = _read_pdf(data)
        except Exception as exc:
            logger.warning("Could not read PDF %s: %s", name, exc)
            raise AttachmentError(f"Sorry, I couldn't read the PDF \"{name}\".") from exc
    else:
        text = _decode_text(data)

    text = _normalize_text(text)
    if not text:
        raise AttachmentError(f"The file \"{name}\" contained no readable text.")
    if len(text) > MAX_DOCUMENT_CHARS:
        text = f"{text[:MAX_DOCUMENT_CHARS]}\n… (truncated)"
    return Attachment(name=name, content=text, mime=mime)


def describe_predictions(predictions: Iterable[Prediction]) -> str:
    return ", ".join(f"{p.class_name} ({p.probability * 100:.1f}%)" for p in predictions)


def analyze_image(
    name: str,
    mime: str | None,
    data: bytes,
    classifier: ImageClassifier | None,
) -> Attachment:
    """Label an image with ``classifier`` and keep the labels as context."""

    mime = resolve_mime(name, mime)
    if mime not in IMAGE_TYPES:
        raise AttachmentError("Sorry, only JPEG, PNG, GIF, and WebP images are supported.")
    if classifier is None:
        raise AttachmentError("Image analysis model not loaded")
    try:
        predictions = list(classifier.classify(data))
    except Exception as exc:
        logger.exception("Image classification failed for %s", name)
        raise AttachmentError(f"Sorry, I couldn't process the file \"{name}\". Error: {exc}") from exc
    analysis = describe_predictions(predictions) or "nothing recognisable"
    return Attachment(
        name=name,
        content=f"Image analysis results: {analysis}",
        mime=mime,
        preview=data,
        analysis=analysis,
    )


def load_classifier(path: str | None) -> ImageClassifier | None:
    """Build a classifier from a ``module:factory`` path, if one is configured."""

    if not path:
        return None
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"IMAGE_CLASSIFIER must look like 'module:factory', got {path!r}")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr)
    classifier = factory()
    logger.info("Loaded image classifier %s", path)
    return classifier


__all__ = [
    "AttachmentError",
    "DOCUMENT_TYPES",
    "IMAGE_TYPES",
    "ImageClassifier",
    "MAX_FILES",
    "analyze_image",
    "check_capacity",
    "describe_predictions",
    "ingest_document",
    "load_classifier",
    "resolve_mime",
]
