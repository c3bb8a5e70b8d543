from __future__ import annotations

import io

import pytest
from pypdf import PdfWriter

from i18n import get_strings
from models import Attachment, Prediction
from services.attachment_service import (
    MAX_DOCUMENT_CHARS,
    AttachmentError,
    analyze_image,
    check_capacity,
    describe_predictions,
    ingest_document,
    load_classifier,
)


class StaticClassifier:
    def __init__(self, predictions=None, error: Exception | None = None) -> None:
        self.predictions = predictions or []
        self.error = error
        self.seen: list[bytes] = []

    def classify(self, image: bytes):
        self.seen.append(image)
        if self.error is not None:
            raise self.error
        return self.predictions


def test_ingest_text_document_normalizes_whitespace() -> None:
    doc = ingest_document("notes.txt", "text/plain", b"Teide  \t is\r\n\r\n\r\n\r\nhigh ")

    assert doc.content == "Teide is\n\nhigh"
    assert doc.mime == "text/plain"
    assert not doc.is_image


def test_ingest_guesses_mime_from_name_and_decodes_latin1() -> None:
    doc = ingest_document("recetas.txt", None, "Papas arrugadas con mojo pic\xf3n".encode("latin-1"))

    assert doc.mime == "text/plain"
    assert doc.content.endswith("picón")


def test_ingest_truncates_long_documents() -> None:
    doc = ingest_document("long.txt", "text/plain", b"a" * (MAX_DOCUMENT_CHARS + 50))

    assert doc.content.startswith("a" * MAX_DOCUMENT_CHARS)
    assert doc.content.endswith("(truncated)")


@pytest.mark.parametrize(
    ("name", "mime", "data"),
    [
        ("photo.jpg", "image/jpeg", b"jpeg"),
        ("empty.txt", "text/plain", b""),
        ("blank.txt", "text/plain", b"  \n \n"),
        ("broken.pdf", "application/pdf", b"%PDF-not really"),
    ],
)
def test_ingest_rejects_unusable_uploads(name: str, mime: str, data: bytes) -> None:
    with pytest.raises(AttachmentError):
        ingest_document(name, mime, data)


def test_ingest_pdf_without_text_is_rejected() -> None:
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    buffer = io.BytesIO()
    writer.write(buffer)

    with pytest.raises(AttachmentError) as excinfo:
        ingest_document("scan.pdf", "application/pdf", buffer.getvalue())

    assert "no readable text" in str(excinfo.value)


def test_check_capacity() -> None:
    docs = [Attachment(name=f"{i}.txt", content="x", mime="text/plain") for i in range(5)]

    check_capacity(docs[:4])
    with pytest.raises(AttachmentError) as excinfo:
        check_capacity(docs)
    assert str(excinfo.value) == "You can attach at most 5 files."


def test_describe_predictions() -> None:
    text = describe_predictions([Prediction("volcano", 0.973), Prediction("seashore", 0.012)])

    assert text == "volcano (97.3%), seashore (1.2%)"


def test_analyze_image_keeps_labels_as_context() -> None:
    classifier = StaticClassifier([Prediction("banana", 0.9)])

    attachment = analyze_image("fruit.png", "image/png", b"png-bytes", classifier)

    assert attachment.is_image
    assert attachment.preview == b"png-bytes"
    assert attachment.analysis == "banana (90.0%)"
    assert attachment.content == "Image analysis results: banana (90.0%)"
    assert classifier.seen == [b"png-bytes"]


def test_analyze_image_failures() -> None:
    with pytest.raises(AttachmentError) as excinfo:
        analyze_image("fruit.png", "image/png", b"png", None)
    assert str(excinfo.value) == "Image analysis model not loaded"

    with pytest.raises(AttachmentError):
        analyze_image("fruit.bmp", "image/bmp", b"bmp", StaticClassifier())

    with pytest.raises(AttachmentError) as excinfo:
        analyze_image("fruit.png", "image/png", b"png", StaticClassifier(error=RuntimeError("bad tensor")))
    assert "bad tensor" in str(excinfo.value)


def test_load_classifier_from_module_path() -> None:
    assert load_classifier(None) is None
    assert load_classifier("") is None
    assert load_classifier("collections:OrderedDict") == {}

    with pytest.raises(ValueError):
        load_classifier("collections")
    with pytest.raises(ModuleNotFoundError):
        load_classifier("no_such_module_here:factory")


def test_check_capacity_uses_translated_message() -> None:
    docs = [Attachment(name=f"{i}.txt", content="x", mime="text/plain") for i in range(5)]
    message = get_strings("es")["max_files_reached"]

    with pytest.raises(AttachmentError) as excinfo:
        check_capacity(docs, message=message)

    assert str(excinfo.value) == "Has alcanzado el número máximo de archivos adjuntos."
