"""Shared fixtures: tiny generated PDFs and an in-memory chat transport."""

import io
from pathlib import Path

import pytest
from pypdf import PdfReader, PdfWriter

from mergebot.core.errors import TelegramAPIError


def _make_pdf(*widths: float, height: float = 100) -> bytes:
    """Blank-page PDF; page widths double as page identities in assertions."""
    writer = PdfWriter()
    for width in widths:
        writer.add_blank_page(width=width, height=height)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def _page_widths(data: bytes) -> list[float]:
    return [float(page.mediabox.width) for page in PdfReader(io.BytesIO(data)).pages]


class FakeTransport:
    """Records every outbound call in order."""

    def __init__(self, fail_documents: bool = False, max_text_length: int | None = None) -> None:
        self.fail_documents = fail_documents
        self.max_text_length = max_text_length
        self.events: list[tuple[str, object]] = []
        self.documents: list[dict] = []

    @property
    def texts(self) -> list[str]:
        return [payload for kind, payload in self.events if kind == "text"]

    async def send_message(self, chat_id: int, text: str) -> None:
        if self.max_text_length is not None and len(text) > self.max_text_length:
            raise TelegramAPIError("sendMessage", "Bad Request: message is too long", 400)
        self.events.append(("text", text))

    async def send_document(self, chat_id: int, path: Path, filename: str, mime_type: str) -> None:
        self.documents.append(
            {
                "chat_id": chat_id,
                "path": path,
                "filename": filename,
                "mime_type": mime_type,
                "content": path.read_bytes(),
            }
        )
        self.events.append(("document", filename))
        if self.fail_documents:
            raise TelegramAPIError("sendDocument", "Bad Request: file is too big", 400)


@pytest.fixture
def make_pdf():
    return _make_pdf


@pytest.fixture
def page_widths():
    return _page_widths


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def failing_transport() -> FakeTransport:
    return FakeTransport(fail_documents=True)


@pytest.fixture
def make_transport():
    return FakeTransport
