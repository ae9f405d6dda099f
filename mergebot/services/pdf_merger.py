"""Concatenate fetched PDFs into one document with pypdf."""

from __future__ import annotations

import io
from collections.abc import Sequence

import structlog
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from mergebot.core.errors import MergeError
from mergebot.core.metrics import pdf_merge_total
from mergebot.services.batch_types import MergeResult, MergeStatus

logger = structlog.get_logger(__name__)


def _open_source(buffer: bytes, index: int) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(buffer))
        if reader.is_encrypted and not reader.decrypt(""):
            raise MergeError(f"source {index} is encrypted")
        return reader
    except MergeError:
        raise
    except (PyPdfError, ValueError, KeyError, TypeError, OSError) as exc:
        raise MergeError(f"source {index} could not be loaded: {exc}") from exc


def merge_pdf_bytes(buffers: Sequence[bytes]) -> tuple[bytes, int]:
    """Append every page of every buffer, in order, to one new document.

    Raises MergeError on the first buffer that cannot be loaded or copied;
    nothing partial is returned. Returns the merged bytes and page count.
    """
    if not buffers:
        raise ValueError("merge_pdf_bytes needs at least one buffer")

    writer = PdfWriter()
    for index, buffer in enumerate(buffers):
        reader = _open_source(buffer, index)
        try:
            for page in reader.pages:
                writer.add_page(page)
        except (PyPdfError, ValueError, KeyError, TypeError, OSError) as exc:
            raise MergeError(f"pages of source {index} could not be copied: {exc}") from exc

    out = io.BytesIO()
    try:
        writer.write(out)
    except (PyPdfError, ValueError, KeyError, TypeError, OSError) as exc:
        raise MergeError(f"merged document could not be written: {exc}") from exc
    return out.getvalue(), len(writer.pages)


def merge_pdfs(buffers: Sequence[bytes]) -> MergeResult:
    """Merge ``buffers`` and report the result as a value instead of raising."""
    try:
        content, page_count = merge_pdf_bytes(buffers)
    except MergeError as exc:
        pdf_merge_total.labels(status="failed").inc()
        logger.error("merge.failed", sources=len(buffers), reason=str(exc))
        return MergeResult(status=MergeStatus.FAILED, reason=str(exc))

    pdf_merge_total.labels(status="merged").inc()
    logger.info("merge.done", sources=len(buffers), pages=page_count, size=len(content))
    return MergeResult(status=MergeStatus.MERGED, content=content, page_count=page_count)
