"""Turn a batch's fetch outcomes into chat replies and the merged document."""

from __future__ import annotations

import asyncio
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path

import structlog

from mergebot.core.constants import PDF_MIME_TYPE, TELEGRAM_MESSAGE_LIMIT, Messages
from mergebot.core.errors import DeliveryError, TelegramAPIError
from mergebot.core.metrics import batches_total
from mergebot.services.batch_types import BatchReport, MergeResult
from mergebot.services.pdf_merger import merge_pdfs
from mergebot.transport.telegram import ChatTransport

logger = structlog.get_logger(__name__)

MergeFn = Callable[[Sequence[bytes]], MergeResult]


def format_failed_links(links: Sequence[str], limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Failure listing, one link per line, split into messages of at most ``limit`` chars.

    Only the first message carries the header. A single link longer than the
    limit is cut to fit.
    """
    messages: list[str] = []
    current = Messages.FAILED_LINKS.format(count=len(links))
    for link in links:
        line = link[: limit - 1]
        if len(current) + 1 + len(line) > limit:
            messages.append(current)
            current = line
        else:
            current = f"{current}\n{line}"
    messages.append(current)
    return messages


def format_summary(report: BatchReport) -> str:
    return Messages.SUMMARY.format(success=report.success_count, failed=report.failure_count)


async def _notify(transport: ChatTransport, chat_id: int, text: str) -> bool:
    """Send a text; a rejected send is logged and the batch carries on."""
    try:
        await transport.send_message(chat_id, text)
    except TelegramAPIError as exc:
        logger.warning(
            "batch.notice_failed",
            chat_id=chat_id,
            error=exc.description,
            error_code=exc.error_code,
        )
        return False
    return True


async def deliver_document(
    transport: ChatTransport, chat_id: int, content: bytes, filename: str
) -> None:
    """Write ``content`` to a temp dir, upload it, and remove it on every exit path."""
    with tempfile.TemporaryDirectory(prefix="mergebot-") as tmp:
        path = Path(tmp) / filename
        try:
            path.write_bytes(content)
        except OSError as exc:
            raise DeliveryError(f"could not stage {filename}: {exc}") from exc
        await transport.send_document(chat_id, path, filename, PDF_MIME_TYPE)


async def report_outcomes(
    chat_id: int,
    report: BatchReport,
    *,
    transport: ChatTransport,
    merged_filename: str = "merged.pdf",
    merge: MergeFn = merge_pdfs,
) -> str:
    """Send the failure listing, the merged PDF (if any) and the summary.

    The summary is always the last message. A rejected text never stops the
    batch. Returns the batch outcome label.
    """
    log = logger.bind(chat_id=chat_id)

    if report.failures:
        for text in format_failed_links(report.failed_links):
            await _notify(transport, chat_id, text)

    if not report.successes:
        outcome = "all_failed"
        await _notify(transport, chat_id, Messages.NO_VALID_PDFS)
    else:
        result = await asyncio.to_thread(merge, report.pdf_buffers)
        if not result.ok:
            outcome = "merge_failed"
            log.error("batch.merge_failed", reason=result.reason)
            await _notify(transport, chat_id, Messages.PROCESSING_ERROR)
        else:
            try:
                await deliver_document(transport, chat_id, result.content or b"", merged_filename)
                outcome = "delivered"
            except (DeliveryError, TelegramAPIError) as exc:
                outcome = "delivery_failed"
                log.error("batch.delivery_failed", error=str(exc))
                await _notify(transport, chat_id, Messages.DELIVERY_ERROR)

    summary_sent = await _notify(transport, chat_id, format_summary(report))
    batches_total.labels(outcome=outcome).inc()
    log.info(
        "batch.done",
        outcome=outcome,
        succeeded=report.success_count,
        failed=report.failure_count,
        summary_sent=summary_sent,
    )
    return outcome
