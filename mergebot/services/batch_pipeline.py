"""Run one chat message through normalize -> fetch -> merge -> report."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import structlog

from mergebot.core.config import Settings
from mergebot.core.constants import Messages
from mergebot.services.batch_retriever import retrieve_all
from mergebot.services.batch_types import BatchReport
from mergebot.services.link_parser import normalize_links, parse_links
from mergebot.services.outcome_reporter import MergeFn, report_outcomes
from mergebot.services.pdf_fetcher import FetchConfig, PdfFetcher, create_fetch_client
from mergebot.services.pdf_merger import merge_pdfs
from mergebot.transport.telegram import ChatTransport

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    fetch: FetchConfig = field(default_factory=FetchConfig)
    concurrency: int = 8
    merged_filename: str = "merged.pdf"

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            fetch=FetchConfig(
                timeout=settings.FETCH_TIMEOUT_SECONDS,
                max_bytes=settings.FETCH_MAX_BYTES,
                user_agent=settings.FETCH_USER_AGENT,
                gdrive_hosts=settings.gdrive_hosts,
            ),
            concurrency=settings.FETCH_CONCURRENCY,
            merged_filename=settings.MERGED_FILENAME,
        )


class LinkBatchPipeline:
    """Handle the link text of one message end to end."""

    def __init__(
        self,
        transport: ChatTransport,
        config: PipelineConfig | None = None,
        *,
        merge: MergeFn = merge_pdfs,
    ) -> None:
        self._transport = transport
        self._config = config or PipelineConfig()
        self._merge = merge

    async def handle_text(self, chat_id: int, text: str) -> BatchReport | None:
        """Process ``text`` as a batch. Returns None when it held no links."""
        links = parse_links(text)
        if not links:
            await self._transport.send_message(chat_id, Messages.EMPTY_INPUT)
            return None

        logger.info("batch.start", chat_id=chat_id, links=len(links))
        await self._transport.send_message(chat_id, Messages.DOWNLOADING)

        async with create_fetch_client(self._config.fetch) as client:
            fetcher = PdfFetcher(client, self._config.fetch)
            outcomes = await retrieve_all(
                normalize_links(text, self._config.fetch.gdrive_hosts),
                fetcher.fetch,
                concurrency=self._config.concurrency,
            )

        # Outcomes are fetched by candidate URL but reported by the link the user sent.
        outcomes = [replace(outcome, link=raw) for raw, outcome in zip(links, outcomes)]

        report = BatchReport(tuple(outcomes))
        await report_outcomes(
            chat_id,
            report,
            transport=self._transport,
            merged_filename=self._config.merged_filename,
            merge=self._merge,
        )
        return report
