"""Fan a batch of links out to the fetcher and collect outcomes in link order."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

import structlog

from mergebot.core.constants import FailureReason
from mergebot.services.batch_types import FetchOutcome

logger = structlog.get_logger(__name__)

FetchFn = Callable[[str], Awaitable[FetchOutcome]]


async def retrieve_all(
    links: Sequence[str],
    fetch: FetchFn,
    *,
    concurrency: int = 8,
) -> list[FetchOutcome]:
    """Fetch every link and wait for all of them to settle.

    At most ``concurrency`` fetches are in flight at once. Results come back
    in the order of ``links`` no matter which fetch finishes first. A fetch
    that raises becomes a failure outcome for its own link only.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")

    semaphore = asyncio.Semaphore(concurrency)

    async def _bounded(link: str) -> FetchOutcome:
        async with semaphore:
            return await fetch(link)

    results = await asyncio.gather(*[_bounded(link) for link in links], return_exceptions=True)

    outcomes: list[FetchOutcome] = []
    for link, result in zip(links, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.error("batch.fetch_raised", link=link, error=repr(result))
            outcomes.append(
                FetchOutcome.failure(link, FailureReason.UNEXPECTED.format(error=type(result).__name__))
            )
            continue
        outcomes.append(result)

    logger.info(
        "batch.retrieved",
        total=len(outcomes),
        succeeded=sum(1 for o in outcomes if o.ok),
    )
    return outcomes
