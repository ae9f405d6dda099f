"""Unit tests for concurrent batch retrieval."""

import asyncio

import pytest

from mergebot.services.batch_retriever import retrieve_all
from mergebot.services.batch_types import FetchOutcome, FetchStatus


@pytest.mark.asyncio
async def test_results_follow_link_order_not_completion_order() -> None:
    links = [f"https://host.example/{i}.pdf" for i in range(5)]
    finished: list[str] = []

    async def fetch(link: str) -> FetchOutcome:
        # First link is the slowest, last link the fastest.
        await asyncio.sleep(0.01 * (len(links) - links.index(link)))
        finished.append(link)
        return FetchOutcome.success(link, link.encode())

    outcomes = await retrieve_all(links, fetch, concurrency=len(links))

    assert finished == list(reversed(links))
    assert [o.link for o in outcomes] == links
    assert [o.content for o in outcomes] == [link.encode() for link in links]


@pytest.mark.asyncio
async def test_one_outcome_per_link_including_duplicates() -> None:
    links = ["https://a.example/x.pdf", "https://a.example/x.pdf", "junk"]

    async def fetch(link: str) -> FetchOutcome:
        if link == "junk":
            return FetchOutcome.failure(link, "invalid URL")
        return FetchOutcome.success(link, b"%PDF")

    outcomes = await retrieve_all(links, fetch)

    assert len(outcomes) == 3
    assert [o.status for o in outcomes] == [
        FetchStatus.SUCCESS,
        FetchStatus.SUCCESS,
        FetchStatus.FAILED,
    ]


@pytest.mark.asyncio
async def test_raising_fetch_only_fails_its_own_link() -> None:
    links = ["https://ok.example/1.pdf", "https://boom.example/2.pdf", "https://ok.example/3.pdf"]

    async def fetch(link: str) -> FetchOutcome:
        if "boom" in link:
            raise RuntimeError("kaboom")
        await asyncio.sleep(0)
        return FetchOutcome.success(link, b"%PDF")

    outcomes = await retrieve_all(links, fetch)

    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[1].link == "https://boom.example/2.pdf"
    assert "RuntimeError" in outcomes[1].reason


@pytest.mark.asyncio
async def test_in_flight_fetches_never_exceed_limit() -> None:
    links = [f"https://host.example/{i}.pdf" for i in range(7)]
    in_flight = 0
    peak = 0

    async def fetch(link: str) -> FetchOutcome:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.005)
        in_flight -= 1
        return FetchOutcome.success(link, b"%PDF")

    outcomes = await retrieve_all(links, fetch, concurrency=2)

    assert peak == 2
    assert len(outcomes) == len(links)


@pytest.mark.asyncio
async def test_all_fetches_settle_after_early_failure() -> None:
    """No early return: a fast failure does not cut slower fetches short."""
    links = ["https://fail.example/a.pdf", "https://slow.example/b.pdf"]

    async def fetch(link: str) -> FetchOutcome:
        if "fail" in link:
            return FetchOutcome.failure(link, "HTTP 500")
        await asyncio.sleep(0.02)
        return FetchOutcome.success(link, b"%PDF")

    outcomes = await retrieve_all(links, fetch)

    assert [o.ok for o in outcomes] == [False, True]


@pytest.mark.asyncio
async def test_empty_batch_returns_empty_list() -> None:
    async def fetch(link: str) -> FetchOutcome:  # pragma: no cover - never called
        raise AssertionError("fetch should not run")

    assert await retrieve_all([], fetch) == []


@pytest.mark.asyncio
async def test_rejects_non_positive_concurrency() -> None:
    async def fetch(link: str) -> FetchOutcome:  # pragma: no cover - never called
        raise AssertionError("fetch should not run")

    with pytest.raises(ValueError):
        await retrieve_all(["https://a.example/1.pdf"], fetch, concurrency=0)
