"""Typed contracts for the fetch/merge pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FetchStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class MergeStatus(str, Enum):
    MERGED = "merged"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchOutcome:
    link: str
    status: FetchStatus
    content: bytes | None = None
    reason: str = ""

    @classmethod
    def success(cls, link: str, content: bytes) -> FetchOutcome:
        return cls(link=link, status=FetchStatus.SUCCESS, content=content)

    @classmethod
    def failure(cls, link: str, reason: str) -> FetchOutcome:
        return cls(link=link, status=FetchStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.SUCCESS


@dataclass(frozen=True)
class MergeResult:
    status: MergeStatus
    content: bytes | None = None
    reason: str = ""
    page_count: int = 0

    @property
    def ok(self) -> bool:
        return self.status is MergeStatus.MERGED


@dataclass(frozen=True)
class BatchReport:
    """Counts and failed links derived from one batch's outcomes."""

    outcomes: tuple[FetchOutcome, ...]

    @property
    def successes(self) -> list[FetchOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failures(self) -> list[FetchOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def failed_links(self) -> list[str]:
        return [o.link for o in self.failures]

    @property
    def pdf_buffers(self) -> list[bytes]:
        """Success payloads in original link order."""
        return [o.content for o in self.successes if o.content is not None]
