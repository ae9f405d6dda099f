"""Retrieve one candidate link as PDF bytes.

Two strategies, picked by host:
- direct: one GET; the declared Content-Type must mention pdf.
- gdrive: Drive may answer with an HTML interstitial carrying a one-time
  confirmation token instead of the file. The token is scraped from the page
  and the download is reissued with it. The final response must carry a
  Content-Disposition filename ending in .pdf.

`PdfFetcher.fetch` never raises: every failure comes back as a
FetchOutcome with a reason string.
"""

from __future__ import annotations

import html
import re
import time
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

import httpx
import structlog

from mergebot.core.constants import GDRIVE_DOWNLOAD_URL, FailureReason
from mergebot.core.metrics import pdf_fetch_duration_seconds, pdf_fetch_total
from mergebot.services.batch_types import FetchOutcome
from mergebot.services.link_parser import DEFAULT_GDRIVE_HOSTS, is_gdrive_url

logger = structlog.get_logger(__name__)

_CONFIRM_IN_LINK = re.compile(r"confirm=([0-9A-Za-z_\-]+)")
_HIDDEN_INPUT = re.compile(r'<input[^>]*\bname="([^"]+)"[^>]*\bvalue="([^"]*)"', re.IGNORECASE)
_FORM_ACTION = re.compile(r'<form[^>]*\baction="([^"]+)"', re.IGNORECASE)
_FILE_ID_IN_PATH = re.compile(r"/(?:file/)?d/([^/]+)")


@dataclass(frozen=True)
class FetchConfig:
    timeout: float = 30.0
    max_bytes: int = 50 * 1024 * 1024
    user_agent: str = "mergebot/1.0"
    gdrive_hosts: frozenset[str] = DEFAULT_GDRIVE_HOSTS


class FetchRejected(Exception):
    """Response arrived but is not a deliverable PDF."""


@dataclass(frozen=True)
class _ConfirmRequest:
    url: str
    params: dict[str, str]


def create_fetch_client(config: FetchConfig) -> httpx.AsyncClient:
    """HTTP client for one batch; callers own its lifetime."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
    )


def _has_pdf_disposition(response: httpx.Response) -> bool:
    return ".pdf" in str(response.headers.get("content-disposition") or "").lower()


def _is_html(response: httpx.Response) -> bool:
    return "html" in str(response.headers.get("content-type") or "").lower()


def _file_id_from_link(link: str) -> str:
    parsed = urlparse(link)
    ids = parse_qs(parsed.query).get("id")
    if ids and ids[0]:
        return ids[0]
    match = _FILE_ID_IN_PATH.search(parsed.path)
    return match.group(1) if match else ""


def find_confirm_request(page: str, link: str) -> _ConfirmRequest | None:
    """Locate the confirmation token in a Drive interstitial page.

    Newer pages submit a form with hidden inputs (id, export, confirm, uuid);
    older ones embed ``confirm=<token>`` in the download link.
    Returns None when no token is present.
    """
    hidden = {name: html.unescape(value) for name, value in _HIDDEN_INPUT.findall(page)}
    if hidden.get("confirm"):
        action = _FORM_ACTION.search(page)
        url = html.unescape(action.group(1)) if action else GDRIVE_DOWNLOAD_URL
        params = dict(hidden)
        params.setdefault("export", "download")
        if not params.get("id"):
            params["id"] = _file_id_from_link(link)
        return _ConfirmRequest(url=url, params=params)

    match = _CONFIRM_IN_LINK.search(page)
    if match:
        return _ConfirmRequest(
            url=GDRIVE_DOWNLOAD_URL,
            params={"export": "download", "confirm": match.group(1), "id": _file_id_from_link(link)},
        )
    return None


class PdfFetcher:
    """Fetch a single link into memory with the strategy its host needs."""

    def __init__(self, client: httpx.AsyncClient, config: FetchConfig | None = None) -> None:
        self._client = client
        self._config = config or FetchConfig()

    async def _get(
        self, url: str, params: dict[str, str] | None = None
    ) -> tuple[httpx.Response, bytes]:
        """GET ``url`` into memory, enforcing the size ceiling while streaming."""
        async with self._client.stream("GET", url, params=params) as resp:
            resp.raise_for_status()
            declared = str(resp.headers.get("content-length") or "")
            if declared.isdigit() and int(declared) > self._config.max_bytes:
                raise FetchRejected(FailureReason.TOO_LARGE)
            chunks: list[bytes] = []
            seen = 0
            async for part in resp.aiter_bytes():
                seen += len(part)
                if seen > self._config.max_bytes:
                    raise FetchRejected(FailureReason.TOO_LARGE)
                chunks.append(part)
            return resp, b"".join(chunks)

    async def _fetch_direct(self, link: str) -> bytes:
        resp, body = await self._get(link)
        content_type = str(resp.headers.get("content-type") or "").lower()
        if "pdf" not in content_type:
            raise FetchRejected(FailureReason.NOT_PDF)
        return body

    async def _fetch_gdrive(self, link: str) -> bytes:
        resp, body = await self._get(link)
        if _has_pdf_disposition(resp):
            # Small files skip the interstitial entirely.
            return body

        page = body.decode(resp.encoding or "utf-8", errors="replace")
        confirm = find_confirm_request(page, link)
        if confirm is None:
            if _is_html(resp):
                raise FetchRejected(FailureReason.GDRIVE_UNKNOWN_FORMAT)
            raise FetchRejected(FailureReason.GDRIVE_NOT_PDF)
        if not confirm.params.get("id"):
            raise FetchRejected(FailureReason.GDRIVE_MISSING_ID)

        logger.debug("fetch.gdrive_confirm", link=link, target=confirm.url)
        resp, body = await self._get(confirm.url, params=confirm.params)
        if not _has_pdf_disposition(resp):
            raise FetchRejected(FailureReason.GDRIVE_NOT_PDF)
        return body

    async def fetch(self, link: str) -> FetchOutcome:
        """Return a success outcome with the PDF bytes, or a failure with a reason."""
        strategy = "gdrive" if is_gdrive_url(link, self._config.gdrive_hosts) else "direct"
        started = time.perf_counter()
        reason = ""
        try:
            if strategy == "gdrive":
                content = await self._fetch_gdrive(link)
            else:
                content = await self._fetch_direct(link)
        except FetchRejected as exc:
            reason = str(exc)
        except httpx.InvalidURL:
            reason = FailureReason.INVALID_URL
        except httpx.TimeoutException:
            reason = FailureReason.TIMEOUT
        except httpx.HTTPStatusError as exc:
            reason = FailureReason.HTTP_STATUS.format(status_code=exc.response.status_code)
        except httpx.HTTPError as exc:
            reason = FailureReason.TRANSPORT.format(error=type(exc).__name__)
        except Exception as exc:
            logger.exception("fetch.unexpected_error", link=link, strategy=strategy)
            reason = FailureReason.UNEXPECTED.format(error=type(exc).__name__)
        finally:
            pdf_fetch_duration_seconds.labels(strategy=strategy).observe(
                max(time.perf_counter() - started, 0.0)
            )

        if reason:
            pdf_fetch_total.labels(strategy=strategy, status="failed").inc()
            logger.warning("fetch.failed", link=link, strategy=strategy, reason=reason)
            return FetchOutcome.failure(link, reason)

        pdf_fetch_total.labels(strategy=strategy, status="success").inc()
        logger.info("fetch.done", link=link, strategy=strategy, size=len(content))
        return FetchOutcome.success(link, content)
