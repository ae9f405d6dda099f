"""Split chat text into candidate links and rewrite Drive view links."""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urlencode, urlparse

from mergebot.core.constants import GDRIVE_DOWNLOAD_URL

_SEPARATORS = re.compile(r"[\n,]+")
_DRIVE_VIEW_PATH = re.compile(r"/file/d/([^/]+)/view")

DEFAULT_GDRIVE_HOSTS = frozenset({"drive.google.com", "drive.usercontent.google.com"})


def parse_links(text: str) -> list[str]:
    """Return trimmed, non-empty comma/newline separated tokens in input order.

    No deduplication and no URL validation: any non-empty token is a candidate.
    """
    return [part.strip() for part in _SEPARATORS.split(text or "") if part.strip()]


def is_gdrive_url(url: str, hosts: Iterable[str] = DEFAULT_GDRIVE_HOSTS) -> bool:
    hostname = (urlparse(url).hostname or "").lower()
    return hostname in set(hosts)


def convert_gdrive_link(url: str, hosts: Iterable[str] = DEFAULT_GDRIVE_HOSTS) -> str:
    """Rewrite a Drive ``/file/d/<ID>/view`` link to its direct-download form."""
    if not is_gdrive_url(url, hosts):
        return url
    match = _DRIVE_VIEW_PATH.search(urlparse(url).path)
    if not match:
        return url
    return f"{GDRIVE_DOWNLOAD_URL}?{urlencode({'export': 'download', 'id': match.group(1)})}"


def normalize_links(text: str, hosts: Iterable[str] = DEFAULT_GDRIVE_HOSTS) -> list[str]:
    """Parse ``text`` and rewrite known provider links. Same length as parse_links."""
    host_set = frozenset(h.lower() for h in hosts)
    return [convert_gdrive_link(link, host_set) for link in parse_links(text)]
