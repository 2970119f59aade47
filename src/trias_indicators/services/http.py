"""
HTTP session for the GBIF API.

GBIF answers bulk taxonomy lookups with 429 and a ``Retry-After`` header when
a client goes too fast, and with the odd 5xx under load.  ``GbifSession``
retries both with exponential backoff, waits as long as ``Retry-After``
asks, applies a default timeout and resolves relative paths against the
configured API base.  Retry count, backoff and timeout come from
``Settings`` (``TRIAS_HTTP_RETRIES``, ``TRIAS_HTTP_BACKOFF``,
``TRIAS_HTTP_TIMEOUT``).

Usage::

    from trias_indicators.services.http import session

    resp = session.get("species/2498252")
    resp.raise_for_status()
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from trias_indicators import __version__
from trias_indicators.config import Settings, get_settings

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)

USER_AGENT = f"trias-indicators/{__version__}"


def gbif_retry(retries: int, backoff: float) -> Retry:
    """Retry idempotent requests on throttling and server errors."""
    return Retry(
        total=retries,
        backoff_factor=backoff,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=["GET", "HEAD"],
        respect_retry_after_header=True,
        raise_on_status=False,  # the caller decides via raise_for_status()
    )


def _log_throttled(resp: requests.Response, *args: Any, **kwargs: Any) -> None:
    if resp.status_code == HTTPStatus.TOO_MANY_REQUESTS:
        logger.warning(
            "GBIF throttled %s (Retry-After: %s)", resp.url, resp.headers.get("Retry-After", "-")
        )


class GbifSession(requests.Session):
    """``requests.Session`` bound to one API base URL with a default timeout."""

    def __init__(self, base_url: str, *, timeout: float, retry: Retry) -> None:
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        adapter = HTTPAdapter(max_retries=retry)
        self.mount("https://", adapter)
        self.mount("http://", adapter)
        self.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
        self.hooks["response"].append(_log_throttled)

    def url_for(self, path: str) -> str:
        """Absolute URLs pass through; anything else is relative to ``base_url``."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, url: str, *args: Any, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        # An explicit timeout= still wins
        kwargs.setdefault("timeout", self.timeout)
        return super().request(method, self.url_for(url), *args, **kwargs)


def create_session(settings: Settings | None = None) -> GbifSession:
    """Build a GBIF session from settings (``get_settings()`` by default)."""
    settings = settings or get_settings()
    return GbifSession(
        settings.gbif_api,
        timeout=settings.http_timeout,
        retry=gbif_retry(settings.http_retries, settings.http_backoff),
    )


#: Module-level session, import and use directly.
session: GbifSession = create_session()
