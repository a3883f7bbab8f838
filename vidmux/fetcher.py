"""HTTP session setup and page retrieval."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import MAX_REDIRECTS, PipelineConfig
from .errors import FetchError, FetchErrorKind
from .models import PageReference

logger = logging.getLogger("vidmux.fetcher")


def build_session(config: PipelineConfig) -> requests.Session:
    """Create a session carrying the browser user agent and redirect cap."""
    session = requests.Session()
    session.headers.update({"User-Agent": config.user_agent})
    session.max_redirects = MAX_REDIRECTS
    return session


def classify_request_error(exc: requests.RequestException) -> FetchError:
    """Map a requests exception onto the fetch error taxonomy."""
    if isinstance(exc, requests.Timeout):
        return FetchError(FetchErrorKind.TIMEOUT, str(exc))
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return classify_status(exc.response.status_code, exc.response.url)
    return FetchError(FetchErrorKind.NETWORK, str(exc))


def classify_status(status_code: int, url: str) -> FetchError:
    if status_code >= 500:
        return FetchError(FetchErrorKind.SERVER_ERROR, f"HTTP {status_code} for {url}")
    return FetchError(FetchErrorKind.NOT_FOUND, f"HTTP {status_code} for {url}")


def fetch_page(
    page: PageReference,
    config: PipelineConfig,
    session: Optional[requests.Session] = None,
) -> str:
    """Return the HTML of a catalog page; raises FetchError on any failure."""
    session = session or build_session(config)
    logger.info("Loading %s", page.url)
    try:
        resp = session.get(page.url, timeout=config.timeout, allow_redirects=True)
    except requests.RequestException as exc:
        raise classify_request_error(exc) from exc

    if resp.status_code >= 400:
        raise classify_status(resp.status_code, resp.url or page.url)

    logger.debug("Response %s from %s", resp.status_code, resp.url)
    if "charset" not in resp.headers.get("Content-Type", "").lower():
        resp.encoding = resp.apparent_encoding or "utf-8"
    return resp.text
