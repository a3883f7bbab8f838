"""Shared fakes for HTTP sessions and page payloads."""

from __future__ import annotations

import json
from collections import defaultdict, deque
from typing import Any, Dict, Iterable, List, Optional

import pytest
from requests.structures import CaseInsensitiveDict

from vidmux.config import PipelineConfig

PAGE_URL = "https://catalog.example.com/videos/play/42/"


class FakeResponse:
    """Minimal stand-in for requests.Response supporting streaming."""

    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        declare_length: bool = True,
        stream_error: Optional[Exception] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.headers = CaseInsensitiveDict(headers or {})
        if declare_length and "Content-Length" not in self.headers:
            self.headers["Content-Length"] = str(len(body))
        self.stream_error = stream_error
        self.url = ""
        self.encoding = "utf-8"
        self.apparent_encoding = "utf-8"
        self.closed = False

    @property
    def text(self) -> str:
        return self.body.decode(self.encoding)

    def iter_content(self, chunk_size: int = 1) -> Iterable[bytes]:
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start : start + chunk_size]
        if self.stream_error is not None:
            raise self.stream_error

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class FakeSession:
    """Replays queued responses (or raises queued exceptions) per URL."""

    def __init__(self) -> None:
        self.queues: Dict[str, deque] = defaultdict(deque)
        self.calls: List[str] = []
        self.headers: Dict[str, str] = {}
        self.max_redirects = 30

    def add(self, url: str, *items: Any) -> "FakeSession":
        self.queues[url].extend(items)
        return self

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(url)
        try:
            item = self.queues[url].popleft()
        except IndexError:
            raise AssertionError(f"unexpected request for {url}") from None
        if isinstance(item, Exception):
            raise item
        item.url = url
        return item


def page_html(payload: Any, extra: str = "", script_type: str = "application/json") -> str:
    return (
        "<html><head><title>Catalog Page</title>"
        f'<script type="{script_type}" id="__DATA__">{json.dumps(payload)}</script>'
        f"</head><body>{extra}</body></html>"
    )


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(backoff_base=0.0, backoff_cap=0.0, show_progress=False, chunk_size=4)
