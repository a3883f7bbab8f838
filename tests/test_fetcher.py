import pytest
import requests

from conftest import PAGE_URL, FakeResponse
from vidmux.config import MAX_REDIRECTS, PipelineConfig
from vidmux.errors import FetchError, FetchErrorKind
from vidmux.fetcher import build_session, fetch_page
from vidmux.models import PageReference

PAGE = PageReference.parse(PAGE_URL)


def test_build_session_caps_redirects_and_sets_user_agent():
    config = PipelineConfig(user_agent="test-agent/1.0")
    session = build_session(config)
    assert session.max_redirects == MAX_REDIRECTS == 5
    assert session.headers["User-Agent"] == "test-agent/1.0"


def test_fetch_page_returns_html(fake_session, config):
    fake_session.add(PAGE_URL, FakeResponse(body=b"<html>ok</html>"))
    assert fetch_page(PAGE, config, fake_session) == "<html>ok</html>"
    assert fake_session.calls == [PAGE_URL]


@pytest.mark.parametrize(
    "status, kind",
    [
        (404, FetchErrorKind.NOT_FOUND),
        (410, FetchErrorKind.NOT_FOUND),
        (500, FetchErrorKind.SERVER_ERROR),
        (503, FetchErrorKind.SERVER_ERROR),
    ],
)
def test_fetch_page_maps_http_status(fake_session, config, status, kind):
    fake_session.add(PAGE_URL, FakeResponse(status_code=status))
    with pytest.raises(FetchError) as excinfo:
        fetch_page(PAGE, config, fake_session)
    assert excinfo.value.kind is kind
    assert str(status) in str(excinfo.value)


@pytest.mark.parametrize(
    "exc, kind",
    [
        (requests.ReadTimeout("slow"), FetchErrorKind.TIMEOUT),
        (requests.ConnectTimeout("slow connect"), FetchErrorKind.TIMEOUT),
        (requests.ConnectionError("refused"), FetchErrorKind.NETWORK),
        (requests.TooManyRedirects("loop"), FetchErrorKind.NETWORK),
    ],
)
def test_fetch_page_maps_transport_errors(fake_session, config, exc, kind):
    fake_session.add(PAGE_URL, exc)
    with pytest.raises(FetchError) as excinfo:
        fetch_page(PAGE, config, fake_session)
    assert excinfo.value.kind is kind


def test_fetch_page_does_not_retry(fake_session, config):
    fake_session.add(PAGE_URL, requests.ConnectionError("refused"), FakeResponse(body=b"late"))
    with pytest.raises(FetchError):
        fetch_page(PAGE, config, fake_session)
    assert fake_session.calls == [PAGE_URL]
