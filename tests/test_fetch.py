"""
Tests for the HTTP fetcher, with a mocked requests session.
"""
from unittest import mock

import pytest
import requests

from depthcrawler.fetch import (
    FetchError,
    HTTPStatusError,
    HttpFetcher,
    ParseError,
    TransportError,
)

URL = "http://example.test/"


def make_response(status_code=200, text="<html><body><a href='/a'>a</a></body></html>", reason="OK"):
    resp = mock.Mock(spec=requests.Response)
    resp.status_code = status_code
    resp.text = text
    resp.reason = reason
    return resp


@pytest.fixture
def session():
    s = mock.Mock(spec=requests.Session)
    s.headers = {}
    return s


def test_user_agent_set_on_session(session):
    HttpFetcher(user_agent="TestAgent/2.0", session=session)
    assert session.headers["User-Agent"] == "TestAgent/2.0"


def test_fetch_parses_document(session):
    session.get.return_value = make_response()
    page = HttpFetcher(timeout_s=3.0, session=session).fetch(URL)

    session.get.assert_called_once_with(URL, timeout=3.0)
    assert page.url == URL
    assert page.status_code == 200
    assert page.document.find("a")["href"] == "/a"
    session.get.return_value.close.assert_called_once()


def test_other_2xx_accepted(session):
    session.get.return_value = make_response(status_code=203)
    assert HttpFetcher(session=session).fetch(URL).status_code == 203


@pytest.mark.parametrize("status", [301, 404, 500, 503])
def test_non_success_status(session, status):
    session.get.return_value = make_response(status_code=status, reason="Nope")

    with pytest.raises(HTTPStatusError) as excinfo:
        HttpFetcher(session=session).fetch(URL)

    assert excinfo.value.status_code == status
    assert excinfo.value.url == URL
    assert str(excinfo.value) == f"Status code error: {status} Nope for URL: {URL}"
    session.get.return_value.close.assert_called_once()


@pytest.mark.parametrize("exc", [
    requests.ConnectionError("refused"),
    requests.Timeout("slow"),
    requests.TooManyRedirects("loop"),
])
def test_transport_errors_wrapped(session, exc):
    session.get.side_effect = exc

    with pytest.raises(TransportError) as excinfo:
        HttpFetcher(session=session).fetch(URL)

    assert excinfo.value.url == URL
    assert excinfo.value.__cause__ is exc


def test_parse_error_wrapped(session):
    session.get.return_value = make_response()
    with mock.patch("depthcrawler.fetch.parse_document", side_effect=RuntimeError("broken")):
        with pytest.raises(ParseError) as excinfo:
            HttpFetcher(session=session).fetch(URL)
    assert isinstance(excinfo.value, FetchError)
    assert "broken" in str(excinfo.value)


def test_no_retry_on_failure(session):
    session.get.side_effect = requests.ConnectionError("refused")
    with pytest.raises(TransportError):
        HttpFetcher(session=session).fetch(URL)
    assert session.get.call_count == 1


def test_context_manager_closes_session(session):
    with HttpFetcher(session=session) as fetcher:
        assert fetcher.session is session
    session.close.assert_called_once()
