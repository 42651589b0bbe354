"""Unit tests for the requests-backed transport."""

import threading
from unittest.mock import patch

import pytest
import requests
from conftest import html_response

from kicktipp.core.exceptions import RequestCancelledError
from kicktipp.http.transport import DEFAULT_USER_AGENT, RequestsTransport


def test_sets_user_agent():
    transport = RequestsTransport(user_agent="kicktipp-tests/1.0")
    assert transport.session.headers["User-Agent"] == "kicktipp-tests/1.0"


def test_default_user_agent_and_timeout():
    transport = RequestsTransport()
    assert transport.session.headers["User-Agent"] == DEFAULT_USER_AGENT
    assert transport.timeout == 120


def test_send_attaches_current_session_cookies():
    transport = RequestsTransport(timeout=7)
    transport.session.cookies.set("JSESSIONID", "abc", domain="kicktipp.test")
    request = requests.Request("GET", "https://kicktipp.test/c/tabellen")
    fake = html_response(200, "<html>ok</html>", "https://kicktipp.test/c/tabellen")

    with patch.object(transport.session, "send", return_value=fake) as send:
        assert transport.send(request) is fake
        transport.session.cookies.set("JSESSIONID", "renewed", domain="kicktipp.test")
        transport.send(request)

    first, second = (c.args[0] for c in send.call_args_list)
    assert first.headers["Cookie"] == "JSESSIONID=abc"
    assert second.headers["Cookie"] == "JSESSIONID=renewed"
    assert send.call_args.kwargs["timeout"] == 7
    assert send.call_args.kwargs["allow_redirects"] is True


def test_cancelled_request_is_not_sent():
    transport = RequestsTransport()
    cancel = threading.Event()
    cancel.set()

    with patch.object(transport.session, "send") as send:
        with pytest.raises(RequestCancelledError):
            transport.send(requests.Request("GET", "https://kicktipp.test/"), cancel)
    send.assert_not_called()
