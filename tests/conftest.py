"""Shared fixtures: an in-memory fake of the Kicktipp site.

The fake implements the :class:`~kicktipp.core.interfaces.Transport`
interface, so it can sit underneath the real login sequence, session guard
and pipeline without any network access.  It keeps a server-side "session
valid" flag that the login POST sets and tests can clear to simulate expiry.
"""

import threading
import time
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlsplit

import pytest
import requests

from kicktipp.auth.interfaces import Credentials
from kicktipp.core.cancellation import raise_if_cancelled
from kicktipp.core.interfaces import Transport
from kicktipp.core.models import LoginSite

BASE_URL = "https://kicktipp.test"
LOGIN_PATH = "/info/profil/login"
LOGIN_ACTION_PATH = "/info/profil/loginaction"
HOME_PATH = "/meine-tipprunden"

LOGIN_PAGE = """
<html><body>
<div class="header"><a href="/info/profil/login">Anmelden</a></div>
<form id="loginFormular" action="/info/profil/loginaction" method="post">
  <input type="hidden" name="_charset_" value="UTF-8">
  <input type="hidden" name="source" value="">
  <input type="hidden" name="token" value="a+b/c==&amp;x">
  <input type="text" name="kennung">
  <input type="password" name="passwort">
  <input type="submit" value="Anmelden">
</form>
</body></html>
"""

LOGIN_PAGE_WITHOUT_FORM = """
<html><body><h1>Wartungsarbeiten</h1><p>Bitte später erneut versuchen.</p></body></html>
"""

LOGIN_FAILED_PAGE = """
<html><body>
<div class="error">Die Anmeldedaten sind nicht korrekt.</div>
<form id="loginFormular" action="/info/profil/loginaction" method="post">
  <input type="hidden" name="_charset_" value="UTF-8">
  <input type="text" name="kennung">
  <input type="password" name="passwort">
</form>
</body></html>
"""

HOME_PAGE = """
<html><body>
<a href="/info/profil/logout">Abmelden</a>
<h1>Meine Tipprunden</h1>
</body></html>
"""


def html_response(status: int, body: str, url: str) -> requests.Response:
    """Build a :class:`requests.Response` carrying an HTML body."""
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    response.url = url
    response.headers["Content-Type"] = "text/html; charset=utf-8"
    return response


@dataclass
class RecordedRequest:
    method: str
    path: str
    url: str
    form: list[tuple[str, str]]


class FakeSite(Transport):
    """In-memory Kicktipp: a login form plus configurable protected pages."""

    def __init__(self, login_page: str = LOGIN_PAGE, accept_login: bool = True):
        self.login_page = login_page
        self.login_status = 200
        self.accept_login = accept_login
        self.login_delay = 0.0
        self.session_valid = False
        self.requests: list[RecordedRequest] = []
        self._routes = {}
        self._lock = threading.Lock()

    # -------------------------
    # Configuration
    # -------------------------

    def route(self, method, path, handler):
        """Serve ``handler(recorded_request) -> Response`` for *path*."""
        self._routes[(method, path)] = handler

    def protected(self, method, path, body, expired="401"):
        """Serve *body* while the session is valid.

        When the session is invalid the page answers like the real site does
        for an expired session: ``"401"``, ``"403"``, or ``"redirect"`` (the
        login page served at the login URL).
        """

        def handler(recorded):
            if self.session_valid:
                return html_response(200, body, recorded.url)
            if expired == "redirect":
                return html_response(200, self.login_page, BASE_URL + LOGIN_PATH)
            return html_response(int(expired), "<html>denied</html>", recorded.url)

        self.route(method, path, handler)

    def sequence(self, method, path, *responses):
        """Serve ``(status, body)`` pairs in order, repeating the last one."""
        calls = []

        def handler(recorded):
            with self._lock:
                calls.append(recorded)
                status, body = responses[min(len(calls), len(responses)) - 1]
            return html_response(status, body, recorded.url)

        self.route(method, path, handler)

    def expire_session(self):
        self.session_valid = False

    # -------------------------
    # Inspection
    # -------------------------

    def count(self, method, path):
        return sum(1 for r in self.requests if r.method == method and r.path == path)

    def requests_to(self, method, path):
        return [r for r in self.requests if r.method == method and r.path == path]

    @property
    def login_gets(self):
        return self.count("GET", LOGIN_PATH)

    @property
    def login_posts(self):
        return self.count("POST", LOGIN_ACTION_PATH)

    # -------------------------
    # Transport interface
    # -------------------------

    def send(self, request, cancel=None):
        raise_if_cancelled(cancel)
        prepared = request.prepare()
        body = prepared.body or ""
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        recorded = RecordedRequest(
            method=prepared.method,
            path=urlsplit(prepared.url).path,
            url=prepared.url,
            form=parse_qsl(body, keep_blank_values=True),
        )
        with self._lock:
            self.requests.append(recorded)

        key = (recorded.method, recorded.path)
        if key == ("GET", LOGIN_PATH):
            if self.login_delay:
                time.sleep(self.login_delay)
            return html_response(self.login_status, self.login_page, recorded.url)
        if key == ("POST", LOGIN_ACTION_PATH):
            if self.accept_login:
                self.session_valid = True
                return html_response(200, HOME_PAGE, BASE_URL + HOME_PATH)
            return html_response(200, LOGIN_FAILED_PAGE, recorded.url)

        handler = self._routes.get(key)
        if handler is None:
            return html_response(404, "<html>not found</html>", recorded.url)
        return handler(recorded)


@pytest.fixture()
def site():
    return LoginSite(base_url=BASE_URL)


@pytest.fixture()
def fake_site():
    return FakeSite()


@pytest.fixture()
def credentials():
    return Credentials(username="testuser", password="testpassword")
