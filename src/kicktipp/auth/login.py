"""HTML login form handling and the login sequence.

The pure functions in this module operate on parsed documents and know
nothing about sessions or locking; :class:`FormLogin` strings them together
into one login attempt that the session guard runs under single-flight.
"""

import logging
from collections.abc import Callable, Sequence
from urllib.parse import urljoin, urlsplit

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag

from kicktipp.auth.interfaces import Credentials
from kicktipp.core.exceptions import (
    LoginFormMissingError,
    LoginPageUnreachableError,
    LoginRejectedError,
)
from kicktipp.core.interfaces import Transport
from kicktipp.core.models import LoginFormDescriptor, LoginSite

logger = logging.getLogger(__name__)

SuccessCheck = Callable[[requests.Response, BeautifulSoup, LoginSite], bool]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_html(html: str) -> BeautifulSoup:
    """Parse *html* with the standard-library backed parser."""
    return BeautifulSoup(html, "html.parser")


def parse_login_form(html: str, base_url: str) -> LoginFormDescriptor:
    """Extract the submission target and hidden fields of the first form.

    Args:
        html: The login page body.
        base_url: URL the page was fetched from.  Relative ``action``
            attributes are resolved against it; an empty or missing action
            posts back to it.

    Returns:
        A :class:`LoginFormDescriptor`.

    Raises:
        LoginFormMissingError: If the page contains no ``<form>`` element.
    """
    form = parse_html(html).find("form")
    if not isinstance(form, Tag):
        raise LoginFormMissingError("Could not find a login form on the page.")

    action = (form.get("action") or "").strip()
    submit_url = urljoin(base_url, action) if action else base_url

    hidden_fields = []
    for element in form.find_all("input"):
        if (element.get("type") or "").strip().lower() != "hidden":
            continue
        name = element.get("name")
        if not name:
            continue
        hidden_fields.append((name, element.get("value") or ""))

    return LoginFormDescriptor(
        submit_url=submit_url, hidden_fields=tuple(hidden_fields)
    )


def build_login_payload(
    form: LoginFormDescriptor,
    credentials: Credentials,
    site: LoginSite,
) -> list[tuple[str, str]]:
    """Return the form-encoded body for a login submission.

    The credential fields come first under the site's fixed field names,
    followed by every hidden field in document order.
    """
    payload = [
        (site.username_field, credentials.username),
        (site.password_field, credentials.password),
    ]
    payload.extend(form.hidden_fields)
    return payload


def is_login_url(url: str | None, site: LoginSite) -> bool:
    """Return ``True`` if *url* points at the login page or its endpoints.

    Any path starting with the login path counts, which covers the form
    action (``/info/profil/loginaction``) as well as the page itself.
    """
    if not url:
        return False
    login = urlsplit(site.login_url)
    target = urlsplit(url)
    if target.netloc and target.netloc != login.netloc:
        return False
    return target.path.rstrip("/").startswith(login.path.rstrip("/"))


def has_login_form(document: BeautifulSoup, site: LoginSite) -> bool:
    """Return ``True`` if *document* contains the site's login form.

    A form matches when it has the configured selector or contains an input
    named like the password field.
    """
    if site.login_form_selector and document.select_one(site.login_form_selector):
        return True
    for form in document.find_all("form"):
        if form.find("input", attrs={"name": site.password_field}):
            return True
    return False


# ---------------------------------------------------------------------------
# Success classification
# ---------------------------------------------------------------------------


def left_login_page(
    response: requests.Response, document: BeautifulSoup, site: LoginSite
) -> bool:
    """The final URL after submission is no longer the login URL."""
    return not is_login_url(response.url, site)


def login_form_gone(
    response: requests.Response, document: BeautifulSoup, site: LoginSite
) -> bool:
    """The final page no longer shows a login form."""
    return not has_login_form(document, site)


def logged_in_marker_present(
    response: requests.Response, document: BeautifulSoup, site: LoginSite
) -> bool:
    """The final page has an element only shown to logged-in users."""
    return any(document.select_one(s) is not None for s in site.logged_in_selectors)


DEFAULT_SUCCESS_CHECKS: tuple[SuccessCheck, ...] = (
    left_login_page,
    login_form_gone,
    logged_in_marker_present,
)


def is_login_successful(
    response: requests.Response,
    site: LoginSite,
    checks: Sequence[SuccessCheck] = DEFAULT_SUCCESS_CHECKS,
) -> bool:
    """Classify the final response of a login submission.

    The site offers no single authoritative signal, so the checks are
    OR'd: any one of them holding is enough.
    """
    document = parse_html(response.text)
    return any(check(response, document, site) for check in checks)


# ---------------------------------------------------------------------------
# Login sequence
# ---------------------------------------------------------------------------


class FormLogin:
    """Performs one complete login attempt against an HTML login form.

    Instances are callables with no arguments, which is the shape the
    :class:`~kicktipp.auth.guard.SessionGuard` expects.  Requests go through
    the raw *transport*, never through the authenticating pipeline, so the
    session cookies it receives land in the shared cookie store.
    """

    def __init__(
        self,
        site: LoginSite,
        credentials: Credentials,
        transport: Transport,
        success_checks: Sequence[SuccessCheck] = DEFAULT_SUCCESS_CHECKS,
    ):
        """Initialise the login sequence.

        Args:
            site: Where and how to log in.
            credentials: The account to log in with.
            transport: The cookie-bearing transport shared with the pipeline.
            success_checks: Checks OR'd to decide whether the submission was
                accepted.
        """
        self.site = site
        self._credentials = credentials
        self._transport = transport
        self._success_checks = tuple(success_checks)

    def __call__(self) -> None:
        """Log in.

        Raises:
            InvalidCredentialsError: Blank credentials (no network call).
            LoginPageUnreachableError: Login page or endpoint unreachable.
            LoginFormMissingError: No form on the login page.
            LoginRejectedError: The site did not accept the credentials.
        """
        self._credentials.validate()
        logger.info("Performing Kicktipp authentication")

        page = self._send(
            requests.Request("GET", self.site.login_url),
            "Failed to access login page",
        )
        form = parse_login_form(page.text, page.url or self.site.login_url)
        logger.debug(
            "Login form posts to %s with %d hidden field(s)",
            form.submit_url,
            len(form.hidden_fields),
        )

        response = self._send(
            requests.Request(
                "POST",
                form.submit_url,
                data=build_login_payload(form, self._credentials, self.site),
                headers={"Referer": page.url or self.site.login_url},
            ),
            "Login request failed",
        )

        if not is_login_successful(response, self.site, self._success_checks):
            logger.warning("Kicktipp login rejected; still on the login page")
            raise LoginRejectedError("Kicktipp login failed - check credentials.")
        logger.info("Kicktipp authentication successful")

    def _send(self, request: requests.Request, failure: str) -> requests.Response:
        try:
            response = self._transport.send(request)
        except requests.RequestException as exc:
            raise LoginPageUnreachableError(f"{failure}: {exc}") from exc
        if not response.ok:
            raise LoginPageUnreachableError(f"{failure}: HTTP {response.status_code}")
        return response
