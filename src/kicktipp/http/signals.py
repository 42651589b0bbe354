"""Detection of responses that mean the session has died."""

import requests

from kicktipp.auth.login import has_login_form, is_login_url, parse_html
from kicktipp.core.models import AuthFailureSignal, LoginSite


def _is_html(response: requests.Response) -> bool:
    content_type = response.headers.get("Content-Type", "")
    return not content_type or "html" in content_type.lower()


def classify_response(
    response: requests.Response, site: LoginSite
) -> AuthFailureSignal:
    """Return the :class:`AuthFailureSignal` carried by *response*.

    HTTP 401 and 403 are reported as such.  A successful response that
    ended up on the login page, or whose HTML still shows the login form,
    means the site silently redirected an expired session to log in again.

    Args:
        response: The final response of a forwarded request.
        site: The site whose login page is being detected.

    Returns:
        :attr:`AuthFailureSignal.NONE` when the session looks healthy.
    """
    if response.status_code == 401:
        return AuthFailureSignal.UNAUTHORIZED
    if response.status_code == 403:
        return AuthFailureSignal.FORBIDDEN
    if not response.ok:
        return AuthFailureSignal.NONE
    if is_login_url(response.url, site):
        return AuthFailureSignal.REDIRECTED_TO_LOGIN_PAGE
    if _is_html(response) and has_login_form(parse_html(response.text), site):
        return AuthFailureSignal.REDIRECTED_TO_LOGIN_PAGE
    return AuthFailureSignal.NONE
