"""Authenticating request pipeline.

Wraps an inner :class:`~kicktipp.core.interfaces.Transport` by composition.
Every request passes through::

    ensure authenticated -> forward -> classify response
        -> (auth failure) invalidate -> ensure authenticated -> replay once

The replay is never followed by another re-authentication, which bounds the
worst case to two sends per call even when the site keeps rejecting the
account.
"""

import logging
from threading import Event

import requests

from kicktipp.auth.guard import SessionGuard
from kicktipp.core.cancellation import raise_if_cancelled
from kicktipp.core.interfaces import Transport
from kicktipp.core.models import AuthFailureSignal, LoginSite
from kicktipp.http.signals import classify_response

logger = logging.getLogger(__name__)


class AuthenticatingTransport(Transport):
    """Transport that keeps a logged-in session underneath its callers.

    Args:
        inner: The cookie-bearing transport requests are forwarded to.
        guard: The session guard shared by every caller of this site.
        site: Used to recognise the login page in responses.
    """

    def __init__(self, inner: Transport, guard: SessionGuard, site: LoginSite):
        self.inner = inner
        self.guard = guard
        self.site = site

    def send(
        self,
        request: requests.Request,
        cancel: Event | None = None,
    ) -> requests.Response:
        """Send *request* as if the session were always logged in.

        Args:
            request: The request to send.  It is sent a second time, with
                the renewed session cookie, if the first response shows
                that the session had expired.
            cancel: Optional cancel signal.

        Returns:
            The response of the original request, or of its single replay.

        Raises:
            KicktippError: If a session cannot be established.  The request
                is not sent in that case.
            RequestCancelledError: If *cancel* is set while waiting.
            requests.RequestException: On transport-level failures.
        """
        generation = self.guard.ensure_authenticated(cancel)
        response = self._forward(request, cancel)

        signal = classify_response(response, self.site)
        if signal is AuthFailureSignal.NONE:
            return response

        logger.info(
            "Authentication may have expired (%s) on %s %s, re-authenticating",
            signal.value,
            request.method,
            request.url,
        )
        self.guard.invalidate(generation)
        self.guard.ensure_authenticated(cancel)
        return self._forward(request, cancel)

    def _forward(
        self, request: requests.Request, cancel: Event | None
    ) -> requests.Response:
        raise_if_cancelled(cancel)
        return self.inner.send(request, cancel)
