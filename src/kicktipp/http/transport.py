"""Cookie-bearing transport backed by :class:`requests.Session`."""

from threading import Event

import requests

from kicktipp.core.cancellation import raise_if_cancelled
from kicktipp.core.interfaces import Transport

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
DEFAULT_TIMEOUT = 120


class RequestsTransport(Transport):
    """Sends requests through one shared :class:`requests.Session`.

    The session's cookie jar is the single cookie store of the client: the
    login sequence and all protected requests go through the same instance,
    so the session cookie obtained at login is attached to every later
    request automatically.

    Each send re-prepares the request against the session, which picks up
    the current cookies.  A request replayed after re-authentication
    therefore carries the renewed session cookie.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """Initialise the transport.

        Args:
            user_agent: The User-Agent header value for all requests.
            timeout: Per-request timeout in seconds.
            session: An existing session to reuse.  A new one is created
                when ``None``.
        """
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self.timeout = timeout

    def send(
        self,
        request: requests.Request,
        cancel: Event | None = None,
    ) -> requests.Response:
        """Prepare *request* against the session and send it.

        Redirects are followed; the returned response's ``url`` is the final
        URL.

        Raises:
            RequestCancelledError: If *cancel* is set before sending.
            requests.RequestException: On transport-level failures.
        """
        raise_if_cancelled(cancel)
        prepared = self.session.prepare_request(request)
        settings = self.session.merge_environment_settings(
            prepared.url, {}, None, None, None
        )
        return self.session.send(
            prepared, timeout=self.timeout, allow_redirects=True, **settings
        )
