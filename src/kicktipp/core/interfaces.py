"""Abstract interface for HTTP transports."""

from abc import ABC, abstractmethod
from threading import Event

import requests


class Transport(ABC):
    """Sends a single HTTP request and returns its final response.

    Transports compose: the authenticating pipeline wraps an inner transport
    and exposes the same interface, so callers never know whether a session
    is being managed underneath them.
    """

    @abstractmethod
    def send(
        self,
        request: requests.Request,
        cancel: Event | None = None,
    ) -> requests.Response:
        """Send *request* and return the response after redirects.

        Implementations must be able to send the same
        :class:`requests.Request` more than once, since a request may be
        replayed after re-authentication.

        Args:
            request: The unprepared request to send.
            cancel: Optional cancel signal checked before sending.

        Returns:
            The final :class:`requests.Response`.

        Raises:
            RequestCancelledError: If *cancel* is set.
            requests.RequestException: On transport-level failures.
        """
