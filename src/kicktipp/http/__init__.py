"""HTTP layer: the cookie-bearing transport and the authenticating pipeline."""

from kicktipp.http.pipeline import AuthenticatingTransport
from kicktipp.http.signals import classify_response
from kicktipp.http.transport import RequestsTransport

__all__ = ["AuthenticatingTransport", "RequestsTransport", "classify_response"]
