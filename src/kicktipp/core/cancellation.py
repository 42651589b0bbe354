"""Cooperative cancellation via :class:`threading.Event`."""

from threading import Event

from kicktipp.core.exceptions import RequestCancelledError


def raise_if_cancelled(cancel: Event | None) -> None:
    """Raise :class:`RequestCancelledError` when *cancel* is set.

    Args:
        cancel: The caller's cancel signal, or ``None`` when the caller
            cannot be cancelled.
    """
    if cancel is not None and cancel.is_set():
        raise RequestCancelledError("Request was cancelled by the caller.")
