"""Session guard: the authenticated/unauthenticated state machine.

The guard owns the only shared mutable state of the session layer.  It makes
sure at most one login runs at a time, no matter how many threads are issuing
requests, and that every thread waiting on a login observes its outcome.

States::

    Unauthenticated --ensure_authenticated--> Authenticating
    Authenticating  --login ok-------------> Authenticated
    Authenticating  --login failed---------> Unauthenticated
    Authenticated   --invalidate-----------> Unauthenticated

The lock only protects the state transitions and is never held across
network I/O.  The login itself runs on a worker thread owned by the in-flight
attempt; the caller that started it waits on the attempt like every other
caller, so any of them can give up on a cancel signal while the login goes
on for the rest.
"""

import logging
from collections.abc import Callable
from threading import Event, Lock, Thread

from kicktipp.core.cancellation import raise_if_cancelled

logger = logging.getLogger(__name__)


class _LoginAttempt:
    """Outcome of one in-flight login, shared by every caller waiting on it."""

    def __init__(self):
        self.done = Event()
        self.generation = 0
        self.error: Exception | None = None

    def succeed(self, generation: int) -> None:
        self.generation = generation
        self.done.set()

    def fail(self, error: Exception) -> None:
        self.error = error
        self.done.set()


class SessionGuard:
    """Single-flight gate in front of a login callable.

    Each guard instance is an independent session; nothing is kept in
    module or class state, so several guards can coexist (e.g. in tests).

    Args:
        login: Performs one complete login attempt and raises on failure.
            It runs on a worker thread.
        poll_interval: Seconds between cancel checks while waiting on a
            login.
    """

    def __init__(self, login: Callable[[], None], poll_interval: float = 0.05):
        self._login = login
        self._poll_interval = poll_interval
        self._lock = Lock()
        self._authenticated = False
        self._generation = 0
        self._attempt: _LoginAttempt | None = None

    @property
    def is_authenticated(self) -> bool:
        """``True`` while the session is believed to be valid."""
        return self._authenticated

    @property
    def generation(self) -> int:
        """Number of successful logins so far (``0`` before the first)."""
        return self._generation

    def ensure_authenticated(self, cancel: Event | None = None) -> int:
        """Return once the session is authenticated, logging in if needed.

        When the session is not authenticated, the first caller starts the
        login and every concurrent caller waits for that same attempt.

        Args:
            cancel: Optional cancel signal.  Setting it aborts this caller's
                wait, whether or not this caller started the login.  The
                login itself is never aborted; its outcome still applies to
                the guard and to every other caller.

        Returns:
            The session generation the caller's requests will be sent under.

        Raises:
            RequestCancelledError: If *cancel* is set before the session is
                ready.
            KicktippError: Whatever the login attempt raised.  Every caller
                waiting on the attempt receives the same error.
        """
        if self._authenticated:
            return self._generation

        raise_if_cancelled(cancel)
        with self._lock:
            if self._authenticated:
                return self._generation
            attempt = self._attempt
            if attempt is None:
                attempt = self._attempt = _LoginAttempt()
                Thread(
                    target=self._run,
                    args=(attempt,),
                    name="kicktipp-login",
                    daemon=True,
                ).start()

        return self._wait(attempt, cancel)

    def invalidate(self, generation: int | None = None) -> None:
        """Mark the session as no longer authenticated.

        Idempotent.  When *generation* is given and the session has already
        been renewed since, the call is a no-op: the caller saw a failure of
        a session that no longer exists.

        Args:
            generation: The generation the failed request was sent under, as
                returned by :meth:`ensure_authenticated`.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return
            if self._authenticated:
                logger.info("Session invalidated (generation %d)", self._generation)
            self._authenticated = False

    # -------------------------
    # Internal helpers
    # -------------------------

    def _run(self, attempt: _LoginAttempt) -> None:
        try:
            self._login()
        except Exception as exc:
            with self._lock:
                self._attempt = None
            attempt.fail(exc)
            return

        with self._lock:
            self._generation += 1
            self._authenticated = True
            self._attempt = None
            generation = self._generation
        attempt.succeed(generation)

    def _wait(self, attempt: _LoginAttempt, cancel: Event | None) -> int:
        if cancel is None:
            attempt.done.wait()
        else:
            while not attempt.done.wait(self._poll_interval):
                raise_if_cancelled(cancel)
        if attempt.error is not None:
            raise attempt.error
        return attempt.generation
