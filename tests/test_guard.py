"""Unit tests for the session guard state machine."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from kicktipp.auth.guard import SessionGuard
from kicktipp.core.exceptions import LoginRejectedError, RequestCancelledError


class GatedLogin:
    """Login callable that blocks until released, counting its calls."""

    def __init__(self, error=None):
        self.calls = 0
        self.entered = threading.Event()
        self.release = threading.Event()
        self.error = error

    def __call__(self):
        self.calls += 1
        self.entered.set()
        assert self.release.wait(5), "login was never released"
        if self.error is not None:
            raise self.error


class PolledEvent(threading.Event):
    """Cancel signal that reports when its owner is polling it in a wait."""

    def __init__(self):
        super().__init__()
        self.checks = 0
        self.waiting = threading.Event()

    def is_set(self):
        self.checks += 1
        if self.checks >= 2:
            self.waiting.set()
        return super().is_set()


def _start(target, *args):
    outcome = {}

    def run():
        try:
            outcome["result"] = target(*args)
        except Exception as exc:
            outcome["error"] = exc

    thread = threading.Thread(target=run)
    thread.start()
    return thread, outcome


class TestEnsureAuthenticated:
    def test_starts_unauthenticated(self):
        guard = SessionGuard(lambda: None)
        assert not guard.is_authenticated
        assert guard.generation == 0

    def test_logs_in_once_and_returns_generation(self):
        calls = []
        guard = SessionGuard(lambda: calls.append(1))

        assert guard.ensure_authenticated() == 1
        assert guard.ensure_authenticated() == 1
        assert guard.is_authenticated
        assert len(calls) == 1

    def test_failed_login_leaves_guard_unauthenticated(self):
        def login():
            raise LoginRejectedError("nope")

        guard = SessionGuard(login)
        with pytest.raises(LoginRejectedError):
            guard.ensure_authenticated()
        assert not guard.is_authenticated
        assert guard.generation == 0

    def test_concurrent_callers_trigger_a_single_login(self):
        login = GatedLogin()
        guard = SessionGuard(login)

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(guard.ensure_authenticated) for _ in range(8)]
            assert login.entered.wait(5)
            login.release.set()
            generations = [f.result(timeout=5) for f in futures]

        assert login.calls == 1
        assert generations == [1] * 8

    def test_waiters_observe_the_same_failure(self):
        error = LoginRejectedError("bad password")
        login = GatedLogin(error=error)
        guard = SessionGuard(login, poll_interval=0.01)

        polled = PolledEvent()

        leader, leader_outcome = _start(guard.ensure_authenticated)
        assert login.entered.wait(5)
        waiter, waiter_outcome = _start(guard.ensure_authenticated, polled)
        assert polled.waiting.wait(5)
        login.release.set()
        leader.join(5)
        waiter.join(5)

        assert leader_outcome["error"] is error
        assert waiter_outcome["error"] is error
        assert login.calls == 1

    def test_caller_after_failure_starts_a_fresh_attempt(self):
        attempts = []

        def login():
            attempts.append(1)
            if len(attempts) == 1:
                raise LoginRejectedError("first attempt fails")

        guard = SessionGuard(login)
        with pytest.raises(LoginRejectedError):
            guard.ensure_authenticated()

        assert guard.ensure_authenticated() == 1
        assert len(attempts) == 2


class TestCancellation:
    def test_cancelled_waiter_does_not_abort_the_login(self):
        login = GatedLogin()
        guard = SessionGuard(login, poll_interval=0.01)
        cancel = PolledEvent()

        leader, leader_outcome = _start(guard.ensure_authenticated)
        assert login.entered.wait(5)
        waiter, waiter_outcome = _start(guard.ensure_authenticated, cancel)
        assert cancel.waiting.wait(5)
        cancel.set()
        waiter.join(5)

        assert isinstance(waiter_outcome["error"], RequestCancelledError)
        assert leader.is_alive()

        login.release.set()
        leader.join(5)
        assert leader_outcome["result"] == 1
        assert guard.is_authenticated

    def test_cancelled_leader_returns_while_the_login_goes_on(self):
        login = GatedLogin()
        guard = SessionGuard(login, poll_interval=0.01)
        cancel = threading.Event()

        leader, leader_outcome = _start(guard.ensure_authenticated, cancel)
        assert login.entered.wait(5)
        cancel.set()
        leader.join(5)

        assert not leader.is_alive()
        assert isinstance(leader_outcome["error"], RequestCancelledError)
        assert not guard.is_authenticated

        follower, follower_outcome = _start(guard.ensure_authenticated)
        login.release.set()
        follower.join(5)

        assert follower_outcome["result"] == 1
        assert guard.is_authenticated
        assert login.calls == 1

    def test_already_cancelled_caller_does_not_start_a_login(self):
        calls = []
        guard = SessionGuard(lambda: calls.append(1))
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(RequestCancelledError):
            guard.ensure_authenticated(cancel)
        assert calls == []

    def test_cancel_is_ignored_once_authenticated(self):
        guard = SessionGuard(lambda: None)
        guard.ensure_authenticated()
        cancel = threading.Event()
        cancel.set()

        assert guard.ensure_authenticated(cancel) == 1


class TestInvalidate:
    def test_invalidate_forces_a_new_login(self):
        calls = []
        guard = SessionGuard(lambda: calls.append(1))
        guard.ensure_authenticated()

        guard.invalidate()

        assert not guard.is_authenticated
        assert guard.ensure_authenticated() == 2
        assert len(calls) == 2

    def test_invalidate_is_idempotent(self):
        guard = SessionGuard(lambda: None)
        guard.ensure_authenticated()

        guard.invalidate()
        guard.invalidate()

        assert not guard.is_authenticated
        assert guard.ensure_authenticated() == 2

    def test_stale_generation_is_ignored(self):
        guard = SessionGuard(lambda: None)
        first = guard.ensure_authenticated()
        guard.invalidate(first)
        second = guard.ensure_authenticated()

        guard.invalidate(first)

        assert guard.is_authenticated
        assert guard.generation == second

    def test_guards_are_independent(self):
        a = SessionGuard(lambda: None)
        b = SessionGuard(lambda: None)

        a.ensure_authenticated()

        assert a.is_authenticated
        assert not b.is_authenticated
