"""Kicktipp page client.

Fetches pages of kicktipp.de through the authenticating pipeline, so every
method behaves as if the session were always logged in.  The client is the
composition root of the session layer: it wires one cookie-bearing
transport, one :class:`~kicktipp.auth.guard.SessionGuard`, and the pipeline
together for a single account.
"""

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from threading import Event
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from kicktipp.auth.guard import SessionGuard
from kicktipp.auth.interfaces import Credentials
from kicktipp.auth.login import FormLogin, parse_html
from kicktipp.core.interfaces import Transport
from kicktipp.core.models import (
    BetPrediction,
    LoginSite,
    Match,
    MatchWithHistory,
    TeamStanding,
)
from kicktipp.http.pipeline import AuthenticatingTransport
from kicktipp.http.transport import (
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    RequestsTransport,
)
from kicktipp.providers.kicktipp.parsing import (
    build_bet_submission,
    parse_match_with_history,
    parse_open_matches,
    parse_placed_predictions,
    parse_standings,
)

logger = logging.getLogger(__name__)

# Upper bound on match-info pages followed in one traversal.
_MAX_SPIELINFO_PAGES = 200


class KicktippClient:
    """Client for kicktipp.de community pages.

    Authentication is handled transparently: the first request logs in, an
    expired session is renewed once per failure, and concurrent requests
    share a single login.

    Args:
        credentials: The account to log in with.  Blank credentials are
            reported on the first request, before any network call.
        site: Login configuration.  Defaults to kicktipp.de.
        transport: The cookie-bearing transport.  A
            :class:`~kicktipp.http.transport.RequestsTransport` is created
            when ``None``.
        user_agent: User-Agent header for a newly created transport.
        timeout: Request timeout in seconds for a newly created transport.
    """

    def __init__(
        self,
        credentials: Credentials,
        site: LoginSite | None = None,
        transport: Transport | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.site = site or LoginSite()
        self.transport = transport or RequestsTransport(
            user_agent=user_agent, timeout=timeout
        )
        self.guard = SessionGuard(FormLogin(self.site, credentials, self.transport))
        self.http = AuthenticatingTransport(self.transport, self.guard, self.site)

    # ----------------------
    # Session
    # ----------------------

    def login(self, cancel: Event | None = None) -> None:
        """Log in now instead of on the first request.

        Raises:
            KicktippError: If the session cannot be established.
        """
        self.guard.ensure_authenticated(cancel)

    # ----------------------
    # Requests
    # ----------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        data: dict | list | None = None,
        headers: dict | None = None,
        cancel: Event | None = None,
    ) -> requests.Response:
        """Send an authenticated request to a site path.

        Args:
            method: HTTP method.
            path: Path relative to the site root (or an absolute URL).
            params: Query string parameters.
            data: Form body.
            headers: Extra request headers.
            cancel: Optional cancel signal.

        Returns:
            The final :class:`requests.Response`, whatever its status.
        """
        request = requests.Request(
            method,
            self.site.url_for(path),
            params=params or {},
            data=data or [],
            headers=headers or {},
        )
        return self.http.send(request, cancel)

    def get_page(
        self,
        path: str,
        params: dict | None = None,
        cancel: Event | None = None,
    ) -> str:
        """Return the HTML of an authenticated page.

        Raises:
            requests.HTTPError: If the final response is not a success.
            KicktippError: If the session cannot be established.
        """
        logger.debug("Fetching %s", path)
        r = self.request("GET", path, params=params, cancel=cancel)
        r.raise_for_status()
        logger.debug("Fetched %s (%d bytes)", path, len(r.text))
        return r.text

    def fetch_pages(
        self,
        paths: Iterable[str],
        max_workers: int = 4,
        cancel: Event | None = None,
    ) -> dict[str, str]:
        """Fetch several pages concurrently through the shared session.

        All workers share one guard, so an expired or missing session is
        renewed by a single login no matter how many pages are in flight.

        Repeated paths are fetched once.

        Returns:
            A mapping of path to HTML, in the order each path first appears
            in *paths*.

        Raises:
            Exception: Whatever the first failing fetch raised.
        """
        paths = list(dict.fromkeys(paths))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self.get_page, p, None, cancel) for p in paths]
            return {p: f.result() for p, f in zip(paths, futures)}

    # ----------------------
    # Community pages
    # ----------------------

    def fetch_login_page(self) -> str:
        """Return the login page HTML, fetched without authentication.

        Raises:
            requests.HTTPError: If the login page returns an error status.
        """
        r = self.transport.send(requests.Request("GET", self.site.login_url))
        r.raise_for_status()
        return r.text

    def fetch_standings_page(self, community: str) -> str:
        """Return the standings page (``tabellen``) of a community."""
        return self.get_page(f"{community}/tabellen")

    def fetch_tippabgabe_page(self, community: str) -> str:
        """Return the main betting page (``tippabgabe``) of a community."""
        return self.get_page(f"{community}/tippabgabe")

    def fetch_bonus_page(self, community: str) -> str:
        """Return the bonus questions page of a community."""
        return self.get_page(f"{community}/tippabgabe", params={"bonus": "true"})

    def fetch_spielinfo_pages(
        self,
        community: str,
        view: str | None = None,
        cancel: Event | None = None,
    ) -> list[str]:
        """Return every match-info page of the current matchday.

        Starts from the "Tippabgabe mit Spielinfos" link on the betting page
        and follows the "next match" navigation until it is disabled.

        Args:
            community: The community slug.
            view: Optional ``ansicht`` parameter (``"2"`` for home/away
                history, ``"3"`` for head-to-head).
            cancel: Optional cancel signal.

        Returns:
            The HTML of each page in navigation order.  Empty if the betting
            page has no match-info link.
        """
        betting = parse_html(self.get_page(f"{community}/tippabgabe", cancel=cancel))
        link = betting.select_one("a[href*='spielinfo']")
        if link is None or not link.get("href"):
            logger.warning("Could not find Spielinfo link on tippabgabe page")
            return []

        pages: list[str] = []
        seen: set[str] = set()
        url: str | None = link["href"]
        while url and url not in seen and len(pages) < _MAX_SPIELINFO_PAGES:
            seen.add(url)
            html = self.get_page(_with_view(url, view), cancel=cancel)
            pages.append(html)
            url = _next_match_link(html)

        logger.info(
            "Fetched %d spielinfo page(s)%s",
            len(pages),
            f" (ansicht={view})" if view else "",
        )
        return pages

    # ----------------------
    # Matches and standings
    # ----------------------

    def get_open_predictions(self, community: str) -> list[Match]:
        """Return the matches of the current matchday that can still be tipped.

        Raises:
            requests.HTTPError: If the betting page returns an error status.
        """
        return parse_open_matches(self.fetch_tippabgabe_page(community))

    def get_placed_predictions(
        self, community: str
    ) -> dict[Match, BetPrediction | None]:
        """Return every open match with the tip already placed for it.

        Matches without a tip map to ``None``.
        """
        return parse_placed_predictions(self.fetch_tippabgabe_page(community))

    def get_standings(self, community: str) -> list[TeamStanding]:
        """Return the community's league table."""
        return parse_standings(self.fetch_standings_page(community))

    def get_matches_with_history(
        self, community: str, cancel: Event | None = None
    ) -> list[MatchWithHistory]:
        """Return every open match with the recent form of both teams.

        Walks the match-info pages of the current matchday; pages without
        an open match are left out.
        """
        pages = self.fetch_spielinfo_pages(community, cancel=cancel)
        matches = [m for m in map(parse_match_with_history, pages) if m is not None]
        logger.info("Extracted %d match(es) with history", len(matches))
        return matches

    # ----------------------
    # Betting
    # ----------------------

    def place_bet(
        self,
        community: str,
        match: Match,
        prediction: BetPrediction,
        override: bool = False,
    ) -> bool:
        """Place a single tip.

        Args:
            community: The community slug.
            match: The match to tip, identified by its team names.
            prediction: The predicted score.
            override: Replace a tip that was already placed.

        Returns:
            ``True`` if the tip was submitted, or was already placed and
            left unchanged.  ``False`` if the match is not open for betting
            or the submission was not accepted.
        """
        return self._submit_bets(
            community, {match: prediction}, override, single=match
        )

    def place_bets(
        self,
        community: str,
        bets: Mapping[Match, BetPrediction],
        override: bool = False,
    ) -> bool:
        """Place several tips with a single form submission.

        Matches that already have a tip are left unchanged unless *override*
        is set.  Nothing is posted when no tip needs to change.

        Returns:
            ``True`` if the submission was accepted or was not needed.
        """
        return self._submit_bets(community, bets, override)

    def _submit_bets(
        self,
        community: str,
        bets: Mapping[Match, BetPrediction],
        override: bool,
        single: Match | None = None,
    ) -> bool:
        path = f"{community}/tippabgabe"
        page = self.request("GET", path)
        page.raise_for_status()

        submission = build_bet_submission(page.text, page.url, bets, override)
        if submission is None:
            return False
        if single is not None and not submission.covers(single):
            logger.warning("Match %s not found in betting form", single)
            return False

        logger.info(
            "Summary: %d bet(s) to place, %d skipped",
            len(submission.placed),
            len(submission.skipped),
        )
        if not submission.placed:
            return True

        response = self.request(
            "POST",
            submission.submit_url,
            data=submission.fields,
            headers={"Referer": page.url},
        )
        if not response.ok:
            logger.error("Failed to submit bets. Status: %d", response.status_code)
            return False
        logger.info("Submitted %d bet(s)", len(submission.placed))
        return True


def _next_match_link(html: str) -> str | None:
    """Return the href of the enabled "next match" arrow, if any."""
    button = parse_html(html).select_one(".prevnextNext a")
    if button is None:
        return None
    parent = button.parent
    if parent is not None and "disabled" in (parent.get("class") or []):
        return None
    return button.get("href") or None


def _with_view(url: str, view: str | None) -> str:
    """Set the ``ansicht`` query parameter of *url*."""
    if not view:
        return url
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k != "ansicht"]
    query.append(("ansicht", view))
    return urlunsplit(parts._replace(query=urlencode(query)))
