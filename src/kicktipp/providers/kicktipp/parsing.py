"""Parsers for kicktipp.de community pages.

Pure functions over page HTML: they never touch the network, so the client
can feed them pages fetched through the authenticating pipeline and tests
can feed them fixtures.  Rows that cannot be read are logged and skipped;
a page without the expected table yields an empty result.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urljoin
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup
from bs4.element import Tag

from kicktipp.auth.login import parse_html
from kicktipp.core.models import (
    BetPrediction,
    Match,
    MatchOutcome,
    MatchResult,
    MatchWithHistory,
    TeamStanding,
)

logger = logging.getLogger(__name__)

# Kick-off times are shown in German local time, e.g. "22.08.25 20:30".
KICKOFF_FORMAT = "%d.%m.%y %H:%M"
KICKOFF_TIMEZONE = ZoneInfo("Europe/Berlin")

_OUTCOME_CLASSES = {"sieg", "niederlage", "remis"}
_DEFAULT_SUBMIT = ("submitbutton", "Submit")


def parse_match_datetime(text: str) -> datetime | None:
    """Parse a kick-off time such as ``"22.08.25 20:30"``.

    Returns:
        An aware datetime in German local time, or ``None`` when *text* is
        empty or not in the expected format.
    """
    text = (text or "").strip()
    if not text:
        return None
    try:
        parsed = datetime.strptime(text, KICKOFF_FORMAT)
    except ValueError:
        logger.warning("Could not parse match time: %r", text)
        return None
    return parsed.replace(tzinfo=KICKOFF_TIMEZONE)


# ---------------------------------------------------------------------------
# Betting page
# ---------------------------------------------------------------------------


def _text(cell: Tag) -> str:
    return cell.get_text(strip=True)


def _tip_inputs(cell: Tag) -> tuple[Tag, Tag] | None:
    """Return the (home, away) tip inputs of a betting cell, if it has them."""
    home = cell.select_one("input[id$='_heimTipp']")
    away = cell.select_one("input[id$='_gastTipp']")
    if home is not None and away is not None:
        return home, away
    inputs = cell.select("input[type='text']")
    if len(inputs) >= 2:
        return inputs[0], inputs[1]
    return None


@dataclass
class _BettingRow:
    match: Match
    home_input: Tag
    away_input: Tag

    @property
    def placed(self) -> tuple[str, str]:
        return (
            (self.home_input.get("value") or "").strip(),
            (self.away_input.get("value") or "").strip(),
        )


def _betting_rows(document: BeautifulSoup) -> list[_BettingRow]:
    """Return the rows of the betting table that still accept a tip.

    Kicktipp leaves the time cell empty for a match that kicks off at the
    same time as the previous row, so an empty time inherits the last one.
    """
    rows = document.select("#tippabgabeSpiele tbody tr")
    if not rows:
        logger.warning("Could not find tippabgabe table")
        return []

    betting_rows = []
    last_time = ""
    for row in rows:
        cells = row.find_all("td", recursive=False)
        if len(cells) < 4:
            continue
        time_text = _text(cells[0]) or last_time
        last_time = time_text
        home_team, away_team = _text(cells[1]), _text(cells[2])
        inputs = _tip_inputs(cells[3])
        if not (home_team and away_team) or inputs is None:
            continue
        match = Match(home_team, away_team, parse_match_datetime(time_text))
        betting_rows.append(_BettingRow(match, *inputs))
    return betting_rows


def parse_open_matches(html: str) -> list[Match]:
    """Return the matches of the betting page that can still be tipped."""
    matches = [row.match for row in _betting_rows(parse_html(html))]
    logger.info("Parsed %d open match(es)", len(matches))
    return matches


def parse_placed_predictions(html: str) -> dict[Match, BetPrediction | None]:
    """Return every open match with the tip already placed for it.

    Matches without a (complete, numeric) tip map to ``None``.
    """
    predictions: dict[Match, BetPrediction | None] = {}
    for row in _betting_rows(parse_html(html)):
        home, away = row.placed
        prediction = None
        if home and away:
            try:
                prediction = BetPrediction(int(home), int(away))
            except ValueError:
                logger.warning(
                    "Could not parse placed tip for %s: %r:%r", row.match, home, away
                )
        predictions[row.match] = prediction
    return predictions


@dataclass
class BetSubmission:
    """The form post that places a set of tips.

    Attributes:
        submit_url: Absolute URL the betting form posts to.
        fields: Form fields in document order.
        placed: Matches whose tip is set by this submission.
        skipped: Matches that already had a tip and were left unchanged.
    """

    submit_url: str
    fields: list[tuple[str, str]] = field(default_factory=list)
    placed: list[Match] = field(default_factory=list)
    skipped: list[Match] = field(default_factory=list)

    def covers(self, match: Match) -> bool:
        """``True`` if *match* was found on the betting page."""
        return any(_same_fixture(match, m) for m in self.placed + self.skipped)


def _same_fixture(a: Match, b: Match) -> bool:
    return a.home_team == b.home_team and a.away_team == b.away_team


def build_bet_submission(
    html: str,
    page_url: str,
    bets: Mapping[Match, BetPrediction],
    override: bool = False,
) -> BetSubmission | None:
    """Build the betting form post for *bets*.

    Bets are matched to table rows by team names.  Every other row keeps
    the value it already has, so submitting the form never clears a tip.

    Args:
        html: The betting page.
        page_url: URL the betting page was fetched from; the form action is
            resolved against it.
        bets: Tips to place, keyed by match.
        override: Replace tips that were already placed.  Otherwise such
            matches are reported as skipped.

    Returns:
        The submission, or ``None`` if the page has no betting form.
    """
    document = parse_html(html)
    table = document.select_one("#tippabgabeSpiele")
    form = table.find_parent("form") if table is not None else None
    if form is None:
        logger.warning("Could not find betting form on the page")
        return None

    action = (form.get("action") or "").strip()
    submission = BetSubmission(
        submit_url=urljoin(page_url, action) if action else page_url
    )
    fields = submission.fields

    for hidden in form.select("input[type='hidden']"):
        if hidden.get("name"):
            fields.append((hidden["name"], hidden.get("value") or ""))

    for row in _betting_rows(document):
        home_name = row.home_input.get("name")
        away_name = row.away_input.get("name")
        if not (home_name and away_name):
            logger.warning("%s - input field names are missing, skipping", row.match)
            continue

        prediction = next(
            (p for m, p in bets.items() if _same_fixture(m, row.match)), None
        )
        home, away = row.placed
        if prediction is None:
            fields += [(home_name, home), (away_name, away)]
        elif (home or away) and not override:
            logger.info("%s - skipped, already placed %s:%s", row.match, home, away)
            submission.skipped.append(row.match)
            fields += [(home_name, home), (away_name, away)]
        else:
            logger.info("%s - betting %s", row.match, prediction)
            submission.placed.append(row.match)
            fields += [
                (home_name, str(prediction.home_goals)),
                (away_name, str(prediction.away_goals)),
            ]

    present = {name for name, _ in fields}
    for element in form.select("input[type='text'], input[type='number']"):
        name = element.get("name")
        if name and name not in present and element.get("value"):
            fields.append((name, element["value"]))

    button = form.select_one("input[type='submit'], button[type='submit']")
    if button is None:
        fields.append(_DEFAULT_SUBMIT)
    elif button.get("name"):
        fields.append((button["name"], button.get("value") or "Submit"))

    return submission


# ---------------------------------------------------------------------------
# Standings page
# ---------------------------------------------------------------------------


def parse_standings(html: str) -> list[TeamStanding]:
    """Return the league table of a community's ``tabellen`` page."""
    rows = parse_html(html).select("table.sporttabelle tbody tr")
    if not rows:
        logger.warning("Could not find standings table")
        return []

    standings = []
    for row in rows:
        cells = row.find_all("td", recursive=False)
        if len(cells) < 9:
            continue
        name_element = cells[1].find("div") or cells[1]
        goals_for, _, goals_against = _text(cells[4]).partition(":")
        try:
            standing = TeamStanding(
                position=int(_text(cells[0]).rstrip(".")),
                team_name=_text(name_element),
                games_played=int(_text(cells[2])),
                points=int(_text(cells[3])),
                goals_for=int(goals_for or 0),
                goals_against=int(goals_against or 0),
                goal_difference=int(_text(cells[5])),
                wins=int(_text(cells[6])),
                draws=int(_text(cells[7])),
                losses=int(_text(cells[8])),
            )
        except ValueError:
            logger.warning("Failed to parse numeric values for team row")
            continue
        standings.append(standing)

    logger.info("Parsed %d team standing(s)", len(standings))
    return standings


# ---------------------------------------------------------------------------
# Match-info pages
# ---------------------------------------------------------------------------


def parse_match_with_history(html: str) -> MatchWithHistory | None:
    """Return the match of a spielinfo page with both teams' recent form.

    Returns:
        ``None`` if the page has no open match row.
    """
    document = parse_html(html)
    for row in document.select("table.tippabgabe tbody tr"):
        cells = row.find_all("td", recursive=False)
        if len(cells) < 4 or _tip_inputs(cells[3]) is None:
            continue
        home_team, away_team = _text(cells[1]), _text(cells[2])
        if not (home_team and away_team):
            logger.warning("Could not extract team names from match table")
            return None
        match = Match(home_team, away_team, parse_match_datetime(_text(cells[0])))
        return MatchWithHistory(
            match=match,
            home_team_history=parse_team_history(document, "spielinfoHeim"),
            away_team_history=parse_team_history(document, "spielinfoGast"),
        )

    logger.warning("Could not find match row with betting inputs on spielinfo page")
    return None


def parse_team_history(document: BeautifulSoup, table_class: str) -> list[MatchResult]:
    """Return the results listed in a team history table.

    The tracked team's cell carries one of the ``sieg``, ``niederlage`` or
    ``remis`` classes; the outcome is computed from that side's score.
    """
    results = []
    for row in document.select(f"table.{table_class} tbody tr"):
        cells = row.find_all("td", recursive=False)
        if len(cells) < 4:
            continue

        home_goals = away_goals = None
        outcome = MatchOutcome.PENDING
        scores = [_text(s) for s in cells[3].select(".kicktipp-heim, .kicktipp-gast")]
        if len(scores) >= 2 and scores[0].isdigit() and scores[1].isdigit():
            home_goals, away_goals = int(scores[0]), int(scores[1])
            if _OUTCOME_CLASSES & set(cells[2].get("class") or []) and not (
                _OUTCOME_CLASSES & set(cells[1].get("class") or [])
            ):
                outcome = _outcome(away_goals, home_goals)
            else:
                outcome = _outcome(home_goals, away_goals)

        results.append(
            MatchResult(
                competition=_text(cells[0]),
                home_team=_text(cells[1]),
                away_team=_text(cells[2]),
                home_goals=home_goals,
                away_goals=away_goals,
                outcome=outcome,
            )
        )
    return results


def _outcome(own: int, other: int) -> MatchOutcome:
    if own > other:
        return MatchOutcome.WIN
    if own < other:
        return MatchOutcome.LOSS
    return MatchOutcome.DRAW
