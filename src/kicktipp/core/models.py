"""Data model dataclasses shared across the session and page layers."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from urllib.parse import urljoin


# ----------------------
# LoginSite
# ----------------------


@dataclass(frozen=True)
class LoginSite:
    """Describes where and how to log in to the target site.

    The defaults describe kicktipp.de.  Tests and alternative deployments
    override ``base_url``.
    """

    base_url: str = "https://www.kicktipp.de"
    """Site root, without a trailing slash."""

    login_path: str = "/info/profil/login"
    """Root-relative path of the login page."""

    username_field: str = "kennung"
    """Form field name the username is submitted under."""

    password_field: str = "passwort"
    """Form field name the password is submitted under."""

    login_form_selector: str = "form#loginFormular"
    """CSS selector identifying the login form on any page."""

    logged_in_selectors: tuple[str, ...] = ("a[href*='logout']",)
    """CSS selectors for elements only present once logged in."""

    @property
    def login_url(self) -> str:
        """Absolute URL of the login page."""
        return urljoin(self.base_url.rstrip("/") + "/", self.login_path.lstrip("/"))

    def url_for(self, path: str) -> str:
        """Return *path* resolved against the site root.

        Absolute URLs are returned unchanged.
        """
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))


# ----------------------
# LoginFormDescriptor
# ----------------------


@dataclass(frozen=True)
class LoginFormDescriptor:
    """Submission target and hidden fields of a parsed login form."""

    submit_url: str
    """Absolute URL the form posts to."""

    hidden_fields: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    """``(name, value)`` pairs of the form's hidden inputs, in document order."""


# ----------------------
# AuthFailureSignal
# ----------------------


class AuthFailureSignal(Enum):
    """Why a response indicates that the session is no longer valid."""

    NONE = "none"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    REDIRECTED_TO_LOGIN_PAGE = "redirected_to_login_page"


# ----------------------
# Snapshot
# ----------------------


@dataclass
class Snapshot:
    """A single captured HTML page."""

    name: str
    """File stem the page is saved under (e.g. ``"tabellen"``)."""

    content: str


# ----------------------
# Match
# ----------------------


@dataclass(frozen=True)
class Match:
    """A fixture as listed on a community's betting page.

    Matches compare and hash by value, so they can key a mapping of bets.
    """

    home_team: str
    away_team: str

    starts_at: datetime | None = None
    """Kick-off in German local time; ``None`` if the page showed none."""

    matchday: int | None = None

    def __str__(self) -> str:
        return f"{self.home_team} vs {self.away_team}"


# ----------------------
# BetPrediction
# ----------------------


@dataclass(frozen=True)
class BetPrediction:
    """A predicted final score."""

    home_goals: int
    away_goals: int

    def __post_init__(self):
        if self.home_goals < 0 or self.away_goals < 0:
            raise ValueError(f"Goals cannot be negative: {self}")

    def __str__(self) -> str:
        return f"{self.home_goals}:{self.away_goals}"


# ----------------------
# TeamStanding
# ----------------------


@dataclass
class TeamStanding:
    """One row of a community's league table."""

    position: int
    team_name: str
    games_played: int
    points: int
    goals_for: int
    goals_against: int
    goal_difference: int
    wins: int
    draws: int
    losses: int

    @property
    def goals_formatted(self) -> str:
        """Goals as ``"for:against"``, e.g. ``"15:8"``."""
        return f"{self.goals_for}:{self.goals_against}"


# ----------------------
# Match history
# ----------------------


class MatchOutcome(Enum):
    """Result of a past match from the tracked team's point of view."""

    WIN = "win"
    DRAW = "draw"
    LOSS = "loss"
    PENDING = "pending"


@dataclass
class MatchResult:
    """A match from a team's recent history on a match-info page."""

    competition: str
    """Competition short name, e.g. ``"1.BL"`` or ``"DFB"``."""

    home_team: str
    away_team: str

    home_goals: int | None
    """``None`` until the match has been played."""

    away_goals: int | None
    outcome: MatchOutcome


@dataclass
class MatchWithHistory:
    """An open match together with the recent form of both teams."""

    match: Match
    home_team_history: list[MatchResult] = field(default_factory=list)
    away_team_history: list[MatchResult] = field(default_factory=list)
