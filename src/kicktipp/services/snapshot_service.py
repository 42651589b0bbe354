"""Service layer that captures HTML snapshots of a Kicktipp community."""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TypeVar

import requests

from kicktipp.core.models import Snapshot
from kicktipp.providers.kicktipp.client import KicktippClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (file stem suffix, ansicht parameter) for each match-info variant.
_SPIELINFO_VARIANTS = (("", None), ("-homeaway", "2"), ("-h2h", "3"))


class SnapshotService:
    """Captures the pages of a community for offline inspection and tests.

    Pages are fetched concurrently through the client's shared session.
    A page that fails with an HTTP or network error is logged and skipped;
    an authentication error aborts the whole capture, since every remaining
    page would fail the same way.
    """

    def __init__(self, client: KicktippClient, max_workers: int = 4):
        """Initialise the service.

        Args:
            client: The client to fetch pages with.
            max_workers: Number of pages fetched in parallel.
        """
        self.client = client
        self.max_workers = max_workers

    def collect(self, community: str) -> list[Snapshot]:
        """Fetch every snapshot page of *community*.

        Args:
            community: The community slug.

        Returns:
            The captured pages, in a stable order.

        Raises:
            KicktippError: If a session cannot be established.
        """
        single_pages: list[tuple[str, Callable[[], str]]] = [
            ("login", self.client.fetch_login_page),
            ("tabellen", lambda: self.client.fetch_standings_page(community)),
            ("tippabgabe", lambda: self.client.fetch_tippabgabe_page(community)),
            ("tippabgabe-bonus", lambda: self.client.fetch_bonus_page(community)),
        ]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            page_futures = [
                (name, executor.submit(fetch)) for name, fetch in single_pages
            ]
            variant_futures = [
                (
                    suffix,
                    executor.submit(
                        self.client.fetch_spielinfo_pages, community, view
                    ),
                )
                for suffix, view in _SPIELINFO_VARIANTS
            ]

            snapshots: list[Snapshot] = []
            for name, future in page_futures:
                content = _result_or_none(name, future.result)
                if content is not None:
                    snapshots.append(Snapshot(name=name, content=content))

            for suffix, future in variant_futures:
                pages = _result_or_none(f"spielinfo{suffix}", future.result) or []
                for index, content in enumerate(pages, start=1):
                    snapshots.append(
                        Snapshot(name=f"spielinfo-{index:02d}{suffix}", content=content)
                    )

        return snapshots

    def fetch_snapshots(self, community: str, output_dir: Path) -> list[Path]:
        """Fetch every snapshot page of *community* and save it to disk.

        Args:
            community: The community slug.
            output_dir: Directory the ``.html`` files are written to.  It is
                created if missing.

        Returns:
            Paths of the files written.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        saved = []
        for snapshot in self.collect(community):
            path = output_dir / f"{snapshot.name}.html"
            path.write_text(snapshot.content, encoding="utf-8")
            saved.append(path)
        logger.info("Saved %d snapshot(s) to %s", len(saved), output_dir)
        return saved


def _result_or_none(name: str, result: Callable[[], T]) -> T | None:
    try:
        return result()
    except requests.RequestException as exc:
        logger.warning("Failed to fetch %s: %s", name, exc)
        return None
