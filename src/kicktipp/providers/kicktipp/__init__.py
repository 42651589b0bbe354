"""Kicktipp provider package."""

from kicktipp.providers.kicktipp.auth import KicktippCredentialSource
from kicktipp.providers.kicktipp.client import KicktippClient

__all__ = ["KicktippClient", "KicktippCredentialSource"]
