"""Kicktipp credential source.

Resolves the account's username and password from constructor arguments,
environment variables, or the local credentials file.
"""

import os

from kicktipp.auth import credentials as creds_store
from kicktipp.auth.interfaces import Credentials, CredentialSource
from kicktipp.core.exceptions import InvalidCredentialsError

_ENV_USERNAME = "KICKTIPP_USERNAME"
_ENV_PASSWORD = "KICKTIPP_PASSWORD"


class KicktippCredentialSource(CredentialSource):
    """Resolves Kicktipp credentials from multiple sources.

    Resolution order (first complete pair wins):

    1. Values passed directly to the constructor.
    2. ``KICKTIPP_USERNAME`` and ``KICKTIPP_PASSWORD`` environment variables.
    3. Credentials stored in ``~/.config/kicktipp/credentials.json``.
    """

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
    ):
        """Initialise the credential source.

        Args:
            username: Kicktipp login name.  When provided together with
                ``password``, env vars and the stored file are skipped.
            password: Kicktipp password.
        """
        self._username = username
        self._password = password

    # -------------------------
    # CredentialSource interface
    # -------------------------

    def get_credentials(self) -> Credentials:
        """Return the resolved credentials.

        Raises:
            InvalidCredentialsError: If no source holds a complete,
                non-blank pair.
        """
        username, password = self._resolve()
        if username is None or password is None:
            raise InvalidCredentialsError(
                "Kicktipp credentials not found. Set KICKTIPP_USERNAME and "
                "KICKTIPP_PASSWORD or run 'kicktipp auth setup'."
            )
        return Credentials(username=username, password=password)

    def is_configured(self) -> bool:
        """Return ``True`` when a complete credential pair is resolvable."""
        username, password = self._resolve()
        return username is not None and password is not None

    def credential_source(self) -> str:
        """Return a human-readable description of where credentials came from.

        Useful for the ``auth status`` CLI command.
        """
        if _complete(self._username, self._password):
            return "constructor arguments"
        if _complete(os.getenv(_ENV_USERNAME), os.getenv(_ENV_PASSWORD)):
            return "environment variables"
        return str(creds_store.credentials_path())

    # -------------------------
    # Internal helpers
    # -------------------------

    def _resolve(self) -> tuple[str | None, str | None]:
        if _complete(self._username, self._password):
            return self._username, self._password

        username = os.getenv(_ENV_USERNAME)
        password = os.getenv(_ENV_PASSWORD)
        if _complete(username, password):
            return username, password

        stored = creds_store.load()
        username = stored.get("username")
        password = stored.get("password")
        if _complete(username, password):
            return username, password

        return None, None


def _complete(username: str | None, password: str | None) -> bool:
    return bool(username and username.strip() and password and password.strip())
