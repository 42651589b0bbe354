"""Abstract interfaces for the authentication layer.

This module defines the credential value object and the contract that any
credential source must implement.  It is free of site-specific details so
that environment variables, a local config file, or a secrets manager can
all supply credentials without changing the session layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from kicktipp.core.exceptions import InvalidCredentialsError


@dataclass(frozen=True)
class Credentials:
    """Username/password pair used to log in.

    Attributes:
        username: The account's login name.
        password: The account's password.  Excluded from ``repr``.
    """

    username: str
    password: str = field(repr=False)

    @property
    def is_valid(self) -> bool:
        """``True`` when neither field is blank."""
        return bool(self.username and self.username.strip()) and bool(
            self.password and self.password.strip()
        )

    def validate(self) -> None:
        """Fail fast on blank credentials.

        Raises:
            InvalidCredentialsError: If the username or password is empty or
                whitespace only.
        """
        if not (self.username and self.username.strip()):
            raise InvalidCredentialsError("Kicktipp username is not configured.")
        if not (self.password and self.password.strip()):
            raise InvalidCredentialsError("Kicktipp password is not configured.")


class CredentialSource(ABC):
    """Abstract base class for credential sources.

    Example usage::

        source = KicktippCredentialSource()          # concrete implementation
        client = KicktippClient(source.get_credentials())
    """

    @abstractmethod
    def get_credentials(self) -> Credentials:
        """Return the configured credentials.

        Returns:
            A :class:`Credentials` instance.

        Raises:
            InvalidCredentialsError: If no complete credential pair is
                available.
        """

    @abstractmethod
    def is_configured(self) -> bool:
        """Return ``True`` if :meth:`get_credentials` would succeed.

        This method must not raise.
        """
