"""Authentication layer: credentials, the login sequence and the session guard."""

from kicktipp.auth.guard import SessionGuard
from kicktipp.auth.interfaces import Credentials, CredentialSource
from kicktipp.auth.login import FormLogin

__all__ = ["Credentials", "CredentialSource", "FormLogin", "SessionGuard"]
