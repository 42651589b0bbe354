"""Domain exceptions for the kicktipp library.

Every way authentication can fail has its own type so that callers can
report a precise cause ("bad credentials", "site layout changed",
"network unreachable") instead of a generic failure.
"""


class KicktippError(Exception):
    """Base class for all kicktipp library exceptions."""


class ConfigurationError(KicktippError):
    """Raised when the client is configured in a way that can never work."""


class InvalidCredentialsError(ConfigurationError):
    """Raised when the username or password is missing or blank.

    Detected before any network call is made and never retried: no amount
    of retrying will make blank credentials valid.
    """


class AuthenticationError(KicktippError):
    """Base class for failures of a single login attempt."""


class LoginPageUnreachableError(AuthenticationError):
    """Raised when the login page or login endpoint cannot be reached.

    Covers transport-level failures as well as non-success status codes.
    """


class LoginFormMissingError(AuthenticationError):
    """Raised when the login page contains no ``<form>`` element.

    The page structure is not what the client expects; retrying will not
    change the outcome.
    """


class LoginRejectedError(AuthenticationError):
    """Raised when the site does not accept the submitted credentials."""


class RequestCancelledError(KicktippError):
    """Raised when a caller's cancel signal is set while it is waiting."""
