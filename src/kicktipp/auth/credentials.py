"""Persistent storage for Kicktipp login credentials.

The username and password are stored in ``~/.config/kicktipp/credentials.json``
with permissions restricted to the owner (0o600).  The file is written by
``kicktipp auth setup``; environment variables take precedence over it.
"""

import json
from pathlib import Path

_CONFIG_DIR = Path.home() / ".config" / "kicktipp"
_CREDENTIALS_FILE = _CONFIG_DIR / "credentials.json"


def save(username: str, password: str) -> None:
    """Persist credentials to the config file.

    Creates the config directory if it does not already exist and restricts
    file permissions to the owner only.

    Args:
        username: The Kicktipp login name.
        password: The Kicktipp password.
    """
    _CREDENTIALS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _CREDENTIALS_FILE.write_text(
        json.dumps({"username": username, "password": password}, indent=2),
        encoding="utf-8",
    )
    _CREDENTIALS_FILE.chmod(0o600)


def load() -> dict[str, str]:
    """Load credentials from the config file.

    Returns:
        A dictionary with ``username`` and ``password`` keys, or an empty
        dictionary if no credentials file exists or it cannot be parsed.
    """
    if not _CREDENTIALS_FILE.exists():
        return {}
    try:
        data = json.loads(_CREDENTIALS_FILE.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def clear() -> bool:
    """Remove the credentials file.

    Returns:
        ``True`` if the file was deleted, ``False`` if it did not exist.
    """
    if _CREDENTIALS_FILE.exists():
        _CREDENTIALS_FILE.unlink()
        return True
    return False


def credentials_path() -> Path:
    """Return the path to the credentials file."""
    return _CREDENTIALS_FILE
