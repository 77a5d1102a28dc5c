"""
Process-level configuration.

Everything environment-derived is resolved here, once, by the CLI and then
passed explicitly into the reconciliation and device-flow code.

Environment variables::

    A21E_API_KEY    API key (falls back to ~/.a21e/credentials)
    A21E_API_URL    API base URL (default https://api.a21e.com)
    A21E_TOOL_ID    Override the auto-detected tool
    A21E_HOME       Credentials directory (default ~/.a21e)
    A21E_LOG_LEVEL  CLI log level (default WARNING)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger("a21e")

DEFAULT_API_URL    = "https://api.a21e.com"
DEFAULT_OPENAI_URL = DEFAULT_API_URL + "/v1"
DEFAULT_MODEL      = "a21e-auto"

_CREDENTIALS_KEY = "A21E_API_KEY"


def get_api_base_url(explicit: str | None = None) -> str:
    """*explicit*, else ``$A21E_API_URL``, else the public API; no trailing slash."""
    url = explicit or os.environ.get("A21E_API_URL", "").strip() or DEFAULT_API_URL
    return url.rstrip("/")


def openai_base_url(api_base_url: str) -> str:
    """
    Normalise an API base URL into the OpenAI-compatible ``…/v1`` form.

    ``""`` → ``https://api.a21e.com/v1``; a trailing ``/`` is dropped and
    ``/v1`` is appended only when missing.
    """
    trimmed = api_base_url.strip().rstrip("/")
    if not trimmed:
        return DEFAULT_OPENAI_URL
    if trimmed.endswith("/v1"):
        return trimmed
    return trimmed + "/v1"


# ── Credentials file ──────────────────────────────────────────────────────────

def credentials_dir() -> Path:
    explicit = os.environ.get("A21E_HOME", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".a21e"


def credentials_path() -> Path:
    return credentials_dir() / "credentials"


def read_credentials_file(path: Path | None = None) -> str:
    """Return the key stored by :func:`write_credentials_file`, or ``""``."""
    path = path or credentials_path()
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return ""
    for line in text.splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() == _CREDENTIALS_KEY:
            return value.strip()
    return ""


def write_credentials_file(key: str, path: Path | None = None) -> Path:
    """
    Persist *key* for later runs (directory ``0700``, file ``0600``).

    :raises OSError: If the directory or file cannot be written.
    """
    path = path or credentials_path()
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(f"{_CREDENTIALS_KEY}={key}\n")
    os.chmod(path, 0o600)
    return path


def get_api_key() -> str:
    """``$A21E_API_KEY``, else the saved credentials file, else ``""``."""
    from_env = os.environ.get(_CREDENTIALS_KEY, "").strip()
    if from_env:
        return from_env
    return read_credentials_file()


def get_log_level(verbose: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    name = os.environ.get("A21E_LOG_LEVEL", "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING
