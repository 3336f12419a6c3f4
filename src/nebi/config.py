"""Directory and server URL resolution.

Data directory (store, global workspaces):
    $NEBI_DATA_DIR, else the platform user data dir
    (~/.local/share/nebi, ~/Library/Application Support/nebi, %APPDATA%\\nebi)

Config directory (credentials):
    $NEBI_CONFIG_DIR, else the platform user config dir (~/.config/nebi)
"""

import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import platformdirs

from .constants import APP_NAME, ENV_CONFIG_DIR, ENV_DATA_DIR, ENV_SERVER


def data_dir() -> Path:
    """Return the per-user data directory."""
    override = os.environ.get(ENV_DATA_DIR)
    if override:
        return Path(override).expanduser()
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False, roaming=True))


def config_dir() -> Path:
    """Return the per-user config directory."""
    override = os.environ.get(ENV_CONFIG_DIR)
    if override:
        return Path(override).expanduser()
    return Path(platformdirs.user_config_dir(APP_NAME, appauthor=False, roaming=True))


def normalize_server_url(url: str) -> str:
    """Canonical form used as the key for per-server state.

    Strips whitespace and trailing slashes and lowercases the scheme and host.
    Path components keep their case.
    """
    url = url.strip().rstrip("/")
    if not url:
        return url
    parts = urlsplit(url)
    if not parts.scheme:
        return url
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path.rstrip("/"), parts.query, parts.fragment)
    )


def normalize_login_url(url: str) -> str:
    """Like normalize_server_url, but defaults to https:// when no scheme is given."""
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    return normalize_server_url(url)


def server_override() -> Optional[str]:
    """Server URL from the environment, if set."""
    value = os.environ.get(ENV_SERVER)
    return normalize_login_url(value) if value else None
