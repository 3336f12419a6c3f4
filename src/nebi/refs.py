"""Reference and path resolution.

Reference grammar::

    name := [^/\\:]+
    tag  := [^:]+
    ref  := [name][':' tag]

A token is a path rather than a reference when it is ``.``, starts with
``/``, ``./``, ``../`` or ``~``, or contains a path separator.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple, Union
import logging
import os
import tomllib

from .constants import MANIFEST_FILE
from .errors import InvalidNameError

if TYPE_CHECKING:
    from .core import Workspace
    from .store import LocalStore

logger = logging.getLogger(__name__)

_FORBIDDEN_NAME_CHARS = ("/", "\\", ":")
_RESERVED_NAMES = (".", "..")


def parse_ref(token: str) -> Tuple[str, str]:
    """Split ``name:tag`` on the last colon.

    >>> parse_ref(":v2")
    ('', 'v2')
    >>> parse_ref("foo:bar:baz")
    ('foo:bar', 'baz')
    >>> parse_ref("foo")
    ('foo', '')
    """
    name, sep, tag = token.rpartition(":")
    if not sep:
        return token, ""
    return name, tag


def format_ref(name: str, tag: str = "") -> str:
    """Inverse of parse_ref."""
    return f"{name}:{tag}" if tag else name


def validate_name(name: str) -> str:
    """Check a workspace name; returns it unchanged or raises InvalidNameError."""
    if not name:
        raise InvalidNameError(name, "must not be empty")
    if any(c in name for c in _FORBIDDEN_NAME_CHARS):
        raise InvalidNameError(name, "must not contain '/', '\\', or ':'")
    if name in _RESERVED_NAMES:
        raise InvalidNameError(name, "is reserved")
    return name


def is_valid_name(name: str) -> bool:
    try:
        validate_name(name)
    except InvalidNameError:
        return False
    return True


def is_path_like(token: str) -> bool:
    if token == ".":
        return True
    if token.startswith(("/", "./", "../", "~")):
        return True
    return "/" in token or "\\" in token or os.sep in token


def is_diff_path(token: str, base: Optional[Path] = None) -> bool:
    """Path test used by ``diff``.

    Besides is_path_like, an existing directory (relative to ``base``, default
    cwd) named without a colon counts as a path, so ``nebi diff other-dir``
    works.
    """
    if is_path_like(token):
        return True
    return ":" not in token and ((base or Path.cwd()) / token).is_dir()


def resolve_path(token: Union[str, Path], base: Optional[Path] = None) -> Path:
    """Expand ~, make absolute (relative to ``base`` or cwd), resolve symlinks."""
    path = Path(token).expanduser()
    if not path.is_absolute():
        path = (base or Path.cwd()) / path
    return path.resolve()


def read_manifest_name(directory: Path) -> Optional[str]:
    """Workspace name declared in ``directory/pixi.toml``.

    Reads ``[workspace].name`` and falls back to ``[project].name``.
    Returns None when the file is missing, unparsable or has no name.
    """
    try:
        data = tomllib.loads((directory / MANIFEST_FILE).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return None
    for table in ("workspace", "project"):
        section = data.get(table)
        if isinstance(section, dict) and isinstance(section.get("name"), str):
            return section["name"]
    return None


def default_name_for(directory: Path) -> str:
    """Name for a newly tracked directory: the manifest name if valid, else the base-name."""
    name = read_manifest_name(directory)
    if name and is_valid_name(name):
        return name
    return directory.name


def sync_name(store: "LocalStore", workspace: "Workspace") -> "Workspace":
    """Bring the stored name in line with the manifest's name.

    Invalid manifest names are never stored; the current name is kept and a
    warning is logged.
    """
    name = read_manifest_name(Path(workspace.path))
    if not name or name == workspace.name:
        return workspace
    if not is_valid_name(name):
        logger.warning(
            "Warning: pixi.toml name '%s' is not a valid workspace name; keeping '%s'",
            name, workspace.name,
        )
        return workspace
    logger.debug("Renaming workspace %s: %s -> %s", workspace.id, workspace.name, name)
    return store.rename(workspace.id, name)


def lookup_origin_for_cwd(store: "LocalStore", cwd: Optional[Path] = None) -> Optional["Workspace"]:
    """Tracked workspace whose path is the current directory, with its name synced."""
    workspace = store.find_by_path(cwd or Path.cwd())
    if workspace is None:
        return None
    return sync_name(store, workspace)
