"""Utility functions for nebi."""

from datetime import datetime, timezone
from pathlib import Path
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


# ============= Atomic Write Helpers =============

def fsync_dir(path: Path) -> None:
    """Fsync a directory so a rename inside it is durable.

    Best-effort: Windows and some filesystems do not support it.
    """
    try:
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY
        dirfd = os.open(str(path), flags)
        try:
            os.fsync(dirfd)
        finally:
            os.close(dirfd)
    except OSError:
        logger.debug("Directory fsync not supported for %s", path)


def atomic_write_text(path: Path, text: str, mode: int = 0o644) -> None:
    """Atomically replace ``path`` with ``text``.

    1. Write to a temp file in the same directory and fsync it
    2. os.replace onto the target (readers see old or new, never partial)
    3. Fsync the parent directory

    Text is written byte-for-byte (no newline translation) as UTF-8.
    On any failure the temp file is removed and the target is untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        newline="",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.tmp-",
    ) as f:
        tmp = Path(f.name)
        try:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        except BaseException:
            f.close()
            tmp.unlink(missing_ok=True)
            raise

    try:
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    fsync_dir(path.parent)


def read_text_if_exists(path: Path) -> str:
    """Read a UTF-8 file without newline translation; empty string if missing."""
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return ""


# ============= Display Helpers =============

def get_iso_timestamp() -> str:
    """Current UTC time in ISO 8601 with a Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def humanize_date(iso_string: str) -> str:
    """Convert ISO 8601 timestamp to human-readable relative time.

    Examples:
        "2024-01-15T10:30:45Z" -> "2 hours ago"
        "2024-01-10T10:30:45Z" -> "5 days ago"
    """
    if not iso_string:
        return ""
    try:
        value = iso_string.strip()
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        seconds = (datetime.now(timezone.utc) - dt).total_seconds()
    except ValueError:
        return iso_string

    if seconds < 60:
        return "just now"
    elif seconds < 3600:
        minutes = int(seconds / 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    elif seconds < 86400:
        hours = int(seconds / 3600)
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    elif seconds < 604800:
        days = int(seconds / 86400)
        return f"{days} day{'s' if days != 1 else ''} ago"
    elif seconds < 2592000:
        weeks = int(seconds / 604800)
        return f"{weeks} week{'s' if weeks != 1 else ''} ago"
    elif seconds < 31536000:
        months = int(seconds / 2592000)
        return f"{months} month{'s' if months != 1 else ''} ago"
    years = int(seconds / 31536000)
    return f"{years} year{'s' if years != 1 else ''} ago"


def format_iso_date(iso_string: str) -> str:
    """Clean up ISO 8601 timestamp for display.

    Examples:
        "2025-08-26T02:51:17.317839Z" -> "2025-08-26 02:51:17"
        "2025-08-26T02:51:17Z" -> "2025-08-26 02:51:17"
    """
    if not iso_string:
        return ""
    if "T" in iso_string and "." in iso_string:
        return iso_string.split(".")[0].replace("T", " ")
    if "T" in iso_string:
        return iso_string.rstrip("Z").replace("T", " ")
    return iso_string


def abbreviate_home(path: str) -> str:
    """Replace the home directory prefix with ~."""
    home = str(Path.home())
    if home and (path == home or path.startswith(home + os.sep)):
        return "~" + path[len(home):]
    return path
