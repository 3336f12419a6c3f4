"""Local workspace store.

All persistent client state lives in one JSON document, ``nebi.db``, under
the data directory, plus ``credentials.json`` (mode 0600) under the config
directory.

Guarantees:
- Every mutation runs lock -> read -> mutate in memory -> atomic rename -> unlock,
  with a portalocker advisory lock on ``nebi.db.lock``. Concurrent nebi
  processes serialize there.
- Readers do not take the lock. Because writes are whole-file renames they
  see either the state before or after any mutation, never a torn file.
- Paths are stored absolute and symlink-resolved; origin keys are normalized
  server URLs.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union
import logging
import os

import portalocker
from pydantic import ValidationError

from .config import config_dir, data_dir, normalize_server_url, server_override
from .constants import (
    CREDENTIALS_FILE,
    GLOBAL_WORKSPACES_DIR,
    STORE_FILE,
    STORE_LOCK_TIMEOUT,
)
from .core import Credentials, CredentialsFile, Origin, StoreData, Workspace
from .errors import AlreadyTrackedError, ConfigError, NotTrackedError
from .hashing import content_hash, toml_content_hash
from .refs import validate_name
from .utils import atomic_write_text

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def normalize_path(path: PathLike) -> str:
    """Absolute, user-expanded, symlink-resolved path string."""
    return str(Path(path).expanduser().resolve())


class LocalStore:
    """Tracked workspaces, origins, current server and credentials."""

    def __init__(self, root: Optional[Path] = None, config_root: Optional[Path] = None):
        self.root = Path(root) if root is not None else data_dir()
        self.config_root = Path(config_root) if config_root is not None else config_dir()
        self.db_path = self.root / STORE_FILE
        self.lock_path = self.root / f"{STORE_FILE}.lock"
        self.credentials_path = self.config_root / CREDENTIALS_FILE

    # ============= Locking & Persistence =============

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self.root.mkdir(parents=True, exist_ok=True)
        lock = portalocker.Lock(str(self.lock_path), "w", timeout=STORE_LOCK_TIMEOUT)
        try:
            lock.acquire()
        except portalocker.exceptions.LockException as e:
            raise ConfigError(
                f"timed out after {STORE_LOCK_TIMEOUT}s waiting for {self.lock_path}; "
                f"is another nebi command running?"
            ) from e
        logger.debug("Acquired store lock %s", self.lock_path)
        try:
            yield
        finally:
            lock.release()

    def load(self) -> StoreData:
        """Read nebi.db without locking."""
        try:
            raw = self.db_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return StoreData()
        if not raw.strip():
            return StoreData()
        try:
            return StoreData.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigError(f"corrupt workspace store {self.db_path}: {e}") from e

    def _write(self, data: StoreData) -> None:
        atomic_write_text(self.db_path, data.model_dump_json(indent=2) + "\n")
        logger.debug("Wrote %s (%d workspaces)", self.db_path, len(data.workspaces))

    @contextmanager
    def transaction(self) -> Iterator[StoreData]:
        """Locked read-modify-write of nebi.db.

        Nothing is written if the body raises.
        """
        with self._locked():
            data = self.load()
            yield data
            self._write(data)

    # ============= Queries =============

    def list_workspaces(self) -> List[Workspace]:
        return sorted(self.load().workspaces.values(), key=lambda w: (w.name, w.path))

    def find_by_path(self, path: PathLike) -> Optional[Workspace]:
        return _find_by_path(self.load(), normalize_path(path))

    def find_by_name(self, name: str) -> List[Workspace]:
        return [w for w in self.list_workspaces() if w.name == name]

    def find_by_id(self, workspace_id: str) -> Optional[Workspace]:
        return self.load().workspaces.get(workspace_id)

    def global_dir(self, workspace_id: str) -> Path:
        return self.root / GLOBAL_WORKSPACES_DIR / workspace_id

    # ============= Mutations =============

    def create(self, path: PathLike, name: str, kind: str = "local") -> Workspace:
        """Track a directory. Fails if the path is already tracked."""
        validate_name(name)
        norm = normalize_path(path)
        with self.transaction() as data:
            if _find_by_path(data, norm) is not None:
                raise AlreadyTrackedError(norm)
            ws = Workspace(name=name, path=norm, kind=kind)
            data.workspaces[ws.id] = ws
        return ws

    def track(self, path: PathLike, name: str, kind: str = "local") -> Tuple[Workspace, bool]:
        """Find the workspace at ``path`` or create it. Returns (workspace, created)."""
        validate_name(name)
        norm = normalize_path(path)
        with self.transaction() as data:
            existing = _find_by_path(data, norm)
            if existing is not None:
                return existing, False
            ws = Workspace(name=name, path=norm, kind=kind)
            data.workspaces[ws.id] = ws
        return ws, True

    def save(self, workspace: Workspace) -> None:
        """Replace the stored record for ``workspace.id``."""
        validate_name(workspace.name)
        workspace.path = normalize_path(workspace.path)
        with self.transaction() as data:
            clash = _find_by_path(data, workspace.path)
            if clash is not None and clash.id != workspace.id:
                raise AlreadyTrackedError(workspace.path)
            data.workspaces[workspace.id] = workspace

    def rename(self, workspace_id: str, name: str) -> Workspace:
        validate_name(name)
        with self.transaction() as data:
            ws = data.workspaces.get(workspace_id)
            if ws is None:
                raise NotTrackedError()
            ws.name = name
        return ws

    def delete(self, workspace_id: str) -> Optional[Workspace]:
        """Remove the entry only. Files on disk are never touched here."""
        with self.transaction() as data:
            return data.workspaces.pop(workspace_id, None)

    def prune(self) -> List[Workspace]:
        """Drop entries whose path no longer exists. Returns the removed entries."""
        removed = []
        with self.transaction() as data:
            for ws_id, ws in list(data.workspaces.items()):
                try:
                    os.stat(ws.path)
                except FileNotFoundError:
                    removed.append(data.workspaces.pop(ws_id))
                except OSError as e:
                    logger.warning("Keeping %s: cannot check path (%s)", ws.path, e)
        return removed

    def record_origin(
        self,
        path: PathLike,
        name: str,
        server: str,
        origin: Origin,
        kind: str = "local",
        workspace_id: Optional[str] = None,
    ) -> Tuple[Workspace, bool]:
        """Set the origin for ``server`` on the workspace at ``path``.

        Creates the tracking entry when the directory is not tracked yet
        (with ``workspace_id`` if given). Returns (workspace, created).
        """
        validate_name(name)
        norm = normalize_path(path)
        server = normalize_server_url(server)
        with self.transaction() as data:
            ws = _find_by_path(data, norm)
            created = ws is None
            if ws is None:
                ws = Workspace(name=name, path=norm, kind=kind)
                if workspace_id:
                    ws.id = workspace_id
                data.workspaces[ws.id] = ws
            ws.origins[server] = origin
        return ws, created

    # ============= Server & Credentials =============

    def get_server_url(self) -> Optional[str]:
        """Current server: $NEBI_SERVER, else the one saved at login."""
        return server_override() or self.load().server_url

    def set_server_url(self, url: Optional[str]) -> None:
        with self.transaction() as data:
            data.server_url = normalize_server_url(url) if url else None

    def _load_credentials(self) -> CredentialsFile:
        try:
            raw = self.credentials_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return CredentialsFile()
        try:
            return CredentialsFile.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigError(f"corrupt credentials file {self.credentials_path}: {e}") from e

    def get_credentials(self, server: str) -> Optional[Credentials]:
        return self._load_credentials().servers.get(normalize_server_url(server))

    def set_credentials(self, server: str, credentials: Credentials) -> None:
        with self._locked():
            creds = self._load_credentials()
            creds.servers[normalize_server_url(server)] = credentials
            atomic_write_text(
                self.credentials_path, creds.model_dump_json(indent=2) + "\n", mode=0o600
            )

    def clear_credentials(self, server: str) -> bool:
        with self._locked():
            creds = self._load_credentials()
            if creds.servers.pop(normalize_server_url(server), None) is None:
                return False
            atomic_write_text(
                self.credentials_path, creds.model_dump_json(indent=2) + "\n", mode=0o600
            )
        return True


def _find_by_path(data: StoreData, norm_path: str) -> Optional[Workspace]:
    for ws in data.workspaces.values():
        if ws.path == norm_path:
            return ws
    return None


__all__ = [
    "LocalStore",
    "normalize_path",
    "toml_content_hash",
    "content_hash",
]
