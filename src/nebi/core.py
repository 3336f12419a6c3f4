"""Core data models for nebi.

Persistent models (pydantic) describe what lives in nebi.db and
credentials.json. Result types (dataclasses) carry what an operation did
back to the CLI for rendering.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Optional
import uuid

from pydantic import BaseModel, Field

from .constants import STORE_SCHEMA_VERSION
from .utils import get_iso_timestamp


# ============= Local Store =============

class Origin(BaseModel):
    """Last push/pull of a directory against one server."""

    name: str
    tag: str
    action: Literal["push", "pull"]
    toml_hash: str
    lock_hash: str
    version_number: Optional[int] = None
    timestamp: str = Field(default_factory=get_iso_timestamp)

    @property
    def ref(self) -> str:
        return f"{self.name}:{self.tag}"


class Workspace(BaseModel):
    """A tracked directory.

    ``path`` is unique across the store; ``name`` is not.
    ``origins`` is keyed by normalized server URL.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    path: str
    kind: Literal["local", "global"] = "local"
    created_at: str = Field(default_factory=get_iso_timestamp)
    origins: Dict[str, Origin] = Field(default_factory=dict)

    @property
    def is_global(self) -> bool:
        return self.kind == "global"

    def origin_for(self, server: Optional[str]) -> Optional[Origin]:
        if not server:
            return None
        return self.origins.get(server)


class StoreData(BaseModel):
    """Whole contents of nebi.db."""

    version: int = STORE_SCHEMA_VERSION
    server_url: Optional[str] = None
    workspaces: Dict[str, Workspace] = Field(default_factory=dict)


class Credentials(BaseModel):
    """Token for one server."""

    token: str
    username: Optional[str] = None


class CredentialsFile(BaseModel):
    """Whole contents of credentials.json."""

    servers: Dict[str, Credentials] = Field(default_factory=dict)


# ============= Operation Results =============

@dataclass
class PushResult:
    name: str
    tag: str
    version_number: int
    tags: List[str]
    content_hash: str
    deduplicated: bool
    created_workspace: bool = False
    tracked_path: Optional[str] = None
    lock_missing: bool = False


@dataclass
class PushPlan:
    """What a dry-run push would send."""
    name: str
    tag: Optional[str]
    toml_hash: str
    lock_hash: str
    content_tag: str
    workspace_exists: bool
    lock_missing: bool = False


@dataclass
class PullResult:
    name: str
    tag: str
    version_number: int
    directory: str
    wrote_lock: bool
    tracked_path: Optional[str] = None
    server_changed: bool = False


@dataclass
class ImportResult:
    reference: str
    directory: str
    wrote_lock: bool
    tracked_path: Optional[str] = None


@dataclass
class PublishResult:
    name: str
    repository: str
    tag: str
    digest: str
    from_origin: bool = False


class DriftState(str, Enum):
    """Local file state relative to the origin's recorded hash."""
    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    MISSING = "missing"


class ServerCheck(str, Enum):
    """Outcome of comparing an origin with the server's current content."""
    IN_SYNC = "in-sync"
    CHANGED = "changed"
    UNREACHABLE = "unreachable"
    NOT_LOGGED_IN = "not-logged-in"
    WORKSPACE_NOT_FOUND = "workspace-not-found"
    TAG_NOT_FOUND = "tag-not-found"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass
class OriginStatus:
    server: str
    origin: Origin
    manifest: DriftState
    lock: DriftState
    server_check: ServerCheck = ServerCheck.SKIPPED
    server_message: str = ""
    is_current_server: bool = False


@dataclass
class StatusReport:
    workspace: Workspace
    server: Optional[str]
    origins: List[OriginStatus] = field(default_factory=list)
