"""HTTP client for the nebi server API.

Thin typed wrapper over requests. Every authenticated call carries
``Authorization: Bearer <token>``. HTTP failures are mapped onto the
ServerError family so callers can branch on the error kind:

    401 -> AuthError          (unauthenticated)
    403 -> ForbiddenError     (forbidden)
    404 -> NotFoundError      (not-found)
    409 -> ConflictError      (conflict)
    5xx -> ServerSideError    (server)
    transport -> UnreachableError (unreachable)

Nothing is retried here.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
import logging
import time

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import normalize_server_url
from .constants import (
    API_PREFIX,
    PACKAGE_MANAGER,
    READY_POLL_INTERVAL,
    READY_TIMEOUT,
    SERVER_TIMEOUT,
    STATUS_FAILED,
    STATUS_READY,
)
from .errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ReadyTimeoutError,
    ServerError,
    ServerSideError,
    UnreachableError,
    WorkspaceSetupError,
)

logger = logging.getLogger(__name__)

NOT_LOGGED_IN = "not logged in; run 'nebi login <server-url>' first"


# ============= Response Models =============

class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class Owner(_ApiModel):
    username: str = ""


class RemoteWorkspace(_ApiModel):
    id: str
    name: str
    status: str = ""
    package_manager: str = ""
    owner: Optional[Owner] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def owner_name(self) -> str:
        return self.owner.username if self.owner else ""


class WorkspaceTag(_ApiModel):
    tag: str
    version_number: int
    created_at: str = ""
    updated_at: str = ""


class WorkspaceVersion(_ApiModel):
    id: str = ""
    workspace_id: str = ""
    version_number: int
    content_hash: str = ""
    created_at: str = ""


class PushResponse(_ApiModel):
    version_number: int
    tags: List[str] = Field(default_factory=list)
    content_hash: str = ""
    deduplicated: bool = False
    tag: str = ""


class PublishDefaults(_ApiModel):
    registry_id: str = ""
    registry_name: str = ""
    repository: str = ""
    tag: str = ""


class PublishResponse(_ApiModel):
    repository: str
    tag: str
    digest: str = ""


class Registry(_ApiModel):
    id: str
    name: str
    url: str = ""
    username: str = ""
    namespace: str = ""
    is_default: bool = False


class LoginUser(_ApiModel):
    username: str = ""
    email: str = ""


class LoginResponse(_ApiModel):
    token: str
    user: Optional[LoginUser] = None


@dataclass
class VersionContent:
    """Manifest and lock text of one server version."""
    manifest: str
    lock: str
    version_number: int
    tag: str = ""


# ============= Client =============

def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    text = (resp.text or "").strip()
    return text[:200] if text else (resp.reason or f"HTTP {resp.status_code}")


def error_for_response(resp: requests.Response) -> ServerError:
    """Map an HTTP error response to a typed ServerError."""
    status = resp.status_code
    message = _error_message(resp)
    if status == 401:
        return AuthError(message, status)
    if status == 403:
        return ForbiddenError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    if status == 409:
        return ConflictError(message, status)
    if status >= 500:
        return ServerSideError(f"server error ({status}): {message}", status)
    return ServerError(f"request failed ({status}): {message}", status)


class ServerClient:
    """Client for one nebi server."""

    def __init__(
        self,
        server_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = SERVER_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.server_url = normalize_server_url(server_url)
        self.base_url = f"{self.server_url}{API_PREFIX}"
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock

    # ---- transport ----

    def _request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        auth: bool = True,
    ) -> requests.Response:
        headers = {"Accept": "application/json"}
        if auth:
            if not self.token:
                raise AuthError(NOT_LOGGED_IN)
            headers["Authorization"] = f"Bearer {self.token}"

        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method, url, json=json_body, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise UnreachableError(f"server {self.server_url} is not reachable: {e}") from e

        logger.debug("%s %s -> %s", method, url, resp.status_code)
        if resp.status_code >= 400:
            raise error_for_response(resp)
        return resp

    def _json(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None, auth: bool = True) -> Any:
        resp = self._request(method, path, json_body=json_body, auth=auth)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ServerError(f"invalid JSON from {path}: {e}", resp.status_code) from e

    def _text(self, path: str) -> str:
        resp = self._request("GET", path)
        try:
            return resp.content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ServerError(f"{path} is not UTF-8 text", resp.status_code) from e

    @staticmethod
    def _parse(model, data: Any):
        try:
            if isinstance(data, list):
                return [model.model_validate(item) for item in data]
            return model.model_validate(data)
        except ValidationError as e:
            raise ServerError(f"unexpected response from server: {e}") from e

    # ---- auth ----

    def login(self, username: str, password: str) -> LoginResponse:
        try:
            data = self._json(
                "POST", "/auth/login", {"username": username, "password": password}, auth=False
            )
        except AuthError as e:
            raise AuthError("Invalid username or password", e.status_code) from e
        return self._parse(LoginResponse, data)

    def health(self) -> Dict[str, Any]:
        return self._json("GET", "/health", auth=False) or {}

    # ---- workspaces ----

    def list_workspaces(self) -> List[RemoteWorkspace]:
        return self._parse(RemoteWorkspace, self._json("GET", "/workspaces") or [])

    def get_workspace(self, workspace_id: str) -> RemoteWorkspace:
        return self._parse(RemoteWorkspace, self._json("GET", f"/workspaces/{workspace_id}"))

    def find_workspace(self, name: str) -> Optional[RemoteWorkspace]:
        """Server workspace with this exact name, or None."""
        for ws in self.list_workspaces():
            if ws.name == name:
                return ws
        return None

    def require_workspace(self, name: str) -> RemoteWorkspace:
        ws = self.find_workspace(name)
        if ws is None:
            raise NotFoundError(f"workspace '{name}' not found on server", 404)
        return ws

    def create_workspace(self, name: str, manifest: str) -> RemoteWorkspace:
        """Create a workspace; the server starts its setup asynchronously."""
        body = {"name": name, "package_manager": PACKAGE_MANAGER, "pixi_toml": manifest}
        return self._parse(RemoteWorkspace, self._json("POST", "/workspaces", body))

    def delete_workspace(self, workspace_id: str) -> None:
        """Request deletion. The server deletes asynchronously."""
        self._request("DELETE", f"/workspaces/{workspace_id}")

    def wait_for_ready(
        self,
        workspace_id: str,
        timeout: float = READY_TIMEOUT,
        interval: float = READY_POLL_INTERVAL,
    ) -> RemoteWorkspace:
        """Poll until the workspace is ready.

        Raises:
            WorkspaceSetupError: status became failed or error
            ReadyTimeoutError: deadline passed
        """
        deadline = self._clock() + timeout
        while True:
            ws = self.get_workspace(workspace_id)
            if ws.status == STATUS_READY:
                return ws
            if ws.status in STATUS_FAILED:
                raise WorkspaceSetupError(f"workspace setup failed: '{ws.name}' is {ws.status}")
            if self._clock() >= deadline:
                raise ReadyTimeoutError(ws.name, timeout)
            self._sleep(interval)

    def wait_for_deleted(
        self,
        workspace_id: str,
        timeout: float = READY_TIMEOUT,
        interval: float = READY_POLL_INTERVAL,
    ) -> bool:
        """Poll list_workspaces until the workspace is gone. False on timeout."""
        deadline = self._clock() + timeout
        while True:
            if all(ws.id != workspace_id for ws in self.list_workspaces()):
                return True
            if self._clock() >= deadline:
                return False
            self._sleep(interval)

    # ---- versions & tags ----

    def list_tags(self, workspace_id: str) -> List[WorkspaceTag]:
        return self._parse(WorkspaceTag, self._json("GET", f"/workspaces/{workspace_id}/tags") or [])

    def list_versions(self, workspace_id: str) -> List[WorkspaceVersion]:
        return self._parse(
            WorkspaceVersion, self._json("GET", f"/workspaces/{workspace_id}/versions") or []
        )

    def latest_version(self, workspace_id: str) -> Optional[WorkspaceVersion]:
        versions = self.list_versions(workspace_id)
        if not versions:
            return None
        return max(versions, key=lambda v: v.version_number)

    def resolve_tag(self, workspace_id: str, tag: str) -> WorkspaceTag:
        for t in self.list_tags(workspace_id):
            if t.tag == tag:
                return t
        raise NotFoundError(f"tag '{tag}' not found", 404)

    def get_version_content(self, workspace_id: str, version_number: int) -> VersionContent:
        """Manifest and lock of an immutable version. A missing lock is returned as ''."""
        base = f"/workspaces/{workspace_id}/versions/{version_number}"
        manifest = self._text(f"{base}/pixi.toml")
        try:
            lock = self._text(f"{base}/pixi.lock")
        except NotFoundError:
            lock = ""
        return VersionContent(manifest=manifest, lock=lock, version_number=version_number)

    def get_tag_content(self, workspace_id: str, tag: str) -> VersionContent:
        """Content currently pointed at by ``tag``."""
        resolved = self.resolve_tag(workspace_id, tag)
        content = self.get_version_content(workspace_id, resolved.version_number)
        content.tag = tag
        return content

    def push_version(
        self,
        workspace_id: str,
        tag: str,
        manifest: str,
        lock: str,
        force: bool = False,
    ) -> PushResponse:
        body = {"tag": tag, "pixi_toml": manifest, "pixi_lock": lock, "force": force}
        return self._parse(PushResponse, self._json("POST", f"/workspaces/{workspace_id}/push", body))

    # ---- publish & registries ----

    def get_publish_defaults(self, workspace_id: str) -> PublishDefaults:
        return self._parse(
            PublishDefaults, self._json("GET", f"/workspaces/{workspace_id}/publish-defaults") or {}
        )

    def publish(self, workspace_id: str, registry_id: str, repository: str, tag: str) -> PublishResponse:
        body = {"registry_id": registry_id, "repository": repository, "tag": tag}
        return self._parse(
            PublishResponse, self._json("POST", f"/workspaces/{workspace_id}/publish", body)
        )

    def list_registries(self) -> List[Registry]:
        return self._parse(Registry, self._json("GET", "/registries") or [])

    def create_registry(
        self,
        name: str,
        url: str,
        username: str = "",
        password: str = "",
        namespace: str = "",
        is_default: bool = False,
    ) -> Registry:
        body = {
            "name": name,
            "url": url,
            "username": username,
            "password": password,
            "namespace": namespace,
            "is_default": is_default,
        }
        return self._parse(Registry, self._json("POST", "/registries", body))

    def delete_registry(self, registry_id: str) -> None:
        self._request("DELETE", f"/registries/{registry_id}")
