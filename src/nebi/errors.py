"""Custom exceptions for nebi.

Library code raises these; only the CLI layer catches them and turns them
into user-facing messages and exit codes.
"""

from typing import Optional


class NebiError(RuntimeError):
    """Base class for all nebi errors."""
    pass


class ConfigError(NebiError):
    """No server configured, unreadable state, and similar setup problems."""
    pass


class UserAbort(NebiError):
    """User declined a confirmation prompt."""

    def __init__(self):
        super().__init__("Aborted.")


# Local workspace errors
class WorkspaceError(NebiError):
    """Base class for local workspace errors."""
    pass


class NotTrackedError(WorkspaceError):
    """Directory is not a tracked workspace."""

    def __init__(self, path: str = ""):
        self.path = path
        super().__init__("Not a tracked workspace. Run 'nebi init'.")


class AlreadyTrackedError(WorkspaceError):
    """Directory is already tracked."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"workspace already tracked: {path}")


class NoOriginError(WorkspaceError):
    """Command needs a reference but the directory has no origin."""
    pass


class InvalidNameError(WorkspaceError):
    """Workspace name violates the naming rules."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"workspace name '{name}' {reason}")


class MissingManifestError(WorkspaceError):
    """pixi.toml not found where one is required."""

    def __init__(self, directory: str):
        self.directory = directory
        super().__init__(
            f"pixi.toml not found in {directory}. Run 'pixi init' to create one."
        )


class PixiNotFoundError(NebiError):
    """pixi executable is not on PATH."""

    def __init__(self):
        super().__init__("pixi not found on PATH; install pixi first")


# Server errors
class ServerError(NebiError):
    """Error talking to the nebi server.

    ``kind`` is one of: unauthenticated, forbidden, not-found, conflict,
    server, unreachable, protocol.
    """

    kind = "protocol"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthError(ServerError):
    """Missing or rejected credentials (401)."""
    kind = "unauthenticated"


class ForbiddenError(ServerError):
    """Authenticated but not allowed (403)."""
    kind = "forbidden"


class NotFoundError(ServerError):
    """Workspace, tag or version not found (404)."""
    kind = "not-found"


class ConflictError(ServerError):
    """Tag already points at a different version (409)."""
    kind = "conflict"


class ServerSideError(ServerError):
    """Server failed (5xx)."""
    kind = "server"


class UnreachableError(ServerError):
    """Transport failure: DNS, refused connection, timeout."""
    kind = "unreachable"


class WorkspaceSetupError(ServerError):
    """Server-side workspace setup ended in a failed state."""
    kind = "server"


class ReadyTimeoutError(ServerError):
    """Workspace did not become ready before the deadline."""
    kind = "timeout"

    def __init__(self, name: str, timeout: float):
        self.name = name
        self.timeout = timeout
        super().__init__(
            f"timeout waiting for workspace '{name}' to be ready after {timeout:g}s; "
            f"it may still finish setting up on the server"
        )


# OCI errors
class OciFetchError(NebiError):
    """Failed to fetch an artifact from an OCI registry."""

    def __init__(self, host: str, repository: str, detail: str):
        self.host = host
        self.repository = repository
        self.detail = detail
        super().__init__(f"failed to fetch {host}/{repository}: {detail}")


class DiffError(NebiError):
    """A diff input could not be read or parsed."""
    pass
