"""Core operations for nebi: push, pull, status, diff, import, publish.

Every operation follows the same shape: resolve a reference, transfer bytes,
update local state, report. Local state (files and the store) is only touched
after the server or registry side has succeeded, so a failed transfer never
leaves a fresh origin behind.

Functions here take their collaborators (store, server client, OCI client,
confirmation callback) as arguments and return result objects; rendering is
left to the CLI.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Type
import logging
import shutil
import uuid

from .client import ServerClient, VersionContent, WorkspaceTag
from .constants import HASH_PREFIX, LATEST_TAG, LOCK_FILE, MANIFEST_FILE, READY_TIMEOUT
from .core import (
    DriftState,
    ImportResult,
    Origin,
    OriginStatus,
    PublishResult,
    PullResult,
    PushPlan,
    PushResult,
    ServerCheck,
    StatusReport,
    Workspace,
)
from .diffing import DiffRef, LockSummary, TomlDiff, compare_lock, compare_toml
from .errors import (
    AlreadyTrackedError,
    AuthError,
    DiffError,
    MissingManifestError,
    NebiError,
    NoOriginError,
    NotFoundError,
    NotTrackedError,
    UnreachableError,
    UserAbort,
)
from .hashing import content_tag, hash_lock, hash_manifest
from .oci import OciClient
from .pixi import pixi_init
from .refs import (
    default_name_for,
    format_ref,
    is_diff_path,
    is_path_like,
    is_valid_name,
    lookup_origin_for_cwd,
    parse_ref,
    resolve_path,
    validate_name,
)
from .store import LocalStore
from .utils import atomic_write_text, read_text_if_exists

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]
ClientFactory = Callable[[str], ServerClient]


def deny(prompt: str) -> bool:
    """Confirmation callback for non-interactive use: always answers no."""
    return False


# ============= Workspace Files =============

def read_workspace_files(directory: Path) -> Tuple[str, str, bool]:
    """Return (manifest, lock, lock_exists) for a workspace directory.

    Raises:
        MissingManifestError: pixi.toml does not exist
    """
    manifest_path = directory / MANIFEST_FILE
    if not manifest_path.is_file():
        raise MissingManifestError(str(directory))
    manifest = _read_text(manifest_path)
    lock_path = directory / LOCK_FILE
    return manifest, _read_text(lock_path), lock_path.is_file()


def _read_text(path: Path, error: Type[NebiError] = NebiError) -> str:
    try:
        return read_text_if_exists(path)
    except UnicodeDecodeError as e:
        raise error(f"{path} is not valid UTF-8 text") from e
    except OSError as e:
        raise error(f"cannot read {path}: {e.strerror or e}") from e


def write_workspace_files(directory: Path, manifest: str, lock: str) -> bool:
    """Atomically write pixi.toml, and pixi.lock when ``lock`` is non-empty.

    Returns whether the lock was written.
    """
    directory.mkdir(parents=True, exist_ok=True)
    atomic_write_text(directory / MANIFEST_FILE, manifest)
    if lock:
        atomic_write_text(directory / LOCK_FILE, lock)
        return True
    return False


def check_overwrite(directory: Path, force: bool, confirm: Confirm) -> None:
    """Overwrite gate: existing pixi.toml needs --force or an explicit yes.

    Raises:
        UserAbort: the user (or a non-interactive default) said no
    """
    if force or not (directory / MANIFEST_FILE).exists():
        return
    if not confirm(f"{MANIFEST_FILE} already exists in {directory}. Overwrite?"):
        raise UserAbort()


def _local_name(directory: Path, fallback: str) -> str:
    name = default_name_for(directory)
    return name if is_valid_name(name) else fallback


def _origin_for_cwd(store: LocalStore, server: str, cwd: Path) -> Tuple[Optional[Workspace], Optional[Origin]]:
    workspace = lookup_origin_for_cwd(store, cwd)
    if workspace is None:
        return None, None
    return workspace, workspace.origin_for(server)


# ============= Push =============

def resolve_push_ref(store: LocalStore, server: str, ref: Optional[str], cwd: Path) -> Tuple[str, str]:
    """Name and tag for a push; the name falls back to this directory's origin."""
    name, tag = parse_ref(ref) if ref else ("", "")
    if not name:
        _, origin = _origin_for_cwd(store, server, cwd)
        if origin is None:
            example = format_ref("<name>", tag or "<tag>")
            raise NoOriginError(
                f"workspace name is required: no origin set for this directory; "
                f"use 'nebi push {example}'"
            )
        name = origin.name
    validate_name(name)
    return name, tag


def plan_push(store: LocalStore, client: ServerClient, ref: Optional[str], cwd: Path) -> PushPlan:
    """Dry run: what push would send, without changing anything."""
    name, tag = resolve_push_ref(store, client.server_url, ref, cwd)
    manifest, lock, lock_exists = read_workspace_files(cwd)
    toml_hash = hash_manifest(manifest)
    return PushPlan(
        name=name,
        tag=tag or None,
        toml_hash=toml_hash,
        lock_hash=hash_lock(lock),
        content_tag=content_tag(toml_hash),
        workspace_exists=client.find_workspace(name) is not None,
        lock_missing=not lock_exists,
    )


def push(
    store: LocalStore,
    client: ServerClient,
    ref: Optional[str],
    cwd: Path,
    force: bool = False,
    ready_timeout: float = READY_TIMEOUT,
) -> PushResult:
    """Push pixi.toml and pixi.lock of ``cwd`` to the server.

    Creates the server workspace on first push (and waits for it to become
    ready), then records the origin and tracks ``cwd`` if it was untracked.
    """
    server = client.server_url
    name, tag = resolve_push_ref(store, server, ref, cwd)
    manifest, lock, lock_exists = read_workspace_files(cwd)

    remote = client.find_workspace(name)
    created = False
    if remote is None:
        logger.debug("Creating workspace %s on %s", name, server)
        remote = client.create_workspace(name, manifest)
        created = True
        client.wait_for_ready(remote.id, timeout=ready_timeout)

    response = client.push_version(remote.id, tag, manifest, lock, force)

    toml_hash = hash_manifest(manifest)
    origin = Origin(
        name=name,
        tag=tag or content_tag(response.content_hash or toml_hash),
        action="push",
        toml_hash=toml_hash,
        lock_hash=hash_lock(lock),
        version_number=response.version_number,
    )
    workspace, tracked = store.record_origin(cwd, _local_name(cwd, name), server, origin)

    return PushResult(
        name=name,
        tag=origin.tag,
        version_number=response.version_number,
        tags=response.tags,
        content_hash=response.content_hash,
        deduplicated=response.deduplicated,
        created_workspace=created,
        tracked_path=workspace.path if tracked else None,
        lock_missing=not lock_exists,
    )


# ============= Pull =============

def primary_tag(tags: List[WorkspaceTag], version_number: int) -> str:
    """Tag to record for a version: a user tag, else latest, else the content tag."""
    names = sorted(t.tag for t in tags if t.version_number == version_number)
    user = [t for t in names if t != LATEST_TAG and not t.startswith(HASH_PREFIX)]
    if user:
        return user[0]
    if LATEST_TAG in names:
        return LATEST_TAG
    return names[0] if names else LATEST_TAG


def _pull_target(
    store: LocalStore,
    cwd: Path,
    output: Optional[str],
    global_name: Optional[str],
) -> Tuple[Path, str, Optional[str]]:
    """(directory, kind, workspace id) for where pulled files go."""
    if not global_name:
        return resolve_path(output or ".", base=cwd), "local", None
    validate_name(global_name)
    for ws in store.find_by_name(global_name):
        if ws.is_global:
            return Path(ws.path), "global", ws.id
    new_id = str(uuid.uuid4())
    return store.global_dir(new_id), "global", new_id


def pull(
    store: LocalStore,
    client: ServerClient,
    ref: Optional[str],
    cwd: Path,
    output: Optional[str] = None,
    force: bool = False,
    confirm: Confirm = deny,
    global_name: Optional[str] = None,
) -> PullResult:
    """Pull a server version into a directory and record the origin.

    Without a reference the current directory's origin is used. Without a tag
    the newest version is pulled.
    """
    server = client.server_url
    origin: Optional[Origin] = None
    if ref:
        name, tag = parse_ref(ref)
        if not name:
            _, origin = _origin_for_cwd(store, server, cwd)
            if origin is None:
                raise NoOriginError(
                    "workspace name is required: no origin set for this directory; "
                    "use 'nebi pull <name>:<tag>'"
                )
            name = origin.name
    else:
        _, origin = _origin_for_cwd(store, server, cwd)
        if origin is None:
            raise NoOriginError(
                "no origin set for this directory; use 'nebi pull <name>[:<tag>]'"
            )
        name, tag = origin.name, origin.tag
    validate_name(name)

    remote = client.require_workspace(name)
    if tag:
        version_number = client.resolve_tag(remote.id, tag).version_number
    else:
        latest = client.latest_version(remote.id)
        if latest is None:
            raise NotFoundError(f"workspace '{name}' has no versions", 404)
        version_number = latest.version_number
        tag = primary_tag(client.list_tags(remote.id), version_number)

    content = client.get_version_content(remote.id, version_number)
    server_changed = bool(
        origin is not None and not ref and hash_manifest(content.manifest) != origin.toml_hash
    )

    directory, kind, workspace_id = _pull_target(store, cwd, output, global_name)
    check_overwrite(directory, force, confirm)
    wrote_lock = write_workspace_files(directory, content.manifest, content.lock)

    lock_on_disk = content.lock if wrote_lock else _read_text(directory / LOCK_FILE)
    new_origin = Origin(
        name=name,
        tag=tag,
        action="pull",
        toml_hash=hash_manifest(content.manifest),
        lock_hash=hash_lock(lock_on_disk),
        version_number=version_number,
    )
    local_name = global_name or _local_name(directory, name)
    workspace, tracked = store.record_origin(
        directory, local_name, server, new_origin, kind=kind, workspace_id=workspace_id
    )

    return PullResult(
        name=name,
        tag=tag,
        version_number=version_number,
        directory=workspace.path,
        wrote_lock=wrote_lock,
        tracked_path=workspace.path if tracked else None,
        server_changed=server_changed,
    )


# ============= Status =============

def _drift(path: Path, expected: str, hasher: Callable[[str], str], optional: bool) -> DriftState:
    if not path.is_file():
        if optional and hasher("") == expected:
            return DriftState.UNCHANGED
        return DriftState.MISSING
    try:
        text = read_text_if_exists(path)
    except UnicodeDecodeError:
        # recorded hashes are always of UTF-8 text
        return DriftState.MODIFIED
    return DriftState.UNCHANGED if hasher(text) == expected else DriftState.MODIFIED


def check_server(status: OriginStatus, get_client: ClientFactory) -> None:
    """Compare an origin against the server's current content for its tag.

    Never raises: every failure is recorded on ``status``.
    """
    origin = status.origin
    try:
        client = get_client(status.server)
        remote = client.find_workspace(origin.name)
        if remote is None:
            status.server_check = ServerCheck.WORKSPACE_NOT_FOUND
            return
        try:
            content = client.get_tag_content(remote.id, origin.tag)
        except NotFoundError:
            status.server_check = ServerCheck.TAG_NOT_FOUND
            return
    except AuthError:
        status.server_check = ServerCheck.NOT_LOGGED_IN
        return
    except UnreachableError:
        status.server_check = ServerCheck.UNREACHABLE
        return
    except NebiError as e:
        logger.debug("Status check against %s failed: %s", status.server, e)
        status.server_check = ServerCheck.ERROR
        status.server_message = str(e)
        return

    if hash_manifest(content.manifest) == origin.toml_hash:
        status.server_check = ServerCheck.IN_SYNC
    else:
        status.server_check = ServerCheck.CHANGED


def status(
    store: LocalStore,
    cwd: Path,
    get_client: Optional[ClientFactory] = None,
    current_server: Optional[str] = None,
) -> StatusReport:
    """Local and server drift for the workspace at ``cwd``.

    ``get_client`` builds a client for a server URL; pass None to skip the
    server checks.

    Raises:
        NotTrackedError: cwd is not tracked
    """
    workspace = lookup_origin_for_cwd(store, cwd)
    if workspace is None:
        raise NotTrackedError(str(cwd))

    report = StatusReport(workspace=workspace, server=current_server)
    directory = Path(workspace.path)
    servers = sorted(workspace.origins, key=lambda s: (s != current_server, s))
    for server in servers:
        origin = workspace.origins[server]
        entry = OriginStatus(
            server=server,
            origin=origin,
            manifest=_drift(directory / MANIFEST_FILE, origin.toml_hash, hash_manifest, optional=False),
            lock=_drift(directory / LOCK_FILE, origin.lock_hash, hash_lock, optional=True),
            is_current_server=server == current_server,
        )
        if get_client is not None:
            check_server(entry, get_client)
        report.origins.append(entry)
    return report


# ============= Diff =============

@dataclass
class DiffSide:
    ref: DiffRef
    manifest: str
    lock: str


@dataclass
class DiffOutcome:
    source: DiffSide
    target: DiffSide
    toml_diff: Optional[TomlDiff]
    lock_summary: LockSummary

    @property
    def has_changes(self) -> bool:
        toml_changed = self.toml_diff is not None and self.toml_diff.has_changes
        return toml_changed or self.lock_summary.has_changes


def load_local_side(directory: Path) -> DiffSide:
    manifest_path = directory / MANIFEST_FILE
    if not manifest_path.is_file():
        raise DiffError(f"{MANIFEST_FILE} not found in {directory}")
    return DiffSide(
        ref=DiffRef(type="local", path=str(directory)),
        manifest=_read_text(manifest_path, DiffError),
        lock=_read_text(directory / LOCK_FILE, DiffError),
    )


def load_remote_side(
    client: ServerClient,
    name: str,
    tag: str = "",
    version_number: Optional[int] = None,
    kind: str = "remote",
) -> DiffSide:
    """Fetch one server version by tag, by version number, or the latest."""
    remote = client.require_workspace(name)
    if tag:
        content = client.get_tag_content(remote.id, tag)
    elif version_number is not None:
        content = client.get_version_content(remote.id, version_number)
    else:
        latest = client.latest_version(remote.id)
        if latest is None:
            raise NotFoundError(f"workspace '{name}' has no versions", 404)
        content = client.get_version_content(remote.id, latest.version_number)
    return _remote_side(name, tag, content, kind)


def _remote_side(name: str, tag: str, content: VersionContent, kind: str) -> DiffSide:
    return DiffSide(
        ref=DiffRef(type=kind, workspace=name, tag=tag or None, version=content.version_number),
        manifest=content.manifest,
        lock=content.lock,
    )


def resolve_diff_sides(
    store: LocalStore,
    args: List[str],
    base_dir: Path,
    get_client: Callable[[], ServerClient],
    remote: bool = False,
) -> Tuple[DiffSide, DiffSide]:
    """Map diff arguments onto (source, target).

    ========== =====================================================
    args       behaviour
    ========== =====================================================
    (none)     origin version -> local tree (``remote``: current tag)
    ref        server version -> local tree
    path       that directory -> ``base_dir``
    path path  first directory -> second directory
    ref ref    first version -> second version (tags required)
    path ref   local -> server
    ref path   server -> local
    ========== =====================================================

    Relative paths resolve against ``base_dir``. ``get_client`` is called
    once per concurrent fetch and should return a client with its own session.
    """
    if len(args) > 2:
        raise DiffError("diff takes at most two arguments")

    if not args:
        workspace = lookup_origin_for_cwd(store, base_dir)
        if workspace is None:
            raise NotTrackedError(str(base_dir))
        client = get_client()
        origin = workspace.origin_for(client.server_url)
        if origin is None:
            raise NoOriginError("no origin")
        if remote or origin.version_number is None:
            source = load_remote_side(client, origin.name, tag=origin.tag, kind="origin")
        else:
            source = load_remote_side(
                client, origin.name, version_number=origin.version_number, kind="origin"
            )
            source.ref.tag = origin.tag
        return source, load_local_side(base_dir)

    paths = [is_diff_path(a, base=base_dir) for a in args]

    def local(token: str) -> DiffSide:
        return load_local_side(resolve_path(token, base=base_dir))

    if len(args) == 1:
        target = load_local_side(base_dir)
        if paths[0]:
            return local(args[0]), target
        return _load_ref(store, get_client, args[0], base_dir), target

    first, second = args
    if paths[0] and paths[1]:
        return local(first), local(second)
    if paths[0]:
        return local(first), _load_ref(store, get_client, second, base_dir)
    if paths[1]:
        return _load_ref(store, get_client, first, base_dir), local(second)

    for arg in args:
        if not parse_ref(arg)[1]:
            raise DiffError(
                f"'{arg}' has no tag; comparing two server versions needs explicit tags "
                f"(e.g. {arg}:v1)"
            )
    # each concurrent fetch gets its own client and session
    clients = [get_client(), get_client()]
    refs = [_ref_parts(store, clients[0].server_url, a, base_dir) for a in args]
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(load_remote_side, client, name, tag)
            for client, (name, tag) in zip(clients, refs)
        ]
        source, target = (f.result() for f in futures)
    return source, target


def _ref_parts(store: LocalStore, server: str, token: str, base_dir: Path) -> Tuple[str, str]:
    name, tag = parse_ref(token)
    if not name:
        _, origin = _origin_for_cwd(store, server, base_dir)
        if origin is None:
            raise NoOriginError(f"workspace name is required for '{token}': no origin set")
        name = origin.name
    validate_name(name)
    return name, tag


def _load_ref(store: LocalStore, get_client: Callable[[], ServerClient], token: str, base_dir: Path) -> DiffSide:
    client = get_client()
    name, tag = _ref_parts(store, client.server_url, token, base_dir)
    return load_remote_side(client, name, tag)


def diff_sides(source: DiffSide, target: DiffSide, toml_only: bool = False) -> DiffOutcome:
    """Compare two sides. ``toml_only`` skips the lock comparison."""
    toml_diff = compare_toml(
        source.manifest, target.manifest, source.ref.label, target.ref.label
    )
    lock_summary = LockSummary() if toml_only else compare_lock(source.lock, target.lock)
    return DiffOutcome(source=source, target=target, toml_diff=toml_diff, lock_summary=lock_summary)


# ============= Import =============

def import_workspace(
    store: LocalStore,
    oci: OciClient,
    reference: str,
    cwd: Path,
    output: Optional[str] = None,
    force: bool = False,
    confirm: Confirm = deny,
) -> ImportResult:
    """Fetch a published workspace from an OCI registry into a directory.

    Tracks the directory but records no origin: the content did not come from
    a nebi server.
    """
    content = oci.fetch(reference)
    directory = resolve_path(output or ".", base=cwd)
    check_overwrite(directory, force, confirm)
    wrote_lock = write_workspace_files(directory, content.manifest, content.lock)

    fallback = content.reference.repository.rsplit("/", 1)[-1]
    workspace, tracked = store.track(directory, _local_name(directory, fallback))
    return ImportResult(
        reference=str(content.reference),
        directory=workspace.path,
        wrote_lock=wrote_lock,
        tracked_path=workspace.path if tracked else None,
    )


# ============= Publish =============

@dataclass
class PublishPlan:
    workspace_id: str
    name: str
    registry_id: str
    registry_name: str
    repository: str
    tag: str
    from_origin: bool = False


def _find_registry(client: ServerClient, registry: str) -> Tuple[str, str]:
    for reg in client.list_registries():
        if reg.name == registry or reg.id == registry:
            return reg.id, reg.name
    raise NotFoundError(f"registry '{registry}' not found", 404)


def plan_publish(
    store: LocalStore,
    client: ServerClient,
    name: Optional[str],
    cwd: Path,
    registry: Optional[str] = None,
    repository: Optional[str] = None,
    tag: Optional[str] = None,
) -> PublishPlan:
    """Resolve workspace, registry, repository and tag for a publish.

    The server proposes defaults (including the next ``v<N>`` tag); flags
    override them.
    """
    from_origin = False
    if not name:
        _, origin = _origin_for_cwd(store, client.server_url, cwd)
        if origin is None:
            raise NoOriginError(
                "workspace name is required: no origin set for this directory; "
                "use 'nebi publish <name>'"
            )
        name = origin.name
        from_origin = True
    validate_name(name)

    remote = client.require_workspace(name)
    defaults = client.get_publish_defaults(remote.id)

    registry_id, registry_name = defaults.registry_id, defaults.registry_name
    if registry:
        registry_id, registry_name = _find_registry(client, registry)
    if not registry_id:
        raise NebiError("no default registry configured on the server; use --registry")

    tag = tag or defaults.tag
    if not tag:
        raise NebiError("server did not propose a tag; use --tag")

    return PublishPlan(
        workspace_id=remote.id,
        name=name,
        registry_id=registry_id,
        registry_name=registry_name or registry_id,
        repository=repository or defaults.repository or name,
        tag=tag,
        from_origin=from_origin,
    )


def publish(client: ServerClient, plan: PublishPlan) -> PublishResult:
    response = client.publish(plan.workspace_id, plan.registry_id, plan.repository, plan.tag)
    return PublishResult(
        name=plan.name,
        repository=response.repository,
        tag=response.tag,
        digest=response.digest,
        from_origin=plan.from_origin,
    )


# ============= Local Workspace Management =============

def init_workspace(
    store: LocalStore,
    cwd: Path,
    run_init: Callable[[Path], None] = pixi_init,
) -> Workspace:
    """Track ``cwd``, running ``pixi init`` first if it has no pixi.toml."""
    directory = resolve_path(cwd)
    existing = store.find_by_path(directory)
    if existing is not None:
        raise AlreadyTrackedError(existing.path)
    if not (directory / MANIFEST_FILE).exists():
        run_init(directory)
    return store.create(directory, _local_name(directory, directory.name))


def ensure_tracked(store: LocalStore, directory: Path) -> Tuple[Workspace, bool]:
    """Track ``directory`` if needed. Returns (workspace, newly tracked)."""
    directory = resolve_path(directory)
    return store.track(directory, _local_name(directory, directory.name))


def find_local_workspace(store: LocalStore, token: Optional[str], cwd: Path) -> Workspace:
    """Tracked workspace by name, path or ``.`` (default).

    Raises:
        NotTrackedError: path is not tracked
        NebiError: name unknown or ambiguous
    """
    if token is None or is_path_like(token):
        workspace = store.find_by_path(resolve_path(token or ".", base=cwd))
        if workspace is None:
            raise NotTrackedError(token or str(cwd))
        return workspace

    matches = store.find_by_name(token)
    if not matches:
        raise NebiError(f"no tracked workspace named '{token}'")
    if len(matches) > 1:
        paths = "\n  ".join(w.path for w in matches)
        raise NebiError(
            f"multiple workspaces named '{token}'; use a path to disambiguate:\n  {paths}"
        )
    return matches[0]


def remove_workspace(store: LocalStore, workspace: Workspace) -> bool:
    """Stop tracking a workspace. Global workspaces also lose their directory.

    Returns whether a directory was deleted.
    """
    store.delete(workspace.id)
    if not workspace.is_global:
        return False
    directory = Path(workspace.path)
    globals_root = store.global_dir(workspace.id).parent.resolve()
    if directory.resolve().parent != globals_root:
        logger.warning("Not deleting %s: outside %s", directory, globals_root)
        return False
    shutil.rmtree(directory, ignore_errors=True)
    return True


def remote_name_for(store: LocalStore, server: str, target: Optional[str], cwd: Path) -> str:
    """Server workspace name for ``workspace remove --remote``.

    A bare name is taken as the server name. No target or a path selects a
    tracked workspace and uses its origin on ``server``.
    """
    if target is not None and not is_path_like(target):
        validate_name(target)
        return target
    workspace = find_local_workspace(store, target, cwd)
    origin = workspace.origin_for(server)
    if origin is None:
        raise NoOriginError(
            f"workspace '{workspace.name}' has no origin on {server}; "
            "pass the server workspace name"
        )
    return origin.name


def remove_remote_workspace(client: ServerClient, name: str, timeout: float = READY_TIMEOUT) -> bool:
    """Delete a server workspace and wait for it to disappear.

    Returns False if it is still listed when the timeout expires.
    """
    remote = client.require_workspace(name)
    client.delete_workspace(remote.id)
    return client.wait_for_deleted(remote.id, timeout=timeout)


def resolve_pixi_target(
    store: LocalStore, args: List[str], cwd: Path
) -> Tuple[Path, List[str], bool]:
    """Split ``[workspace] [pixi args...]`` for shell/run.

    Returns (directory, remaining args, use --manifest-path). A first argument
    that is a path selects that directory; one that names exactly one tracked
    workspace selects it (activated via --manifest-path); anything else is
    passed through to pixi for the current directory.
    """
    if not args:
        return cwd, [], False
    first, rest = args[0], list(args[1:])
    if is_path_like(first):
        return resolve_path(first, base=cwd), rest, False
    if first.startswith("-"):
        return cwd, list(args), False
    matches = store.find_by_name(first)
    if not matches:
        return cwd, list(args), False
    if len(matches) > 1:
        paths = "\n  ".join(w.path for w in matches)
        raise NebiError(
            f"multiple workspaces named '{first}'; use a path to disambiguate:\n  {paths}"
        )
    return Path(matches[0].path), rest, True
