"""CLI for nebi."""

import json
import logging
import os
import sys
import traceback
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from . import ops
from .client import ServerClient
from .config import normalize_login_url
from .constants import ENV_TOKEN, LOCK_FILE, MANIFEST_FILE
from .core import Credentials, DriftState, OriginStatus, ServerCheck, StatusReport
from .diffing import format_diff_json, format_lock_diff, format_unified_diff
from .errors import (
    AuthError,
    ConfigError,
    ConflictError,
    DiffError,
    MissingManifestError,
    NebiError,
    NotFoundError,
    NotTrackedError,
    UnreachableError,
    UserAbort,
)
from .oci import OciClient
from .pixi import run_pixi
from .refs import format_ref, resolve_path
from .store import LocalStore
from .utils import abbreviate_home, format_iso_date, humanize_date


app = typer.Typer(
    help="""\
Sync pixi workspaces (pixi.toml + pixi.lock) between your machine and a
nebi server. Push and pull tagged versions, check drift, diff versions,
publish to and import from OCI registries.""",
    no_args_is_help=True,
)
workspace_app = typer.Typer(help="Manage tracked and server workspaces", no_args_is_help=True)
registry_app = typer.Typer(help="Manage OCI registries on the server", no_args_is_help=True)
app.add_typer(workspace_app, name="workspace")
app.add_typer(registry_app, name="registry")

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


@app.callback()
def _configure(ctx: typer.Context):
    if os.environ.get("DEBUG"):
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )


# ============= Helpers =============

def _get_store() -> LocalStore:
    return LocalStore()


def _get_client(store: LocalStore, server: Optional[str] = None) -> ServerClient:
    """Client for ``server`` (default: the current server) with its stored token.

    $NEBI_TOKEN takes precedence over the stored token for the current server.
    """
    current = store.get_server_url()
    server = server or current
    if not server:
        raise ConfigError("no server configured; run 'nebi login <server-url>' first")
    token = os.environ.get(ENV_TOKEN) if server == current else None
    if not token:
        creds = store.get_credentials(server)
        token = creds.token if creds else None
    return ServerClient(server, token=token)


def _get_oci_client() -> OciClient:
    return OciClient()


def _confirm(prompt: str) -> bool:
    """Ask on a TTY; without one the answer is no."""
    if not sys.stdin.isatty():
        return False
    return typer.confirm(prompt, default=False, err=True)


def _hint_for(e: Exception) -> Optional[str]:
    if isinstance(e, ConflictError):
        return "Use --force to move the tag, or push with a new tag."
    if isinstance(e, AuthError) and e.status_code == 401:
        return "Run 'nebi login <server-url>' to authenticate."
    return None


def _fail(e: Exception, code: int = 1) -> NoReturn:
    """Print an error (plus hint and, with DEBUG, a traceback) and exit."""
    err_console.print(f"[red]✗[/red] {escape(str(e))}")
    hint = _hint_for(e)
    if hint:
        err_console.print(f"[dim]{escape(hint)}[/dim]")
    if os.environ.get("DEBUG"):
        traceback.print_exc()
    raise typer.Exit(code)


def _aborted() -> NoReturn:
    err_console.print("Aborted.")
    raise typer.Exit(0)


def _print_tracking(path: Optional[str], name: str) -> None:
    if path:
        err_console.print(f"Tracking workspace '{escape(name)}' at {escape(path)}")


# ============= Authentication =============

@app.command()
def login(
    server_url: str = typer.Argument(..., help="Server URL (https:// is assumed when omitted)"),
    token: Optional[str] = typer.Option(None, "--token", help="Use an API token instead of username/password"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Username (prompted when omitted)"),
):
    """Log in to a nebi server and make it the current server."""
    url = normalize_login_url(server_url)
    store = _get_store()
    try:
        if token:
            creds = Credentials(token=token, username=username)
        else:
            username = username or typer.prompt("Username", err=True)
            password = typer.prompt("Password", hide_input=True, err=True)
            client = _get_client(store, url)
            try:
                response = client.login(username, password)
            except UnreachableError as e:
                raise UnreachableError(f"Could not connect to server {url}") from e
            user = response.user.username if response.user and response.user.username else username
            creds = Credentials(token=response.token, username=user)

        store.set_credentials(url, creds)
        store.set_server_url(url)
    except NebiError as e:
        _fail(e)

    who = f" as {escape(creds.username)}" if creds.username else ""
    err_console.print(f"[green]✓[/green] Logged in to {escape(url)}{who}")


@app.command()
def logout():
    """Forget the stored token for the current server."""
    store = _get_store()
    try:
        server = store.get_server_url()
        if not server:
            raise ConfigError("no server configured")
        removed = store.clear_credentials(server)
    except NebiError as e:
        _fail(e)

    if removed:
        err_console.print(f"[green]✓[/green] Logged out from {escape(server)}")
    else:
        err_console.print(f"Not logged in to {escape(server)}")


# ============= Local Workspaces =============

@app.command()
def init():
    """Track the current directory as a workspace (runs 'pixi init' if needed)."""
    store = _get_store()
    try:
        ws = ops.init_workspace(store, Path.cwd())
    except NebiError as e:
        _fail(e)
    err_console.print(
        f"[green]✓[/green] Workspace '{escape(ws.name)}' initialized ({escape(ws.path)})"
    )


@workspace_app.command("list")
def workspace_list(
    remote: bool = typer.Option(False, "--remote", help="List workspaces on the server"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """List tracked workspaces (or server workspaces with --remote)."""
    store = _get_store()
    if remote:
        try:
            workspaces = _get_client(store).list_workspaces()
        except NebiError as e:
            _fail(e)
        if as_json:
            typer.echo(json.dumps([w.model_dump() for w in workspaces], indent=2))
            return
        if not workspaces:
            console.print("[dim]No workspaces on server[/dim]")
            return
        table = Table(show_header=True, header_style="bold")
        table.add_column("NAME", style="cyan")
        table.add_column("STATUS")
        table.add_column("OWNER")
        table.add_column("UPDATED")
        for w in sorted(workspaces, key=lambda w: w.name):
            table.add_row(w.name, w.status, w.owner_name, humanize_date(w.updated_at or w.created_at))
        console.print(table)
        return

    try:
        workspaces = store.list_workspaces()
        server = store.get_server_url()
    except NebiError as e:
        _fail(e)
    if as_json:
        typer.echo(json.dumps([w.model_dump() for w in workspaces], indent=2))
        return
    if not workspaces:
        console.print("[dim]No tracked workspaces. Run 'nebi init' in a pixi workspace.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("NAME", style="cyan", no_wrap=True)
    table.add_column("TYPE")
    table.add_column("ORIGIN")
    table.add_column("PATH")
    missing = 0
    for w in workspaces:
        origin = w.origin_for(server)
        path = abbreviate_home(w.path)
        if not Path(w.path).exists():
            path += " [red](missing)[/red]"
            missing += 1
        table.add_row(w.name, w.kind, origin.ref if origin else "", path)
    console.print(table)
    if missing:
        console.print("[dim]Run 'nebi workspace prune' to remove missing workspaces[/dim]")


@workspace_app.command("tags")
def workspace_tags(name: str = typer.Argument(..., help="Server workspace name")):
    """List the tags of a server workspace."""
    store = _get_store()
    try:
        client = _get_client(store)
        remote_ws = client.require_workspace(name)
        tags = client.list_tags(remote_ws.id)
    except NebiError as e:
        _fail(e)

    if not tags:
        console.print(f"[dim]No tags for '{escape(name)}'[/dim]")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("TAG", style="cyan", no_wrap=True)
    table.add_column("VERSION", justify="right")
    table.add_column("UPDATED")
    for t in sorted(tags, key=lambda t: (-t.version_number, t.tag)):
        table.add_row(t.tag, str(t.version_number), format_iso_date(t.updated_at or t.created_at))
    console.print(table)


@workspace_app.command("remove")
def workspace_remove(
    target: Optional[str] = typer.Argument(None, help="Workspace name, path or '.' (default: current directory)"),
    remote: bool = typer.Option(False, "--remote", help="Delete the workspace on the server instead"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation (--remote)"),
):
    """Stop tracking a workspace, or delete it on the server with --remote."""
    store = _get_store()
    cwd = Path.cwd()
    if remote:
        try:
            client = _get_client(store)
            name = ops.remote_name_for(store, client.server_url, target, cwd)
            if not force and not _confirm(f"Delete workspace '{name}' from the server?"):
                raise UserAbort()
            gone = ops.remove_remote_workspace(client, name)
        except UserAbort:
            _aborted()
        except NebiError as e:
            _fail(e)
        if gone:
            err_console.print(f"[green]✓[/green] Deleted workspace '{escape(name)}' from server")
        else:
            err_console.print(
                f"[yellow]![/yellow] Deletion of '{escape(name)}' requested; "
                "it is still listed on the server"
            )
        return

    try:
        ws = ops.find_local_workspace(store, target, cwd)
        deleted_dir = ops.remove_workspace(store, ws)
    except NebiError as e:
        _fail(e)
    suffix = " and deleted its directory" if deleted_dir else ""
    err_console.print(
        f"[green]✓[/green] Removed workspace '{escape(ws.name)}' ({escape(ws.path)}){suffix}"
    )


@workspace_app.command("prune")
def workspace_prune():
    """Forget tracked workspaces whose directory no longer exists."""
    store = _get_store()
    try:
        removed = store.prune()
    except NebiError as e:
        _fail(e)
    if not removed:
        err_console.print("Nothing to prune.")
        return
    for ws in removed:
        err_console.print(f"Removed '{escape(ws.name)}' ({escape(ws.path)})")
    err_console.print(f"[green]✓[/green] Pruned {len(removed)} workspace(s)")


# ============= Sync =============

@app.command()
def push(
    ref: Optional[str] = typer.Argument(None, help="[name][:tag] (default: this directory's origin)"),
    force: bool = typer.Option(False, "--force", help="Move an existing tag to the new version"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be pushed"),
):
    """Push pixi.toml and pixi.lock to the server."""
    store = _get_store()
    cwd = Path.cwd()
    try:
        client = _get_client(store)
        if dry_run:
            plan = ops.plan_push(store, client, ref, cwd)
            console.print(f"Would push {escape(format_ref(plan.name, plan.tag or plan.content_tag))}")
            if plan.tag:
                console.print(f"  Content tag: {plan.content_tag}")
            console.print(f"  Workspace:   {'exists' if plan.workspace_exists else 'will be created'}")
            console.print(f"  {MANIFEST_FILE}:   {plan.toml_hash}")
            console.print(f"  {LOCK_FILE}:   {plan.lock_hash if not plan.lock_missing else '(missing)'}")
            console.print("[dim]Dry run - no changes made[/dim]")
            return

        name, tag = ops.resolve_push_ref(store, client.server_url, ref, cwd)
        err_console.print(f"Pushing {escape(format_ref(name, tag))}...")
        result = ops.push(store, client, ref, cwd, force=force)
    except NebiError as e:
        _fail(e)

    if result.lock_missing:
        err_console.print(f"[yellow]![/yellow] {LOCK_FILE} not found; pushed {MANIFEST_FILE} only")
    if result.created_workspace:
        err_console.print(f"Created workspace '{escape(result.name)}' on server")
    _print_tracking(result.tracked_path, result.name)
    err_console.print(
        f"[green]✓[/green] Pushed {escape(format_ref(result.name, result.tag))} "
        f"(version {result.version_number})"
    )
    if result.deduplicated:
        err_console.print(f"  (content unchanged, reused version {result.version_number})")


@app.command()
def pull(
    ref: Optional[str] = typer.Argument(None, help="[name][:tag] (default: this directory's origin)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Target directory (default: current directory)"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files without asking"),
    global_name: Optional[str] = typer.Option(None, "--global", help="Pull into a nebi-managed global workspace with this name"),
):
    """Pull a version from the server into a directory."""
    if output and global_name:
        _fail(NebiError("--output and --global cannot be combined"))
    store = _get_store()
    try:
        client = _get_client(store)
        result = ops.pull(
            store,
            client,
            ref,
            Path.cwd(),
            output=output,
            force=force,
            confirm=_confirm,
            global_name=global_name,
        )
    except UserAbort:
        _aborted()
    except NebiError as e:
        _fail(e)

    pulled = escape(format_ref(result.name, result.tag))
    if result.server_changed:
        err_console.print(f"Note: {pulled} has changed on server since last sync")
    _print_tracking(result.tracked_path, global_name or result.name)
    err_console.print(
        f"[green]✓[/green] Pulled {pulled} (version {result.version_number}) -> {escape(result.directory)}"
    )
    if not result.wrote_lock:
        err_console.print(f"[dim]No {LOCK_FILE} on server for this version[/dim]")


# ============= Status =============

_SERVER_CHECK_STYLE = {
    ServerCheck.IN_SYNC: "green",
    ServerCheck.CHANGED: "yellow",
}


def _server_check_line(entry: OriginStatus) -> Optional[str]:
    origin = entry.origin
    check = entry.server_check
    if check == ServerCheck.IN_SYNC:
        return f"In sync with {origin.ref}"
    if check == ServerCheck.CHANGED:
        return f"{origin.ref} has changed on server since last sync"
    if check == ServerCheck.UNREACHABLE:
        return f"Server {entry.server} is not reachable"
    if check == ServerCheck.NOT_LOGGED_IN:
        return f"Not logged in to {entry.server}"
    if check == ServerCheck.WORKSPACE_NOT_FOUND:
        return f"Workspace '{origin.name}' not found on server"
    if check == ServerCheck.TAG_NOT_FOUND:
        return f"Tag '{origin.tag}' not found on server"
    if check == ServerCheck.ERROR:
        return f"Server check failed: {entry.server_message}"
    return None


def display_status(report: StatusReport) -> None:
    ws = report.workspace
    console.print(f"Workspace: [bold]{escape(ws.name)}[/bold]")
    console.print(f"Type:      {ws.kind}")
    console.print(f"Path:      {escape(ws.path)}")
    console.print(f"Server:    {escape(report.server or '(none)')}")

    if not report.origins:
        console.print()
        console.print("No origins. Push or pull to set an origin.")
        return

    for entry in report.origins:
        origin = entry.origin
        console.print()
        console.print(f"Origin: {escape(origin.ref)} ({origin.action})")
        current = " (current)" if entry.is_current_server else ""
        console.print(f"  Server:  {escape(entry.server)}{current}")
        version = f" (version {origin.version_number})" if origin.version_number is not None else ""
        console.print(f"  Synced:  {humanize_date(origin.timestamp)}{version}")

        local_lines = []
        for filename, state in ((MANIFEST_FILE, entry.manifest), (LOCK_FILE, entry.lock)):
            if state == DriftState.MODIFIED:
                local_lines.append(f"{filename} modified locally")
            elif state == DriftState.MISSING:
                local_lines.append(f"{filename} missing")
        if local_lines:
            for line in local_lines:
                console.print(f"  [yellow]{line}[/yellow]")
        else:
            console.print("  [green]Local files unchanged[/green]")

        line = _server_check_line(entry)
        if line:
            style = _SERVER_CHECK_STYLE.get(entry.server_check, "dim")
            console.print(f"  [{style}]{escape(line)}[/{style}]")


@app.command()
def status(
    offline: bool = typer.Option(False, "--offline", help="Skip the server check"),
):
    """Show local and server drift for the current workspace.

    Origins are kept per server: a directory can have one origin on each
    server it was pushed to or pulled from.
    """
    store = _get_store()
    try:
        get_client = None if offline else (lambda server: _get_client(store, server))
        report = ops.status(
            store, Path.cwd(), get_client=get_client, current_server=store.get_server_url()
        )
    except NotTrackedError as e:
        console.print(str(e))
        return
    except NebiError as e:
        _fail(e)
    display_status(report)


# ============= Diff =============

@app.command()
def diff(
    args: Optional[List[str]] = typer.Argument(None, help="[source] [target]: name:tag references or directories"),
    remote: bool = typer.Option(False, "--remote", help="Compare against the origin tag's current server content"),
    lock: bool = typer.Option(False, "--lock", help="Show package-level pixi.lock changes"),
    toml_only: bool = typer.Option(False, "--toml", help="Compare pixi.toml only"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
    directory: Optional[str] = typer.Option(None, "-C", help="Run as if started in this directory"),
):
    """Compare pixi.toml (and pixi.lock) between directories and server versions.

    Exit code 0 when identical, 1 when differences were found, 2 on error.
    """
    store = _get_store()
    try:
        if lock and toml_only:
            raise DiffError("--lock and --toml cannot be combined")
        base_dir = resolve_path(directory) if directory else Path.cwd()
        source, target = ops.resolve_diff_sides(
            store, args or [], base_dir, lambda: _get_client(store), remote=remote
        )
        outcome = ops.diff_sides(source, target, toml_only=toml_only)
    except NebiError as e:
        _fail(e, code=2)

    if as_json:
        typer.echo(format_diff_json(
            source.ref,
            target.ref,
            outcome.toml_diff,
            None if toml_only else outcome.lock_summary,
        ))
        raise typer.Exit(1 if outcome.has_changes else 0)

    text = format_unified_diff(outcome.toml_diff, source.ref.label, target.ref.label)
    if text:
        typer.echo(text, nl=False)
    if lock:
        typer.echo(format_lock_diff(outcome.lock_summary), nl=False)
    elif not toml_only and outcome.lock_summary.has_changes:
        err_console.print(f"[dim]{LOCK_FILE} also differs (use --lock for package changes)[/dim]")
    if not outcome.has_changes:
        err_console.print("No differences.")
    raise typer.Exit(1 if outcome.has_changes else 0)


# ============= OCI =============

@app.command("import")
def import_cmd(
    reference: str = typer.Argument(..., help="OCI reference: registry/repository:tag"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Target directory (default: current directory)"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files without asking"),
):
    """Import a published workspace from a public OCI registry."""
    store = _get_store()
    try:
        err_console.print(f"Importing {escape(reference)}...")
        result = ops.import_workspace(
            store, _get_oci_client(), reference, Path.cwd(), output=output, force=force, confirm=_confirm
        )
    except UserAbort:
        _aborted()
    except NebiError as e:
        _fail(e)

    if result.tracked_path:
        ws = store.find_by_path(result.tracked_path)
        _print_tracking(result.tracked_path, ws.name if ws else "")
    err_console.print(f"[green]✓[/green] Imported {escape(result.reference)} -> {escape(result.directory)}")


@app.command()
def publish(
    name: Optional[str] = typer.Argument(None, help="Server workspace name (default: this directory's origin)"),
    registry: Optional[str] = typer.Option(None, "--registry", help="Registry name or id (default: server default)"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository (default: server proposal)"),
    tag: Optional[str] = typer.Option(None, "--tag", help="Tag (default: next v<N> proposed by the server)"),
):
    """Publish the latest version of a workspace to an OCI registry."""
    store = _get_store()
    try:
        client = _get_client(store)
        plan = ops.plan_publish(store, client, name, Path.cwd(), registry=registry, repository=repo, tag=tag)
        if plan.from_origin:
            err_console.print(f"Using workspace '{escape(plan.name)}' from origin")
        err_console.print(
            f"Publishing {escape(plan.name)} to {escape(plan.repository)}:{escape(plan.tag)}..."
        )
        result = ops.publish(client, plan)
    except NebiError as e:
        _fail(e)

    digest = f" (digest: {result.digest})" if result.digest else ""
    err_console.print(
        f"[green]✓[/green] Published {escape(result.repository)}:{escape(result.tag)}{digest}"
    )


@registry_app.command("list")
def registry_list():
    """List registries configured on the server."""
    store = _get_store()
    try:
        registries = _get_client(store).list_registries()
    except NebiError as e:
        _fail(e)
    if not registries:
        console.print("[dim]No registries configured[/dim]")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("NAME", style="cyan", no_wrap=True)
    table.add_column("URL")
    table.add_column("NAMESPACE")
    table.add_column("DEFAULT")
    for r in sorted(registries, key=lambda r: r.name):
        table.add_row(r.name, r.url, r.namespace, "yes" if r.is_default else "")
    console.print(table)


@registry_app.command("add")
def registry_add(
    name: str = typer.Option(..., "--name", help="Registry name"),
    url: str = typer.Option(..., "--url", help="Registry URL, e.g. ghcr.io"),
    username: str = typer.Option("", "--username", help="Registry username"),
    namespace: str = typer.Option("", "--namespace", help="Default namespace for repositories"),
    password_stdin: bool = typer.Option(False, "--password-stdin", help="Read the registry password from stdin"),
    default: bool = typer.Option(False, "--default", help="Make this the default registry"),
):
    """Add an OCI registry on the server."""
    store = _get_store()
    password = ""
    if password_stdin:
        password = typer.get_text_stream("stdin").read().strip()
    try:
        reg = _get_client(store).create_registry(
            name, url, username=username, password=password, namespace=namespace, is_default=default
        )
    except NebiError as e:
        _fail(e)
    err_console.print(f"[green]✓[/green] Added registry '{escape(reg.name)}' ({escape(reg.url or url)})")


@registry_app.command("remove")
def registry_remove(
    name: str = typer.Argument(..., help="Registry name"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation"),
):
    """Remove an OCI registry from the server."""
    store = _get_store()
    try:
        client = _get_client(store)
        match = next((r for r in client.list_registries() if r.name == name), None)
        if match is None:
            raise NotFoundError(f"registry '{name}' not found", 404)
        if not force and not _confirm(f"Remove registry '{name}'?"):
            raise UserAbort()
        client.delete_registry(match.id)
    except UserAbort:
        _aborted()
    except NebiError as e:
        _fail(e)
    err_console.print(f"[green]✓[/green] Removed registry '{escape(name)}'")


# ============= pixi Delegation =============

_PASSTHROUGH = {"allow_extra_args": True, "ignore_unknown_options": True}


def _pixi_command(subcommand: str, args: List[str], task_required: bool = False) -> NoReturn:
    store = _get_store()
    cwd = Path.cwd()
    try:
        directory, rest, by_name = ops.resolve_pixi_target(store, args, cwd)
        if task_required and by_name and not rest:
            # a lone argument that matches a workspace name is still a task
            directory, rest, by_name = cwd, list(args), False
        if task_required and not rest:
            raise NebiError("task name is required: nebi run [workspace] <task> [args...]")
        if not (directory / MANIFEST_FILE).exists():
            raise MissingManifestError(str(directory))
        pixi_args = [subcommand]
        if by_name:
            pixi_args += ["--manifest-path", str(directory / MANIFEST_FILE)]
        code = run_pixi(pixi_args + rest, cwd=directory)
    except NebiError as e:
        _fail(e)
    raise typer.Exit(code)


@app.command(context_settings=_PASSTHROUGH)
def shell(
    args: Optional[List[str]] = typer.Argument(None, help="[workspace] [pixi shell args...]"),
):
    """Activate a workspace environment with 'pixi shell'."""
    _pixi_command("shell", args or [])


@app.command(context_settings=_PASSTHROUGH)
def run(
    args: Optional[List[str]] = typer.Argument(None, help="[workspace] <task> [args...]"),
):
    """Run a pixi task, optionally in a named workspace."""
    _pixi_command("run", args or [], task_required=True)


# ============= Misc =============

@app.command()
def completion(
    shell_name: str = typer.Argument(..., metavar="SHELL", help="bash, zsh, fish or powershell"),
):
    """Print the shell completion script."""
    from click.shell_completion import get_completion_class
    from typer.completion import completion_init

    completion_init()
    cls = get_completion_class(shell_name)
    if cls is None:
        _fail(NebiError(f"unsupported shell '{shell_name}'; use bash, zsh, fish or powershell"))
    comp = cls(typer.main.get_command(app), {}, "nebi", "_NEBI_COMPLETE")
    typer.echo(comp.source())


@app.command()
def version():
    """Print the nebi version."""
    console.print(f"nebi {__version__}")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
