"""Tests for the server HTTP client."""

import json
from unittest.mock import Mock

import pytest
import requests

from nebi.client import ServerClient
from nebi.errors import (
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

from conftest import LOCK, MANIFEST, SERVER_URL, TOKEN


def _resp(status, body=None):
    resp = requests.Response()
    resp.status_code = status
    resp._content = b"" if body is None else json.dumps(body).encode()
    return resp


class TestTransport:

    def test_bearer_token_and_url(self):
        session = Mock()
        session.request.return_value = _resp(200, [])
        client = ServerClient("https://Nebi.Test/", token="abc", session=session)

        client.list_workspaces()

        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://nebi.test/api/v1/workspaces"
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer abc"
        assert session.request.call_args.kwargs["timeout"] == client.timeout

    def test_no_token_fails_before_request(self):
        session = Mock()
        client = ServerClient(SERVER_URL, session=session)
        with pytest.raises(AuthError, match="not logged in"):
            client.list_workspaces()
        session.request.assert_not_called()

    @pytest.mark.parametrize("status,error", [
        (401, AuthError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (409, ConflictError),
        (500, ServerSideError),
        (503, ServerSideError),
    ])
    def test_status_mapping(self, status, error):
        session = Mock()
        session.request.return_value = _resp(status, {"error": "boom"})
        client = ServerClient(SERVER_URL, token="t", session=session)
        with pytest.raises(error) as exc_info:
            client.list_workspaces()
        assert exc_info.value.status_code == status

    def test_transport_error_is_unreachable(self):
        session = Mock()
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        client = ServerClient(SERVER_URL, token="t", session=session)
        with pytest.raises(UnreachableError):
            client.list_workspaces()

    def test_malformed_body(self):
        session = Mock()
        session.request.return_value = _resp(200, [{"unexpected": True}])
        client = ServerClient(SERVER_URL, token="t", session=session)
        with pytest.raises(ServerError):
            client.list_workspaces()


class TestLogin:

    def test_success(self, fake_server):
        client = ServerClient(SERVER_URL, session=fake_server)
        resp = client.login("alice", "secret")
        assert resp.token == TOKEN
        assert resp.user.username == "alice"

    def test_bad_password(self, fake_server):
        client = ServerClient(SERVER_URL, session=fake_server)
        with pytest.raises(AuthError, match="Invalid username or password"):
            client.login("alice", "wrong")


class TestWorkspaces:

    def test_create_find_and_delete(self, server_client):
        created = server_client.create_workspace("demo", MANIFEST)
        assert server_client.find_workspace("demo").id == created.id
        assert server_client.find_workspace("other") is None
        server_client.delete_workspace(created.id)
        assert server_client.wait_for_deleted(created.id, timeout=1)

    def test_require_workspace(self, server_client):
        with pytest.raises(NotFoundError, match="'missing' not found"):
            server_client.require_workspace("missing")

    def test_wait_for_ready_polls(self):
        session = Mock()
        session.request.side_effect = [
            _resp(200, {"id": "1", "name": "demo", "status": "pending"}),
            _resp(200, {"id": "1", "name": "demo", "status": "installing"}),
            _resp(200, {"id": "1", "name": "demo", "status": "ready"}),
        ]
        sleeps = []
        client = ServerClient(SERVER_URL, token="t", session=session, sleep=sleeps.append)
        ws = client.wait_for_ready("1", timeout=60, interval=0.5)
        assert ws.status == "ready"
        assert sleeps == [0.5, 0.5]

    def test_wait_for_ready_failed(self):
        session = Mock()
        session.request.return_value = _resp(200, {"id": "1", "name": "demo", "status": "failed"})
        client = ServerClient(SERVER_URL, token="t", session=session, sleep=lambda s: None)
        with pytest.raises(WorkspaceSetupError):
            client.wait_for_ready("1")

    def test_wait_for_ready_timeout(self):
        session = Mock()
        session.request.return_value = _resp(200, {"id": "1", "name": "demo", "status": "pending"})
        now = [0.0]

        def sleep(seconds):
            now[0] += seconds

        client = ServerClient(
            SERVER_URL, token="t", session=session, sleep=sleep, clock=lambda: now[0]
        )
        with pytest.raises(ReadyTimeoutError) as exc_info:
            client.wait_for_ready("1", timeout=2, interval=0.5)
        assert "may still finish" in str(exc_info.value)
        assert now[0] == 2.0


class TestVersions:

    def test_push_and_fetch(self, server_client, fake_server):
        ws = server_client.create_workspace("demo", MANIFEST)
        first = server_client.push_version(ws.id, "v1", MANIFEST, LOCK)
        second = server_client.push_version(ws.id, "v2", MANIFEST, LOCK)

        assert not first.deduplicated
        assert second.deduplicated
        assert second.version_number == first.version_number
        assert len(fake_server.versions[ws.id]) == 1

        content = server_client.get_tag_content(ws.id, "v2")
        assert content.manifest == MANIFEST
        assert content.lock == LOCK
        assert content.tag == "v2"

    def test_missing_lock_is_empty(self, server_client):
        ws = server_client.create_workspace("demo", MANIFEST)
        server_client.push_version(ws.id, "v1", MANIFEST, "")
        assert server_client.get_version_content(ws.id, 1).lock == ""

    def test_non_utf8_file_is_server_error(self):
        resp = _resp(200)
        resp._content = b"[workspace]\xff\xfe"
        session = Mock()
        session.request.return_value = resp
        client = ServerClient(SERVER_URL, token="t", session=session)
        with pytest.raises(ServerError, match="pixi.toml is not UTF-8 text"):
            client.get_version_content("ws-1", 1)

    def test_conflict_without_force(self, server_client):
        ws = server_client.create_workspace("demo", MANIFEST)
        server_client.push_version(ws.id, "v1", MANIFEST, LOCK)
        with pytest.raises(ConflictError):
            server_client.push_version(ws.id, "v1", MANIFEST + "\n# edit\n", LOCK)
        moved = server_client.push_version(ws.id, "v1", MANIFEST + "\n# edit\n", LOCK, force=True)
        assert moved.version_number == 2

    def test_latest_and_resolve(self, server_client):
        ws = server_client.create_workspace("demo", MANIFEST)
        assert server_client.latest_version(ws.id) is None
        server_client.push_version(ws.id, "v1", MANIFEST, LOCK)
        server_client.push_version(ws.id, "v2", MANIFEST + "# x\n", LOCK)
        assert server_client.latest_version(ws.id).version_number == 2
        assert server_client.resolve_tag(ws.id, "v1").version_number == 1
        with pytest.raises(NotFoundError):
            server_client.resolve_tag(ws.id, "nope")


class TestRegistries:

    def test_create_list_delete(self, server_client):
        reg = server_client.create_registry("ghcr", "ghcr.io", namespace="org", is_default=True)
        assert [r.name for r in server_client.list_registries()] == ["ghcr"]
        server_client.delete_registry(reg.id)
        assert server_client.list_registries() == []

    def test_publish_defaults(self, server_client, fake_server):
        fake_server.add_registry("ghcr", is_default=True)
        ws = server_client.create_workspace("demo", MANIFEST)
        defaults = server_client.get_publish_defaults(ws.id)
        assert defaults.registry_name == "ghcr"
        assert defaults.tag == "v1"
        resp = server_client.publish(ws.id, defaults.registry_id, "org/demo", "v1")
        assert resp.digest == "sha256:feedface"
