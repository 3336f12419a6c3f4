"""Shared test fixtures and utilities."""

import json
import os
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import requests

# Plain output for substring assertions on rich console output
os.environ["NO_COLOR"] = "1"

from nebi.client import ServerClient
from nebi.hashing import content_tag, hash_lock
from nebi.store import LocalStore


SERVER_URL = "http://nebi.test"
TOKEN = "tok-123"

MANIFEST = """\
[workspace]
name = "demo"
channels = ["conda-forge"]
platforms = ["linux-64"]

[dependencies]
python = ">=3.11"
"""

LOCK = """\
version: 6
environments:
  default:
    channels:
    - url: https://conda.anaconda.org/conda-forge/
packages:
- conda: https://conda.anaconda.org/conda-forge/linux-64/python-3.12.1-hab00c5b_1_cpython.conda
  sha256: abc
- conda: https://conda.anaconda.org/conda-forge/noarch/tzdata-2024a-h0c530f3_0.conda
  sha256: def
"""


# ========== Fake Server ==========

def _response(status: int, body: Any = None, text: Optional[str] = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    if text is not None:
        resp._content = text.encode("utf-8")
        resp.headers["Content-Type"] = "text/plain"
    elif body is not None:
        resp._content = json.dumps(body).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
    else:
        resp._content = b""
    return resp


class FakeServer:
    """In-memory nebi server behind a requests.Session-compatible interface.

    Versions are deduplicated by content: pushing identical pixi.toml and
    pixi.lock bytes reuses the existing version and only moves tags.
    """

    def __init__(self, base_url: str = SERVER_URL, token: str = TOKEN):
        self.prefix = f"{base_url}/api/v1"
        self.token = token
        self.workspaces: Dict[str, Dict[str, Any]] = {}
        self.versions: Dict[str, List[Dict[str, Any]]] = {}
        self.tags: Dict[str, Dict[str, int]] = {}
        self.registries: Dict[str, Dict[str, Any]] = {}
        self.published: List[Dict[str, Any]] = []
        self.requests: List[tuple] = []
        self.initial_status = "ready"
        self.unreachable = False
        self._next_id = 1
        self._lock = threading.Lock()

    def _new_id(self, prefix: str) -> str:
        with self._lock:
            value = f"{prefix}-{self._next_id}"
            self._next_id += 1
        return value

    # ---- helpers for tests ----

    def workspace_id(self, name: str) -> str:
        for ws in self.workspaces.values():
            if ws["name"] == name:
                return ws["id"]
        raise KeyError(name)

    def version_for(self, name: str, tag: str) -> Dict[str, Any]:
        ws_id = self.workspace_id(name)
        number = self.tags[ws_id][tag]
        return next(v for v in self.versions[ws_id] if v["version_number"] == number)

    def add_registry(self, name: str, url: str = "ghcr.io", is_default: bool = False) -> str:
        reg_id = self._new_id("reg")
        self.registries[reg_id] = {
            "id": reg_id, "name": name, "url": url, "namespace": "", "is_default": is_default,
        }
        return reg_id

    # ---- requests.Session interface ----

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.requests.append((method, url))
        if self.unreachable:
            raise requests.exceptions.ConnectionError(f"cannot connect to {url}")
        assert url.startswith(self.prefix), url
        path = url[len(self.prefix):]

        if method == "POST" and path == "/auth/login":
            if json == {"username": "alice", "password": "secret"}:
                return _response(200, {"token": self.token, "user": {"username": "alice"}})
            return _response(401, {"error": "invalid credentials"})
        if method == "GET" and path == "/health":
            return _response(200, {"status": "ok"})

        if (headers or {}).get("Authorization") != f"Bearer {self.token}":
            return _response(401, {"error": "unauthorized"})
        return self._route(method, path, json or {})

    def _route(self, method: str, path: str, body: Dict[str, Any]) -> requests.Response:
        if path == "/workspaces":
            if method == "GET":
                return _response(200, list(self.workspaces.values()))
            return self._create_workspace(body)
        if path == "/registries":
            if method == "GET":
                return _response(200, list(self.registries.values()))
            reg_id = self.add_registry(body["name"], body["url"], body.get("is_default", False))
            return _response(201, self.registries[reg_id])

        m = re.fullmatch(r"/registries/([^/]+)", path)
        if m and method == "DELETE":
            if self.registries.pop(m.group(1), None) is None:
                return _response(404, {"error": "registry not found"})
            return _response(204)

        m = re.fullmatch(r"/workspaces/([^/]+)(/.*)?", path)
        if not m or m.group(1) not in self.workspaces:
            return _response(404, {"error": "workspace not found"})
        ws_id, rest = m.group(1), m.group(2) or ""

        if rest == "":
            if method == "DELETE":
                self.workspaces.pop(ws_id)
                return _response(204)
            return _response(200, self.workspaces[ws_id])
        if rest == "/tags":
            tags = [{"tag": t, "version_number": n} for t, n in self.tags[ws_id].items()]
            return _response(200, tags)
        if rest == "/versions":
            versions = [
                {"version_number": v["version_number"], "content_hash": v["content_hash"]}
                for v in self.versions[ws_id]
            ]
            return _response(200, versions)
        if rest == "/push":
            return self._push(ws_id, body)
        if rest == "/publish-defaults":
            default = next((r for r in self.registries.values() if r["is_default"]), None)
            count = sum(1 for p in self.published if p["workspace_id"] == ws_id)
            return _response(200, {
                "registry_id": default["id"] if default else "",
                "registry_name": default["name"] if default else "",
                "repository": self.workspaces[ws_id]["name"],
                "tag": f"v{count + 1}",
            })
        if rest == "/publish":
            record = dict(body, workspace_id=ws_id)
            self.published.append(record)
            return _response(200, {
                "repository": body["repository"],
                "tag": body["tag"],
                "digest": "sha256:feedface",
            })

        m = re.fullmatch(r"/versions/(\d+)/(pixi\.toml|pixi\.lock)", rest)
        if m:
            number = int(m.group(1))
            version = next((v for v in self.versions[ws_id] if v["version_number"] == number), None)
            if version is None:
                return _response(404, {"error": "version not found"})
            text = version["manifest"] if m.group(2) == "pixi.toml" else version["lock"]
            if not text:
                return _response(404, {"error": "no lock file"})
            return _response(200, text=text)

        return _response(404, {"error": f"no route for {method} {path}"})

    def _create_workspace(self, body: Dict[str, Any]) -> requests.Response:
        if any(ws["name"] == body["name"] for ws in self.workspaces.values()):
            return _response(409, {"error": "workspace already exists"})
        ws_id = self._new_id("ws")
        self.workspaces[ws_id] = {
            "id": ws_id,
            "name": body["name"],
            "status": self.initial_status,
            "package_manager": body["package_manager"],
            "owner": {"username": "alice"},
            "created_at": "2026-01-01T00:00:00Z",
            "updated_at": "2026-01-01T00:00:00Z",
        }
        self.versions[ws_id] = []
        self.tags[ws_id] = {}
        return _response(201, self.workspaces[ws_id])

    def _push(self, ws_id: str, body: Dict[str, Any]) -> requests.Response:
        manifest, lock, tag = body["pixi_toml"], body["pixi_lock"], body["tag"]
        digest = hash_lock(manifest + "\0" + lock)
        versions = self.versions[ws_id]
        existing = next((v for v in versions if v["content_hash"] == digest), None)

        if tag and tag in self.tags[ws_id] and not body["force"]:
            target = existing["version_number"] if existing else None
            if self.tags[ws_id][tag] != target:
                return _response(409, {"error": f"tag '{tag}' already points to another version"})

        if existing is None:
            existing = {
                "version_number": len(versions) + 1,
                "manifest": manifest,
                "lock": lock,
                "content_hash": digest,
            }
            versions.append(existing)
            deduplicated = False
        else:
            deduplicated = True

        number = existing["version_number"]
        new_tags = [content_tag(digest), "latest"] + ([tag] if tag else [])
        for t in new_tags:
            self.tags[ws_id][t] = number
        return _response(200, {
            "version_number": number,
            "tags": new_tags,
            "content_hash": digest,
            "deduplicated": deduplicated,
        })


# ========== Fixtures ==========

@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Isolate HOME and nebi's data/config dirs under tmp_path."""
    home = tmp_path / "home"
    home.mkdir()

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))  # Windows
    monkeypatch.setattr(Path, "home", lambda: home)

    monkeypatch.setenv("NEBI_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("NEBI_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("NEBI_SERVER", raising=False)
    monkeypatch.delenv("NEBI_TOKEN", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)
    return home


@pytest.fixture
def store(isolated_home):
    return LocalStore()


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture
def server_client(fake_server):
    """ServerClient wired to the fake server, logged in."""
    return ServerClient(SERVER_URL, token=TOKEN, session=fake_server, sleep=lambda s: None)


@pytest.fixture
def project_dir(tmp_path):
    """Factory for a directory holding pixi.toml (and optionally pixi.lock)."""
    def _make(name: str = "project", manifest: str = MANIFEST, lock: Optional[str] = LOCK) -> Path:
        directory = tmp_path / name
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "pixi.toml").write_text(manifest)
        if lock is not None:
            (directory / "pixi.lock").write_text(lock)
        return directory
    return _make
