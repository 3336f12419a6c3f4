"""Tests for the local workspace store."""

import json
import os
import stat
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from nebi.core import Credentials, Origin
from nebi.errors import AlreadyTrackedError, ConfigError, InvalidNameError
from nebi.store import LocalStore, normalize_path
from nebi.utils import atomic_write_text


def _origin(name="demo", tag="v1", action="push"):
    return Origin(name=name, tag=tag, action=action, toml_hash="sha-a", lock_hash="sha-b", version_number=1)


class TestTracking:

    def test_create_and_find(self, store, tmp_path):
        ws = store.create(tmp_path, "demo")
        assert ws.path == normalize_path(tmp_path)
        assert store.find_by_path(tmp_path).id == ws.id
        assert [w.id for w in store.find_by_name("demo")] == [ws.id]
        assert store.find_by_id(ws.id).name == "demo"

    def test_path_is_unique(self, store, tmp_path):
        store.create(tmp_path, "demo")
        with pytest.raises(AlreadyTrackedError):
            store.create(tmp_path, "other")

    def test_names_are_not_unique(self, store, tmp_path):
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.mkdir()
        b.mkdir()
        store.create(a, "demo")
        store.create(b, "demo")
        assert len(store.find_by_name("demo")) == 2

    def test_symlinks_resolve_to_same_entry(self, store, tmp_path):
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real)
        store.create(real, "demo")
        assert store.find_by_path(link) is not None

    def test_invalid_name_rejected(self, store, tmp_path):
        with pytest.raises(InvalidNameError):
            store.create(tmp_path, "a:b")
        assert store.list_workspaces() == []

    def test_track_is_idempotent(self, store, tmp_path):
        ws, created = store.track(tmp_path, "demo")
        again, created_again = store.track(tmp_path, "other")
        assert created and not created_again
        assert again.id == ws.id and again.name == "demo"

    def test_delete_keeps_files(self, store, tmp_path):
        (tmp_path / "pixi.toml").write_text("x")
        ws = store.create(tmp_path, "demo")
        store.delete(ws.id)
        assert store.find_by_path(tmp_path) is None
        assert (tmp_path / "pixi.toml").exists()

    def test_remove_then_create_same_path(self, store, tmp_path):
        ws = store.create(tmp_path, "demo")
        store.delete(ws.id)
        again = store.create(tmp_path, "demo")
        assert again.path == ws.path and again.name == ws.name


class TestPrune:

    def test_removes_only_missing_paths(self, store, tmp_path):
        keep = tmp_path / "keep"
        gone = tmp_path / "gone"
        keep.mkdir()
        gone.mkdir()
        store.create(keep, "keep")
        store.create(gone, "gone")
        gone.rmdir()

        removed = store.prune()
        assert [w.name for w in removed] == ["gone"]
        assert [w.name for w in store.list_workspaces()] == ["keep"]

    def test_permission_errors_do_not_prune(self, store, tmp_path):
        ws = store.create(tmp_path, "demo")
        real_stat = os.stat

        def fake_stat(path, *args, **kwargs):
            if str(path) == ws.path:
                raise PermissionError("denied")
            return real_stat(path, *args, **kwargs)

        with patch("nebi.store.os.stat", side_effect=fake_stat):
            assert store.prune() == []
        assert store.find_by_path(tmp_path) is not None


class TestOrigins:

    def test_record_origin_auto_tracks(self, store, tmp_path):
        ws, created = store.record_origin(tmp_path, "demo", "http://nebi.test/", _origin())
        assert created
        assert ws.origin_for("http://nebi.test").ref == "demo:v1"

    def test_origins_are_per_server(self, store, tmp_path):
        store.record_origin(tmp_path, "demo", "http://a.test", _origin(tag="v1"))
        ws, created = store.record_origin(tmp_path, "demo", "http://b.test", _origin(tag="v2", action="pull"))
        assert not created
        assert ws.origin_for("http://a.test").tag == "v1"
        assert ws.origin_for("http://b.test").action == "pull"

    def test_record_origin_replaces(self, store, tmp_path):
        store.record_origin(tmp_path, "demo", "http://a.test", _origin(tag="v1"))
        store.record_origin(tmp_path, "demo", "http://a.test", _origin(tag="v2"))
        assert store.find_by_path(tmp_path).origin_for("http://a.test").tag == "v2"

    def test_global_workspace_id(self, store):
        directory = store.global_dir("fixed-id")
        ws, _ = store.record_origin(directory, "tools", "http://a.test", _origin(), kind="global", workspace_id="fixed-id")
        assert ws.id == "fixed-id"
        assert ws.is_global


class TestPersistence:

    def test_state_survives_new_instance(self, store, tmp_path):
        ws = store.create(tmp_path, "demo")
        assert LocalStore().find_by_id(ws.id).path == ws.path

    def test_db_is_json(self, store, tmp_path):
        store.create(tmp_path, "demo")
        data = json.loads(store.db_path.read_text())
        assert data["version"] == 1
        assert len(data["workspaces"]) == 1

    def test_corrupt_db(self, store):
        store.root.mkdir(parents=True, exist_ok=True)
        store.db_path.write_text('{"workspaces": 42}')
        with pytest.raises(ConfigError):
            store.load()

    def test_failed_rename_keeps_previous_state(self, store, tmp_path):
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.mkdir()
        b.mkdir()
        store.create(a, "a")
        before = store.db_path.read_bytes()

        with patch("nebi.utils.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.create(b, "b")

        assert store.db_path.read_bytes() == before
        assert [w.name for w in store.list_workspaces()] == ["a"]
        leftovers = [p for p in store.root.iterdir() if p.name.startswith(".nebi.db.tmp-")]
        assert leftovers == []

    def test_concurrent_writers_serialize(self, store, tmp_path):
        dirs = []
        for i in range(8):
            d = tmp_path / f"w{i}"
            d.mkdir()
            dirs.append(d)

        errors = []

        def worker(directory):
            try:
                LocalStore().create(directory, directory.name)
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(d,)) for d in dirs]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store.list_workspaces()) == 8


class TestServerAndCredentials:

    def test_server_url_normalized(self, store):
        store.set_server_url("HTTPS://Nebi.Example.com/")
        assert store.get_server_url() == "https://nebi.example.com"

    def test_env_override(self, store, monkeypatch):
        store.set_server_url("https://stored.test")
        monkeypatch.setenv("NEBI_SERVER", "override.test")
        assert store.get_server_url() == "https://override.test"

    def test_credentials_roundtrip_and_permissions(self, store):
        store.set_credentials("https://nebi.test/", Credentials(token="t", username="alice"))
        creds = store.get_credentials("https://nebi.test")
        assert creds.token == "t" and creds.username == "alice"
        if os.name == "posix":
            assert stat.S_IMODE(store.credentials_path.stat().st_mode) == 0o600

    def test_clear_credentials(self, store):
        store.set_credentials("https://nebi.test", Credentials(token="t"))
        assert store.clear_credentials("https://nebi.test")
        assert store.get_credentials("https://nebi.test") is None
        assert not store.clear_credentials("https://nebi.test")


class TestAtomicWrite:

    def test_exact_bytes(self, tmp_path):
        target = tmp_path / "f.txt"
        atomic_write_text(target, "a\r\nb\n")
        assert target.read_bytes() == b"a\r\nb\n"

    def test_mode(self, tmp_path):
        target = tmp_path / "f.txt"
        atomic_write_text(target, "x", mode=0o600)
        if os.name == "posix":
            assert stat.S_IMODE(target.stat().st_mode) == 0o600

    def test_creates_parent(self, tmp_path):
        target = tmp_path / "deep" / "er" / "f.txt"
        atomic_write_text(target, "x")
        assert target.read_text() == "x"
