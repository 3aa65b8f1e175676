"""Tests for cache_store.py: local archive-backed cache store."""

import json
from datetime import datetime, timezone

import pytest

from verifier.cache_store import LocalCacheStore, create_cache_store, validate_key
from verifier.errors import CacheSaveError

from conftest import make_config


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "workspace"
    tests_dir = ws / "project-tests" / "src" / "test" / "java"
    tests_dir.mkdir(parents=True)
    (tests_dir / "Project1Test.java").write_text("class Project1Test {}", encoding="utf-8")
    return ws


@pytest.fixture
def cache_store(tmp_path, workspace):
    return LocalCacheStore(cache_root=tmp_path / "cache", workspace=workspace)


def _backdate(cache_root, key, when):
    path = cache_root / f"{key}.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    data["created_at"] = when.isoformat()
    path.write_text(json.dumps(data), encoding="utf-8")


class TestLocalCacheStore:
    def test_save_and_restore_exact(self, cache_store, workspace):
        saved = cache_store.save(["project-tests"], "project-tests-aaa")
        assert saved.endswith(".tar.gz")

        test_file = workspace / "project-tests" / "src" / "test" / "java" / "Project1Test.java"
        test_file.unlink()

        restored = cache_store.restore(["project-tests"], "project-tests-aaa", ["project-tests-"])
        assert restored == "project-tests-aaa"
        assert test_file.read_text(encoding="utf-8") == "class Project1Test {}"

    def test_miss(self, cache_store):
        assert cache_store.restore(["project-tests"], "project-tests-aaa", ["project-tests-"]) is None

    def test_fallback_reports_entry_key(self, cache_store):
        cache_store.save(["project-tests"], "project-tests-old")
        restored = cache_store.restore(["project-tests"], "project-tests-new", ["project-tests-"])
        assert restored == "project-tests-old"

    def test_no_fallback_without_restore_keys(self, cache_store):
        cache_store.save(["project-tests"], "project-tests-old")
        assert cache_store.restore(["project-tests"], "project-tests-new") is None

    def test_newest_fallback_wins(self, tmp_path, cache_store):
        cache_store.save(["project-tests"], "project-tests-first")
        cache_store.save(["project-tests"], "project-tests-second")
        _backdate(tmp_path / "cache", "project-tests-second", datetime(2020, 1, 1, tzinfo=timezone.utc))

        restored = cache_store.restore(["project-tests"], "project-tests-third", ["project-tests-"])
        assert restored == "project-tests-first"

    def test_restore_keys_in_order(self, cache_store):
        cache_store.save(["project-tests"], "project-tests-a")
        restored = cache_store.restore(["project-tests"], "x-1", ["nothing-", "project-"])
        assert restored == "project-tests-a"

    def test_different_paths_do_not_match(self, cache_store):
        cache_store.save(["project-tests"], "project-tests-aaa")
        assert cache_store.restore(["project-tests", "other"], "project-tests-aaa", ["project-tests-"]) is None

    def test_save_existing_key_fails(self, cache_store):
        cache_store.save(["project-tests"], "project-tests-aaa")
        with pytest.raises(CacheSaveError, match="already exists"):
            cache_store.save(["project-tests"], "project-tests-aaa")

    def test_save_missing_paths_fails(self, cache_store):
        with pytest.raises(CacheSaveError, match="do not exist"):
            cache_store.save(["no-such-dir"], "key-1")

    def test_home_paths_expand(self, tmp_path, monkeypatch):
        home = tmp_path / "home"
        artifact = home / ".m2" / "repository" / "junit.jar"
        artifact.parent.mkdir(parents=True)
        artifact.write_bytes(b"jar")
        monkeypatch.setenv("HOME", str(home))

        cache_store = LocalCacheStore(cache_root=tmp_path / "cache", workspace=tmp_path)
        cache_store.save(["~/.m2"], "Linux-m2-abc123")
        artifact.unlink()

        assert cache_store.restore(["~/.m2"], "Linux-m2-abc123", ["Linux-m2-"]) == "Linux-m2-abc123"
        assert artifact.read_bytes() == b"jar"

    def test_list_entries(self, cache_store):
        cache_store.save(["project-tests"], "project-tests-aaa")
        entries = cache_store.list_entries()
        assert [e.key for e in entries] == ["project-tests-aaa"]
        assert entries[0].paths == ["project-tests"]
        assert entries[0].size > 0

    def test_empty_paths_rejected(self, cache_store):
        with pytest.raises(ValueError):
            cache_store.restore([], "key")
        with pytest.raises(ValueError):
            cache_store.save([], "key")


class TestValidateKey:
    @pytest.mark.parametrize("key", ["", "a,b", "k" * 513])
    def test_invalid(self, key):
        with pytest.raises(ValueError):
            validate_key(key)

    def test_valid(self):
        validate_key("Linux-m2-abc123")


class TestCreateCacheStore:
    def test_from_config(self, tmp_path):
        config = make_config(cache_root=tmp_path / "cache", workspace=tmp_path)
        assert isinstance(create_cache_store(config), LocalCacheStore)
        assert not (tmp_path / "cache").exists()

    def test_unusable_root_is_a_miss(self, tmp_path, workspace):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = LocalCacheStore(cache_root=blocker / "cache", workspace=workspace)

        assert store.restore(["project-tests"], "project-tests-c0ffee", ["project-tests-"]) is None
        with pytest.raises(OSError):
            store.save(["project-tests"], "project-tests-c0ffee")
