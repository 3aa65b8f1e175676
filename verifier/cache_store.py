"""
Cache storage backends.

A cache entry is an archive of one or more paths saved under a key.
Restoring looks for the exact key first and then falls back to the newest
entry whose key starts with one of the given prefixes.
"""

from __future__ import annotations

import json
import logging
import shutil
import tarfile
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from .config import DEFAULT_CACHE_ROOT, MAX_CACHE_KEY_LENGTH
from .errors import CacheSaveError
from .models import CacheEntry

if TYPE_CHECKING:
    from .config_loader import VerifierConfig

logger = logging.getLogger(__name__)


def validate_key(key: str) -> None:
    """
    Check a cache key is usable.

    Raises:
        ValueError: If the key is empty, too long, or contains a comma.
    """
    if not key:
        raise ValueError("Cache key must not be empty")
    if len(key) > MAX_CACHE_KEY_LENGTH:
        raise ValueError(f"Cache key is longer than {MAX_CACHE_KEY_LENGTH} characters: {key[:40]}...")
    if "," in key:
        raise ValueError(f"Cache key must not contain commas: {key}")


class BaseCacheStore(ABC):
    """Interface for cache storage backends."""

    @abstractmethod
    def restore(
        self, paths: Sequence[str], primary_key: str, restore_keys: Sequence[str] = ()
    ) -> str | None:
        """Restore paths from the cache; return the key restored, or None on a miss."""

    @abstractmethod
    def save(self, paths: Sequence[str], key: str) -> str:
        """Save paths under key; return the saved entry id."""


class LocalCacheStore(BaseCacheStore):
    """
    Directory-backed cache store.

    Each entry is a gzip tar archive plus a JSON metadata file under the
    cache root. Entries are immutable once saved.
    """

    def __init__(self, cache_root: Path | str, workspace: Path | str | None = None) -> None:
        self._root = Path(cache_root).expanduser()
        self._workspace = Path(workspace) if workspace else Path.cwd()

    def restore(
        self, paths: Sequence[str], primary_key: str, restore_keys: Sequence[str] = ()
    ) -> str | None:
        if not paths:
            raise ValueError("At least one path is required to restore a cache")
        validate_key(primary_key)
        for prefix in restore_keys:
            validate_key(prefix)

        entry = self._find(list(paths), primary_key, restore_keys)
        if entry is None:
            logger.debug("No cache entry for %s (restore keys: %s)", primary_key, list(restore_keys))
            return None

        self._extract(entry)
        logger.debug("Restored %s from %s", entry.paths, entry.archive)
        return entry.key

    def save(self, paths: Sequence[str], key: str) -> str:
        if not paths:
            raise ValueError("At least one path is required to save a cache")
        validate_key(key)

        if self._metadata_path(key).exists():
            raise CacheSaveError(f"Cache already exists for key: {key}")

        resolved = [self._resolve(p) for p in paths]
        if not any(p.exists() for p in resolved):
            raise CacheSaveError(f"Path(s) to cache do not exist: {', '.join(paths)}")

        self._root.mkdir(parents=True, exist_ok=True)
        archive_name = f"{self._safe_name(key)}.tar.gz"
        archive_path = self._root / archive_name

        with tarfile.open(archive_path, "w:gz") as tar:
            for index, path in enumerate(resolved):
                if path.exists():
                    tar.add(path, arcname=str(index))

        entry = CacheEntry(
            key=key,
            paths=list(paths),
            archive=archive_name,
            created_at=datetime.now(timezone.utc),
            size=archive_path.stat().st_size,
        )
        self._metadata_path(key).write_text(entry.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("Saved %s (%d bytes) as %s", key, entry.size, archive_name)
        return archive_name

    def list_entries(self) -> list[CacheEntry]:
        """List all saved entries."""
        entries: list[CacheEntry] = []
        if not self._root.is_dir():
            return entries
        for path in self._root.glob("*.json"):
            try:
                entries.append(CacheEntry(**json.loads(path.read_text(encoding="utf-8"))))
            except Exception as e:
                logger.warning("Skipping unreadable cache metadata %s: %s", path.name, e)
        return entries

    def _find(self, paths: list[str], primary_key: str, restore_keys: Sequence[str]) -> CacheEntry | None:
        entries = [e for e in self.list_entries() if e.paths == paths]

        for entry in entries:
            if entry.key == primary_key:
                return entry

        for prefix in restore_keys:
            matches = [e for e in entries if e.key.startswith(prefix)]
            if matches:
                return max(matches, key=lambda e: e.created_at)

        return None

    def _extract(self, entry: CacheEntry) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with tarfile.open(self._root / entry.archive, "r:gz") as tar:
                tar.extractall(tmp, filter="data")

            for index, original in enumerate(entry.paths):
                source = Path(tmp) / str(index)
                if not source.exists():
                    continue
                target = self._resolve(original)
                target.parent.mkdir(parents=True, exist_ok=True)
                if source.is_dir():
                    shutil.copytree(source, target, dirs_exist_ok=True)
                else:
                    shutil.copy2(source, target)

    def _resolve(self, path: str) -> Path:
        resolved = Path(path).expanduser()
        if not resolved.is_absolute():
            resolved = self._workspace / resolved
        return resolved

    def _metadata_path(self, key: str) -> Path:
        return self._root / f"{self._safe_name(key)}.json"

    @staticmethod
    def _safe_name(key: str) -> str:
        return key.replace("/", "_").replace("\\", "_")


def create_cache_store(config: VerifierConfig | None = None) -> BaseCacheStore:
    """
    Instantiate the cache store for a run.

    Args:
        config: Verifier configuration. Defaults to the default cache root.

    Returns:
        Configured BaseCacheStore implementation.
    """
    if config is None:
        return LocalCacheStore(cache_root=DEFAULT_CACHE_ROOT)
    return LocalCacheStore(cache_root=config.cache_root, workspace=config.workspace)
