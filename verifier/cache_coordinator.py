"""
Cache coordination for the two cache lines.

The test-tree cache is keyed by the latest commit of the test repository
and replaces the clone when it hits. The dependency cache is keyed by a
hash of the main project's pom.xml and only warms the local Maven
repository; dependency resolution always runs afterwards.
"""

from . import console
from .cache_store import BaseCacheStore
from .command_runner import CommandRunner
from .config import DEPENDENCY_CACHE_PATH, DEPENDENCY_CACHE_TAG, MANIFEST_FILENAME
from .errors import CacheMiss, CacheSaveError
from .github_client import GitHubClient
from .models import DependencyCache, RunState, TestRepoSpec


def tree_cache_key(test_dir: str, commit_hash: str) -> str:
    return f"{test_dir}-{commit_hash}"


def tree_cache_prefix(test_dir: str) -> str:
    return f"{test_dir}-"


def dependency_cache_key(runner_os: str, manifest_hash: str) -> str:
    return f"{dependency_cache_prefix(runner_os)}{manifest_hash}"


def dependency_cache_prefix(runner_os: str) -> str:
    return f"{runner_os}-{DEPENDENCY_CACHE_TAG}-"


class CacheCoordinator:
    """
    Restores and saves the test-tree and dependency caches for a run.

    Restore failures of any kind are logged and treated as misses.
    """

    def __init__(self, store: BaseCacheStore, runner: CommandRunner, github: GitHubClient) -> None:
        self.store = store
        self.runner = runner
        self.github = github

    def restore_test_tree(self, test: TestRepoSpec) -> bool:
        """
        Look up the latest test commit and restore the matching test tree.

        Sets latest_commit_hash, cache_key, restored_key and cache_hit on test.

        Returns:
            True if a cache entry (exact or fallback) was restored.
        """
        try:
            commits = self.github.list_commits(test.owner, test.name, per_page=1)
            if not commits:
                raise CacheMiss(f"Unable to list {test.qualified_name} commits.")

            test.latest_commit_hash = commits[0]["sha"]
            test.cache_key = tree_cache_key(test.working_dir, test.latest_commit_hash)

            console.info("\nAttempting to restore test cache...")
            restored = self.store.restore(
                [test.working_dir],
                test.cache_key,
                [tree_cache_prefix(test.working_dir)],
            )
            if restored is None:
                raise CacheMiss(f"Cache {test.cache_key} not found.")
        except Exception as e:
            console.info(f"Unable to restore {test.working_dir} cache. {e}")
            return False

        test.restored_key = restored
        test.cache_hit = True
        console.info(f"Restored cache: {restored}")
        return True

    def hash_manifest(self, main_dir: str) -> str:
        """
        Hash the main project's pom.xml with sha256sum.

        Raises:
            CacheMiss: If the manifest cannot be hashed.
        """
        manifest = f"{main_dir}/{MANIFEST_FILENAME}"
        result = self.runner.run("sha256sum", [manifest], title=f"Hashing {manifest} file", capture_stdout=True)

        tokens = result.stdout.split()
        if result.exit_code != 0 or not tokens:
            raise CacheMiss(f"Unable to hash {manifest} file ({result.exit_code}).")
        return tokens[0]

    def restore_dependencies(self, state: RunState) -> bool:
        """
        Hash the manifest and restore the local Maven repository.

        A miss here never skips dependency resolution; it only makes it slower.

        Returns:
            True if a cache entry (exact or fallback) was restored.
        """
        cache = DependencyCache()
        state.dependency_cache = cache

        try:
            cache.manifest_hash = self.hash_manifest(state.main_project.working_dir)
            cache.cache_key = dependency_cache_key(state.runner_os, cache.manifest_hash)

            console.info("\nAttempting to restore Maven cache...")
            restored = self.store.restore(
                [DEPENDENCY_CACHE_PATH],
                cache.cache_key,
                [dependency_cache_prefix(state.runner_os)],
            )
            if restored is None:
                raise CacheMiss(f"Cache {cache.cache_key} not found.")
        except Exception as e:
            console.info(f"Unable to restore Maven cache. {e}")
            return False

        cache.restored_key = restored
        cache.hit = True
        console.info(f"Restored cache: {restored}")
        return True

    def save_test_tree(self, test: TestRepoSpec | None) -> str:
        """
        Save the test tree under its exact key.

        Raises:
            CacheSaveError: If no key was computed or the store rejects the save.
        """
        if test is None or not test.cache_key:
            raise CacheSaveError("No test cache key was computed for this run.")

        console.info(f"\nSaving {test.cache_key} to cache...")
        saved = self.store.save([test.working_dir], test.cache_key)
        console.info(f"Saved cache: {saved}")
        return saved

    def save_dependencies(self, cache: DependencyCache | None) -> str:
        """
        Save the local Maven repository under its exact key.

        Raises:
            CacheSaveError: If no key was computed or the store rejects the save.
        """
        if cache is None or not cache.cache_key:
            raise CacheSaveError("No Maven cache key was computed for this run.")

        console.info(f"\nSaving {cache.cache_key} to cache...")
        saved = self.store.save([DEPENDENCY_CACHE_PATH], cache.cache_key)
        console.info(f"Saved cache: {saved}")
        return saved
