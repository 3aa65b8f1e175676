"""
Shared fixtures for the verifier tests.

Provides a scripted command runner, an in-memory cache store and a fake
GitHub client, so pipeline runs need neither Maven, git, nor the network.
"""

from collections.abc import Sequence
from pathlib import Path

import pytest
from pydantic import SecretStr

from verifier import console
from verifier.cache_coordinator import CacheCoordinator
from verifier.cache_store import BaseCacheStore
from verifier.command_runner import CommandRunner
from verifier.config_loader import TriggerContext, VerifierConfig
from verifier.errors import CacheSaveError, GitHubError
from verifier.pipeline import Pipeline
from verifier.reporter import Reporter


MANIFEST_HASH = "abc123"
LATEST_COMMIT = "c0ffee"
TOKEN = "s3cret-token"


class ScriptedRunner(CommandRunner):
    """
    CommandRunner that records commands instead of running them.

    exit_codes and stdout map a fragment of the command line to a result;
    raises maps a fragment to an exception raised when starting the command.
    """

    def __init__(
        self,
        exit_codes: dict[str, int] | None = None,
        stdout: dict[str, str] | None = None,
        raises: dict[str, Exception] | None = None,
    ) -> None:
        super().__init__(workspace=None)
        self.exit_codes = exit_codes or {}
        self.stdout = {"sha256sum": f"{MANIFEST_HASH}  project-main/pom.xml\n", **(stdout or {})}
        self.raises = raises or {}
        self.calls: list[list[str]] = []

    def _execute(self, argv: list[str], cwd: Path | None, capture_stdout: bool) -> tuple[int, str]:
        self.calls.append(argv)
        line = " ".join(argv)

        for fragment, exc in self.raises.items():
            if fragment in line:
                raise exc

        code = next((c for fragment, c in self.exit_codes.items() if fragment in line), 0)
        out = next((o for fragment, o in self.stdout.items() if fragment in line), "")
        return code, out if capture_stdout else ""

    @property
    def commands(self) -> list[str]:
        return [" ".join(argv) for argv in self.calls]

    def ran(self, fragment: str) -> bool:
        return any(fragment in command for command in self.commands)


class MemoryCacheStore(BaseCacheStore):
    """In-memory cache store; later saves are considered newer."""

    def __init__(self, entries: dict[str, list[str]] | None = None) -> None:
        self.entries: dict[str, list[str]] = dict(entries or {})
        self.restore_calls: list[tuple[list[str], str, list[str]]] = []
        self.save_calls: list[tuple[list[str], str]] = []
        self.fail_restore: Exception | None = None
        self.fail_save: set[str] = set()

    def restore(self, paths: Sequence[str], primary_key: str, restore_keys: Sequence[str] = ()) -> str | None:
        self.restore_calls.append((list(paths), primary_key, list(restore_keys)))
        if self.fail_restore is not None:
            raise self.fail_restore

        candidates = [k for k, p in self.entries.items() if p == list(paths)]
        if primary_key in candidates:
            return primary_key
        for prefix in restore_keys:
            matches = [k for k in candidates if k.startswith(prefix)]
            if matches:
                return matches[-1]
        return None

    def save(self, paths: Sequence[str], key: str) -> str:
        self.save_calls.append((list(paths), key))
        if key in self.fail_save:
            raise CacheSaveError(f"Unable to reserve cache with key {key}")
        if key in self.entries:
            raise CacheSaveError(f"Cache already exists for key: {key}")
        self.entries[key] = list(paths)
        return f"id-{len(self.entries)}"


class FakeGitHub:
    """Stands in for GitHubClient."""

    def __init__(self) -> None:
        self.commits: list[dict] = [{"sha": LATEST_COMMIT}]
        self.fail_commits = False
        self.fail_checks = False
        self.releases: dict[str, dict] = {"v3.0.1": {"id": 7}, "v1.2.0": {"id": 8}}
        self.updated: list[tuple[str, str, int, str]] = []
        self.check_runs: list[tuple[str, str, dict]] = []

    def list_commits(self, owner: str, repo: str, per_page: int = 1) -> list[dict]:
        if self.fail_commits:
            raise GitHubError("GitHub API returned HTTP 404. Not Found", status=404)
        return self.commits[:per_page]

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> dict:
        if tag not in self.releases:
            raise GitHubError("GitHub API returned HTTP 404. Not Found", status=404)
        return self.releases[tag]

    def update_release(self, owner: str, repo: str, release_id: int, body: str) -> dict:
        self.updated.append((owner, repo, release_id, body))
        return {"id": release_id, "body": body}

    def create_check_run(self, owner: str, repo: str, payload: dict) -> dict:
        if self.fail_checks:
            raise GitHubError("GitHub API returned HTTP 403. Resource not accessible", status=403)
        self.check_runs.append((owner, repo, payload))
        return {"html_url": "https://github.com/cs-course/student-repo/runs/1"}


def make_config(ref: str = "refs/tags/v3.0.1", **overrides) -> VerifierConfig:
    values = {
        "main": "student-repo",
        "test": "instructors/project-tests-repo",
        "runner": "Linux",
        "token": SecretStr(TOKEN),
        "context": TriggerContext(
            organization="cs-course",
            repository="student-repo",
            ref=ref,
            sha="1234abcd",
            run_number="12",
            run_id="3456",
        ),
    }
    values.update(overrides)
    return VerifierConfig(**values)


def make_pipeline(
    config: VerifierConfig,
    runner: ScriptedRunner,
    store: MemoryCacheStore,
    github: FakeGitHub,
) -> Pipeline:
    return Pipeline(
        config=config,
        runner=runner,
        caches=CacheCoordinator(store, runner, github),
        reporter=Reporter(github, config.context),
    )


@pytest.fixture(autouse=True)
def _clear_console_secrets():
    console.clear_secrets()
    yield
    console.clear_secrets()


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()
