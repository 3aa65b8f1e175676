"""
Pydantic models for the Project Verifier.

Defines the run state threaded through the pipeline phases, the parsed
ref and repository identities, and the records produced by commands and
cache operations.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


ProjectNumber = Literal["1", "2", "3a", "3b", "4", "*"]
StepStatus = Literal["ok", "failed", "skipped"]


class RepoSpec(BaseModel):
    """
    Fully qualified repository identity.

    Attributes:
        owner: Repository owner (user or organization).
        name: Repository name.
        qualified_name: "owner/name".
        working_dir: Local directory the repository is checked out into.
    """

    owner: str = Field(..., description="Repository owner")
    name: str = Field(..., description="Repository name")
    qualified_name: str = Field(..., description="owner/name")
    working_dir: str = Field(default="", description="Local checkout directory")


class TestRepoSpec(RepoSpec):
    """
    Test repository identity plus the state of its cache line.

    Attributes:
        latest_commit_hash: Most recent commit on the default branch, if known.
        cache_key: Exact cache key derived from the commit hash.
        restored_key: Key of the cache entry actually restored (may be a fallback).
        cache_hit: Whether the test tree was restored from cache.
        cloned_fresh: Whether the test tree was cloned during this run.
    """

    __test__ = False

    latest_commit_hash: str | None = Field(default=None, description="Latest default-branch commit")
    cache_key: str | None = Field(default=None, description="Exact test-tree cache key")
    restored_key: str | None = Field(default=None, description="Key of the restored entry")
    cache_hit: bool = Field(default=False, description="Restored from cache")
    cloned_fresh: bool = Field(default=False, description="Cloned during this run")


class ParsedRef(BaseModel):
    """
    Result of parsing the triggering git ref.

    Attributes:
        ref_type: "tags", "heads", or any other ref namespace.
        version_string: Last ref component (tag or branch name).
        project_number: Project under test, or "*" for every project.
        test_selector: Surefire -Dtest pattern for the project's test classes.
    """

    ref_type: str = Field(..., description="Ref namespace")
    version_string: str = Field(..., description="Tag or branch name")
    project_number: ProjectNumber = Field(..., description="Project under test")
    test_selector: str = Field(..., description="Test class wildcard")


class DependencyCache(BaseModel):
    """State of the dependency cache line."""

    manifest_hash: str | None = None
    cache_key: str | None = None
    restored_key: str | None = None
    hit: bool = False


class VerifyResult(BaseModel):
    """Outcome of the verification test run."""

    exit_code: int = Field(..., description="Exit code of the test run")
    message: str = Field(..., description="Human-readable outcome")

    @property
    def passed(self) -> bool:
        return self.exit_code == 0


class CommandResult(BaseModel):
    """Exit status and (optionally captured) standard output of a command."""

    exit_code: int
    stdout: str = ""


class CacheEntry(BaseModel):
    """
    Metadata for one saved cache archive.

    Attributes:
        key: Cache key the entry was saved under.
        paths: Paths archived, exactly as passed to save.
        archive: Archive file name inside the cache root.
        created_at: When the entry was saved.
        size: Archive size in bytes.
    """

    key: str
    paths: list[str]
    archive: str
    created_at: datetime
    size: int = 0


class CleanupReport(BaseModel):
    """Per-action status of the Cleanup phase."""

    release_update: StepStatus = "skipped"
    test_cache_save: StepStatus = "skipped"
    dependency_cache_save: StepStatus = "skipped"

    @property
    def ok(self) -> bool:
        return "failed" not in (self.release_update, self.test_cache_save, self.dependency_cache_save)


class RunState(BaseModel):
    """
    Mutable state of a single pipeline run.

    Created empty, filled in by Setup, extended by Verify, and read by
    Cleanup. Dumped as JSON at the end of the run for diagnostics.
    """

    organization: str = ""
    runner_os: str = ""
    main_project: RepoSpec | None = None
    test_project: TestRepoSpec | None = None
    project: ParsedRef | None = None
    dependency_cache: DependencyCache | None = None
    verify_result: VerifyResult | None = None
    cleanup: CleanupReport | None = None

    def record_verify_result(self, exit_code: int, message: str) -> VerifyResult:
        """
        Record the verification outcome.

        Raises:
            RuntimeError: If a result was already recorded for this run.
        """
        if self.verify_result is not None:
            raise RuntimeError("Verification result already recorded for this run")
        self.verify_result = VerifyResult(exit_code=exit_code, message=message)
        return self.verify_result
