"""
Verification pipeline: Setup, Verify, Cleanup.

Setup clones and builds the main and test projects, Verify runs the
verification tests for the project selected by the ref, and Cleanup
updates the release and saves both caches. Cleanup runs exactly once,
whether or not the earlier phases succeeded.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from . import console
from .cache_coordinator import CacheCoordinator, tree_cache_key
from .command_runner import CommandRunner
from .config import (
    CLONE_USERNAME,
    MAIN_DIR,
    MAVEN_COMPILE_OPTIONS,
    MAVEN_QUIET_ARGS,
    MAVEN_VERIFY_GROUPS,
    MANIFEST_FILENAME,
    TEST_DIR,
    TOOLCHAIN_CHECKS,
)
from .config_loader import VerifierConfig
from .errors import CommandFailed, PhaseFailed, ToolchainUnavailable
from .models import CleanupReport, RunState, TestRepoSpec
from .ref_parser import parse_ref, parse_repo
from .reporter import Reporter


@contextmanager
def step(title: str, failure: str) -> Iterator[None]:
    """
    Run one Setup/Verify step inside a console group.

    Any exception is printed and re-raised as PhaseFailed naming the step.
    """
    with console.group(title):
        try:
            yield
        except Exception as e:
            console.custom_error(str(e))
            raise PhaseFailed(f"{failure} {e}") from e


class Pipeline:
    """
    Runs one verification of a main project against a test project.

    The run state is created by run() and passed explicitly to each phase.
    """

    def __init__(
        self,
        config: VerifierConfig,
        runner: CommandRunner,
        caches: CacheCoordinator,
        reporter: Reporter,
    ) -> None:
        self.config = config
        self.runner = runner
        self.caches = caches
        self.reporter = reporter

    def run(self, state: RunState | None = None) -> tuple[bool, RunState]:
        """
        Execute Setup and Verify, then Cleanup.

        A failing test suite is a normal outcome and still counts as a
        successful run; only errors in Setup or Verify make it fail.

        Returns:
            Tuple of (whether the run completed without error, final run state).
        """
        state = state if state is not None else RunState()
        ok = True

        try:
            with self.cleanup_guard(state):
                console.heading("SETUP PHASE")
                self.setup(state)

                console.heading("VERIFICATION PHASE")
                self.verify(state)
        except Exception as e:
            ok = False
            console.error(f"Unable to verify project. {e}")

        return ok, state

    @contextmanager
    def cleanup_guard(self, state: RunState) -> Iterator[RunState]:
        """Guarantee Cleanup runs once the guarded phases finish or fail."""
        try:
            yield state
        finally:
            console.heading("CLEANUP PHASE")
            self.cleanup(state)

    # -----------------------------------------------
    # Setup
    # -----------------------------------------------

    def setup(self, state: RunState) -> None:
        """
        Prepare both projects for verification.

        Raises:
            PhaseFailed: At the first failing step; later steps are skipped.
        """
        self._parse_project(state)
        self._clone_main(state)
        self._prepare_tests(state)
        self._update_dependencies(state)
        self._compile(state, goal="compile", target="classes", label="main")
        self._compile(state, goal="test-compile", target="test-classes", label="test")

    def _parse_project(self, state: RunState) -> None:
        with step("Parsing project details...", "Failed to parse project details."):
            context = self.config.context
            state.organization = context.organization

            state.main_project = parse_repo(self.config.main, state.organization)
            state.main_project.working_dir = MAIN_DIR

            test = parse_repo(self.config.test, state.organization)
            state.test_project = TestRepoSpec(**test.model_dump(exclude={"working_dir"}), working_dir=TEST_DIR)

            state.runner_os = self.config.runner
            state.project = parse_ref(context.ref)

            for command, description in TOOLCHAIN_CHECKS:
                try:
                    self.runner.run(
                        command,
                        ["--version"],
                        title=f"Checking {description} version",
                        error=f"Unable to verify {description} version",
                    )
                except CommandFailed as e:
                    raise ToolchainUnavailable(str(e), e.exit_code) from e

    def _clone_main(self, state: RunState) -> None:
        main, version = state.main_project, state.project.version_string

        with step("Cloning project main code...", "Failed to clone project main code."):
            self.runner.run(
                "git",
                ["clone", "--depth", "1", "-c", "advice.detachedHead=false", "--no-tags",
                 "--branch", version, self._clone_url(main.qualified_name), main.working_dir],
                title=f"Cloning {version} from {main.qualified_name} into {main.working_dir}",
                error=f"Cloning {main.qualified_name} returned non-zero exit code",
            )
            self._list(f"{main.working_dir}/src/main/java", "Listing project main code")

    def _prepare_tests(self, state: RunState) -> None:
        test = state.test_project

        with step("Cloning project test code...", "Failed to clone project test code."):
            # a cache hit replaces the clone entirely
            if self.caches.restore_test_tree(test):
                console.info(f"Cache found: {test.restored_key}")
            else:
                self.runner.run(
                    "git",
                    ["clone", "--depth", "1", "--no-tags", self._clone_url(test.qualified_name), test.working_dir],
                    title=f"Cloning {test.qualified_name} into {test.working_dir}",
                    error=f"Cloning {test.qualified_name} returned non-zero exit code",
                )
                test.cloned_fresh = True

                if not test.cache_key:
                    self._key_from_clone(test)

            if test.cache_hit == test.cloned_fresh:
                raise PhaseFailed(f"Unable to restore or clone {test.qualified_name}.")

            self._list(f"{test.working_dir}/src/test/java", "Listing project test code")

    def _key_from_clone(self, test: TestRepoSpec) -> None:
        """Derive the test cache key from a fresh clone when the commit lookup failed."""
        result = self.runner.run(
            "git",
            ["-C", test.working_dir, "rev-parse", "HEAD"],
            title=f"Reading {test.working_dir} commit",
            capture_stdout=True,
        )
        commit = result.stdout.strip()
        if result.exit_code == 0 and commit:
            test.latest_commit_hash = commit
            test.cache_key = tree_cache_key(test.working_dir, commit)

    def _update_dependencies(self, state: RunState) -> None:
        manifest = f"{state.main_project.working_dir}/{MANIFEST_FILENAME}"

        with step("Caching maven plugins...", "Failed to update Maven cache."):
            # a miss only slows down dependency resolution, it never skips it
            self.caches.restore_dependencies(state)

            self.runner.run(
                "mvn",
                ["-f", manifest, *MAVEN_QUIET_ARGS, "dependency:go-offline"],
                title="Updating Maven dependencies",
                error="Updating returned non-zero exit code",
            )

    def _compile(self, state: RunState, goal: str, target: str, label: str) -> None:
        main_dir = state.main_project.working_dir

        with step(f"Compiling project {label} code...", f"Failed to compile project {label} code."):
            self.runner.run(
                "mvn",
                [*MAVEN_QUIET_ARGS, *MAVEN_COMPILE_OPTIONS, goal],
                title=f"Compiling project {label} code",
                error="Compiling returned non-zero exit code",
                cwd=main_dir,
            )
            self._list(f"{main_dir}/target/{target}", f"Listing {label} class files")

    # -----------------------------------------------
    # Verify
    # -----------------------------------------------

    def verify(self, state: RunState) -> None:
        """
        Run the verification tests for the selected project.

        Failing tests are recorded in the run state, not raised.

        Raises:
            PhaseFailed: If the tests could not be run at all.
        """
        project = state.project

        with step("Running verification tests...", "Failed verification tests."):
            try:
                result = self.runner.run(
                    "mvn",
                    [*MAVEN_QUIET_ARGS, f"-Dtest={project.test_selector}", MAVEN_VERIFY_GROUPS, "test"],
                    title="Running verification tests",
                    cwd=state.main_project.working_dir,
                )

                if result.exit_code == 0:
                    message = (
                        f"All Project {project.project_number} verification tests "
                        f"of {project.version_string} passed."
                    )
                else:
                    message = (
                        f"One or more Project {project.project_number} verification tests "
                        f"of {project.version_string} failed."
                    )

                verify_result = state.record_verify_result(result.exit_code, message)
            except Exception:
                self._diagnose(state)
                raise

            if verify_result.passed:
                console.info(message)
                self.reporter.annotate("Verification Passed", message, "notice", "success")
            else:
                console.custom_error(message)

    def _diagnose(self, state: RunState) -> None:
        """List whatever test reports exist, without failing."""
        main_dir = state.main_project.working_dir if state.main_project else MAIN_DIR
        try:
            self.runner.run("ls", ["-C", f"{main_dir}/target/surefire-reports"], title="Listing test reports")
        except Exception as e:
            console.info(f"Unable to list test reports. {e}")

    # -----------------------------------------------
    # Cleanup
    # -----------------------------------------------

    def cleanup(self, state: RunState) -> CleanupReport:
        """
        Update the release and save both caches.

        Each action is attempted independently and never raises.

        Returns:
            CleanupReport tagging each action ok, failed, or skipped.
        """
        report = CleanupReport()
        state.cleanup = report

        with console.group("Cleaning up..."):
            project, result = state.project, state.verify_result

            if project is not None and project.ref_type == "tags" and result is not None:
                console.info(f"\nUpdating {project.version_string} release...")
                body = (
                    f"{result.message} See action run #{self.config.context.run_number} "
                    f"({self.config.context.run_id})."
                )
                updated = self.reporter.update_release(project.version_string, body)
                report.release_update = "ok" if updated else "failed"

            try:
                self.caches.save_test_tree(state.test_project)
                report.test_cache_save = "ok"
            except Exception as e:
                report.test_cache_save = "failed"
                console.info(f"Unable to save tests cache. {e}")

            try:
                self.caches.save_dependencies(state.dependency_cache)
                report.dependency_cache_save = "ok"
            except Exception as e:
                report.dependency_cache_save = "failed"
                console.info(f"Unable to save maven cache. {e}")

            if not report.ok:
                console.warning("One or more cleanup steps failed.")

        return report

    # -----------------------------------------------
    # Helpers
    # -----------------------------------------------

    def _clone_url(self, qualified_name: str) -> str:
        scheme, _, host = self.config.server_url.rstrip("/").partition("://")
        token = self.config.token.get_secret_value()
        credentials = f"{CLONE_USERNAME}:{token}@" if token else ""
        return f"{scheme}://{credentials}{host}/{qualified_name}"

    def _list(self, directory: str, title: str) -> None:
        self.runner.run("ls", ["-C", directory], title=title, error="Unable to list directory")
