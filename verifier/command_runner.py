"""
Command runner for external tools.

Runs git, Maven and filesystem commands as subprocesses. A non-zero exit
status only becomes an exception when the caller asks for it, so that
expected failures (such as failing tests) can be inspected instead.
"""

import subprocess
from collections.abc import Sequence
from pathlib import Path

from . import console
from .errors import CommandFailed
from .models import CommandResult


# Exit status reported when the executable cannot be started
COMMAND_NOT_FOUND: int = 127


class CommandRunner:
    """
    Runs commands on the host machine.

    Output is streamed straight to the console unless captured.
    """

    def __init__(self, workspace: Path | None = None) -> None:
        """
        Initialize the command runner.

        Args:
            workspace: Default working directory for commands (current directory if None).
        """
        self.workspace = workspace

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        title: str,
        error: str | None = None,
        cwd: Path | str | None = None,
        capture_stdout: bool = False,
    ) -> CommandResult:
        """
        Run a command and return its exit status.

        Args:
            command: Executable to run.
            args: Command arguments.
            title: Heading written before the command runs.
            error: If set, a non-zero exit raises CommandFailed with this message.
            cwd: Working directory, relative to the workspace.
            capture_stdout: Capture standard output into the result.

        Returns:
            CommandResult with the exit code and captured output.

        Raises:
            CommandFailed: If error is set and the command exits non-zero.
        """
        argv = [command, *args]

        console.info(f"\n{title}...")
        console.info(f"[command]{' '.join(argv)}")

        exit_code, stdout = self._execute(argv, self._resolve_cwd(cwd), capture_stdout)

        if error and exit_code != 0:
            raise CommandFailed(f"{error} ({exit_code}).", exit_code)

        return CommandResult(exit_code=exit_code, stdout=stdout)

    def _resolve_cwd(self, cwd: Path | str | None) -> Path | None:
        if cwd is None:
            return self.workspace
        if self.workspace is None:
            return Path(cwd)
        return self.workspace / cwd

    def _execute(self, argv: list[str], cwd: Path | None, capture_stdout: bool) -> tuple[int, str]:
        """Start the process and wait for it to finish."""
        try:
            process = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                stdout=subprocess.PIPE if capture_stdout else None,
                text=True,
                check=False,
            )
        except OSError as e:
            console.info(f"Unable to run {argv[0]}: {e}")
            return COMMAND_NOT_FOUND, ""

        stdout = process.stdout or ""
        if capture_stdout and stdout:
            console.info(stdout.rstrip("\n"))

        return process.returncode, stdout
