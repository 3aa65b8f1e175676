"""
Exception types raised by the verification pipeline.

Setup and Verify let these propagate to the top level; Cleanup and the
reporting layer catch them and only log.
"""


class VerifierError(Exception):
    """Base class for all verifier errors."""


class MalformedRef(VerifierError, ValueError):
    """Raised when a git ref is not of the form refs/<type>/<name>."""


class CommandFailed(VerifierError):
    """
    A command the caller marked as must-succeed returned a non-zero status.

    Attributes:
        exit_code: Exit status of the failed command.
    """

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class ToolchainUnavailable(CommandFailed):
    """Raised when a build toolchain version check fails."""


class CacheMiss(VerifierError):
    """No cache entry was restored. Always caught and logged."""


class CacheSaveError(VerifierError):
    """Raised when a cache entry cannot be saved."""


class GitHubError(VerifierError):
    """
    A GitHub REST API call failed.

    Attributes:
        status: HTTP status code, or None if the API was unreachable.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class PhaseFailed(VerifierError):
    """Raised when a pipeline step fails; the message names the step."""
