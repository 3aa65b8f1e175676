"""
Console output for GitHub Actions runners.

Writes plain progress lines and workflow commands (groups, masks,
warnings, errors) to standard output, scrubbing registered secrets.
"""

from collections.abc import Iterator
from contextlib import contextmanager

# ANSI styles
BOLD = ("\x1b[1m", "\x1b[22m")
RED = ("\x1b[31m", "\x1b[39m")
CYAN = ("\x1b[36m", "\x1b[39m")

MASK = "***"

_secrets: set[str] = set()


def _escape(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _emit(line: str) -> None:
    print(scrub(line), flush=True)


def scrub(text: str) -> str:
    """Replace every registered secret in text with a mask."""
    for secret in _secrets:
        text = text.replace(secret, MASK)
    return text


def set_secret(value: str) -> None:
    """Register a secret so it never appears in output."""
    if not value:
        return
    print(f"::add-mask::{_escape(value)}", flush=True)
    _secrets.add(value)


def clear_secrets() -> None:
    _secrets.clear()


def info(message: str = "") -> None:
    _emit(message)


def debug(message: str) -> None:
    _emit(f"::debug::{_escape(message)}")


def warning(message: str) -> None:
    _emit(f"::warning::{_escape(message)}")


def error(message: str) -> None:
    _emit(f"::error::{_escape(message)}")


def custom_error(text: str) -> None:
    """Error styled output without creating an annotation."""
    _emit(f"{RED[0]}{BOLD[0]}Error:{BOLD[1]}{RED[1]} {text}")


def heading(text: str) -> None:
    _emit(f"\n{CYAN[0]}{BOLD[0]}{text}{BOLD[1]}{CYAN[1]}")


@contextmanager
def group(title: str) -> Iterator[None]:
    """Fold all output written inside the block under a collapsible title."""
    _emit(f"::group::{title}")
    try:
        yield
    finally:
        _emit("")
        _emit("::endgroup::")
