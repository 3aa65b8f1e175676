"""
Parsers for git refs and repository names.

Turns the triggering ref into the project under test and its test
selector, and expands "user/repo" or bare "repo" strings into full
repository identities.
"""

import re

from .config import ALL_PROJECTS, TEST_SELECTOR_PREFIX, TEST_SELECTOR_SUFFIX, VERSION_PATTERN
from .errors import MalformedRef
from .models import ParsedRef, RepoSpec


def parse_ref(ref: str) -> ParsedRef:
    """
    Parse a git ref such as refs/tags/v1.2.3 or refs/heads/main.

    The version component selects the project under test: v<major>.<minor>.<patch>
    with major 1-4 selects that project, except that project 3 is split into
    "3a" (minor 0) and "3b" (any other minor). Anything else selects every
    project ("*").

    Args:
        ref: Full git ref of the triggering event.

    Returns:
        ParsedRef with the ref type, version string, project number and test selector.

    Raises:
        MalformedRef: If the ref is not exactly refs/<type>/<name>.
    """
    tokens = ref.split("/")

    if len(tokens) != 3 or tokens[0] != "refs":
        raise MalformedRef(f"Unable to parse ref: {ref}")

    ref_type, version = tokens[1], tokens[2]

    match = re.fullmatch(VERSION_PATTERN, version)
    if match:
        number = match.group(1)
        if number == "3":
            number = "3a" if int(match.group(2)) == 0 else "3b"
    else:
        number = ALL_PROJECTS

    return ParsedRef(
        ref_type=ref_type,
        version_string=version,
        project_number=number,
        test_selector=build_test_selector(number),
    )


def build_test_selector(project_number: str) -> str:
    """Return the test class pattern for a project, e.g. "Project2Test*"."""
    return f"{TEST_SELECTOR_PREFIX}{project_number}{TEST_SELECTOR_SUFFIX}"


def parse_repo(text: str, fallback_owner: str) -> RepoSpec:
    """
    Resolve "user/repo" or just "repo" into a repository identity.

    Only the first two "/"-separated segments are used. No network
    validation happens here; a bad name surfaces when cloning.

    Args:
        text: Repository string from the action inputs.
        fallback_owner: Owner used when text has no owner segment.

    Returns:
        RepoSpec with owner, name and qualified name (no working directory).
    """
    tokens = text.strip().split("/")[:2]

    if len(tokens) == 2:
        owner, name = tokens
    else:
        owner, name = fallback_owner, tokens[0]

    return RepoSpec(owner=owner, name=name, qualified_name=f"{owner}/{name}")
