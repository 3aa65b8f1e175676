"""
Configuration constants for the Project Verifier.
"""

from pathlib import Path


# Working directories
MAIN_DIR: str = "project-main"
TEST_DIR: str = "project-tests"  # must match the <testSourceDirectory> in pom.xml
MANIFEST_FILENAME: str = "pom.xml"

# Cache paths and key namespaces
DEPENDENCY_CACHE_PATH: str = "~/.m2"
DEPENDENCY_CACHE_TAG: str = "m2"
DEFAULT_CACHE_ROOT: Path = Path("~/.cache/project-verifier")
MAX_CACHE_KEY_LENGTH: int = 512

# Ref parsing
# Matches the whole of "v1.0.0", "v3.2.1" (major limited to the four course projects)
VERSION_PATTERN: str = r"v([1-4])\.([0-9]+)\.([0-9]+)"
ALL_PROJECTS: str = "*"
TEST_SELECTOR_PREFIX: str = "Project"
TEST_SELECTOR_SUFFIX: str = "Test*"

# Toolchain checks: (command, description)
TOOLCHAIN_CHECKS: list[tuple[str, str]] = [
    ("java", "Java runtime"),
    ("javac", "Java compiler"),
    ("mvn", "Maven"),
]

# Maven configuration
MAVEN_QUIET_ARGS: list[str] = ["-ntp"]
MAVEN_COMPILE_OPTIONS: list[str] = [
    "-DcompileOptionXlint=-Xlint:none",
    "-DcompileOptionXdoclint=-Xdoclint:none",
    "-DcompileOptionFail=false",
    "-Dmaven.compiler.showWarnings=true",
]
MAVEN_VERIFY_GROUPS: str = "-DexcludedGroups=none()|!verify"

# GitHub configuration
DEFAULT_SERVER_URL: str = "https://github.com"
DEFAULT_API_URL: str = "https://api.github.com"
GITHUB_API_VERSION: str = "2022-11-28"
GITHUB_API_TIMEOUT_SECONDS: int = 30
CLONE_USERNAME: str = "x-access-token"
ANNOTATION_PATH: str = ".github"

# Default config file (can be overridden via CLI)
DEFAULT_CONFIG_FILENAME: str = "verifier_config.yml"
