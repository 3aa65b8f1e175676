"""
Configuration loader for the Project Verifier.

Builds the run configuration from an optional YAML file and the GitHub
Actions environment (action inputs and the triggering event context).
"""

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator

from .config import DEFAULT_API_URL, DEFAULT_CACHE_ROOT, DEFAULT_SERVER_URL


class TriggerContext(BaseModel):
    """
    The GitHub event that triggered the run.
    """
    organization: str = Field(..., description="Organization (or owner) login")
    repository: str = Field(..., description="Name of the repository running the action")
    ref: str = Field(..., description="Triggering ref, e.g. refs/tags/v1.0.0")
    sha: str = Field("", description="Commit SHA of the triggering event")
    run_number: str = Field("", description="Workflow run number")
    run_id: str = Field("", description="Workflow run id")


class VerifierConfig(BaseModel):
    """
    Configuration model for the verifier.
    """
    main: str = Field(..., description="Main project repository, 'user/repo' or 'repo'")
    test: str = Field(..., description="Test project repository, 'user/repo' or 'repo'")
    runner: str = Field(..., description="Runner OS, used to namespace dependency cache keys")
    token: SecretStr = Field(SecretStr(""), description="GitHub token for cloning and API calls")
    context: TriggerContext

    server_url: str = Field(DEFAULT_SERVER_URL, description="GitHub server URL used for cloning")
    api_url: str = Field(DEFAULT_API_URL, description="GitHub REST API URL")
    workspace: Path = Field(Path("."), description="Directory the projects are cloned into")
    cache_root: Path = Field(DEFAULT_CACHE_ROOT, description="Directory holding cache archives")
    status_file: Optional[Path] = Field(None, description="Where to write the final run state JSON")
    verbose: bool = Field(False, description="Enable verbose output")

    @field_validator("main", "test", "runner")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()


# Action inputs as exposed to the process by the runner
INPUT_ENV = {
    "main": "INPUT_MAIN",
    "test": "INPUT_TEST",
    "runner": "INPUT_RUNNER",
    "token": "INPUT_TOKEN",
}


def _read_event(event_path: str | None) -> dict[str, Any]:
    if not event_path:
        return {}
    path = Path(event_path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f) or {}


def load_context(environ: Mapping[str, str], overrides: Mapping[str, Any] | None = None) -> TriggerContext:
    """
    Build the trigger context from GitHub's default environment variables.

    The organization comes from the event payload when it has one, then
    from GITHUB_REPOSITORY_OWNER, then from the owner half of GITHUB_REPOSITORY.

    Args:
        environ: Environment mapping.
        overrides: Values from the YAML file, used where the environment is silent.

    Returns:
        TriggerContext for the run.
    """
    data: dict[str, Any] = dict(overrides or {})
    payload = _read_event(environ.get("GITHUB_EVENT_PATH"))

    owner, _, repo_name = environ.get("GITHUB_REPOSITORY", "").partition("/")
    organization = (
        (payload.get("organization") or {}).get("login")
        or environ.get("GITHUB_REPOSITORY_OWNER")
        or owner
    )
    repository = (payload.get("repository") or {}).get("name") or repo_name

    env_values = {
        "organization": organization,
        "repository": repository,
        "ref": environ.get("GITHUB_REF"),
        "sha": environ.get("GITHUB_SHA"),
        "run_number": environ.get("GITHUB_RUN_NUMBER"),
        "run_id": environ.get("GITHUB_RUN_ID"),
    }
    data.update({k: v for k, v in env_values.items() if v})

    return TriggerContext(**data)


def load_config(config_path: Path | None = None, environ: Mapping[str, str] | None = None) -> VerifierConfig:
    """
    Load configuration from an optional YAML file and the environment.

    Environment values take precedence over the YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        VerifierConfig object with loaded values.

    Raises:
        FileNotFoundError: If config_path is given but doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
        ValidationError: If config data is invalid or incomplete.
    """
    if environ is None:
        environ = os.environ

    config_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        # Resolve relative paths relative to the config file location
        config_dir = config_path.parent
        for path_field in ["workspace", "cache_root", "status_file"]:
            if config_data.get(path_field):
                path = Path(config_data[path_field]).expanduser()
                if not path.is_absolute():
                    config_data[path_field] = config_dir / path

    for field_name, env_name in INPUT_ENV.items():
        if environ.get(env_name):
            config_data[field_name] = environ[env_name]

    if environ.get("GITHUB_SERVER_URL"):
        config_data["server_url"] = environ["GITHUB_SERVER_URL"]
    if environ.get("GITHUB_API_URL"):
        config_data["api_url"] = environ["GITHUB_API_URL"]
    if environ.get("GITHUB_WORKSPACE"):
        config_data["workspace"] = Path(environ["GITHUB_WORKSPACE"])
    if environ.get("VERIFIER_CACHE_ROOT"):
        config_data["cache_root"] = Path(environ["VERIFIER_CACHE_ROOT"])
    if environ.get("VERIFIER_VERBOSE"):
        config_data["verbose"] = environ["VERIFIER_VERBOSE"].lower() in ("1", "true", "yes")

    config_data["context"] = load_context(environ, config_data.get("context"))

    return VerifierConfig(**config_data)
