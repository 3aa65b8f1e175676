"""
Project Verifier: Verify a student project against the instructor's tests

Usage:
  main.py [--config=PATH] [--status-file=PATH]
  main.py (-h | --help)
  main.py --version

Options:
  --config=PATH       Path to YAML configuration file (optional; action inputs
                      and GitHub environment variables take precedence).
  --status-file=PATH  Also write the final run state as JSON to this file.
  -h --help           Show this screen.
  --version           Show version.
"""

import logging
import sys
from pathlib import Path

from docopt import docopt

from verifier import __version__, console
from verifier.cache_coordinator import CacheCoordinator
from verifier.cache_store import create_cache_store
from verifier.command_runner import CommandRunner
from verifier.config import DEFAULT_CONFIG_FILENAME
from verifier.config_loader import VerifierConfig, load_config
from verifier.github_client import GitHubClient
from verifier.models import RunState
from verifier.pipeline import Pipeline
from verifier.reporter import Reporter


def build_pipeline(config: VerifierConfig) -> Pipeline:
    """
    Wire the pipeline's collaborators from the configuration.

    Args:
        config: Loaded verifier configuration.

    Returns:
        Pipeline ready to run.
    """
    token = config.token.get_secret_value()
    github = GitHubClient(token=token, api_url=config.api_url)
    runner = CommandRunner(workspace=config.workspace)

    return Pipeline(
        config=config,
        runner=runner,
        caches=CacheCoordinator(create_cache_store(config), runner, github),
        reporter=Reporter(github, config.context),
    )


def save_status(config: VerifierConfig, state: RunState, status_file: Path | None) -> None:
    """
    Print the final run state as JSON, and save it if requested.

    Args:
        config: Loaded verifier configuration.
        state: Final run state.
        status_file: Optional path to write the JSON to.
    """
    context = config.context
    status = state.model_dump_json(indent=2)

    with console.group(f"Saving run #{context.run_number} ({context.run_id}) status..."):
        console.info(status)

        if status_file:
            try:
                status_file.parent.mkdir(parents=True, exist_ok=True)
                with open(status_file, "w", encoding="utf-8") as f:
                    f.write(status)
                console.info(f"Saved status to {status_file}")
            except OSError as e:
                console.warning(f"Unable to save status to {status_file}. {e}")


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entrypoint.

    Returns:
        Exit code (0 if the project was verified, 1 on error). Failing
        verification tests still return 0; they are reported, not raised.
    """
    arguments = docopt(__doc__, argv=argv, version=__version__)

    config_path = Path(arguments["--config"]) if arguments["--config"] else None
    if config_path is None and Path(DEFAULT_CONFIG_FILENAME).exists():
        config_path = Path(DEFAULT_CONFIG_FILENAME)

    try:
        config = load_config(config_path)
    except Exception as e:
        console.error(f"Error loading config: {e}")
        return 1

    console.set_secret(config.token.get_secret_value())

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )

    if config_path is not None:
        console.info(f"Loaded configuration from {config_path}")

    status_file = config.status_file
    if arguments["--status-file"]:
        status_file = Path(arguments["--status-file"])

    pipeline = build_pipeline(config)

    try:
        ok, state = pipeline.run()
    except KeyboardInterrupt:
        console.error("Verification interrupted.")
        return 1

    save_status(config, state, status_file)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
