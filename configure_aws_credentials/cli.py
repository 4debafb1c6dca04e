"""
Command-line entry point for the configure-aws-credentials step.

Usage:
    configure-aws-credentials                  # read INPUT_* variables set by the runner
    configure-aws-credentials --log-level DEBUG
    configure-aws-credentials --env-file .env  # local run with inputs from a dotenv file
"""

import asyncio
import logging
import os
import sys
from typing import Optional

import click
import structlog
from dotenv import load_dotenv

from .actions import ActionsCore
from .orchestrator import run
from .version import __version__


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog on top of stdlib logging, writing to stderr.

    stdout is reserved for workflow commands (::add-mask::, ::error::).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@click.command()
@click.version_option(version=__version__, prog_name="configure-aws-credentials")
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
    show_default=True,
)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Load INPUT_* and runner variables from a dotenv file",
)
def main(log_level: str, env_file: Optional[str]) -> None:
    """Exchange the job's OIDC token for temporary AWS credentials."""
    if env_file:
        load_dotenv(env_file, override=False)

    # Step debug logging enabled on the workflow run
    if os.getenv("RUNNER_DEBUG") == "1":
        log_level = "DEBUG"
    configure_logging(log_level, json_logs=os.getenv("LOG_FORMAT", "").lower() == "json")

    core = ActionsCore()
    asyncio.run(run(core))
    sys.exit(core.exit_code)


if __name__ == "__main__":
    main()
