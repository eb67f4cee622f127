"""
Root Typer application for infractl.

The whole command vocabulary is one positional ``COMMAND`` argument
resolved by :mod:`infractl.dispatch`, so unknown and missing commands are
reported with the usage table and exit status 1 like every other error.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

try:
    import typer
    from typer import Typer
except ImportError:  # pragma: no cover
    print("typer is required for the CLI.  Install with:  pip install infractl")
    sys.exit(1)

from infractl import __version__
from infractl.cli.utils import Output
from infractl.core.errors import InfraError, MissingCommand, UnknownCommand
from infractl.core.settings import get_settings
from infractl.dispatch import Invocation, Services, dispatch
from infractl.dispatch.handlers import print_usage
from infractl.framework.logging import configure_logging, get_logger

logger = get_logger(__name__)

app = Typer(
    name="infractl",
    help="infractl: manage deployment projects, hosts and their secrets.",
    add_completion=False,
    no_args_is_help=False,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"infractl {__version__}")
        raise typer.Exit()


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def main(
    command: Optional[str] = typer.Argument(None, help="Command to run (see `infractl help`)."),  # noqa: UP007
    args: Optional[list[str]] = typer.Argument(None, help="Project, then host/group/role/path."),  # noqa: UP007
    tags: Optional[str] = typer.Option(  # noqa: UP007
        None, "--tags", "-t", help="Comma-separated tags for deploy/check (overrides $TAGS)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr."),
    version: Optional[bool] = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Run COMMAND [ARG1] [ARG2] against a project (default: ``default``)."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        for problem in exc.errors():
            field = ".".join(str(part) for part in problem["loc"])
            Output().error(f"invalid setting INFRACTL_{field.upper()}: {problem['msg']}")
        raise typer.Exit(1) from exc
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        format=settings.log_format,
        force=True,
    )
    invocation = Invocation(
        command=command,
        args=tuple(args or ()),
        settings=settings,
        environ=dict(os.environ),
        running_script=Path(sys.argv[0]).resolve(),
        now=datetime.now(),
        tags=tags or None,
    )
    services = Services()
    try:
        rc = dispatch(invocation, services)
    except InfraError as exc:
        logger.debug("command.failed", **exc.to_dict())
        services.output.error(exc.message)
        if isinstance(exc, (UnknownCommand, MissingCommand)):
            print_usage(services.output)
        raise typer.Exit(exc.exit_code) from exc
    except OSError as exc:
        logger.debug("command.failed", error=repr(exc))
        services.output.error(f"{exc.filename}: {exc.strerror}" if exc.filename else str(exc))
        raise typer.Exit(1) from exc
    raise typer.Exit(rc)


def run() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    run()
