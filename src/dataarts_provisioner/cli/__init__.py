"""CLI application for dataarts-provisioner."""

from __future__ import annotations

import logging
import os
import sys

import typer

from dataarts_provisioner import __version__

app = typer.Typer(
    name="dataarts-provisioner",
    no_args_is_help=True,
    add_completion=False,
)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
_VERBOSITY = {1: logging.INFO, 2: logging.DEBUG}


def _log_level(verbose: int) -> int | None:
    """``DATAARTS_LOG`` wins over ``-v``; None leaves logging unconfigured."""
    name = os.environ.get("DATAARTS_LOG", "").strip().upper()
    if not name:
        return _VERBOSITY.get(min(verbose, 2))
    level = logging.getLevelNamesMapping().get(name)
    if level is None:
        typer.echo(f"WARNING: invalid DATAARTS_LOG level '{name}', defaulting to INFO", err=True)
        return logging.INFO
    return level


def _configure_logging(verbose: int) -> None:
    level = _log_level(verbose)
    if level is None:
        return
    # Third-party loggers (httpx) stay at WARNING.
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("dataarts_provisioner").setLevel(level)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"dataarts-provisioner {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)."
    ),
) -> None:
    """Manage DataArts Studio security data recognition rules from YAML."""
    _ = version
    _configure_logging(verbose)


from dataarts_provisioner.cli import commands as _commands  # noqa: E402, F401
