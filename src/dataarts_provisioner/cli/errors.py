"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

import typer

from dataarts_provisioner.cli.formatting import totals
from dataarts_provisioner.config.loader import ConfigError
from dataarts_provisioner.core.errors import ClientInitError, ProviderError
from dataarts_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    ImportIdError,
    ResourceAlreadyManagedError,
    StalePlanError,
    StateLockError,
    StateProjectMismatchError,
    ValidationError,
)
from dataarts_provisioner.engine.types import count_actions

# First match wins; ProviderError must stay after ClientInitError.
_PREFIXES: tuple[tuple[type[Exception] | tuple[type[Exception], ...], str], ...] = (
    (ConfigError, "Configuration error"),
    (StalePlanError, "Plan is stale"),
    (StateProjectMismatchError, "State mismatch"),
    (StateLockError, "State locked"),
    ((ImportIdError, ResourceAlreadyManagedError), "Import failed"),
    (ClientInitError, "Client error"),
    (ProviderError, "API error"),
)


def _messages(exc: Exception) -> list[str]:
    if isinstance(exc, ValidationError):
        return ["Validation failed:", *(f"  - {e}" for e in exc.errors)]
    if isinstance(exc, ApplyCanceled):
        return ["Apply canceled."]
    if isinstance(exc, ApplyError):
        counts = totals(count_actions(exc.result.applied))
        verbs = ("added", "changed", "destroyed")
        parts = [f"{n} {verb}" for n, verb in zip(counts, verbs, strict=True) if n]
        partial = [f"  Partial result: {', '.join(parts)}."] if parts else []
        return [f"Apply failed: {exc}", *partial]
    prefix = next((p for kind, p in _PREFIXES if isinstance(exc, kind)), "Error")
    return [f"{prefix}: {exc}"]


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print *exc* to stderr without a traceback and return exit code 1."""
    fg = typer.colors.RED if color else None
    for line in _messages(exc):
        typer.echo(typer.style(line, fg=fg), err=True)
    return 1
