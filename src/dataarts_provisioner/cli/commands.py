"""CLI command implementations."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer

from dataarts_provisioner import config as api
from dataarts_provisioner.cli import app
from dataarts_provisioner.cli.errors import handle_error
from dataarts_provisioner.cli.formatting import (
    STYLES,
    format_apply_summary,
    format_changes,
    format_plan,
    format_plan_summary,
    styler,
)
from dataarts_provisioner.engine.types import Plan, count_actions

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dataarts_provisioner.config.schema import Config
    from dataarts_provisioner.engine.types import ApplyResult, ResourceChange

DEFAULT_CONFIG = Path("dataarts-provisioner.yaml")

ConfigPath = Annotated[Path, typer.Option("--config", "-c", help="Path to the configuration file.")]
NoColor = Annotated[bool, typer.Option("--no-color", help="Disable colored output.")]
AutoApprove = Annotated[bool, typer.Option("--auto-approve", help="Skip interactive approval.")]
NoRefresh = Annotated[
    bool, typer.Option("--no-refresh", help="Skip reading current rules from DataArts Studio.")
]


def _color(no_color: bool) -> bool:
    return not (no_color or os.environ.get("NO_COLOR"))


@contextmanager
def _reported(color: bool) -> Iterator[None]:
    """Report any failure inside the block on stderr and exit with code 1."""
    try:
        yield
    except (typer.Exit, typer.Abort):
        raise
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc


def _confirm(question: str, canceled: str, *, auto_approve: bool) -> None:
    if auto_approve:
        return
    if not typer.confirm(question):
        typer.echo(canceled, err=True)
        raise typer.Exit(1)


def _show_plan(plan_obj: Plan, *, color: bool) -> None:
    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))


def _apply_with_progress(plan_obj: Plan, cfg: Config, *, color: bool) -> ApplyResult:
    """Apply with a Rich progress bar and one status line per finished change."""
    from rich.console import Console
    from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=Console(no_color=not color),
    ) as progress:
        task = progress.add_task("Applying", total=len(plan_obj.actionable))

        def report(change: ResourceChange, event: Literal["start", "done"]) -> None:
            style = STYLES[change.action]
            if event == "start":
                progress.update(task, description=f"{change.address}: {style.progress}...")
            else:
                progress.console.print(f"  {change.address}: {style.done}")
                progress.advance(task)

        return api.apply(plan_obj, cfg, progress=report)


def _review_and_apply(
    plan_obj: Plan, cfg: Config, *, color: bool, auto_approve: bool, question: str, nothing: str
) -> None:
    if not plan_obj.actionable:
        typer.echo(nothing)
        return

    _show_plan(plan_obj, color=color)
    typer.echo()
    _confirm(question, "Apply canceled.", auto_approve=auto_approve)

    with _reported(color):
        result = _apply_with_progress(plan_obj, cfg, color=color)
    typer.echo()
    typer.echo(format_apply_summary(result.summary(), color=color))


@app.command()
def plan(
    config: ConfigPath = DEFAULT_CONFIG,
    out: Annotated[Path | None, typer.Option("--out", "-o", help="Save plan to file.")] = None,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show the changes needed to match the configuration.

    Exits 0 when nothing would change and 2 when the plan has changes.
    """
    color = _color(no_color)
    with _reported(color):
        plan_obj = api.plan(api.load(config), refresh=not no_refresh)

    _show_plan(plan_obj, color=color)
    if out is not None:
        plan_obj.save(out)
        typer.echo(f"\nPlan saved to {out}")
    if plan_obj.actionable:
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    plan_file: Annotated[Path | None, typer.Argument(help="Saved plan file to apply.")] = None,
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Apply a saved plan, or plan and apply the configuration."""
    color = _color(no_color)
    with _reported(color):
        cfg = api.load(config)
        if plan_file is not None:
            plan_obj = Plan.load(plan_file)
        else:
            plan_obj = api.plan(cfg, refresh=not no_refresh)

    _review_and_apply(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Do you want to apply these changes?",
        nothing="No changes. Resources are up-to-date.",
    )


@app.command()
def destroy(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Delete every rule tracked in state."""
    color = _color(no_color)
    with _reported(color):
        cfg = api.load(config)
        plan_obj = api.plan(cfg, destroy=True)

    _review_and_apply(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Do you really want to destroy all resources?",
        nothing="No resources to destroy.",
    )


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Update the state file from DataArts Studio."""
    color = _color(no_color)
    with _reported(color):
        cfg = api.load(config)
        changes, state = api.refresh(cfg)

    if not changes:
        typer.echo("No changes. State is up-to-date with DataArts Studio.")
        return

    typer.echo(format_changes(changes, color=color))
    typer.echo()
    typer.echo(format_plan_summary(count_actions(changes), color=color, header="Refresh"))
    typer.echo()
    _confirm(
        "Do you want to update the state file?", "Refresh canceled.", auto_approve=auto_approve
    )

    with _reported(color):
        api.save_state(cfg, state)
    n = len(state.resources)
    typer.echo(f"State refreshed. {n} resource{'' if n == 1 else 's'} tracked.")


@app.command()
def drift(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """Show how DataArts Studio differs from the state file."""
    color = _color(no_color)
    with _reported(color):
        changes = api.drift(api.load(config))

    if not changes:
        typer.echo("No drift detected. State is up-to-date with DataArts Studio.")
        return
    typer.echo("Drift detected:\n")
    typer.echo(format_changes(changes, color=color))


@app.command(name="import")
def import_cmd(
    address: Annotated[
        str, typer.Argument(help="Resource address, e.g. dataarts_security_rule.phone_number.")
    ],
    import_id: Annotated[
        str, typer.Argument(metavar="ID", help="Server id: <workspace_id>/<rule_id>.")
    ],
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Start managing an existing rule under ADDRESS."""
    color = _color(no_color)
    with _reported(color):
        inst = api.import_resource(api.load(config), address, import_id)

    typer.echo(styler(color)(f"Imported {inst.address} (id {inst.attributes['id']}).", fg="green"))


@app.command()
def validate(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """Check the configuration without contacting DataArts Studio."""
    color = _color(no_color)
    with _reported(color):
        api.plan(api.load(config), refresh=False)

    typer.echo(styler(color)("Configuration is valid.", fg="green"))
