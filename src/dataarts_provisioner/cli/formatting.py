"""Terraform-style rendering of plans, drift and apply results."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

import typer

from dataarts_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from dataarts_provisioner.engine.types import Plan, ResourceChange


class ActionStyle(NamedTuple):
    fg: str
    symbol: str
    outcome: str
    progress: str
    done: str


STYLES: dict[Action, ActionStyle] = {
    Action.CREATE: ActionStyle("green", "+", "will be created", "Creating", "Creation complete"),
    Action.UPDATE: ActionStyle(
        "yellow", "~", "will be updated in-place", "Updating", "Update complete"
    ),
    Action.REPLACE: ActionStyle(
        "magenta", "-/+", "must be replaced", "Replacing", "Replacement complete"
    ),
    Action.DELETE: ActionStyle("red", "-", "will be destroyed", "Destroying", "Destroy complete"),
    Action.NOOP: ActionStyle("bright_black", " ", "is up-to-date", "", ""),
}

NO_CHANGES = "No changes. Resources are up-to-date."


def styler(color: bool) -> Callable[..., str]:
    """``typer.style`` when *color* is set, otherwise return the text unchanged."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def _render(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def _rows(change: ResourceChange) -> list[tuple[str, str]]:
    if change.action is Action.CREATE:
        rows = [(k, _render(v)) for k, v in (change.planned or {}).items()]
    elif change.action in (Action.UPDATE, Action.REPLACE):
        forced = set(change.replace_fields or ())
        rows = [
            (
                k,
                f"{_render(d['from'])} -> {_render(d['to'])}"
                + (" # forces replacement" if k in forced else ""),
            )
            for k, d in (change.diff or {}).items()
        ]
    else:
        return []
    width = max(len(k) for k, _ in rows) if rows else 0
    return [(k.ljust(width), text) for k, text in rows]


def format_change(change: ResourceChange, *, color: bool = True) -> str:
    """One ``# <address> <outcome>`` block with the attributes that change."""
    style = styler(color)
    s = STYLES[change.action]
    label = change.address.partition(".")[2] or change.address

    lines = [style(f"  # {change.address} {s.outcome}", fg=s.fg, bold=True)]
    lines.append(style(f'{s.symbol:>3} resource "{change.resource_type}" "{label}" {{', fg=s.fg))
    lines += [style(f"      {s.symbol} {k} = {text}", fg=s.fg) for k, text in _rows(change)]
    lines.append(style("    }", fg=s.fg))
    return "\n".join(lines)


def format_changes(changes: Iterable[ResourceChange], *, color: bool = True) -> str:
    blocks = [format_change(c, color=color) for c in changes if c.action is not Action.NOOP]
    return "\n\n".join(blocks) if blocks else NO_CHANGES


def format_plan(plan: Plan, *, color: bool = True) -> str:
    return format_changes(plan.changes, color=color)


def totals(summary: Mapping[str, int]) -> tuple[int, int, int]:
    """``(added, changed, destroyed)``; a replacement is one add and one destroy."""
    replaced = summary.get("replace", 0)
    return (
        summary.get("create", 0) + replaced,
        summary.get("update", 0),
        summary.get("delete", 0) + replaced,
    )


def _counts(summary: Mapping[str, int], verbs: tuple[str, str, str], *, color: bool) -> str:
    style = styler(color)
    return ", ".join(
        style(f"{n} {verb}", fg=fg) if n else f"{n} {verb}"
        for n, verb, fg in zip(totals(summary), verbs, ("green", "yellow", "red"), strict=True)
    )


def format_plan_summary(
    summary: Mapping[str, int], *, color: bool = True, header: str = "Plan"
) -> str:
    """``Plan: 2 to add, 1 to change, 0 to destroy.``"""
    counts = _counts(summary, ("to add", "to change", "to destroy"), color=color)
    return f"{header}: {counts}."


def format_apply_summary(summary: Mapping[str, int], *, color: bool = True) -> str:
    """``Apply complete! Resources: 2 added, 0 changed, 0 destroyed.``"""
    header = styler(color)("Apply complete!", fg="green", bold=True)
    counts = _counts(summary, ("added", "changed", "destroyed"), color=color)
    return f"{header} Resources: {counts}."
