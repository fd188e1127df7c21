"""Dependency ordering for plan and apply."""

from __future__ import annotations

from graphlib import CycleError, TopologicalSorter
from typing import TYPE_CHECKING

from dataarts_provisioner.engine.errors import DependencyCycleError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def dependency_order(nodes: Iterable[str], dependencies: Mapping[str, Iterable[str]]) -> list[str]:
    """Order *nodes* so every node follows the nodes it depends on.

    Dependencies outside *nodes* are ignored. Nodes that become ready
    together are emitted in name order, so the result is deterministic.
    """
    members = set(nodes)
    sorter = TopologicalSorter(
        {n: [d for d in dependencies.get(n, ()) if d in members] for n in members}
    )
    try:
        sorter.prepare()
    except CycleError as exc:
        raise DependencyCycleError(sorted(set(exc.args[1]))) from exc

    order: list[str] = []
    while sorter.is_active():
        ready = sorted(sorter.get_ready())
        order.extend(ready)
        sorter.done(*ready)
    return order
