"""Apply steps, one per action.

Each step calls the handler and then updates the in-memory state; the
engine writes state to disk after every step.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dataarts_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable

    from dataarts_provisioner.core.state import State
    from dataarts_provisioner.engine.handlers import EngineContext
    from dataarts_provisioner.engine.registry import ResourceTypeRegistry
    from dataarts_provisioner.engine.types import ResourceChange
    from dataarts_provisioner.resources.base import Resource

    Step = Callable[[EngineContext, State, ResourceTypeRegistry, ResourceChange], None]

logger = logging.getLogger(__name__)


def _rebuild(registry: ResourceTypeRegistry, change: ResourceChange) -> Resource:
    if change.desired is None:
        raise ValueError(f"Plan has no desired config for {change.action.value} {change.address}")
    desired = registry[change.resource_type].model.model_validate(change.desired)
    if desired.address != change.address:
        raise ValueError(f"Plan entry {change.address} describes {desired.address}")
    return desired


def _create_and_track(
    ctx: EngineContext, state: State, registry: ResourceTypeRegistry, desired: Resource
) -> None:
    attrs = registry[desired.resource_type].handler.create(ctx, desired)
    state.track(
        address=desired.address,
        resource_type=desired.resource_type,
        label=desired.label,
        attributes=attrs,
        dependencies=desired.depends_on,
    )


def create(
    ctx: EngineContext, state: State, registry: ResourceTypeRegistry, change: ResourceChange
) -> None:
    _create_and_track(ctx, state, registry, _rebuild(registry, change))


def update(
    ctx: EngineContext, state: State, registry: ResourceTypeRegistry, change: ResourceChange
) -> None:
    desired = _rebuild(registry, change)
    inst = state.resources[change.address]
    inst.set_attributes(registry[change.resource_type].handler.update(ctx, desired, inst))
    inst.dependencies = list(desired.depends_on)


def replace(
    ctx: EngineContext, state: State, registry: ResourceTypeRegistry, change: ResourceChange
) -> None:
    """Delete, then create. State drops the old object as soon as it is gone."""
    desired = _rebuild(registry, change)
    logger.info("Replacing %s (%s changed)", change.address, ", ".join(change.replace_fields or ()))
    delete(ctx, state, registry, change)
    _create_and_track(ctx, state, registry, desired)


def delete(
    ctx: EngineContext, state: State, registry: ResourceTypeRegistry, change: ResourceChange
) -> None:
    registry[change.resource_type].handler.delete(ctx, state.resources[change.address])
    state.forget(change.address)


STEPS: dict[Action, Step] = {
    Action.CREATE: create,
    Action.UPDATE: update,
    Action.REPLACE: replace,
    Action.DELETE: delete,
}
