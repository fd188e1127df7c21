"""Library entry points: load a config, then plan, apply, refresh or import."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import SecretStr

from dataarts_provisioner.config.loader import ConfigError, load_config
from dataarts_provisioner.config.registry import default_registry
from dataarts_provisioner.config.schema import Config, ProviderConfig
from dataarts_provisioner.core.provider import DEFAULT_ENDPOINT, DataArtsProvider, TokenAuth
from dataarts_provisioner.core.state import State
from dataarts_provisioner.engine.engine import DataArtsEngine, ProgressCallback
from dataarts_provisioner.engine.lock import StateLock
from dataarts_provisioner.engine.types import Action, ResourceChange

if TYPE_CHECKING:
    from dataarts_provisioner.core.state import ResourceInstance
    from dataarts_provisioner.engine.types import ApplyResult, Plan

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "drift",
    "drift_changes",
    "engine_for",
    "import_resource",
    "load",
    "load_config",
    "plan",
    "plan_and_apply",
    "refresh",
    "save_state",
]

load = load_config

_REQUIRED = (
    ("region", "DATAARTS_REGION"),
    ("project_id", "DATAARTS_PROJECT_ID"),
    ("token", "DATAARTS_TOKEN"),
)


def engine_for(config: Config) -> DataArtsEngine:
    """Wire provider, registry and state file for *config*."""
    p = config.provider
    missing = [f"provider.{field} (or {env})" for field, env in _REQUIRED if not getattr(p, field)]
    if missing:
        raise ConfigError(f"Missing required setting(s): {', '.join(missing)}")
    assert p.region is not None and p.project_id is not None and p.token is not None

    provider = DataArtsProvider(
        region=p.region,
        project_id=p.project_id,
        projects=p.projects,
        endpoint=p.endpoint or DEFAULT_ENDPOINT,
        auth=TokenAuth(token=SecretStr(p.token)),
        timeout=p.timeout,
    )
    return DataArtsEngine(
        provider=provider,
        project_id=p.project_id,
        state_path=config.state_path,
        registry=default_registry(),
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    return engine_for(config).plan(config.resources, destroy=destroy, refresh=refresh)


def apply(
    plan_obj: Plan, config: Config, *, progress: ProgressCallback | None = None
) -> ApplyResult:
    return engine_for(config).apply(plan_obj, progress=progress)


def plan_and_apply(config: Config, *, destroy: bool = False, refresh: bool = True) -> ApplyResult:
    return apply(plan(config, destroy=destroy, refresh=refresh), config)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Re-read every tracked rule without writing the state file.

    Returns the drift and the refreshed state; pass the state to
    :func:`save_state` to keep it.
    """
    before, after = engine_for(config).refresh()
    return drift_changes(before, after), after


def save_state(config: Config, state: State) -> None:
    with StateLock(config.state_path):
        state.commit(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    return refresh(config)[0]


def import_resource(config: Config, address: str, import_id: str) -> ResourceInstance:
    """Track the existing rule *import_id* (``<workspace_id>/<rule_id>``) at *address*."""
    return engine_for(config).import_resource(address, import_id)


def drift_changes(before: State, after: State) -> list[ResourceChange]:
    """UPDATE for every rule whose attributes moved, DELETE for every rule that is gone."""
    changes: list[ResourceChange] = []
    for address, old in sorted(before.resources.items()):
        new = after.resources.get(address)
        if new is None:
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=old.resource_type,
                    action=Action.DELETE,
                    prior=dict(old.attributes),
                )
            )
            continue
        keys = sorted(old.attributes.keys() | new.attributes.keys())
        diff = {
            k: {"from": old.attributes.get(k), "to": new.attributes.get(k)}
            for k in keys
            if old.attributes.get(k) != new.attributes.get(k)
        }
        if diff:
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=new.resource_type,
                    action=Action.UPDATE,
                    prior=dict(old.attributes),
                    planned=dict(new.attributes),
                    diff=diff,
                )
            )
    return changes
