"""Plan/apply engine."""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Literal

from dataarts_provisioner import __version__
from dataarts_provisioner.core.state import ResourceInstance, State
from dataarts_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    ResourceAlreadyManagedError,
    StalePlanError,
    StateProjectMismatchError,
    UnknownResourceTypeError,
    ValidationError,
)
from dataarts_provisioner.engine.graph import dependency_order
from dataarts_provisioner.engine.handlers import EngineContext
from dataarts_provisioner.engine.lock import StateLock
from dataarts_provisioner.engine.operations import STEPS
from dataarts_provisioner.engine.types import (
    Action,
    ApplyResult,
    Plan,
    PlanMetadata,
    ResourceChange,
)
from dataarts_provisioner.resources.markers import collect_force_new_fields

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from dataarts_provisioner.core import DataArtsProvider
    from dataarts_provisioner.engine.handlers import ResourceHandler
    from dataarts_provisioner.engine.registry import ResourceTypeRegistry
    from dataarts_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]


def _config_digest(resources: Sequence[Resource]) -> str:
    entries = sorted(
        [r.address, r.declared_attributes(), sorted(r.depends_on)] for r in resources
    )
    encoded = json.dumps(entries, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _diff(planned: dict[str, Any], prior: dict[str, Any]) -> dict[str, Any]:
    return {k: {"from": prior.get(k), "to": v} for k, v in planned.items() if prior.get(k) != v}


class DataArtsEngine:
    """Plans and applies declared resources for one DataArts project.

    Anything that may write the state file holds ``StateLock`` while it runs.
    """

    def __init__(
        self,
        *,
        provider: DataArtsProvider,
        project_id: str,
        state_path: Path,
        registry: ResourceTypeRegistry,
    ) -> None:
        self._provider = provider
        self._project_id = project_id
        self._state_path = state_path
        self._registry = registry

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _ctx(self) -> EngineContext:
        return EngineContext(provider=self._provider, project_id=self._project_id)

    def _handler(self, resource_type: str) -> ResourceHandler[Any]:
        return self._registry[resource_type].handler

    def _open_state(self) -> State:
        state = State.load_or_create(self._state_path, project_id=self._project_id)
        if state.project_id != self._project_id:
            raise StateProjectMismatchError(self._project_id, state.project_id)
        return state

    def _sync(self, state: State) -> bool:
        """Re-read every tracked object and forget the ones the server lost.

        Returns True if the state changed.
        """
        ctx = self._ctx()
        changed = False
        for address, inst in list(state.resources.items()):
            attrs = self._handler(inst.resource_type).read(ctx, inst)
            if attrs is None:
                logger.info("%s no longer exists on the server, forgetting it", address)
                state.forget(address)
                changed = True
            elif inst.set_attributes(attrs):
                logger.debug("%s changed on the server", address)
                changed = True
        return changed

    # -- refresh ---------------------------------------------------------------

    def refresh(self, *, persist: bool = False) -> tuple[State, State]:
        """Sync state with the server. Returns ``(before, after)``."""
        with StateLock(self._state_path):
            state = self._open_state()
            before = state.model_copy(deep=True)
            if self._sync(state) and persist:
                state.commit(self._state_path)
            return before, state

    # -- plan ------------------------------------------------------------------

    def _index(self, resources: Sequence[Resource]) -> dict[str, Resource]:
        desired: dict[str, Resource] = {}
        for r in resources:
            if r.address in desired:
                raise DuplicateAddressError(r.address)
            if r.resource_type not in self._registry:
                raise UnknownResourceTypeError(r.resource_type)
            desired[r.address] = r
        return desired

    def _validate(self, desired: dict[str, Resource], state: State) -> None:
        ctx = self._ctx()
        errors = [
            msg for r in desired.values() for msg in self._handler(r.resource_type).validate(ctx, r)
        ]
        known = desired.keys() | state.resources.keys()
        errors += [
            f"Resource '{r.address}' depends on unknown address '{dep}'"
            for r in desired.values()
            for dep in r.depends_on
            if dep not in known
        ]
        if errors:
            raise ValidationError(errors)

    @staticmethod
    def _compare(resource: Resource, prior: ResourceInstance | None) -> ResourceChange:
        change = ResourceChange(
            address=resource.address,
            resource_type=resource.resource_type,
            action=Action.CREATE,
            desired=resource.model_dump(exclude_none=True, exclude={"address"}),
            planned=resource.declared_attributes(),
        )
        if prior is not None:
            assert change.planned is not None
            diff = _diff(change.planned, prior.attributes)
            forced = sorted(collect_force_new_fields(resource) & diff.keys())
            change.prior = dict(prior.attributes)
            change.diff = diff or None
            change.replace_fields = forced or None
            change.action = Action.REPLACE if forced else Action.UPDATE if diff else Action.NOOP
        logger.debug("%s: %s", resource.address, change.action.value)
        return change

    @staticmethod
    def _deletions(state: State, addresses: set[str]) -> list[ResourceChange]:
        """Delete changes, dependents before their dependencies."""
        order = dependency_order(
            addresses, {a: state.resources[a].dependencies for a in addresses}
        )
        return [
            ResourceChange(
                address=a,
                resource_type=state.resources[a].resource_type,
                action=Action.DELETE,
                prior=dict(state.resources[a].attributes),
            )
            for a in reversed(order)
        ]

    def plan(
        self, resources: Sequence[Resource], *, destroy: bool = False, refresh: bool = True
    ) -> Plan:
        logger.info(
            "Planning %d resources (destroy=%s refresh=%s)", len(resources), destroy, refresh
        )
        lock = StateLock(self._state_path) if refresh else contextlib.nullcontext()
        with lock:
            state = self._open_state()
            if refresh and self._sync(state):
                state.commit(self._state_path)

            desired = self._index(resources)
            tracked = set(state.resources)
            if destroy:
                changes = self._deletions(state, tracked)
            else:
                self._validate(desired, state)
                order = dependency_order(desired, {a: r.depends_on for a, r in desired.items()})
                changes = [self._compare(desired[a], state.resources.get(a)) for a in order]
                changes += self._deletions(state, tracked - desired.keys())

            metadata = PlanMetadata(
                project_id=self._project_id,
                destroy=destroy,
                refresh=refresh,
                state_lineage=state.lineage,
                state_serial=state.serial,
                state_digest=state.digest(),
                config_digest=_config_digest([] if destroy else resources),
                engine_version=__version__,
            )
        return Plan(metadata=metadata, changes=changes)

    # -- apply -----------------------------------------------------------------

    def _state_for(self, plan: Plan) -> State:
        if plan.metadata.project_id != self._project_id:
            raise StateProjectMismatchError(self._project_id, plan.metadata.project_id)
        if not self._state_path.exists():
            # A plan made before any state existed.
            return State(
                project_id=self._project_id,
                lineage=plan.metadata.state_lineage,
                serial=plan.metadata.state_serial,
            )
        state = self._open_state()
        for attr, current, planned in (
            ("lineage", state.lineage, plan.metadata.state_lineage),
            ("serial", state.serial, plan.metadata.state_serial),
            ("digest", state.digest(), plan.metadata.state_digest),
        ):
            if current != planned:
                raise StalePlanError(f"State {attr} changed since the plan was made; re-run plan")
        return state

    @staticmethod
    def _apply_order(plan: Plan, state: State) -> list[ResourceChange]:
        """Creates, updates and replaces in dependency order, then deletes in reverse."""
        ups = {c.address: c for c in plan.actionable if c.action is not Action.DELETE}
        downs = {c.address: c for c in plan.actionable if c.action is Action.DELETE}
        up_order = dependency_order(
            ups, {a: (c.desired or {}).get("depends_on", []) for a, c in ups.items()}
        )
        down_order = dependency_order(
            downs, {a: state.resources[a].dependencies for a in downs}
        )
        return [ups[a] for a in up_order] + [downs[a] for a in reversed(down_order)]

    def _keep_partial(self, state: State, digest_before: str) -> None:
        """Write what a failed step already did (a replace may have deleted)."""
        if state.digest() != digest_before:
            state.commit(self._state_path)

    def apply(self, plan: Plan, *, progress: ProgressCallback | None = None) -> ApplyResult:
        with StateLock(self._state_path):
            state = self._state_for(plan)
            ctx = self._ctx()
            steps = self._apply_order(plan, state)
            logger.info("Applying %d changes", len(steps))

            applied: list[ResourceChange] = []
            for change in steps:
                if progress:
                    progress(change, "start")
                before = state.digest()
                try:
                    STEPS[change.action](ctx, state, self._registry, change)
                except KeyboardInterrupt as exc:
                    self._keep_partial(state, before)
                    raise ApplyCanceled("Apply canceled") from exc
                except Exception as exc:
                    self._keep_partial(state, before)
                    raise ApplyError(
                        applied=applied, address=change.address, message=str(exc)
                    ) from exc
                state.commit(self._state_path)
                applied.append(change)
                if progress:
                    progress(change, "done")
            return ApplyResult(applied=applied)

    # -- import ----------------------------------------------------------------

    def import_resource(self, address: str, import_id: str) -> ResourceInstance:
        """Start tracking an existing server object under *address*."""
        resource_type, label = self._registry.split_address(address)
        handler = self._handler(resource_type)
        ctx = self._ctx()

        with StateLock(self._state_path):
            state = self._open_state()
            if address in state.resources:
                raise ResourceAlreadyManagedError(address)

            seed = ResourceInstance(
                address=address,
                resource_type=resource_type,
                label=label,
                attributes=handler.import_state(ctx, import_id),
            )
            attrs = handler.read(ctx, seed)
            if attrs is None:
                raise ValueError(f"Cannot import {address}: object '{import_id}' does not exist")

            inst = state.track(
                address=address, resource_type=resource_type, label=label, attributes=attrs
            )
            state.commit(self._state_path)
            logger.info("Imported %s from %s", address, import_id)
            return inst
