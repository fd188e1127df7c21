"""The interface the engine drives for each resource type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from dataarts_provisioner.engine.errors import ImportIdError
from dataarts_provisioner.resources.base import Resource

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dataarts_provisioner.core import DataArtsProvider
    from dataarts_provisioner.core.state import ResourceInstance

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    provider: DataArtsProvider
    project_id: str


def parse_composite_id(import_id: str, fields: Sequence[str]) -> dict[str, str]:
    """Split a ``/``-separated import id into named, non-empty parts.

    ``parse_composite_id("ws/abc", ["workspace_id", "id"])`` returns
    ``{"workspace_id": "ws", "id": "abc"}``.
    """
    parts = import_id.split("/")
    if len(parts) != len(fields) or not all(parts):
        raise ImportIdError(import_id, "/".join(f"<{f}>" for f in fields))
    return dict(zip(fields, parts, strict=True))


class ResourceHandler(Generic[R]):
    """Turns one resource type into API calls.

    Handlers keep nothing between calls. ``read``, ``create`` and ``update``
    return the attributes to store in state; ``read`` returns None once the
    object is gone.
    """

    def validate(self, ctx: EngineContext, desired: R) -> list[str]:
        """Problems the API would reject, checked at plan time."""
        _ = ctx, desired
        return []

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        raise NotImplementedError

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        raise NotImplementedError

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        raise NotImplementedError

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        raise NotImplementedError

    def import_state(self, ctx: EngineContext, import_id: str) -> dict[str, Any]:
        """Seed attributes for the first ``read`` of an imported object."""
        _ = ctx
        return {"id": import_id}
