"""``Annotated`` markers on resource fields."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pydantic import BaseModel


@dataclass(frozen=True, slots=True)
class ForceNew:
    """The API cannot change this field in place; a new value replaces the object."""


def collect_force_new_fields(model: BaseModel | type[BaseModel]) -> frozenset[str]:
    """Names of the fields annotated with ``ForceNew``."""
    cls = model if isinstance(model, type) else type(model)
    return frozenset(
        name
        for name, field in cls.model_fields.items()
        if any(isinstance(m, ForceNew) for m in field.metadata)
    )
