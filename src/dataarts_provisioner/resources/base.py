"""Common shape of a declared resource."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Fields that only exist on this side; they never reach the server or state attributes.
LOCAL_FIELDS = frozenset({"label", "depends_on", "address"})


class Resource(BaseModel):
    """A declared object, addressed as ``<resource_type>.<label>``.

    ``label`` names the resource in configuration and state only. Server-side
    names are ordinary attributes on the subclass, so renaming a label never
    touches the server object and any server name can be managed.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]

    label: str = Field(pattern=r"^[A-Za-z_][\w-]*$", max_length=128)
    depends_on: list[str] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def address(self) -> str:
        return f"{self.resource_type}.{self.label}"

    def declared_attributes(self) -> dict[str, Any]:
        """Attributes to compare with state. ``None`` means "leave it to the server"."""
        return self.model_dump(exclude_none=True, exclude=set(LOCAL_FIELDS))
