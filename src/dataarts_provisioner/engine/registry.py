"""Lookup of model class and handler by ``resource_type``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

from dataarts_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from dataarts_provisioner.engine.handlers import ResourceHandler
    from dataarts_provisioner.resources.base import Resource


class Registration(NamedTuple):
    model: type[Resource]
    handler: ResourceHandler[Any]


class ResourceTypeRegistry:
    def __init__(self) -> None:
        self._types: dict[str, Registration] = {}

    def register(self, model: type[Resource], handler: ResourceHandler[Any]) -> None:
        if model.resource_type in self._types:
            raise ValueError(f"Resource type already registered: {model.resource_type}")
        self._types[model.resource_type] = Registration(model, handler)

    def __getitem__(self, resource_type: str) -> Registration:
        try:
            return self._types[resource_type]
        except KeyError:
            raise UnknownResourceTypeError(resource_type) from None

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._types

    def split_address(self, address: str) -> tuple[str, str]:
        """``"<type>.<label>"`` -> ``(type, label)``, for a registered type."""
        resource_type, _, label = address.partition(".")
        if not resource_type or not label:
            raise ValueError(f"Invalid resource address '{address}': expected '<type>.<label>'")
        if resource_type not in self._types:
            raise UnknownResourceTypeError(resource_type)
        return resource_type, label
