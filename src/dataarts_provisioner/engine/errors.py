"""Errors raised while planning, applying or importing."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dataarts_provisioner.engine.types import ResourceChange


class EngineError(Exception):
    pass


class AddressError(EngineError):
    """An error about one resource address, kept on ``.address``."""

    template = "{address}"

    def __init__(self, address: str) -> None:
        super().__init__(self.template.format(address=address))
        self.address = address


class DuplicateAddressError(AddressError):
    template = "Duplicate resource address: {address}"


class ResourceAlreadyManagedError(AddressError):
    template = "{address} is already in state; remove it from state before importing again"


class UnknownResourceTypeError(EngineError):
    def __init__(self, resource_type: str) -> None:
        super().__init__(f"Unknown resource type: {resource_type}")
        self.resource_type = resource_type


class DependencyCycleError(EngineError):
    def __init__(self, addresses: Sequence[str]) -> None:
        self.addresses = list(addresses)
        super().__init__("Dependency cycle between " + (", ".join(self.addresses) or "resources"))


class ValidationError(EngineError):
    """Every problem found while checking the declared resources."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(["Validation failed:", *(f"  - {e}" for e in self.errors)]))


class StateProjectMismatchError(EngineError):
    def __init__(self, expected: str, got: str) -> None:
        super().__init__(f"State belongs to project {got}, not {expected}")
        self.expected = expected
        self.got = got


class StalePlanError(EngineError):
    """The state file moved on between plan and apply."""


class StateLockError(EngineError):
    pass


class ApplyError(EngineError):
    """A step failed part-way through an apply.

    ``result.applied`` lists the changes that finished before *address*
    failed; the underlying exception is the ``__cause__``.
    """

    def __init__(self, *, applied: Sequence[ResourceChange], address: str, message: str) -> None:
        from dataarts_provisioner.engine.types import ApplyResult

        super().__init__(f"Apply failed on {address}: {message}")
        self.result = ApplyResult(applied=list(applied))
        self.address = address


class ApplyCanceled(EngineError):
    pass


class ImportIdError(EngineError):
    def __init__(self, import_id: str, expected: str) -> None:
        super().__init__(f"Invalid import id '{import_id}': expected '{expected}'")
        self.import_id = import_id
        self.expected = expected
