"""Plan and apply engine for DataArts resources."""

from dataarts_provisioner.engine.engine import DataArtsEngine
from dataarts_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    EngineError,
    ImportIdError,
    ResourceAlreadyManagedError,
    StalePlanError,
    StateLockError,
    StateProjectMismatchError,
    UnknownResourceTypeError,
    ValidationError,
)
from dataarts_provisioner.engine.handlers import EngineContext, ResourceHandler
from dataarts_provisioner.engine.registry import Registration, ResourceTypeRegistry
from dataarts_provisioner.engine.security_rule_handler import SecurityRuleHandler
from dataarts_provisioner.engine.types import (
    Action,
    ApplyResult,
    Plan,
    PlanMetadata,
    ResourceChange,
)

__all__ = [
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "DataArtsEngine",
    "DependencyCycleError",
    "DuplicateAddressError",
    "EngineContext",
    "EngineError",
    "ImportIdError",
    "Plan",
    "PlanMetadata",
    "ResourceAlreadyManagedError",
    "ResourceChange",
    "ResourceHandler",
    "Registration",
    "ResourceTypeRegistry",
    "SecurityRuleHandler",
    "StalePlanError",
    "StateLockError",
    "StateProjectMismatchError",
    "UnknownResourceTypeError",
    "ValidationError",
]
