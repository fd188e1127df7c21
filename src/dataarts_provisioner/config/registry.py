"""Default resource type registry factory."""

from __future__ import annotations

from dataarts_provisioner.engine.registry import ResourceTypeRegistry
from dataarts_provisioner.engine.security_rule_handler import SecurityRuleHandler
from dataarts_provisioner.resources.security_rule import SecurityRuleResource


def default_registry() -> ResourceTypeRegistry:
    """Create a fresh registry with all built-in resource types and handlers."""
    registry = ResourceTypeRegistry()
    registry.register(SecurityRuleResource, SecurityRuleHandler())
    return registry
