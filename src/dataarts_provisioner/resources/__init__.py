"""DataArts resource definitions."""

from dataarts_provisioner.resources.base import Resource
from dataarts_provisioner.resources.security_rule import (
    RuleRequestBody,
    RuleResponse,
    SecurityRuleResource,
)

__all__ = [
    "Resource",
    "RuleRequestBody",
    "RuleResponse",
    "SecurityRuleResource",
]
