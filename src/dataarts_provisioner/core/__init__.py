"""Core infrastructure components for DataArts Provisioner."""

from dataarts_provisioner.core.client import ServiceClient
from dataarts_provisioner.core.provider import DataArtsProvider, TokenAuth
from dataarts_provisioner.core.state import ResourceInstance, State

__all__ = ["DataArtsProvider", "ResourceInstance", "ServiceClient", "State", "TokenAuth"]
