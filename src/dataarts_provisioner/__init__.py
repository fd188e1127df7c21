"""Terraform-style provisioning for DataArts Studio security resources."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("dataarts-provisioner")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
