"""Utility modules for the Terraform tag compliance checker."""

from .resource_type_config import ResourceTypeConfig, get_resource_type_config
from .remote_fetch import RemoteFetchError

__all__ = [
    "ResourceTypeConfig",
    "get_resource_type_config",
    "RemoteFetchError",
]
