"""Resource kinds and dependency ordering."""

from autolab.resources.graph import (
    DEPENDENCIES,
    RESOURCE_SPECS,
    ResourceKind,
    ResourceSpec,
    creation_order,
    dependency_keys,
    teardown_order,
    topological_order,
)

__all__ = [
    "DEPENDENCIES",
    "RESOURCE_SPECS",
    "ResourceKind",
    "ResourceSpec",
    "creation_order",
    "dependency_keys",
    "teardown_order",
    "topological_order",
]
