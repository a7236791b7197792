"""Resource kinds and the fixed dependency graph.

Creation and teardown order are both derived from :data:`DEPENDENCIES`;
neither is maintained as a separate list.

Derived creation order::

    key-pair, network, gateway, public-subnet, private-subnet,
    route-table, security-group, instance, bucket

Teardown is the exact reverse.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from autolab.state.models import StateKey


class ResourceKind(str, Enum):
    """Provisionable resource categories, in declaration order."""

    KEY_PAIR = "key-pair"
    NETWORK = "network"
    GATEWAY = "gateway"
    PUBLIC_SUBNET = "public-subnet"
    PRIVATE_SUBNET = "private-subnet"
    ROUTE_TABLE = "route-table"
    SECURITY_GROUP = "security-group"
    INSTANCE = "instance"
    BUCKET = "bucket"

    @classmethod
    def from_name(cls, name: str) -> "ResourceKind":
        """Accept ``route-table``, ``route_table`` or ``ROUTE_TABLE``.

        Raises :class:`ValueError` for unknown names.
        """
        norm = name.strip().lower().replace("_", "-")
        for kind in cls:
            if kind.value == norm:
                return kind
        valid = ", ".join(k.value for k in cls)
        raise ValueError(f"Unknown resource kind '{name}' (valid: {valid})")


@dataclass(frozen=True)
class ResourceSpec:
    """Static description of one resource kind."""

    kind: ResourceKind
    title: str
    description: str
    primary_key: StateKey
    secondary_keys: Tuple[StateKey, ...] = ()

    @property
    def keys(self) -> Tuple[StateKey, ...]:
        return (self.primary_key,) + self.secondary_keys


K = ResourceKind

DEPENDENCIES: Mapping[ResourceKind, FrozenSet[ResourceKind]] = {
    K.KEY_PAIR: frozenset(),
    K.NETWORK: frozenset(),
    K.GATEWAY: frozenset({K.NETWORK}),
    K.PUBLIC_SUBNET: frozenset({K.NETWORK}),
    K.PRIVATE_SUBNET: frozenset({K.NETWORK}),
    K.ROUTE_TABLE: frozenset({K.NETWORK, K.GATEWAY, K.PUBLIC_SUBNET}),
    K.SECURITY_GROUP: frozenset({K.NETWORK}),
    K.INSTANCE: frozenset({K.KEY_PAIR, K.SECURITY_GROUP, K.PUBLIC_SUBNET}),
    K.BUCKET: frozenset(),
}

RESOURCE_SPECS: Mapping[ResourceKind, ResourceSpec] = {
    K.KEY_PAIR: ResourceSpec(
        K.KEY_PAIR, "Key Pair", "Create EC2 key pair",
        StateKey.KEY_NAME,
    ),
    K.NETWORK: ResourceSpec(
        K.NETWORK, "VPC", "Create VPC with DNS support",
        StateKey.VPC_ID,
    ),
    K.GATEWAY: ResourceSpec(
        K.GATEWAY, "Internet Gateway", "Create and attach internet gateway",
        StateKey.IGW_ID,
    ),
    K.PUBLIC_SUBNET: ResourceSpec(
        K.PUBLIC_SUBNET, "Public Subnet", "Create public subnet",
        StateKey.PUBLIC_SUBNET_ID, (StateKey.PUBLIC_SUBNET_AZ,),
    ),
    K.PRIVATE_SUBNET: ResourceSpec(
        K.PRIVATE_SUBNET, "Private Subnet", "Create private subnet",
        StateKey.PRIVATE_SUBNET_ID, (StateKey.PRIVATE_SUBNET_AZ,),
    ),
    K.ROUTE_TABLE: ResourceSpec(
        K.ROUTE_TABLE, "Route Table",
        "Create public route table and associate it with the public subnet",
        StateKey.PUBLIC_RT_ID, (StateKey.PUBLIC_RT_ASSOC_ID,),
    ),
    K.SECURITY_GROUP: ResourceSpec(
        K.SECURITY_GROUP, "Security Group",
        "Create security group with ingress rules",
        StateKey.SECURITY_GROUP_ID,
    ),
    K.INSTANCE: ResourceSpec(
        K.INSTANCE, "EC2 Instance", "Create EC2 instance with web server",
        StateKey.INSTANCE_ID,
        (
            StateKey.AMI_ID,
            StateKey.PUBLIC_IP,
            StateKey.PRIVATE_IP,
            StateKey.INSTANCE_AZ,
        ),
    ),
    K.BUCKET: ResourceSpec(
        K.BUCKET, "S3 Bucket", "Create S3 bucket and upload files",
        StateKey.S3_BUCKET_NAME, (StateKey.WELCOME_FILE_URL,),
    ),
}

del K


def topological_order(
    graph: Optional[Mapping[ResourceKind, Iterable[ResourceKind]]] = None,
) -> List[ResourceKind]:
    """Return kinds so that every dependency precedes its dependents.

    Depth-first over :class:`ResourceKind` declaration order, so the result
    is deterministic.  Raises :class:`ValueError` on a cycle.
    """
    deps = DEPENDENCIES if graph is None else graph
    order: List[ResourceKind] = []
    state: Dict[ResourceKind, int] = {}  # 1 = visiting, 2 = done

    def visit(kind: ResourceKind, path: List[ResourceKind]) -> None:
        mark = state.get(kind)
        if mark == 2:
            return
        if mark == 1:
            cycle = " -> ".join(k.value for k in path + [kind])
            raise ValueError(f"Dependency cycle: {cycle}")
        state[kind] = 1
        for dep in sorted(deps.get(kind, ()), key=_declaration_index):
            visit(dep, path + [kind])
        state[kind] = 2
        order.append(kind)

    for kind in sorted(deps, key=_declaration_index):
        visit(kind, [])
    return order


def creation_order() -> List[ResourceKind]:
    return topological_order()


def teardown_order() -> List[ResourceKind]:
    return list(reversed(topological_order()))


def dependency_keys(kind: ResourceKind) -> List[StateKey]:
    """Primary state keys of the kinds *kind* depends on."""
    return [
        RESOURCE_SPECS[dep].primary_key
        for dep in sorted(DEPENDENCIES[kind], key=_declaration_index)
    ]


def _declaration_index(kind: ResourceKind) -> int:
    return list(ResourceKind).index(kind)
