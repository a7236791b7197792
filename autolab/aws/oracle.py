"""Resource existence oracle.

Answers "does the resource with this identifier still exist in AWS?" by
querying the provider's describe API for the given kind.  It never reads
the state file, so a stale entry cannot produce a false positive.

Dispatch is by :class:`~autolab.resources.graph.ResourceKind`; every probe
treats provider errors (``InvalidVpcID.NotFound``, ``404`` from
``head_bucket``, throttling, ...) and empty result sets as ``ABSENT``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional

from botocore.exceptions import BotoCoreError, ClientError

from autolab.aws.calls import error_message
from autolab.resources.graph import ResourceKind

logger = logging.getLogger(__name__)

#: Instance states in which an existing instance is reused.
ACCEPTED_INSTANCE_STATES: FrozenSet[str] = frozenset({"running", "stopped"})


class Presence(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"


class ExistenceOracle:
    """Per-kind existence probes backed by EC2 and S3 clients."""

    def __init__(self, ec2_client: Any, s3_client: Any) -> None:
        self.ec2 = ec2_client
        self.s3 = s3_client
        self._probes: Dict[ResourceKind, Callable[[str], bool]] = {
            ResourceKind.KEY_PAIR: self._key_pair,
            ResourceKind.NETWORK: self._vpc,
            ResourceKind.GATEWAY: self._internet_gateway,
            ResourceKind.PUBLIC_SUBNET: self._subnet,
            ResourceKind.PRIVATE_SUBNET: self._subnet,
            ResourceKind.ROUTE_TABLE: self._route_table,
            ResourceKind.SECURITY_GROUP: self._security_group,
            ResourceKind.INSTANCE: self._instance,
            ResourceKind.BUCKET: self._bucket,
        }

    # -- public API ---------------------------------------------------------

    def exists(self, kind: ResourceKind, identifier: str) -> Presence:
        """Return ``PRESENT`` if AWS still knows *identifier*."""
        if not identifier:
            return Presence.ABSENT
        try:
            found = self._probes[kind](identifier)
        except (BotoCoreError, ClientError) as exc:
            logger.debug(
                "Existence probe for %s %s failed: %s",
                kind.value, identifier, error_message(exc),
            )
            found = False
        return Presence.PRESENT if found else Presence.ABSENT

    def instance_state(self, instance_id: str) -> Optional[str]:
        """Return the live state name (``running``, ``terminated``, ...)."""
        try:
            inst = self._describe_instance(instance_id)
        except (BotoCoreError, ClientError) as exc:
            logger.debug("describe_instances %s failed: %s", instance_id, exc)
            return None
        if inst is None:
            return None
        return inst.get("State", {}).get("Name")

    def is_usable(self, kind: ResourceKind, identifier: str) -> bool:
        """``exists`` plus, for instances, a state in
        :data:`ACCEPTED_INSTANCE_STATES`."""
        if kind == ResourceKind.INSTANCE:
            return self.instance_state(identifier) in ACCEPTED_INSTANCE_STATES
        return self.exists(kind, identifier) == Presence.PRESENT

    def bucket_object_count(self, bucket: str) -> Optional[int]:
        """Count objects in *bucket*; ``None`` if it cannot be listed."""
        try:
            paginator = self.s3.get_paginator("list_objects_v2")
            return sum(
                page.get("KeyCount", len(page.get("Contents", [])))
                for page in paginator.paginate(Bucket=bucket)
            )
        except (BotoCoreError, ClientError) as exc:
            logger.debug("list_objects_v2 %s failed: %s", bucket, exc)
            return None

    # -- per-kind probes ----------------------------------------------------

    def _key_pair(self, name: str) -> bool:
        resp = self.ec2.describe_key_pairs(KeyNames=[name])
        return bool(resp.get("KeyPairs"))

    def _vpc(self, vpc_id: str) -> bool:
        resp = self.ec2.describe_vpcs(VpcIds=[vpc_id])
        return bool(resp.get("Vpcs"))

    def _internet_gateway(self, igw_id: str) -> bool:
        resp = self.ec2.describe_internet_gateways(InternetGatewayIds=[igw_id])
        return bool(resp.get("InternetGateways"))

    def _subnet(self, subnet_id: str) -> bool:
        resp = self.ec2.describe_subnets(SubnetIds=[subnet_id])
        return bool(resp.get("Subnets"))

    def _route_table(self, rt_id: str) -> bool:
        resp = self.ec2.describe_route_tables(RouteTableIds=[rt_id])
        return bool(resp.get("RouteTables"))

    def _security_group(self, sg_id: str) -> bool:
        resp = self.ec2.describe_security_groups(GroupIds=[sg_id])
        return bool(resp.get("SecurityGroups"))

    def _instance(self, instance_id: str) -> bool:
        return self._describe_instance(instance_id) is not None

    def _bucket(self, name: str) -> bool:
        self.s3.head_bucket(Bucket=name)
        return True

    def _describe_instance(self, instance_id: str) -> Optional[Dict[str, Any]]:
        resp = self.ec2.describe_instances(InstanceIds=[instance_id])
        for reservation in resp.get("Reservations", []):
            for inst in reservation.get("Instances", []):
                return inst
        return None
