"""VPC, internet gateway, subnet and route-table calls.

Every function issues the boto3 calls for exactly one provider operation
and raises :class:`~autolab.errors.ProviderCallFailure` on error.  Sequencing,
state persistence and idempotency live in :mod:`autolab.workflow.steps`.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from autolab.aws.calls import error_code, provider_call
from autolab.config.models import LabConfig, validate_cidr
from autolab.errors import ProviderCallFailure

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_CIDR = "0.0.0.0/0"

#: Error codes that mean "already gone" during teardown.
NOT_FOUND_CODES = frozenset({
    "InvalidVpcID.NotFound",
    "InvalidInternetGatewayID.NotFound",
    "InvalidSubnetID.NotFound",
    "InvalidRouteTableID.NotFound",
    "InvalidAssociationID.NotFound",
    "Gateway.NotAttached",
})


# ---------------------------------------------------------------------------
# Availability zones
# ---------------------------------------------------------------------------


def list_availability_zones(ec2: Any) -> List[str]:
    """Return zone names available in the client's region, in AWS order."""
    resp = provider_call(
        ec2,
        "describe_availability_zones",
        Filters=[{"Name": "state", "Values": ["available"]}],
    )
    return [z["ZoneName"] for z in resp.get("AvailabilityZones", [])]


def pick_availability_zone(zones: List[str], index: int) -> str:
    """Return ``zones[index]``, falling back to the first zone.

    Raises :class:`ProviderCallFailure` if *zones* is empty.
    """
    if not zones:
        raise ProviderCallFailure(
            "ec2.describe_availability_zones", "no availability zones returned"
        )
    if index < len(zones):
        return zones[index]
    logger.warning("Availability zone #%d not available, using first AZ", index + 1)
    return zones[0]


# ---------------------------------------------------------------------------
# VPC
# ---------------------------------------------------------------------------


def create_vpc(ec2: Any, cfg: LabConfig) -> str:
    """Create the lab VPC and return its ID."""
    validate_cidr(cfg.vpc_cidr)
    logger.info("Creating VPC with CIDR block: %s", cfg.vpc_cidr)
    resp = provider_call(
        ec2,
        "create_vpc",
        CidrBlock=cfg.vpc_cidr,
        TagSpecifications=cfg.tag_specifications("vpc", cfg.vpc_name),
    )
    return resp["Vpc"]["VpcId"]


def enable_vpc_dns(ec2: Any, vpc_id: str) -> None:
    """Turn on DNS hostnames and DNS support (one attribute per call)."""
    provider_call(
        ec2, "modify_vpc_attribute",
        VpcId=vpc_id, EnableDnsHostnames={"Value": True},
    )
    provider_call(
        ec2, "modify_vpc_attribute",
        VpcId=vpc_id, EnableDnsSupport={"Value": True},
    )
    logger.info("DNS hostnames and DNS support enabled for VPC")


def delete_vpc(ec2: Any, vpc_id: str) -> None:
    provider_call(ec2, "delete_vpc", VpcId=vpc_id)


# ---------------------------------------------------------------------------
# Internet gateway
# ---------------------------------------------------------------------------


def create_internet_gateway(ec2: Any, cfg: LabConfig) -> str:
    resp = provider_call(
        ec2,
        "create_internet_gateway",
        TagSpecifications=cfg.tag_specifications(
            "internet-gateway", f"{cfg.vpc_name}-IGW"
        ),
    )
    return resp["InternetGateway"]["InternetGatewayId"]


def attach_internet_gateway(ec2: Any, igw_id: str, vpc_id: str) -> None:
    provider_call(
        ec2, "attach_internet_gateway",
        InternetGatewayId=igw_id, VpcId=vpc_id,
    )
    logger.info("Internet Gateway attached to VPC successfully")


def detach_internet_gateway(ec2: Any, igw_id: str, vpc_id: str) -> None:
    provider_call(
        ec2, "detach_internet_gateway",
        InternetGatewayId=igw_id, VpcId=vpc_id,
    )


def delete_internet_gateway(ec2: Any, igw_id: str) -> None:
    provider_call(ec2, "delete_internet_gateway", InternetGatewayId=igw_id)


# ---------------------------------------------------------------------------
# Subnets
# ---------------------------------------------------------------------------


def create_subnet(
    ec2: Any,
    cfg: LabConfig,
    *,
    vpc_id: str,
    cidr: str,
    availability_zone: str,
    name: str,
) -> str:
    validate_cidr(cidr)
    logger.info("Creating subnet %s with CIDR %s in %s", name, cidr, availability_zone)
    resp = provider_call(
        ec2,
        "create_subnet",
        VpcId=vpc_id,
        CidrBlock=cidr,
        AvailabilityZone=availability_zone,
        TagSpecifications=cfg.tag_specifications("subnet", name),
    )
    return resp["Subnet"]["SubnetId"]


def enable_public_ip_on_launch(ec2: Any, subnet_id: str) -> None:
    provider_call(
        ec2, "modify_subnet_attribute",
        SubnetId=subnet_id, MapPublicIpOnLaunch={"Value": True},
    )
    logger.info("Auto-assign public IP enabled for %s", subnet_id)


def delete_subnet(ec2: Any, subnet_id: str) -> None:
    provider_call(ec2, "delete_subnet", SubnetId=subnet_id)


# ---------------------------------------------------------------------------
# Route table
# ---------------------------------------------------------------------------


def create_route_table(ec2: Any, cfg: LabConfig, vpc_id: str) -> str:
    resp = provider_call(
        ec2,
        "create_route_table",
        VpcId=vpc_id,
        TagSpecifications=cfg.tag_specifications(
            "route-table", f"{cfg.vpc_name}-Public-RT"
        ),
    )
    return resp["RouteTable"]["RouteTableId"]


def add_default_route(ec2: Any, rt_id: str, igw_id: str) -> None:
    provider_call(
        ec2, "create_route",
        RouteTableId=rt_id,
        DestinationCidrBlock=DEFAULT_ROUTE_CIDR,
        GatewayId=igw_id,
    )
    logger.info("Route to Internet Gateway added successfully")


def associate_route_table(ec2: Any, rt_id: str, subnet_id: str) -> str:
    """Associate *rt_id* with *subnet_id*; return the association ID."""
    resp = provider_call(
        ec2, "associate_route_table",
        RouteTableId=rt_id, SubnetId=subnet_id,
    )
    return resp["AssociationId"]


def disassociate_route_table(ec2: Any, association_id: str) -> None:
    provider_call(ec2, "disassociate_route_table", AssociationId=association_id)


def delete_route_table(ec2: Any, rt_id: str) -> None:
    provider_call(ec2, "delete_route_table", RouteTableId=rt_id)


def is_not_found(exc: BaseException) -> bool:
    """True if *exc* says the target no longer exists."""
    code: Optional[str] = None
    if isinstance(exc, ProviderCallFailure):
        code = exc.code
    else:
        code = error_code(exc)
    return code in NOT_FOUND_CODES
