"""Key pair, security group, AMI lookup and instance calls.

Resources are created in this order by the workflow:

1. **Key pair**: ``create_key_pair``; key material written to
   ``<key_dir>/<key_name>.pem`` with mode ``0400``.
2. **Security group**: ``create_security_group`` then one
   ``authorize_security_group_ingress`` per configured rule.
3. **AMI**: newest ``amzn2-ami-hvm-*-x86_64-gp2`` image owned by Amazon.
4. **Instance**: ``run_instances`` with rendered user data, then a bounded
   ``instance_running`` waiter.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from autolab.aws.calls import provider_call
from autolab.config.models import IngressRule, LabConfig
from autolab.errors import ProviderCallFailure

logger = logging.getLogger(__name__)

AMI_OWNER = "amazon"


# ---------------------------------------------------------------------------
# Key pair
# ---------------------------------------------------------------------------


def create_key_pair(ec2: Any, cfg: LabConfig) -> str:
    """Create the key pair and return its private key material."""
    logger.info("Creating Key Pair: %s", cfg.key_name)
    resp = provider_call(
        ec2,
        "create_key_pair",
        KeyName=cfg.key_name,
        TagSpecifications=cfg.tag_specifications("key-pair", cfg.key_name),
    )
    return resp["KeyMaterial"]


def write_key_file(path: Path, material: str) -> Path:
    """Write *material* to *path* and restrict it to ``0400``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(material if material.endswith("\n") else material + "\n")
    os.chmod(path, 0o400)
    logger.info("Private key saved to: %s", path)
    return path


def backup_key_file(path: Path) -> Path:
    """Move a stale local key aside as ``<name>.backup.<epoch>``."""
    dest = path.with_name(f"{path.name}.backup.{int(time.time())}")
    path.rename(dest)
    logger.info("Existing key file backed up to %s", dest)
    return dest


def delete_key_pair(ec2: Any, key_name: str) -> None:
    provider_call(ec2, "delete_key_pair", KeyName=key_name)


# ---------------------------------------------------------------------------
# Security group
# ---------------------------------------------------------------------------


def create_security_group(ec2: Any, cfg: LabConfig, vpc_id: str) -> str:
    logger.info("Creating Security Group in VPC: %s", vpc_id)
    resp = provider_call(
        ec2,
        "create_security_group",
        GroupName=cfg.security_group_name,
        Description=cfg.security_group_description,
        VpcId=vpc_id,
        TagSpecifications=cfg.tag_specifications(
            "security-group", cfg.security_group_name
        ),
    )
    return resp["GroupId"]


def authorize_ingress(ec2: Any, group_id: str, rule: IngressRule) -> None:
    provider_call(
        ec2,
        "authorize_security_group_ingress",
        GroupId=group_id,
        IpPermissions=[{
            "IpProtocol": rule.protocol,
            "FromPort": rule.port,
            "ToPort": rule.port,
            "IpRanges": [{"CidrIp": rule.cidr, "Description": rule.name}],
        }],
    )
    logger.info("%s rule added (port %d from %s)", rule.name, rule.port, rule.cidr)


def delete_security_group(ec2: Any, group_id: str) -> None:
    provider_call(ec2, "delete_security_group", GroupId=group_id)


# ---------------------------------------------------------------------------
# AMI
# ---------------------------------------------------------------------------


def latest_ami(ec2: Any, name_filter: str) -> str:
    """Return the newest available image ID matching *name_filter*."""
    logger.info("Fetching latest AMI matching %s", name_filter)
    resp = provider_call(
        ec2,
        "describe_images",
        Owners=[AMI_OWNER],
        Filters=[
            {"Name": "name", "Values": [name_filter]},
            {"Name": "state", "Values": ["available"]},
        ],
    )
    images = sorted(resp.get("Images", []), key=lambda i: i.get("CreationDate", ""))
    if not images:
        raise ProviderCallFailure(
            "ec2.describe_images", f"no images match {name_filter}"
        )
    return images[-1]["ImageId"]


# ---------------------------------------------------------------------------
# Instance
# ---------------------------------------------------------------------------


@dataclass
class InstanceDetails:
    """Addressing and state of a described instance."""

    instance_id: str
    state: str = ""
    public_ip: str = ""
    private_ip: str = ""
    availability_zone: str = ""


def run_instance(
    ec2: Any,
    cfg: LabConfig,
    *,
    ami_id: str,
    subnet_id: str,
    security_group_id: str,
    key_name: str,
    user_data: str,
) -> str:
    """Launch one instance and return its ID."""
    logger.info(
        "Creating EC2 instance: type=%s ami=%s sg=%s subnet=%s key=%s",
        cfg.instance_type, ami_id, security_group_id, subnet_id, key_name,
    )
    resp = provider_call(
        ec2,
        "run_instances",
        ImageId=ami_id,
        InstanceType=cfg.instance_type,
        KeyName=key_name,
        SecurityGroupIds=[security_group_id],
        SubnetId=subnet_id,
        UserData=user_data,
        MinCount=1,
        MaxCount=1,
        TagSpecifications=cfg.tag_specifications("instance", cfg.instance_name),
    )
    return resp["Instances"][0]["InstanceId"]


def wait_for_instance(
    ec2: Any,
    instance_id: str,
    waiter_name: str,
    *,
    delay: int = 15,
    max_attempts: int = 40,
) -> bool:
    """Block on a boto3 EC2 waiter; return ``False`` on timeout or error."""
    try:
        ec2.get_waiter(waiter_name).wait(
            InstanceIds=[instance_id],
            WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts},
        )
        return True
    except (WaiterError, BotoCoreError, ClientError) as exc:
        logger.warning("Waiter %s for %s did not finish: %s", waiter_name, instance_id, exc)
        return False


def describe_instance(ec2: Any, instance_id: str) -> Optional[InstanceDetails]:
    resp = provider_call(ec2, "describe_instances", InstanceIds=[instance_id])
    for reservation in resp.get("Reservations", []):
        for inst in reservation.get("Instances", []):
            return InstanceDetails(
                instance_id=instance_id,
                state=inst.get("State", {}).get("Name", ""),
                public_ip=inst.get("PublicIpAddress", ""),
                private_ip=inst.get("PrivateIpAddress", ""),
                availability_zone=inst.get("Placement", {}).get("AvailabilityZone", ""),
            )
    return None


def terminate_instance(ec2: Any, instance_id: str) -> None:
    provider_call(ec2, "terminate_instances", InstanceIds=[instance_id])
