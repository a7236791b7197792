"""State-file entry models.

The state file is a flat ``KEY=VALUE`` record of identifiers::

    KEY_NAME=AutoKeyPair
    VPC_ID=vpc-0abc123
    IGW_ID=igw-0def456
    ...

Keys are a closed enumeration (:class:`StateKey`); lines with any other key
are ignored on read.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


# ---------------------------------------------------------------------------
# StateKey
# ---------------------------------------------------------------------------


class StateKey(str, Enum):
    """Every key a provisioning run may write."""

    KEY_NAME = "KEY_NAME"
    VPC_ID = "VPC_ID"
    IGW_ID = "IGW_ID"
    PUBLIC_SUBNET_ID = "PUBLIC_SUBNET_ID"
    PUBLIC_SUBNET_AZ = "PUBLIC_SUBNET_AZ"
    PRIVATE_SUBNET_ID = "PRIVATE_SUBNET_ID"
    PRIVATE_SUBNET_AZ = "PRIVATE_SUBNET_AZ"
    PUBLIC_RT_ID = "PUBLIC_RT_ID"
    PUBLIC_RT_ASSOC_ID = "PUBLIC_RT_ASSOC_ID"
    SECURITY_GROUP_ID = "SECURITY_GROUP_ID"
    AMI_ID = "AMI_ID"
    INSTANCE_ID = "INSTANCE_ID"
    PUBLIC_IP = "PUBLIC_IP"
    PRIVATE_IP = "PRIVATE_IP"
    INSTANCE_AZ = "INSTANCE_AZ"
    S3_BUCKET_NAME = "S3_BUCKET_NAME"
    WELCOME_FILE_URL = "WELCOME_FILE_URL"

    @classmethod
    def parse(cls, raw: str) -> Optional["StateKey"]:
        """Return the member named *raw*, or ``None`` for unknown keys."""
        try:
            return cls(raw.strip())
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# StateEntry
# ---------------------------------------------------------------------------


class StateEntry(BaseModel):
    """One ``KEY=VALUE`` line."""

    model_config = ConfigDict(frozen=True)

    key: StateKey
    value: str

    def to_line(self) -> str:
        return f"{self.key.value}={self.value}"


# ---------------------------------------------------------------------------
# ResourceState
# ---------------------------------------------------------------------------


class ResourceState(str, Enum):
    """Where a resource stands, as seen by the current run.

    ``UNKNOWN`` → ``RECORDED_UNVERIFIED`` → ``VERIFIED_PRESENT`` or
    ``VERIFIED_ABSENT`` → ``CREATED`` → ``DELETED`` (back to ``UNKNOWN`` on
    the next run).
    """

    UNKNOWN = "UNKNOWN"
    RECORDED_UNVERIFIED = "RECORDED_UNVERIFIED"
    VERIFIED_PRESENT = "VERIFIED_PRESENT"
    VERIFIED_ABSENT = "VERIFIED_ABSENT"
    CREATED = "CREATED"
    DELETED = "DELETED"
