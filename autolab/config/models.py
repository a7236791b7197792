"""Pydantic models for autolab configuration.

Defines:
- :class:`IngressRule`: one security-group ingress permission
- :class:`LabConfig`: every setting a provisioning run reads

Defaults describe the stock lab layout.  A single :class:`LabConfig` is
built per invocation and passed explicitly to every component.
"""

from __future__ import annotations

import ipaddress
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

#: Shape check applied before ``ipaddress`` parsing.
CIDR_PATTERN = re.compile(r"^([0-9]{1,3}\.){3}[0-9]{1,3}/[0-9]{1,2}$")

DEFAULT_REGION = "eu-west-1"

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
DEFAULT_USER_DATA_TEMPLATE = _TEMPLATES_DIR / "user_data.sh"
DEFAULT_INDEX_PAGE = _TEMPLATES_DIR / "index.html"


def validate_cidr(value: str) -> str:
    """Return *value* if it is a well-formed IPv4 CIDR block.

    Raises :class:`ValueError` otherwise.
    """
    if not CIDR_PATTERN.match(value or ""):
        raise ValueError(f"Invalid CIDR format: {value!r}")
    try:
        ipaddress.IPv4Network(value, strict=False)
    except ValueError as exc:
        raise ValueError(f"Invalid CIDR block {value!r}: {exc}") from exc
    return value


class IngressRule(BaseModel):
    """A TCP ingress rule for the lab security group."""

    name: str
    port: int = Field(ge=0, le=65535)
    cidr: str = "0.0.0.0/0"
    protocol: str = "tcp"

    @field_validator("cidr")
    @classmethod
    def _check_cidr(cls, v: str) -> str:
        return validate_cidr(v)


def _default_ingress() -> List[IngressRule]:
    return [
        IngressRule(name="SSH", port=22),
        IngressRule(name="HTTP", port=80),
        IngressRule(name="HTTPS", port=443),
    ]


class LabConfig(BaseModel):
    """Settings for one lab environment."""

    region: Optional[str] = None
    profile: Optional[str] = None

    # -- networking ----------------------------------------------------------
    vpc_cidr: str = "10.0.0.0/16"
    public_subnet_cidr: str = "10.0.1.0/24"
    private_subnet_cidr: str = "10.0.2.0/24"
    vpc_name: str = "AutomationVPC"
    public_subnet_name: str = "AutomationPublicSubnet"
    private_subnet_name: str = "AutomationPrivateSubnet"
    project_tag: str = "Project=AutomationLab"

    # -- security group ------------------------------------------------------
    security_group_name: str = "AutomationSecurityGroup"
    security_group_description: str = (
        "Security group for Automation Lab EC2 instance"
    )
    ingress_rules: List[IngressRule] = Field(default_factory=_default_ingress)

    # -- compute -------------------------------------------------------------
    instance_type: str = "t3.micro"
    instance_name: str = "AutomationWebServer"
    key_name: str = "AutoKeyPair"
    key_dir: Path = Path(".")
    ami_name_filter: str = "amzn2-ami-hvm-*-x86_64-gp2"
    user_data_template: Path = DEFAULT_USER_DATA_TEMPLATE
    index_page: Path = DEFAULT_INDEX_PAGE
    instance_wait_delay: int = 15
    instance_wait_max_attempts: int = 40

    # -- storage -------------------------------------------------------------
    bucket_prefix: str = "automation-lab-bucket"
    welcome_file: Optional[Path] = None
    welcome_public_read: bool = False

    # -- output --------------------------------------------------------------
    log_file: Path = Path("setup.log")
    state_file: Path = Path(".env")

    @field_validator("vpc_cidr", "public_subnet_cidr", "private_subnet_cidr")
    @classmethod
    def _check_cidrs(cls, v: str) -> str:
        return validate_cidr(v)

    @field_validator("project_tag")
    @classmethod
    def _check_project_tag(cls, v: str) -> str:
        if "=" not in v or v.startswith("="):
            raise ValueError(f"project_tag must look like Key=Value, got {v!r}")
        return v

    # -- derived -------------------------------------------------------------

    @property
    def project_tag_pair(self) -> Tuple[str, str]:
        """Split ``Project=AutomationLab`` into ``("Project", "AutomationLab")``."""
        key, _, value = self.project_tag.partition("=")
        return key, value

    def tags(self, name: str) -> List[Dict[str, str]]:
        """Return the boto3 tag list for a resource called *name*."""
        key, value = self.project_tag_pair
        return [
            {"Key": "Name", "Value": name},
            {"Key": key, "Value": value},
        ]

    def tag_specifications(self, resource_type: str, name: str) -> List[Dict]:
        """Return ``TagSpecifications`` for an EC2 ``create_*`` call."""
        return [{"ResourceType": resource_type, "Tags": self.tags(name)}]

    @property
    def key_file(self) -> Path:
        """Local path of the private key written for :attr:`key_name`."""
        return self.key_dir / f"{self.key_name}.pem"
