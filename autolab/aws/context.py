"""AWS context: session, identity, and region resolution.

Wraps boto3 session creation, STS ``get-caller-identity`` and a region
reachability probe into a single :class:`AWSContext` that every downstream
module depends on.

Region resolution precedence:
1. Explicit ``--region`` CLI flag
2. ``region`` from the config file
3. ``AWS_DEFAULT_REGION`` / ``AWS_REGION`` env vars
4. Hardcoded fallback (``eu-west-1``)

Profile resolution precedence:
1. Explicit ``--profile`` CLI flag / config value
2. ``AWS_PROFILE`` env var
3. ``None``: boto3's default credential chain
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from autolab.config.models import DEFAULT_REGION
from autolab.errors import PreflightFailure

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Region / profile helpers
# ---------------------------------------------------------------------------


def resolve_region(*candidates: Optional[str]) -> str:
    """Return the first non-empty of *candidates*, then env vars, then default."""
    for c in candidates:
        if c:
            return c
    return (
        os.environ.get("AWS_DEFAULT_REGION")
        or os.environ.get("AWS_REGION")
        or DEFAULT_REGION
    )


def resolve_profile(profile: Optional[str] = None) -> Optional[str]:
    """Return *profile*, else ``AWS_PROFILE``, else ``None``."""
    return profile or os.environ.get("AWS_PROFILE") or None


# ---------------------------------------------------------------------------
# AWSContext
# ---------------------------------------------------------------------------


@dataclass
class AWSContext:
    """Bag of AWS identity + session factory for one region.

    Attributes:
        region: AWS region (e.g. ``eu-west-1``).
        profile: Resolved AWS profile name, or ``None`` for the default chain.
        account_id: 12-digit AWS account ID.
        caller_arn: Full ARN from ``sts:GetCallerIdentity``.
        iam_username: IAM user or role-session name extracted from *caller_arn*.
    """

    region: str
    profile: Optional[str] = None
    account_id: str = ""
    caller_arn: str = ""
    iam_username: str = ""
    _session: Any = field(default=None, repr=False, compare=False)

    # -- factory ----------------------------------------------------------

    @classmethod
    def build(
        cls,
        region: str,
        profile: Optional[str] = None,
        *,
        validate_region: bool = True,
    ) -> "AWSContext":
        """Construct an :class:`AWSContext` by calling STS.

        Raises :class:`PreflightFailure` on credential, network or region
        failures.
        """
        resolved_profile = resolve_profile(profile)
        try:
            session = boto3.Session(
                profile_name=resolved_profile, region_name=region
            )
        except BotoCoreError as exc:
            raise PreflightFailure(f"Cannot create AWS session: {exc}") from exc

        logger.info("Checking AWS credentials...")
        try:
            identity = session.client("sts").get_caller_identity()
        except (BotoCoreError, ClientError) as exc:
            raise PreflightFailure(
                f"AWS credentials invalid or inaccessible in region {region}: {exc}"
            ) from exc

        ctx = cls(
            region=region,
            profile=resolved_profile,
            account_id=identity["Account"],
            caller_arn=identity["Arn"],
            iam_username=_extract_username(identity["Arn"]),
            _session=session,
        )
        logger.info("AWS Account: %s", ctx.account_id)
        logger.info("AWS User: %s", ctx.iam_username)

        if validate_region:
            ctx.check_region()
        return ctx

    def check_region(self) -> None:
        """Verify the region answers EC2 calls.

        Raises :class:`PreflightFailure` if it does not.
        """
        logger.info("Validating AWS region: %s", self.region)
        try:
            self.client("ec2").describe_availability_zones()
        except (BotoCoreError, ClientError) as exc:
            raise PreflightFailure(
                f"Invalid AWS region or no access: {self.region} ({exc})"
            ) from exc
        logger.info("Region validated: %s", self.region)

    # -- session accessor -------------------------------------------------

    @property
    def session(self) -> boto3.Session:
        """Return the cached :class:`boto3.Session`."""
        if self._session is None:
            self._session = boto3.Session(
                profile_name=self.profile, region_name=self.region
            )
        return self._session

    def client(self, service: str, **kwargs: Any) -> Any:
        """Create a boto3 client for *service*."""
        return self.session.client(service, **kwargs)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _extract_username(arn: str) -> str:
    """Extract the IAM user or role-session name from an ARN.

    Examples::

        arn:aws:iam::123456789012:user/alice        → alice
        arn:aws:sts::123456789012:assumed-role/r/s   → s
        arn:aws:iam::123456789012:root               → root
    """
    parts = arn.split("/")
    if len(parts) >= 2:
        return parts[-1]
    return arn.rsplit(":", maxsplit=1)[-1]
