"""AWS service interactions (STS, EC2, S3)."""

from autolab.aws.calls import error_code, error_message, provider_call
from autolab.aws.context import AWSContext, resolve_profile, resolve_region
from autolab.aws.oracle import (
    ACCEPTED_INSTANCE_STATES,
    ExistenceOracle,
    Presence,
)

__all__ = [
    "ACCEPTED_INSTANCE_STATES",
    "AWSContext",
    "ExistenceOracle",
    "Presence",
    "error_code",
    "error_message",
    "provider_call",
    "resolve_profile",
    "resolve_region",
]
