"""Configuration models and loading."""

from autolab.config.loader import apply_overrides, load_config, write_config
from autolab.config.models import (
    CIDR_PATTERN,
    DEFAULT_REGION,
    IngressRule,
    LabConfig,
    validate_cidr,
)

__all__ = [
    "CIDR_PATTERN",
    "DEFAULT_REGION",
    "IngressRule",
    "LabConfig",
    "apply_overrides",
    "load_config",
    "validate_cidr",
    "write_config",
]
