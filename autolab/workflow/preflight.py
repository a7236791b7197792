"""Preflight checks and per-run wiring shared by every command.

Checks run in a fixed order and the first failure aborts before any
resource work:

1. AWS credentials (``sts:GetCallerIdentity``)
2. Region reachability (``ec2:DescribeAvailabilityZones``)
3. Local inputs: bootstrap template, web page and welcome file, only
   when the kinds that read them are planned
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from autolab.aws.context import AWSContext, resolve_region
from autolab.aws.oracle import ExistenceOracle
from autolab.config.models import LabConfig
from autolab.errors import PreflightFailure
from autolab.resources.graph import ResourceKind
from autolab.state.store import StateStore
from autolab.workflow.steps import StepContext

logger = logging.getLogger(__name__)

ContextFactory = Callable[..., AWSContext]


def check_local_inputs(cfg: LabConfig, kinds: Iterable[ResourceKind]) -> None:
    """Raise :class:`PreflightFailure` if a file a planned step reads is missing."""
    planned = set(kinds)
    required: List[Path] = []
    if ResourceKind.INSTANCE in planned:
        required += [cfg.user_data_template, cfg.index_page]
    if ResourceKind.BUCKET in planned and cfg.welcome_file is not None:
        required.append(cfg.welcome_file)
    for path in required:
        if not Path(path).is_file():
            raise PreflightFailure(f"Required file not found: {path}")
        logger.debug("Found required file: %s", path)


def run_preflight(
    cfg: LabConfig,
    *,
    kinds: Iterable[ResourceKind] = (),
    aws_ctx: Optional[AWSContext] = None,
    context_factory: ContextFactory = AWSContext.build,
) -> AWSContext:
    """Validate credentials, region and local inputs.

    An injected *aws_ctx* skips the STS and region calls (used in tests).
    """
    if aws_ctx is None:
        region = resolve_region(cfg.region)
        aws_ctx = context_factory(region, profile=cfg.profile)
    check_local_inputs(cfg, kinds)
    return aws_ctx


def build_step_context(
    cfg: LabConfig,
    aws_ctx: AWSContext,
    *,
    dry_run: bool = False,
) -> StepContext:
    """Wire the state store, clients and oracle for one run."""
    ec2 = aws_ctx.client("ec2")
    s3 = aws_ctx.client("s3")
    return StepContext(
        cfg=cfg,
        store=StateStore(cfg.state_file, dry_run=dry_run),
        ec2=ec2,
        s3=s3,
        oracle=ExistenceOracle(ec2, s3),
        region=aws_ctx.region,
        dry_run=dry_run,
    )
