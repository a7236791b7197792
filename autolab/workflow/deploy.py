"""Creation pipeline.

Preflight → plan → confirmation → creation steps (fail-fast) → summary.

The plan is the dependency-derived creation order, optionally narrowed by
``skip`` or ``only``.  Dry-run skips the confirmation prompt, issues no
mutating calls and writes nothing to the state file.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, List, Optional, Sequence

import typer

from autolab import ui
from autolab.aws.context import AWSContext
from autolab.aws.s3 import bucket_url
from autolab.config.models import LabConfig
from autolab.errors import PreflightFailure
from autolab.logs import section
from autolab.resources.graph import RESOURCE_SPECS, ResourceKind, creation_order
from autolab.state.models import StateKey
from autolab.state.store import StateStore
from autolab.workflow.preflight import build_step_context, run_preflight
from autolab.workflow.steps import CREATE_STEPS, StepOutcome, run_step

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

Confirm = Callable[[str], bool]


def _prompt(question: str) -> bool:
    return typer.confirm(question, default=False)


def build_plan(
    *,
    skip: Iterable[ResourceKind] = (),
    only: Optional[ResourceKind] = None,
) -> List[ResourceKind]:
    """Return the kinds to create, in creation order."""
    if only is not None:
        return [only]
    skipped = set(skip)
    for kind in creation_order():
        if kind in skipped:
            logger.info("Skipping: %s", kind.value)
    return [k for k in creation_order() if k not in skipped]


def show_plan(plan: Sequence[ResourceKind]) -> None:
    ui.table(
        "Deployment Plan",
        ["#", "Resource", "Description"],
        [
            (str(i), kind.value, RESOURCE_SPECS[kind].description)
            for i, kind in enumerate(plan, 1)
        ],
    )


def show_summary(store: StateStore, outcomes: Sequence[StepOutcome], cfg: LabConfig) -> None:
    """Print step results and every recorded state entry."""
    ui.table(
        "Step Results",
        ["Resource", "Result", "Identifier"],
        [
            (o.kind.value, "FAILED" if not o.ok else o.message, o.resource_id or "-")
            for o in outcomes
        ],
    )
    entries = store.snapshot()
    if entries:
        ui.heading("Deployment Summary")
        for entry in entries:
            if entry.value:
                ui.field(entry.key.value, entry.value)
    ui.field("State file", str(cfg.state_file))
    ui.field("Log file", str(cfg.log_file))


def _next_steps(store: StateStore, cfg: LabConfig) -> str:
    lines = ["Next steps:"]
    public_ip = store.lookup(StateKey.PUBLIC_IP)
    if public_ip:
        lines.append(f"  Web server:  http://{public_ip}")
        lines.append(f"  SSH:         ssh -i {cfg.key_file} ec2-user@{public_ip}")
    bucket = store.lookup(StateKey.S3_BUCKET_NAME)
    if bucket:
        lines.append(f"  Bucket:      {bucket_url(bucket)}")
    lines.append("  Status:      autolab status")
    lines.append("  Tear down:   autolab cleanup")
    return "\n".join(lines)


def run_deploy(
    cfg: LabConfig,
    *,
    dry_run: bool = False,
    skip: Iterable[ResourceKind] = (),
    only: Optional[ResourceKind] = None,
    assume_yes: bool = False,
    aws_ctx: Optional[AWSContext] = None,
    confirm: Optional[Confirm] = None,
) -> int:
    """Create every planned resource.  Returns ``EXIT_SUCCESS`` or ``EXIT_FAILURE``."""
    started = time.monotonic()
    if dry_run:
        ui.warn("DRY RUN MODE: No resources will be created")

    plan = build_plan(skip=skip, only=only)
    if not plan:
        ui.warn("No resources to deploy")
        return EXIT_SUCCESS

    ui.heading("PREFLIGHT")
    try:
        with section("Pre-flight Checks"):
            aws_ctx = run_preflight(cfg, kinds=plan, aws_ctx=aws_ctx)
    except PreflightFailure as exc:
        logger.error("Preflight failed: %s", exc)
        ui.summary("Preflight failed", str(exc), succeeded=False)
        return EXIT_FAILURE
    ui.ok(f"Account {aws_ctx.account_id or '-'} in {aws_ctx.region}")

    ctx = build_step_context(cfg, aws_ctx, dry_run=dry_run)
    ctx.store.touch()
    show_plan(plan)

    if not dry_run and not assume_yes:
        ask = confirm or _prompt
        if not ask("Do you want to proceed with the deployment?"):
            logger.info("Deployment cancelled by user")
            ui.warn("Deployment cancelled")
            return EXIT_FAILURE
        logger.info("Deployment confirmed. Proceeding...")

    ui.heading("CREATE")
    outcomes: List[StepOutcome] = []
    for kind in plan:
        title = RESOURCE_SPECS[kind].title
        ui.step_started(title)
        with section(title) as sec:
            outcome = run_step(CREATE_STEPS[kind], ctx, kind)
            sec.failed = not outcome.ok
        outcomes.append(outcome)
        ui.step_result(title, outcome.ok, outcome.message, outcome.resource_id)
        if not outcome.ok:
            break

    show_summary(ctx.store, outcomes, cfg)
    failed = [o for o in outcomes if not o.ok]
    elapsed = ui.format_elapsed(time.monotonic() - started)

    if failed:
        logger.error("Deployment failed at: %s", failed[0].kind.value)
        ui.summary(
            "Deployment failed",
            f"{failed[0].kind.value}: {failed[0].message}\n\n"
            f"Check the log file for details: {cfg.log_file}",
            succeeded=False,
        )
        return EXIT_FAILURE

    if dry_run:
        ui.summary("Dry run complete", f"{len(outcomes)} step(s) planned in {elapsed}")
    else:
        logger.info("Deployment completed successfully in %s", elapsed)
        ui.summary("Deployment complete", _next_steps(ctx.store, cfg))
    return EXIT_SUCCESS
