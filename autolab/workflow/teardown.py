"""Teardown pipeline.

Preflight → state-file backup → confirmation → deletion steps in exact
reverse creation order.  Teardown is best-effort: a failing step marks the
run failed, but the remaining steps still run.  The state file is cleared
only when every step succeeded.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import typer

from autolab import ui
from autolab.aws.context import AWSContext
from autolab.config.models import LabConfig
from autolab.errors import PreflightFailure
from autolab.logs import section
from autolab.resources.graph import RESOURCE_SPECS, teardown_order
from autolab.workflow.deploy import EXIT_FAILURE, EXIT_SUCCESS
from autolab.workflow.preflight import build_step_context, run_preflight
from autolab.workflow.steps import TEARDOWN_STEPS, StepOutcome, run_step

logger = logging.getLogger(__name__)


def _prompt(question: str) -> bool:
    return typer.confirm(question, default=False)


def run_teardown(
    cfg: LabConfig,
    *,
    dry_run: bool = False,
    assume_yes: bool = False,
    aws_ctx: Optional[AWSContext] = None,
    confirm: Optional[Callable[[str], bool]] = None,
) -> int:
    """Delete every recorded resource.  Returns ``EXIT_SUCCESS`` or ``EXIT_FAILURE``."""
    if dry_run:
        ui.warn("DRY RUN MODE: No resources will be deleted")

    ui.heading("PREFLIGHT")
    try:
        with section("Pre-flight Checks"):
            aws_ctx = run_preflight(cfg, aws_ctx=aws_ctx)
    except PreflightFailure as exc:
        logger.error("Preflight failed: %s", exc)
        ui.summary("Preflight failed", str(exc), succeeded=False)
        return EXIT_FAILURE

    ctx = build_step_context(cfg, aws_ctx, dry_run=dry_run)
    if not ctx.store.exists():
        logger.error("State file not found: %s", cfg.state_file)
        ui.summary(
            "Nothing to clean up",
            f"State file not found: {cfg.state_file}\n"
            "Cannot proceed with cleanup without state file.",
            succeeded=False,
        )
        return EXIT_FAILURE

    if not dry_run:
        ctx.store.backup()
        if not assume_yes:
            ui.warn("This will delete ALL resources recorded in the state file!")
            ui.warn("This action CANNOT be undone!")
            ask = confirm or _prompt
            if not ask("Are you sure you want to proceed?"):
                logger.info("Cleanup cancelled by user")
                ui.warn("Cleanup cancelled")
                return EXIT_FAILURE

    ui.heading("DELETE")
    outcomes: List[StepOutcome] = []
    for kind in teardown_order():
        title = RESOURCE_SPECS[kind].title
        with section(f"{title} Cleanup") as sec:
            outcome = run_step(TEARDOWN_STEPS[kind], ctx, kind)
            sec.failed = not outcome.ok
        outcomes.append(outcome)
        ui.step_result(title, outcome.ok, outcome.message)

    failed = [o for o in outcomes if not o.ok]
    if failed:
        logger.error("Some resources failed to cleanup")
        ui.summary(
            "Cleanup incomplete",
            "Failed: " + ", ".join(o.kind.value for o in failed)
            + f"\n\nCheck the log file for details: {cfg.log_file}"
            + "\nYou may need to manually delete remaining resources.",
            succeeded=False,
        )
        return EXIT_FAILURE

    ctx.store.clear()
    if dry_run:
        ui.summary("Dry run complete", "No resources were deleted.")
    else:
        logger.info("Cleanup completed successfully!")
        ui.summary("Cleanup complete", f"All resources cleaned up.\nLog file: {cfg.log_file}")
    return EXIT_SUCCESS
