"""Orchestration workflows (deploy, cleanup, status)."""

from autolab.workflow.deploy import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    build_plan,
    run_deploy,
)
from autolab.workflow.preflight import build_step_context, run_preflight
from autolab.workflow.status import StatusReport, build_status_report
from autolab.workflow.steps import (
    CREATE_STEPS,
    TEARDOWN_STEPS,
    StepContext,
    StepOutcome,
)
from autolab.workflow.teardown import run_teardown

__all__ = [
    "CREATE_STEPS",
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "StatusReport",
    "StepContext",
    "StepOutcome",
    "TEARDOWN_STEPS",
    "build_plan",
    "build_status_report",
    "build_step_context",
    "run_deploy",
    "run_preflight",
    "run_teardown",
]
