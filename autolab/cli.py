"""CLI entry point for autolab, built on typer.

Provides ``deploy``, ``cleanup``, ``status``, ``plan`` and ``init-config``
commands for a single-VPC lab environment.

Usage::

    python -m autolab --help
    python -m autolab deploy --dry-run
    python -m autolab deploy --skip bucket --yes
    python -m autolab cleanup --region eu-west-1
    python -m autolab status --json
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from autolab import ui
from autolab.config import LabConfig, apply_overrides, load_config
from autolab.resources.graph import RESOURCE_SPECS, ResourceKind, creation_order

app = typer.Typer(
    name="autolab",
    help="Create, inspect and tear down a single-VPC AWS lab environment.",
    add_completion=False,
    no_args_is_help=True,
)


# ── Shared option handling ───────────────────────────────────────────────────


def _load(
    config: Optional[Path],
    region: Optional[str],
    profile: Optional[str],
) -> LabConfig:
    try:
        cfg = load_config(config)
        return apply_overrides(cfg, region=region, profile=profile)
    except FileNotFoundError as exc:
        ui.error(str(exc))
        raise typer.Exit(1) from exc
    except (ValidationError, ValueError) as exc:
        ui.error(f"Invalid configuration: {exc}")
        raise typer.Exit(1) from exc


def _parse_kind(name: str) -> ResourceKind:
    try:
        return ResourceKind.from_name(name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _start_logging(cfg: LabConfig, *, verbose: bool, command: str, quiet: bool = False) -> None:
    from autolab.aws.context import resolve_region
    from autolab.logs import configure_logging

    configure_logging(
        cfg.log_file,
        verbose=verbose,
        quiet=quiet,
        command=command,
        region=resolve_region(cfg.region),
    )


_CONFIG_OPT = typer.Option(None, "--config", "-c", help="Path to an autolab YAML config.")
_REGION_OPT = typer.Option(None, "--region", help="AWS region. Defaults to config, then AWS_DEFAULT_REGION.")
_PROFILE_OPT = typer.Option(None, "--profile", help="AWS CLI profile. Defaults to AWS_PROFILE env var.")


# ── deploy command ───────────────────────────────────────────────────────────


@app.command()
def deploy(
    dry_run: bool = typer.Option(
        False, "--dry-run", "-d", help="Preview without creating resources."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable DEBUG logging."
    ),
    skip: Optional[List[str]] = typer.Option(
        None, "--skip", "-s",
        help="Skip a resource kind (e.g. bucket). Can be specified multiple times.",
    ),
    only: Optional[str] = typer.Option(
        None, "--only", "-o", help="Create only this resource kind."
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation."
    ),
    config: Optional[Path] = _CONFIG_OPT,
    region: Optional[str] = _REGION_OPT,
    profile: Optional[str] = _PROFILE_OPT,
) -> None:
    """Create every lab resource in dependency order.

    Safe to re-run: resources already recorded and present in AWS are
    reused.  Exits 0 on success (including dry-run), 1 otherwise.
    """
    from autolab.workflow.deploy import run_deploy

    skip_kinds = [_parse_kind(s) for s in (skip or [])]
    only_kind = _parse_kind(only) if only else None

    cfg = _load(config, region, profile)
    _start_logging(cfg, verbose=verbose, command="deploy")
    rc = run_deploy(
        cfg,
        dry_run=dry_run,
        skip=skip_kinds,
        only=only_kind,
        assume_yes=yes,
    )
    raise typer.Exit(rc)


# ── cleanup command ──────────────────────────────────────────────────────────


@app.command()
def cleanup(
    dry_run: bool = typer.Option(
        False, "--dry-run", "-d", help="Preview without deleting resources."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable DEBUG logging."
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation."
    ),
    config: Optional[Path] = _CONFIG_OPT,
    region: Optional[str] = _REGION_OPT,
    profile: Optional[str] = _PROFILE_OPT,
) -> None:
    """Delete every recorded resource in reverse creation order.

    Best-effort: a failure does not stop the remaining deletions.
    Exits 0 when everything is gone, 1 otherwise.
    """
    from autolab.workflow.teardown import run_teardown

    cfg = _load(config, region, profile)
    _start_logging(cfg, verbose=verbose, command="cleanup")
    rc = run_teardown(cfg, dry_run=dry_run, assume_yes=yes)
    raise typer.Exit(rc)


# ── status command ───────────────────────────────────────────────────────────


@app.command()
def status(
    json_flag: bool = typer.Option(
        False, "--json", "-j", help="Output as JSON."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable DEBUG logging."
    ),
    config: Optional[Path] = _CONFIG_OPT,
    region: Optional[str] = _REGION_OPT,
    profile: Optional[str] = _PROFILE_OPT,
) -> None:
    """Show each recorded resource and whether it still exists in AWS."""
    from autolab.errors import PreflightFailure
    from autolab.workflow.preflight import build_step_context, run_preflight
    from autolab.workflow.status import build_status_report, show_status

    cfg = _load(config, region, profile)
    _start_logging(cfg, verbose=verbose, command="status", quiet=json_flag)
    if not cfg.state_file.is_file():
        ui.error(f"State file not found: {cfg.state_file}")
        ui.info("Run 'autolab deploy' first.")
        raise typer.Exit(1)
    try:
        aws_ctx = run_preflight(cfg)
    except PreflightFailure as exc:
        ui.error(str(exc))
        raise typer.Exit(1) from exc

    ctx = build_step_context(cfg, aws_ctx, dry_run=True)
    report = build_status_report(ctx.store, ctx.oracle)
    if json_flag:
        typer.echo(report.to_json())
    else:
        show_status(report)
    raise typer.Exit(0)


# ── plan command ─────────────────────────────────────────────────────────────


@app.command()
def plan() -> None:
    """List resource kinds in creation order."""
    ui.table(
        "Creation Order",
        ["#", "Resource", "Description"],
        [
            (str(i), kind.value, RESOURCE_SPECS[kind].description)
            for i, kind in enumerate(creation_order(), 1)
        ],
    )
    ui.info("Cleanup runs in exactly the reverse order.")


# ── init-config command ──────────────────────────────────────────────────────


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path("autolab.yaml"), help="Where to write the config."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write the default configuration as an editable YAML file."""
    from autolab.config import write_config

    if path.exists() and not force:
        ui.error(f"{path} already exists (use --force to overwrite)")
        raise typer.Exit(1)
    write_config(LabConfig(), path)
    ui.ok(f"Default configuration written to {path}")


# ── Entry point ──────────────────────────────────────────────────────────────


def main() -> int:
    """Run the CLI and return an exit code."""
    try:
        app()
        return 0
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 0


if __name__ == "__main__":
    sys.exit(main())
