"""
hostsweep — CLI entrypoint.

Usage:
    hostsweep --help
    hostsweep detect
    hostsweep plan
    hostsweep run --dry-run
    hostsweep config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from hostsweep import __version__
from hostsweep.core.observability.logging_config import resolve_level, setup_logging

_STATUS_ICON = {"ok": "✅", "noop": "➖", "skipped": "⏭️ ", "failed": "❌"}
_STATUS_COLOR = {"ok": "green", "partial": "yellow", "failed": "red"}


@click.group()
@click.version_option(version=__version__, prog_name="hostsweep")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to hostsweep.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """hostsweep — keep a Linux host updated and clean."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("HOSTSWEEP_LOG_LEVEL")),
        log_file=os.environ.get("HOSTSWEEP_LOG_FILE"),
        log_file_level=os.environ.get("HOSTSWEEP_LOG_FILE_LEVEL"),
    )


def _load_config_or_exit(ctx: click.Context):
    """Load config, or print the error and exit 1."""
    from hostsweep.core.config.loader import load_config
    from hostsweep.core.errors import ConfigError

    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


# ── Detect ──────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def detect(as_json: bool) -> None:
    """Show which package manager hostsweep will drive."""
    from hostsweep.core.services.package_manager import available_binaries
    from hostsweep.core.services.package_manager import detect as detect_manager

    kind = detect_manager()
    binaries = available_binaries()

    if as_json:
        click.echo(json.dumps({"manager": kind.value, "binaries": binaries}, indent=2))
        sys.exit(0 if kind.supported else 1)

    if kind.supported:
        click.secho(f"📦 Package manager: {kind.value}", fg="cyan", bold=True)
    else:
        click.secho("❌ No supported package manager found", fg="red", bold=True)

    for binary, present in binaries.items():
        click.echo(f"   {'✅' if present else '  '} {binary}")

    if not kind.supported:
        sys.exit(1)


# ── Plan ────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--manager",
    "-m",
    type=click.Choice(["apt", "dnf", "yum", "zypper", "nix"]),
    default=None,
    help="Plan for this manager instead of the detected one.",
)
@click.option("--only", "only", multiple=True, help="Only these stages (repeatable).")
@click.option("--skip", "skip", multiple=True, help="Skip these stages (repeatable).")
@click.pass_context
def plan(ctx: click.Context, as_json: bool, manager: str | None, only: tuple, skip: tuple) -> None:
    """Show every command a run would issue, without running anything."""
    from hostsweep.core.models.manager import ManagerKind
    from hostsweep.core.use_cases.maintain import plan_maintenance

    config = _load_config_or_exit(ctx)
    try:
        result = plan_maintenance(
            config,
            only=list(only) or None,
            skip=list(skip),
            kind=ManagerKind(manager) if manager else None,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    click.secho(f"\n📋 Plan for {result.manager.value}", fg="cyan", bold=True)
    if result.error:
        click.secho(f"   ❌ {result.error}", fg="red")

    for stage in result.stages:
        click.secho(f"\n   {stage.label}", bold=True)
        if stage.error:
            click.secho(f"     ❌ {stage.error}", fg="red")
        elif stage.plan is None or stage.plan.is_noop:
            click.echo(f"     ➖ {stage.plan.note if stage.plan else ''}")
        else:
            for step in stage.plan.steps:
                prefix = "sudo " if step.needs_sudo else ""
                tolerated = "  (non-zero exit tolerated)" if step.tolerate_nonzero_exit else ""
                click.echo(f"     $ {prefix}{step.command_line}{tolerated}")
    click.echo()

    if result.error:
        sys.exit(1)


# ── Run ─────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Report commands without running them.")
@click.option("--only", "only", multiple=True, help="Only these stages (repeatable).")
@click.option("--skip", "skip", multiple=True, help="Skip these stages (repeatable).")
@click.option(
    "--stop-on-error/--continue-on-error",
    default=None,
    help="Abort on the first failed stage (default: from config).",
)
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.option(
    "--ask-sudo-password",
    "-K",
    is_flag=True,
    help="Prompt once for the sudo password and pipe it to each privileged command.",
)
@click.pass_context
def run(
    ctx: click.Context,
    as_json: bool,
    dry_run: bool,
    only: tuple,
    skip: tuple,
    stop_on_error: bool | None,
    yes: bool,
    ask_sudo_password: bool,
) -> None:
    """Run the maintenance pipeline."""
    from hostsweep.core.use_cases.maintain import StageReport, run_maintenance

    config = _load_config_or_exit(ctx)
    quiet = ctx.obj.get("quiet", False)

    if not dry_run and not yes:
        click.confirm("Update packages and delete caches on this host?", abort=True)

    sudo_password = ""
    if ask_sudo_password and not dry_run:
        sudo_password = click.prompt("sudo password", hide_input=True, err=True)

    def show(stage: StageReport) -> None:
        if as_json or quiet:
            return
        icon = _STATUS_ICON.get(stage.status, "•")
        click.echo(f"   {icon} {stage.label}")
        if stage.status == "noop" and stage.plan is not None:
            click.secho(f"      {stage.plan.note}", dim=True)
        if stage.status == "skipped":
            for r in stage.receipts:
                click.secho(f"      $ {r.command}", dim=True)
        if stage.error:
            click.secho(f"      {stage.error}", fg="red")

    if not as_json and not quiet:
        click.secho(f"\n🧹 hostsweep{' (dry run)' if dry_run else ''}", fg="cyan", bold=True)

    try:
        report = run_maintenance(
            config,
            dry_run=dry_run,
            only=list(only) or None,
            skip=list(skip),
            stop_on_error=stop_on_error,
            sudo_password=sudo_password,
            on_stage=show,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.status == "ok" else 1)

    if report.error:
        click.secho(f"   ❌ {report.error}", fg="red")

    click.echo()
    click.secho(
        f"   Result: {report.status} ({report.succeeded} ok, {report.failed} failed)",
        fg=_STATUS_COLOR.get(report.status, "white"),
        bold=True,
    )
    if report.aborted:
        click.secho("   Stopped after the first failure.", fg="yellow")
    click.echo()

    if report.status != "ok":
        sys.exit(1)


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Maintenance configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate hostsweep.yml."""
    from hostsweep.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        source = result.config_path or "built-in defaults"
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Source: {source}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    click.echo()
    if not result.valid:
        sys.exit(1)


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the effective configuration as YAML."""
    import yaml

    cfg = _load_config_or_exit(ctx)
    click.echo(yaml.safe_dump(cfg.model_dump(mode="json"), sort_keys=False), nl=False)


if __name__ == "__main__":
    cli()
