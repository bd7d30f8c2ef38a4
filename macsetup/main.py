"""
macsetup — CLI entrypoint.

Usage:
    python -m macsetup.main --help
    macsetup run
    macsetup run --dry-run
    macsetup status
    macsetup config check
"""

from __future__ import annotations

import contextlib
import functools
import json
import os
import sys
from pathlib import Path

import click

from macsetup import __version__
from macsetup.core.observability.logging_config import setup_logging

_CLASSIFICATION_COLORS = {
    "installed": "green",
    "already_present": "white",
    "would_apply": "cyan",
    "skipped_by_user": "yellow",
    "skipped_by_timeout": "yellow",
    "failed": "red",
}

_STATE_COLORS = {
    "present": "green",
    "present_wrong_version": "yellow",
    "absent": "red",
}


@click.group()
@click.version_option(version=__version__, prog_name="macsetup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to macsetup.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """macsetup — idempotent NetOps workstation bootstrap."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("MACSETUP_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("MACSETUP_LOG_FILE"),
        log_file_level=os.environ.get("MACSETUP_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.option("--timeout", "timeout_seconds", type=click.IntRange(min=0), default=None,
              help="Seconds to wait for each prompt (default: from manifest).")
@click.option("--default-answer", type=click.Choice(["y", "n"], case_sensitive=False),
              default=None, help="Answer used when a prompt times out.")
@click.option("--dry-run", is_flag=True, help="Check everything, change nothing.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip the start confirmation.")
@click.option("--no-optional", is_flag=True, help="Skip all optional resources.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    timeout_seconds: int | None,
    default_answer: str | None,
    dry_run: bool,
    assume_yes: bool,
    no_optional: bool,
    as_json: bool,
) -> None:
    """Bootstrap this machine from the manifest.

    Examples:

        macsetup run

        macsetup run --dry-run

        macsetup run --no-optional --timeout 10
    """
    from macsetup.core.services.credentials import prompt_input
    from macsetup.core.services.prompt_gate import PromptGate
    from macsetup.core.services.summary import outcome_marker, render_next_steps, render_summary
    from macsetup.core.use_cases.run import run_bootstrap

    # Prompts go to stderr in JSON mode so stdout stays parseable
    gate = PromptGate(stdout=sys.stderr if as_json else None)
    read = functools.partial(prompt_input, err=as_json)
    quiet = ctx.obj.get("quiet", False)

    if not (assume_yes or dry_run):
        wait = 60 if timeout_seconds is None else timeout_seconds
        if not gate.confirm("Start macOS setup? (y/n)", "y", wait):
            click.echo("Setup cancelled.", err=as_json)
            return

    def show_outcome(outcome) -> None:
        color = _CLASSIFICATION_COLORS.get(outcome.classification.value, "white")
        if quiet and outcome.classification.value != "failed":
            return
        click.secho(
            f"   {outcome_marker(outcome.classification)} {outcome.descriptor_id} ",
            fg=color, nl=False,
        )
        detail = f"  {outcome.detail}" if outcome.detail else ""
        click.echo(f"{outcome.classification.value}{detail}")

    def show_summary(report) -> None:
        click.echo(render_summary(report))

    # Anything echoed while running (prompt input included) stays off stdout in JSON mode
    redirect = contextlib.redirect_stdout(sys.stderr) if as_json else contextlib.nullcontext()
    with redirect:
        result = run_bootstrap(
            config_path=ctx.obj.get("config_path"),
            timeout_seconds=timeout_seconds,
            default_answer=default_answer,
            dry_run=dry_run,
            skip_optional=no_optional,
            gate=gate,
            on_outcome=None if as_json else show_outcome,
            summary_renderer=None if as_json else show_summary,
            read=read,
        )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not (quiet or dry_run) and result.manifest is not None:
        click.echo(render_next_steps(result.manifest.settings, result.backup_dir))

    sys.exit(result.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the current state of every resource (checks only)."""
    from macsetup.core.use_cases.status import check_status

    result = check_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📋 {result.config_path}", fg="cyan", bold=True)
    click.echo(f"   Present: {result.present_count}/{len(result.resources)}")
    if result.tools:
        tools = ", ".join(f"{kind} {'✓' if ok else '✗'}" for kind, ok in sorted(result.tools.items()))
        click.echo(f"   Tools: {tools}")
    click.echo()

    for entry in result.resources:
        state = entry.state.value
        tag = "" if entry.descriptor.required else " (optional)"
        click.secho(f"   {state:<22}", fg=_STATE_COLORS.get(state, "white"), nl=False)
        click.echo(f"{entry.descriptor.id} [{entry.descriptor.kind}]{tag}")

    if result.missing_required:
        click.echo()
        click.secho(f"⚠️  {len(result.missing_required)} required resources not present", fg="yellow")

    click.echo()


@cli.group()
def config() -> None:
    """Manifest configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate the manifest."""
    from macsetup.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.manifest is not None  # guaranteed when valid
        click.secho("✅ Manifest is valid", fg="green", bold=True)
        click.echo(f"   Manifest: {result.config_path}")
        for phase, counts in result.phase_kind_counts().items():
            total = sum(counts.values())
            breakdown = ", ".join(f"{kind}: {n}" for kind, n in sorted(counts.items()))
            click.echo(f"   {phase.capitalize()}: {total}" + (f" ({breakdown})" if breakdown else ""))
    else:
        click.secho("❌ Manifest errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
