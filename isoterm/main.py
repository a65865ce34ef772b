"""
isoterm — CLI entrypoint.

Usage:
    isoterm --help
    isoterm setup [ROOT]
    isoterm activate [ROOT]
    isoterm status [ROOT]
    python -m isoterm.main platform
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from isoterm import __version__
from isoterm.core.config.loader import ConfigError, IsotermSettings, load_settings
from isoterm.core.errors import ShellNotProvisioned, UnsupportedPlatform
from isoterm.core.observability.logging_config import setup_logging

EXIT_FAILED = 1
EXIT_UNSUPPORTED_PLATFORM = 3

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}
_TOOL_ICONS = {
    "already_present": ("✓", "green"),
    "link_to_system": ("🔗", "cyan"),
    "fetch": ("⬇", "green"),
}


@click.group()
@click.version_option(version=__version__, prog_name="isoterm")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to config.yml (default: ~/.config/isoterm/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """isoterm — a self-contained, relocatable terminal environment."""
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
        level = None  # ISOTERM_LOG_LEVEL or WARNING

    setup_logging(level=level, quiet_third_party=not debug)


def _settings(ctx: click.Context) -> IsotermSettings:
    """Load settings once per invocation; exit 1 on a bad config."""
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = load_settings(ctx.obj.get("config_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(EXIT_FAILED)
    return ctx.obj["settings"]


def _root(ctx: click.Context, root: str | None) -> Path:
    if root:
        return Path(root).expanduser().resolve()
    return _settings(ctx).root_path()


@cli.command()
@click.argument("root", required=False, type=click.Path(file_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--strict", is_flag=True, help="Exit non-zero if any tool failed.")
@click.pass_context
def setup(ctx: click.Context, root: str | None, as_json: bool, strict: bool) -> None:
    """Provision the environment at ROOT (default: ~/.local_shell)."""
    from isoterm.core.use_cases.provision import provision_environment

    settings = _settings(ctx)
    quiet = ctx.obj.get("quiet", False)
    env_root = _root(ctx, root)

    if not as_json and not quiet:
        click.secho(f"\n📦 {env_root}", fg="cyan", bold=True)
        click.echo()

    def on_outcome(outcome) -> None:
        _print_outcome(outcome, quiet)

    try:
        result = provision_environment(
            root=env_root,
            settings=settings,
            on_outcome=None if as_json else on_outcome,
        )
    except UnsupportedPlatform as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_UNSUPPORTED_PLATFORM)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_setup(ctx, result)

    if result.error:
        sys.exit(EXIT_FAILED)
    if strict and result.report is not None and result.report.failed:
        sys.exit(EXIT_FAILED)


def _print_outcome(outcome, quiet: bool) -> None:
    """One progress line per tool, printed as soon as the tool is done."""
    if outcome.failed:
        click.secho(f"   ✗ {outcome.tool}", fg="red", nl=False)
        click.echo(f"  {outcome.error}")
        return
    if quiet:
        return
    icon, color = _TOOL_ICONS.get(outcome.decision, ("✓", "green"))
    click.secho(f"   {icon} {outcome.tool}", fg=color, nl=False)
    detail = outcome.source or outcome.path or ""
    version = outcome.metadata.get("version")
    if version:
        detail = f"{detail} ({version})"
    click.echo(f"  {detail}")
    for note in outcome.metadata.get("notes", []):
        click.secho(f"     ⚠️  {note}", fg="yellow")


def _print_setup(ctx: click.Context, result) -> None:
    quiet = ctx.obj.get("quiet", False)
    report = result.report

    if result.error:
        click.secho(f"\n❌ {result.error}", fg="red", err=True)
        return

    if report is not None:
        click.echo()
        click.secho(
            f"   {report.status}: {report.succeeded} provisioned, "
            f"{report.skipped} already present, {report.failed} failed",
            fg=_STATUS_COLORS.get(report.status, "white"),
            bold=True,
        )
        if not quiet:
            click.echo(f"   Target: {result.target}")
    if not quiet:
        click.echo(f"   Activate with: sh {result.root}/config/activate.sh")
        click.echo()


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("root", required=False, type=click.Path(file_okay=False))
@click.argument("shell_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def activate(ctx: click.Context, root: str | None, shell_args: tuple[str, ...]) -> None:
    """Launch the isolated shell for ROOT."""
    from isoterm.core.use_cases.activate import activate_environment

    try:
        code = activate_environment(_root(ctx, root), args=shell_args)
    except ShellNotProvisioned as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_FAILED)
    except OSError as e:
        click.secho(f"❌ Cannot launch shell: {e}", fg="red", err=True)
        sys.exit(EXIT_FAILED)
    sys.exit(code)


@cli.command()
@click.argument("root", required=False, type=click.Path(file_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, root: str | None, as_json: bool) -> None:
    """Show which tools the environment at ROOT provides."""
    from isoterm.core.use_cases.status import get_status

    result = get_status(_root(ctx, root))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.exists:
        click.secho(f"❌ No environment at {result.root}", fg="red")
        click.echo("   Run 'isoterm setup' to create one.")
        sys.exit(EXIT_FAILED)

    click.secho(f"\n📦 {result.root}", fg="cyan", bold=True)
    marks = {
        "installed": ("✓", "green"),
        "linked": ("🔗", "cyan"),
        "broken": ("⚠️ ", "yellow"),
        "missing": ("✗", "red"),
    }
    for tool in result.tools:
        icon, color = marks[tool.state]
        click.secho(f"   {icon} {tool.name:<10}", fg=color, nl=False)
        suffix = f" → {tool.target}" if tool.target else ""
        click.echo(f" {tool.state}{suffix}")

    click.echo()
    if result.activation_script:
        click.echo(f"   Activate with: sh {result.root}/config/activate.sh")
    else:
        click.secho("   ⚠️  No activation script; run 'isoterm setup'", fg="yellow")
    click.echo()


@cli.command()
@click.pass_context
def platform(ctx: click.Context) -> None:
    """Print the release target triple for this host."""
    from isoterm.core.services.platform_id import detect_target_triple

    try:
        triple = detect_target_triple()
    except UnsupportedPlatform as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_UNSUPPORTED_PLATFORM)
    click.echo(str(triple))


if __name__ == "__main__":
    cli()
