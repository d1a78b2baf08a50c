"""
Local Packages — CLI entrypoint.

Usage:
    localpkgs update [--no-confirm] [--no-install] [--json] [ARGS...]
    localpkgs build <package> [--json]
    localpkgs check [PACKAGE...] [--json]
    localpkgs history
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from localpkgs import __version__
from localpkgs.core.config.loader import load_settings
from localpkgs.core.errors import ConfigError, UnknownPackageError
from localpkgs.core.observability.logging_config import setup_logging
from localpkgs.core.use_cases.runtime import Runtime, default_adapters
from localpkgs.packages import default_registry

logger = logging.getLogger(__name__)

_STATUS_MARKERS = {"up_to_date": "✓", "update_available": "⚠", "error": "✗"}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="localpkgs")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Path to localpkgs.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: Path | None,
) -> None:
    """Local Packages — build third-party packages into a local repository."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(1)

    # Tests (and embedders) may hand in a ready-made runtime
    runtime: Runtime | None = ctx.obj.get("runtime")
    if runtime is None:
        try:
            settings = load_settings(config_path)
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(1)
        runtime = Runtime(settings=settings, packages=default_registry(), adapters=default_adapters())
        ctx.obj["runtime"] = runtime

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("LOCALPKGS_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=runtime.settings.log_path,
        log_file_level=os.environ.get("LOCALPKGS_LOG_FILE_LEVEL", "INFO"),
    )


@contextmanager
def _interruptible() -> Iterator[None]:
    """Exit 130 on Ctrl-C; committed state is never half-written."""
    try:
        yield
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        click.secho("\n⊘ Interrupted — state of unfinished packages left untouched", fg="yellow", err=True)
        sys.exit(130)


def _version_line(name: str, current: str | None, latest: str | None) -> str:
    return f"{name}: {current or 'not built'} → {latest or '?'}"


# ── check ───────────────────────────────────────────────────────


@cli.command()
@click.argument("names", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, names: tuple[str, ...], as_json: bool) -> None:
    """Report current vs. latest version without building."""
    from localpkgs.core.use_cases.check import CheckResult, check_packages

    runtime: Runtime = ctx.obj["runtime"]
    total = len(names) if names else len(runtime.packages)
    completed = 0

    def _progress(result: CheckResult) -> None:
        nonlocal completed
        completed += 1
        if as_json or not result.ok:
            return
        marker = _STATUS_MARKERS[result.status]
        color = "green" if result.status == "up_to_date" else "yellow"
        click.echo(f"  [{completed}/{total}] ", nl=False)
        click.secho(marker, fg=color, nl=False)
        click.echo(f" {_version_line(result.package, result.current_version, result.latest_version)}")

    if not as_json:
        click.echo(f"\nChecking {total} packages...")

    with _interruptible():
        try:
            results = check_packages(runtime, names, on_result=_progress)
        except UnknownPackageError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(1)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
        return

    for result in results:
        if not result.ok:
            click.secho(f"  ✗ {result.package}: Error - {result.error}", fg="red")

    outdated = sum(1 for r in results if r.status == "update_available")
    errors = sum(1 for r in results if r.status == "error")
    click.echo()
    click.echo(f"{len(results) - outdated - errors} up to date, {outdated} update(s) available, {errors} error(s)")
    click.echo()


# ── build ───────────────────────────────────────────────────────


@cli.command()
@click.argument("name", required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def build(ctx: click.Context, name: str | None, as_json: bool) -> None:
    """Build a single package and update the repository database."""
    from localpkgs.core.use_cases.build import run_build

    if not name:
        click.echo("Usage: localpkgs build <package-name>", err=True)
        sys.exit(1)

    runtime: Runtime = ctx.obj["runtime"]
    with _interruptible():
        try:
            result = run_build(runtime, name)
        except UnknownPackageError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            click.echo(f"   Known packages: {', '.join(runtime.packages.names())}", err=True)
            sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    b = result.build
    if b is not None:
        line = _version_line(b.package, b.previous_version, b.version)
        if b.status == "built":
            click.secho(f"✅ {line} [built]", fg="green")
            for artifact in b.artifacts:
                click.echo(f"   📦 {artifact}")
        elif b.status == "up_to_date":
            click.secho(f"✓ {line} [up to date]", fg="green")
        else:
            stage = b.stage.value if b.stage else "?"
            click.secho(f"❌ {line} [{b.error_type} at {stage}]", fg="red")
            click.echo(f"   {b.error}")

    if result.publish is not None:
        click.echo(f"   Repository: {len(result.publish.artifacts)} package(s) indexed")
    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)

    if not result.ok:
        sys.exit(1)


# ── update ──────────────────────────────────────────────────────


@cli.command(context_settings={"ignore_unknown_options": True, "allow_extra_args": True})
@click.option("--no-confirm", is_flag=True, help="Do not ask for confirmation when installing.")
@click.option("--no-install", is_flag=True, help="Skip the system update and install step.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the run summary as JSON.")
@click.argument("passthrough", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def update(
    ctx: click.Context,
    no_confirm: bool,
    no_install: bool,
    as_json: bool,
    passthrough: tuple[str, ...],
) -> None:
    """Build every outdated package, update the repository, then the system.

    Extra ARGS are passed to the package manager's update command.
    """
    from localpkgs.core.engine.builder import BuildResult
    from localpkgs.core.use_cases.check import CheckResult
    from localpkgs.core.use_cases.update import run_update

    runtime: Runtime = ctx.obj["runtime"]
    extra_args = list(passthrough) + (["--no-confirm"] if no_confirm else [])

    def _on_check(result: CheckResult) -> None:
        if as_json:
            return
        if result.ok:
            status = "update available" if result.needs_update else "up to date"
            click.echo(f"  {_version_line(result.package, result.current_version, result.latest_version)} ({status})")
        else:
            click.secho(f"  ✗ {result.package}: Error - {result.error}", fg="red")

    def _on_build_start(name: str) -> None:
        if not as_json:
            click.echo(f"🔨 Building {name}...")

    def _on_build(result: BuildResult) -> None:
        if as_json:
            return
        line = _version_line(result.package, result.previous_version, result.version)
        if result.built:
            click.secho(f"  ✅ {line} [built]", fg="green")
        else:
            stage = result.stage.value if result.stage else "?"
            click.secho(f"  ❌ {line} [{result.error_type} at {stage}] {result.error}", fg="red")

    if not as_json:
        click.echo("Checking versions...")
    with _interruptible():
        result = run_update(
            runtime,
            install=not no_install,
            extra_args=extra_args,
            no_confirm=no_confirm,
            on_check=_on_check,
            on_build_start=_on_build_start,
            on_build=_on_build,
        )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    click.echo()
    click.secho("Summary:", bold=True)
    click.echo(f"   Built:      {', '.join(result.built) or '-'}")
    click.echo(f"   Up to date: {len(result.up_to_date)}")
    if result.failed:
        click.secho(f"   Failed:     {', '.join(result.failed)}", fg="red")
    if result.publish is not None:
        click.echo(f"   Repository: {len(result.publish.artifacts)} package(s) indexed")
    if result.installed:
        click.echo(f"   Installed:  {', '.join(result.installed)}")
    for error in result.errors:
        click.secho(f"❌ {error}", fg="red", err=True)

    if not result.ok:
        sys.exit(1)


# ── history ─────────────────────────────────────────────────────


@cli.command()
@click.option("-n", "count", default=10, show_default=True, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent update/build runs from the audit ledger."""
    runtime: Runtime = ctx.obj["runtime"]
    entries = runtime.audit.recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No runs recorded yet.")
        return

    colors = {"ok": "green", "partial": "yellow", "failed": "red"}
    for entry in entries:
        click.echo(f"{entry.timestamp}  {entry.command:<6} ", nl=False)
        click.secho(f"{entry.status:<7}", fg=colors.get(entry.status, "white"), nl=False)
        built = f" built: {', '.join(entry.built)}" if entry.built else ""
        failed = f" failed: {', '.join(entry.failed)}" if entry.failed else ""
        click.echo(f"{built}{failed}")


if __name__ == "__main__":
    cli()
