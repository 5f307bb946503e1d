"""
devsetup — CLI entrypoint.

Usage:
    devsetup bundles
    devsetup install projektwoche --dry-run
    devsetup i projektwoche -n            (aliases: i, u, cfg)
    devsetup uninstall ./my-bundle.yml
    devsetup config loglevel debug
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from devsetup import __version__
from devsetup.core.observability.logging_config import (
    ENV_LOG_FILE,
    resolve_level,
    setup_logging,
)

_LEVEL_NAMES = ["debug", "info", "warning", "error", "critical"]

# Short names accepted on the command line, hidden from --help.
COMMAND_ALIASES = {"i": "install", "u": "uninstall", "cfg": "config"}


class AliasedGroup(click.Group):
    """Group that also resolves the short command names in ``COMMAND_ALIASES``."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, COMMAND_ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx: click.Context, args: list[str]):
        _, cmd, args = super().resolve_command(ctx, args)
        return (cmd.name if cmd else None), cmd, args


@click.group(cls=AliasedGroup)
@click.version_option(version=__version__, prog_name="devsetup")
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic logging at INFO.")
@click.option("--debug", is_flag=True, help="Show diagnostic logging at DEBUG (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.yml (default: per-user app directory).",
)
@click.option(
    "--log-level",
    type=click.Choice(_LEVEL_NAMES, case_sensitive=False),
    default=None,
    help="Progress output level for this run (default: configured level).",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also append progress and diagnostics to this file.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    debug: bool,
    config_path: str | None,
    log_level: str | None,
    log_file: str | None,
) -> None:
    """devsetup — provision developer tool bundles on this machine."""
    from devsetup.core.config.loader import ConfigError, default_config_path, load_config

    ctx.ensure_object(dict)
    log_file = log_file or os.environ.get(ENV_LOG_FILE)

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(level=resolve_level(debug=debug, verbose=verbose), log_file=log_file)

    path = Path(config_path).expanduser() if config_path else default_config_path()
    try:
        config = load_config(path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    ctx.obj["config_path"] = path
    ctx.obj["config"] = config
    ctx.obj["log_level"] = log_level
    ctx.obj["log_file"] = log_file


# ── Helpers ─────────────────────────────────────────────────────


def _start_log_bus(ctx: click.Context):
    """Console (and optional file) log bus, shut down when the command ends."""
    from devsetup.core.observability.log_bus import (
        ConsoleOutput,
        FileOutput,
        LevelFilter,
        LoggerSystem,
        LogLevel,
    )

    config = ctx.obj["config"]
    level = LogLevel.parse(ctx.obj["log_level"]) if ctx.obj.get("log_level") else config.log_level

    system = LoggerSystem()
    system.collector.add_filter(LevelFilter(level))
    system.collector.add_output(ConsoleOutput(use_colors=sys.stdout.isatty()))
    if ctx.obj.get("log_file"):
        system.collector.add_output(FileOutput(ctx.obj["log_file"]))
    system.start_collector()
    ctx.call_on_close(system.shutdown)
    return system


def _user_bundle_dir(ctx: click.Context) -> Path:
    return Path(ctx.obj["config_path"]).parent / "bundles"


def _resolve_bundle(ctx: click.Context, ref: str):
    """Catalog name, user bundle name, or path to a bundle file."""
    from devsetup.catalog import bundle_names, get_bundle
    from devsetup.core.config.bundle_loader import (
        discover_bundles,
        is_bundle_file,
        load_bundle_file,
    )
    from devsetup.core.config.loader import ConfigError

    if is_bundle_file(ref):
        try:
            return load_bundle_file(Path(ref).expanduser())
        except ConfigError as e:
            raise click.BadParameter(str(e), param_hint="BUNDLE") from e

    try:
        return get_bundle(ref)
    except KeyError:
        pass

    user_bundles = discover_bundles(_user_bundle_dir(ctx))
    if ref.lower() in user_bundles:
        return user_bundles[ref.lower()]

    available = ", ".join(bundle_names() + list(user_bundles)) or "none"
    raise click.BadParameter(f"Unknown bundle {ref!r}. Available: {available}", param_hint="BUNDLE")


def _run_bundle(ctx: click.Context, bundle_ref: str, operation: str, dry_run: bool) -> None:
    bundle = _resolve_bundle(ctx, bundle_ref)
    config = ctx.obj["config"]
    system = _start_log_bus(ctx)

    if operation == "install":
        bundle.install(config.machine.os, dry_run, system)
    else:
        bundle.uninstall(config.machine.os, dry_run, system)

    system.shutdown()


# ── Bundle operations ───────────────────────────────────────────


@cli.command()
@click.argument("bundle_ref", metavar="BUNDLE")
@click.option("--dry-run", "-n", is_flag=True, help="Log every step without executing it.")
@click.pass_context
def install(ctx: click.Context, bundle_ref: str, dry_run: bool) -> None:
    """Install BUNDLE, then configure it."""
    _run_bundle(ctx, bundle_ref, "install", dry_run)


@cli.command()
@click.argument("bundle_ref", metavar="BUNDLE")
@click.option("--dry-run", "-n", is_flag=True, help="Log every step without executing it.")
@click.pass_context
def uninstall(ctx: click.Context, bundle_ref: str, dry_run: bool) -> None:
    """Deconfigure BUNDLE, then uninstall it."""
    _run_bundle(ctx, bundle_ref, "uninstall", dry_run)


@cli.command()
@click.pass_context
def bundles(ctx: click.Context) -> None:
    """List available bundles and their packages."""
    from devsetup.catalog import BUNDLES
    from devsetup.core.config.bundle_loader import discover_bundles

    os_type = ctx.obj["config"].machine.os
    available = [factory() for factory in BUNDLES.values()]
    available.extend(discover_bundles(_user_bundle_dir(ctx)).values())

    for bundle in available:
        click.secho(f"\n📦 {bundle.name}", fg="cyan", bold=True)
        if bundle.description:
            click.echo(f"   {bundle.description}")
        for package in bundle.packages:
            if package.supports(os_type):
                click.echo(f"     • {package.name}")
            else:
                click.echo(f"     • {package.name}", nl=False)
                click.secho(f"  (not available on {os_type.value})", fg="yellow")
    click.echo()


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Inspect and change the stored configuration."""


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show the configuration and where it is stored."""
    cfg = ctx.obj["config"]
    if as_json:
        data = cfg.model_dump(mode="json")
        data["path"] = str(ctx.obj["config_path"])
        click.echo(json.dumps(data, indent=2))
        return

    click.secho(f"📄 {ctx.obj['config_path']}", fg="cyan", bold=True)
    click.echo(f"   Machine:   {cfg.machine.describe()}")
    click.echo(f"   Log level: {cfg.log_level.name.lower()}")


@config.command("loglevel")
@click.argument(
    "level",
    required=False,
    type=click.Choice(_LEVEL_NAMES, case_sensitive=False),
)
@click.pass_context
def config_loglevel(ctx: click.Context, level: str | None) -> None:
    """Show the default progress log level, or set it to LEVEL."""
    from devsetup.core.config.loader import ConfigError, save_config
    from devsetup.core.observability.log_bus import LogLevel

    cfg = ctx.obj["config"]
    if level is None:
        click.echo(cfg.log_level.name.lower())
        return

    updated = cfg.model_copy(update={"log_level": LogLevel.parse(level)})
    try:
        save_config(updated, ctx.obj["config_path"])
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    ctx.obj["config"] = updated
    click.secho(f"✅ Log level set to {level.lower()}", fg="green")


@config.command("detect")
@click.pass_context
def config_detect(ctx: click.Context) -> None:
    """Re-detect this machine and store the result."""
    from devsetup.core.config.loader import ConfigError, save_config
    from devsetup.core.detection.machine import detect_machine

    machine = detect_machine()
    updated = ctx.obj["config"].model_copy(update={"machine": machine})
    try:
        save_config(updated, ctx.obj["config_path"])
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    ctx.obj["config"] = updated
    click.secho(f"✅ Detected {machine.describe()}", fg="green")


if __name__ == "__main__":
    cli()
