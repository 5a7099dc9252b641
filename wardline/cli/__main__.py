"""Wardline CLI - Main Entry Point.

Commands:
    compile      - Rescan handlers and rewrite the registry document
    inspect      - Show the compiled registry
    check        - Exit non-zero when the registry document is stale
    clear-cache  - Delete the durable cache
"""

import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from ..app import Wardline
from ..cache import FileDurableBackend, TwoTierCache
from ..config import ConfigLoader, WardlineConfig
from ..controller.base import ControllerType
from ..faults import ConfigError, Fault, RegistrationError
from .output import error, info, kv, success, table, warning


def _make_importable(config: WardlineConfig) -> None:
    """Put the handler package's parent directory on sys.path."""
    parent = str(Path(config.handlers_dir).resolve().parent)
    if parent not in sys.path:
        sys.path.insert(0, parent)


def _app(ctx: click.Context) -> Wardline:
    config: WardlineConfig = ctx.obj["config"]
    _make_importable(config)
    return Wardline(config)


@click.group()
@click.version_option(version=__version__, prog_name="wardline")
@click.option("--config", "config_paths", multiple=True, type=click.Path(), help="YAML or JSON config file")
@click.option("--env-file", type=click.Path(), default=None, help=".env file with WL_* settings")
@click.option("--mode", type=click.Choice(["dev", "prod"]), default=None, help="Override the registry mode")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.pass_context
def cli(ctx, config_paths, env_file: Optional[str], mode: Optional[str], log_level: str):
    """Controller registry and guard pipeline tooling.

    \b
    Quick start:
      wardline compile
      wardline inspect
      wardline check
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    try:
        loader = ConfigLoader.load(
            paths=list(config_paths) or None,
            env_file=env_file,
            overrides={"mode": mode} if mode else None,
        )
        ctx.obj["config"] = loader.to_config()
    except ConfigError as e:
        error(f"Invalid configuration: {e.message}")
        sys.exit(2)


# ============================================================================
# Commands
# ============================================================================

@cli.command("compile")
@click.pass_context
def compile_cmd(ctx):
    """Rescan handlers and rewrite the registry document."""
    app = _app(ctx)
    try:
        document = app.compile()
    except RegistrationError as e:
        error(e.format_error())
        sys.exit(1)
    except Fault as e:
        error(str(e))
        sys.exit(1)

    success("Registry compiled")
    kv("Document", app.config.registry_path)
    kv("Controllers", document["metadata"]["count"])
    kv("Schema version", document["metadata"]["schema_version"])


@cli.command("inspect")
@click.option("--json", "as_json", is_flag=True, help="Print the registry as JSON")
@click.pass_context
def inspect_cmd(ctx, as_json: bool):
    """Show the compiled registry."""
    app = _app(ctx)
    try:
        registry = app.load_registry()
    except RegistrationError as e:
        error(e.format_error())
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(registry.inspect(), indent=2, sort_keys=True))
        return

    kv("Schema version", registry.schema_version)
    kv("Generated at", registry.generated_at)
    kv("Controllers", registry.total_count)
    click.echo()

    rows = []
    for ctype in ControllerType:
        for handle, identity in sorted(registry.handles(ctype).items()):
            descriptor = registry.descriptor(identity)
            actions = ", ".join(descriptor.actions) if descriptor else ""
            rows.append((ctype.value, handle, identity, actions or "-"))
    if rows:
        table(["Type", "Handle", "Controller", "Actions"], rows)
    else:
        warning("  No controllers registered")


@cli.command("check")
@click.pass_context
def check_cmd(ctx):
    """Exit with status 1 if a dev-mode boot would rescan."""
    config: WardlineConfig = ctx.obj["config"]
    _make_importable(config)
    app = Wardline(dataclasses.replace(config, mode="dev"))

    loader = app.loader()
    if not Path(config.registry_path).exists():
        warning(f"No registry document at {config.registry_path}")
        sys.exit(1)

    reason = loader.stale_reason()
    if reason:
        warning(f"Registry is stale: {reason}")
        sys.exit(1)

    if loader.load() is None:
        warning("Registry document was discarded; run `wardline compile`")
        sys.exit(1)

    success("Registry is up to date")


@cli.command("clear-cache")
@click.pass_context
def clear_cache_cmd(ctx):
    """Delete the durable cache store."""
    config: WardlineConfig = ctx.obj["config"]
    TwoTierCache(FileDurableBackend(config.cache_path)).clear()
    info(f"Cleared {config.cache_path}")


def main():
    """Entry point for `wardline` command."""
    cli(obj={})


if __name__ == "__main__":
    main()
