"""Initialize config command implementation."""

import sys
from pathlib import Path

import click

from nupm import ConfigError, format_error
from nupm.config import default_config, save_config
from nupm.paths import get_config_path


@click.command(name="init")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Force re-initialization, overwriting existing config",
)
@click.pass_context
def config_init(ctx, force: bool):
    """Create nupm.yaml in the project with the default nuget.org source.

    Use --force to overwrite an existing config (creates backup first).
    """
    obj = ctx.obj or {}
    config_path = Path(obj["config"]) if obj.get("config") else get_config_path(Path(obj.get("project") or "."))

    if config_path.exists() and not force:
        click.echo(f"Config file already exists: {config_path}")
        click.echo("Use --force to re-initialize (creates backup first).")
        sys.exit(1)

    if config_path.exists():
        backup_path = config_path.with_suffix(".yaml.bak")
        click.echo(f"Backing up existing config to {backup_path}...")
        config_path.replace(backup_path)
        click.echo("✅ Backup created")

    click.echo(f"Initializing config at {config_path}...")
    try:
        save_config(default_config(), config_path)
    except (ConfigError, OSError) as e:
        click.echo(format_error(f"initialization failed: {e}"), err=True)
        sys.exit(1)
    click.echo("✅ Config initialized successfully")
