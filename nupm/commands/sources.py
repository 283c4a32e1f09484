"""Sources command implementation."""

import click

from nupm.config import AGGREGATE_SOURCE_NAME
from nupm.sources import is_local_path

from .utils import open_session


@click.command()
@click.pass_context
def sources(ctx):
    """Show the configured package sources."""
    session = open_session(ctx)
    config = session.config
    active = {s.name for s in config.active_sources}

    click.echo(f"Active source: {config.active_source or AGGREGATE_SOURCE_NAME}")
    for source in config.sources:
        state = "enabled" if source.enabled else "disabled"
        marker = "*" if source.name in active else " "
        kind = "local" if is_local_path(source.path) else "remote"
        click.echo(f" {marker} {source.name} ({kind}, {state}): {source.path}")
