"""Restore command implementation."""

import sys

import click

from nupm import format_error

from .utils import echo_install_result, open_session


@click.command()
@click.pass_context
def restore(ctx):
    """Install every package listed in packages.config that is missing."""
    session = open_session(ctx)
    result = session.restore()

    for install_result in result.results:
        echo_install_result(install_result)
    for folder in result.removed:
        click.echo(f"Removed unnecessary package {folder.name}")

    if result.error is not None:
        click.echo(format_error(str(result.error)), err=True)
    if not result.ok:
        sys.exit(1)
    click.echo("✅ Restore complete")
