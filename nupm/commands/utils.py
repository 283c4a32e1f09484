"""Shared utility functions for commands."""

import sys
from pathlib import Path

import click

from nupm import NupmError, Session, format_error, setup_logging
from nupm.hooks import ClickHooks
from nupm.installer import InstallResult, InstallStatus


def open_session(ctx: click.Context) -> Session:
    """Open a session for the project selected on the command line.

    Exits with status 1 when the configuration cannot be loaded.
    """
    obj = ctx.obj or {}
    debug = obj.get("debug", False)
    setup_logging(debug)
    try:
        session = Session.open(
            Path(obj.get("project") or "."),
            config_path=obj.get("config"),
            command_line_sources=obj.get("sources"),
            hooks=ClickHooks(),
        )
    except NupmError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)

    if session.config.verbose and not debug:
        setup_logging(True)
    return session


def fail(message: str) -> None:
    click.echo(format_error(message), err=True)
    sys.exit(1)


def echo_install_result(result: InstallResult) -> bool:
    """Print one install outcome and return whether it succeeded."""
    package = result.package
    if result.status is InstallStatus.INSTALLED:
        click.echo(f"✅ {package.id} {package.version} installed")
    elif result.status is InstallStatus.UPDATED:
        click.echo(f"✅ {package.id} updated to {package.version}")
    elif result.status is InstallStatus.SKIPPED:
        click.echo(f"{package} is already satisfied")
    else:
        click.echo(f"❌ {package}: {result.error}", err=True)

    if result.clean is not None:
        for failure in result.clean.failures:
            click.secho(f"⚠️  {failure.error}", fg="yellow", err=True)

    return result.ok
