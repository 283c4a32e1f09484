"""Uninstall command implementations."""

import click

from .utils import fail, open_session


@click.command()
@click.argument("package_id")
@click.argument("version", required=False)
@click.pass_context
def uninstall(ctx, package_id: str, version: str | None):
    """Remove an installed package."""
    session = open_session(ctx)
    installed = session.registry.get(package_id)
    if installed is None:
        fail(f"package '{package_id}' is not installed")
    if version and installed.compare_version(version) != 0:
        fail(f"{installed.id} {version} is not installed (installed: {installed.version})")

    session.installer.uninstall(installed)
    click.echo(f"✅ {installed.id} {installed.version} uninstalled")


@click.command(name="uninstall-all")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def uninstall_all(ctx, yes: bool):
    """Remove every installed package."""
    session = open_session(ctx)
    if not len(session.registry):
        click.echo("No packages installed.")
        return
    if not yes and not click.confirm(
        f"Uninstall all {len(session.registry)} packages?", default=False
    ):
        return

    for package in session.installer.uninstall_all():
        click.echo(f"Uninstalled {package}")
