"""List and outdated command implementations."""

import click

from .utils import open_session


@click.command(name="list")
@click.pass_context
def list_packages(ctx):
    """List installed packages."""
    session = open_session(ctx)
    packages = session.registry.packages()
    if not packages:
        click.echo("No packages installed.")
        return

    width = max(len(p.id) for p in packages)
    for package in packages:
        flag = "" if session.manifest.find(package.id) else "  (not in packages.config)"
        click.echo(f"{package.id:<{width}}  {package.version}{flag}")


@click.command()
@click.option("--prerelease", is_flag=True, help="Consider pre-release versions")
@click.pass_context
def outdated(ctx, prerelease: bool):
    """Show installed packages with newer versions available."""
    session = open_session(ctx)
    updates = session.resolver.get_updates(include_prerelease=prerelease)
    if not updates:
        click.echo("All packages are up to date.")
        return

    for update in updates:
        installed = session.registry.get(update.id)
        current = installed.version if installed is not None else "?"
        click.echo(f"{update.id}: {current} -> {update.version}")
