"""Search command implementation."""

import click

from .utils import open_session


@click.command()
@click.argument("term", required=False, default="")
@click.option("--all-versions", is_flag=True, help="List every version, not only the latest")
@click.option("--prerelease", is_flag=True, help="Include pre-release versions")
@click.option("--take", default=15, show_default=True, help="Number of results")
@click.option("--skip", default=0, help="Number of results to skip")
@click.pass_context
def search(ctx, term: str, all_versions: bool, prerelease: bool, take: int, skip: int):
    """Search the active sources for packages."""
    session = open_session(ctx)
    packages = session.resolver.search(term, all_versions, prerelease, take, skip)
    if not packages:
        click.echo("No packages found.")
        return

    for package in packages:
        installed = session.registry.get(package.id)
        marker = " (installed)" if installed is not None and installed == package else ""
        source = f"  [{package.source.name}]" if package.source is not None else ""
        click.echo(f"{package.id} {package.version}{marker}{source}")
        if package.title and package.title != package.id:
            click.echo(f"    {package.title}")
