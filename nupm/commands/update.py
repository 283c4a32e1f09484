"""Update command implementation."""

import sys

import click

from nupm import NupmError, PackageIdentifier

from .utils import echo_install_result, fail, open_session


@click.command()
@click.argument("package_id", required=False)
@click.argument("version", required=False)
@click.option("--all", "update_all", is_flag=True, help="Update every installed package")
@click.option("--prerelease", is_flag=True, help="Consider pre-release versions")
@click.pass_context
def update(ctx, package_id: str | None, version: str | None, update_all: bool, prerelease: bool):
    """Replace an installed package with another version.

    Without VERSION the newest available version is used.
    """
    session = open_session(ctx)

    if update_all:
        try:
            updates = session.resolver.get_updates(include_prerelease=prerelease)
            if not updates:
                click.echo("All packages are up to date.")
                return
            results = session.installer.update_all(updates, session.registry.packages())
        except NupmError as e:
            fail(str(e))
        ok = [echo_install_result(r) for r in results]
        if not all(ok):
            sys.exit(1)
        return

    if not package_id:
        fail("a package id or --all is required")

    installed = session.registry.get(package_id)
    if installed is None:
        fail(f"package '{package_id}' is not installed")

    try:
        if version:
            target = PackageIdentifier(installed.id, version)
        else:
            updates = session.resolver.get_updates([installed], include_prerelease=prerelease)
            if not updates:
                click.echo(f"{installed.id} {installed.version} is up to date.")
                return
            target = updates[0]
        result = session.installer.update(installed, target)
    except NupmError as e:
        fail(str(e))
    if not echo_install_result(result):
        sys.exit(1)
