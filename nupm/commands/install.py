"""Install command implementation."""

import logging
import sys

import click

from nupm import (
    CircularDependencyError,
    InvalidVersionError,
    PackageIdentifier,
    VersionRange,
    format_error,
)

from .utils import echo_install_result, open_session

_logging = logging.getLogger(__name__)


@click.command()
@click.argument("package_id")
@click.argument("version", required=False)
@click.pass_context
def install(ctx, package_id: str, version: str | None):
    """Install a package and its dependencies.

    VERSION may be an exact version or a range such as "[1.0,2.0)".
    Without it the newest available version is installed.
    """
    session = open_session(ctx)
    try:
        VersionRange.parse(version)
    except InvalidVersionError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    identifier = PackageIdentifier(package_id, version)

    click.echo(f"Installing {identifier}...")
    try:
        result = session.installer.install_identifier(identifier)
    except CircularDependencyError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)

    for dependency in result.dependencies:
        _logging.debug(f"Dependency {dependency.package}: {dependency.status.value}")

    if not echo_install_result(result):
        sys.exit(1)
