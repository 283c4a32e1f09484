"""CLI command definitions for nupm."""

import click

from nupm import __version__
from nupm.commands.config import config
from nupm.commands.install import install
from nupm.commands.packages import list_packages, outdated
from nupm.commands.restore import restore
from nupm.commands.search import search
from nupm.commands.sources import sources
from nupm.commands.uninstall import uninstall, uninstall_all
from nupm.commands.update import update


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.option(
    "--project",
    "-p",
    type=click.Path(file_okay=False),
    default=".",
    help="Root of the host project (default: current directory)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="NUPM_CONFIG",
    help="Path to nupm.yaml (default: <project>/nupm.yaml)",
)
@click.option(
    "--source",
    "-s",
    "sources_",
    multiple=True,
    help="Use this feed instead of the configured sources (repeatable)",
)
@click.version_option(__version__, prog_name="nupm")
@click.pass_context
def cli(ctx, debug, project, config_path, sources_):
    """NuGet package manager for host projects."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["project"] = project
    ctx.obj["config"] = config_path
    ctx.obj["sources"] = list(sources_)


# Register all commands
cli.add_command(install)
cli.add_command(uninstall)
cli.add_command(uninstall_all, name="uninstall-all")
cli.add_command(restore)
cli.add_command(update)
cli.add_command(search)
cli.add_command(list_packages, name="list")
cli.add_command(outdated)
cli.add_command(sources)
cli.add_command(config)

__all__ = ["cli"]


if __name__ == "__main__":
    cli()
