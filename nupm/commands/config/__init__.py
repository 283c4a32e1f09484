"""Configuration management commands."""

import click

from nupm.commands.config.init import config_init


@click.group()
def config():
    """Configuration management commands."""
    pass


config.add_command(config_init, name="init")
