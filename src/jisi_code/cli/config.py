"""CLI: jisi config show|set"""

import click
from pydantic import ValidationError
from rich.console import Console

from jisi_code.config import ClientConfig, config_file, load_config, save_config

console = Console()


@click.group()
def config():
    """Client settings (~/.jisi/config.json)."""


@config.command("show")
def config_show():
    """Print the effective settings."""
    click.echo(load_config().model_dump_json(indent=2))


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set KEY to VALUE in the config file."""
    if key not in ClientConfig.model_fields:
        raise click.BadParameter(f"unknown key {key!r}", param_hint="KEY")
    current = load_config(use_env=False)
    try:
        updated = ClientConfig.model_validate({**current.model_dump(), key: value})
    except ValidationError as e:
        raise click.BadParameter(str(e.errors()[0]["msg"]), param_hint="VALUE")
    save_config(updated)
    console.print(f"[green]{key} = {getattr(updated, key)!r}[/green] [dim]({config_file()})[/dim]")
