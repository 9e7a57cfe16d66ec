"""
Jisi Code CLI — `jisi` command.

Commands:
  jisi agents                  Agent catalog
  jisi sessions <cmd>          Session list/create/close
  jisi chat [session-id]       Interactive REPL chat
  jisi send <message>          One-shot prompt
  jisi fs <cmd>                Browse the orchestrator's filesystem
  jisi config <cmd>            Show or change settings
"""

import asyncio
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from jisi_code import __version__
from jisi_code.client import AsyncJisiClient
from jisi_code.config import ClientConfig, load_config
from jisi_code.errors import ConnectionError, JisiCodeError
from jisi_code.models.events import ServerEvent, ServerMessage

console = Console()

CATALOG_EVENTS = {ServerEvent.AGENT_LIST, ServerEvent.SESSION_LIST}


def _load_config() -> ClientConfig:
    return load_config()


def _get_client() -> AsyncJisiClient:
    return AsyncJisiClient.from_config(_load_config())


async def _connect_synced(client: AsyncJisiClient, timeout: float = 10.0) -> None:
    """Connect and wait until the agent and session lists have arrived."""
    seen: set[str] = set()
    synced = asyncio.Event()

    def on_message(message: ServerMessage) -> None:
        if message.type in CATALOG_EVENTS:
            seen.add(message.type)
            if seen == CATALOG_EVENTS:
                synced.set()

    remove = client.connection.add_message_handler(on_message)
    try:
        with console.status(f"Connecting to {client.connection.url}..."):
            await client.connect(timeout=timeout)
            await asyncio.wait_for(synced.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        raise ConnectionError("Orchestrator did not answer the catalog refresh")
    finally:
        remove()


def _run(coro):
    try:
        return asyncio.run(coro)
    except JisiCodeError as e:
        raise click.ClickException(str(e))


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose)],
    )


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log protocol traffic and state changes.")
def main(verbose: bool):
    """Jisi Code CLI — drive AI coding-agent sessions from the terminal."""
    _setup_logging(verbose)


# Register subcommands from separate modules
from jisi_code.cli.chat import chat_cmd, send_cmd  # noqa: E402
from jisi_code.cli.config import config  # noqa: E402
from jisi_code.cli.fs import fs  # noqa: E402
from jisi_code.cli.sessions import agents_cmd, sessions  # noqa: E402

main.add_command(agents_cmd)
main.add_command(sessions)
main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(fs)
main.add_command(config)


if __name__ == "__main__":
    main()
