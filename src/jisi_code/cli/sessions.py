"""CLI: jisi agents, jisi sessions list|create|close"""

import asyncio
import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from jisi_code.models.agent import capabilities_for

console = Console()


def _get_client():
    from jisi_code.cli.main import _get_client
    return _get_client()


def _connect_synced(client):
    from jisi_code.cli.main import _connect_synced
    return _connect_synced(client)


def _run(coro):
    from jisi_code.cli.main import _run
    return _run(coro)


@click.command("agents")
@click.option("--json-output", "--json", is_flag=True)
def agents_cmd(json_output: bool):
    """List the agents the orchestrator can start."""

    async def _agents():
        client = _get_client()
        try:
            await _connect_synced(client)
            agents = client.snapshot.agents
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps([a.model_dump() for a in agents], indent=2))
            return
        table = Table(title=f"Agents ({len(agents)})")
        table.add_column("ID", style="bold")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Enabled")
        table.add_column("Models")
        for agent in agents:
            caps = capabilities_for(agent.agent_type)
            models = ", ".join(m.id for m in caps.default_models) or "-"
            if caps.supports_reasoning_effort:
                models += " (+effort)"
            table.add_row(agent.id, agent.display_name, agent.agent_type,
                          "yes" if agent.enabled else "[dim]no[/dim]", models)
        console.print(table)

    _run(_agents())


@click.group()
def sessions():
    """Session management."""


@sessions.command("list")
@click.option("--json-output", "--json", is_flag=True)
def sessions_list(json_output: bool):
    """List live sessions."""

    async def _list():
        client = _get_client()
        try:
            await _connect_synced(client)
            listed = client.snapshot.sessions
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps([s.model_dump(by_alias=True) for s in listed], indent=2))
            return
        table = Table(title=f"Sessions ({len(listed)})")
        table.add_column("ID", style="bold")
        table.add_column("Agent")
        table.add_column("Status")
        table.add_column("Model")
        table.add_column("Effort")
        for s in listed:
            cfg = s.session_model_config
            table.add_row(s.session_id, s.agent_name, s.status,
                          (cfg.model if cfg else None) or "-",
                          (cfg.reasoning_effort if cfg else None) or "-")
        console.print(table)

    _run(_list())


@sessions.command("create")
@click.argument("agent_id")
@click.option("-p", "--project", "project_path", default=None, help="Project directory for the agent")
@click.option("--model", default=None)
@click.option("--effort", type=click.Choice(["low", "medium", "high"]), default=None)
def sessions_create(agent_id: str, project_path: Optional[str], model: Optional[str], effort: Optional[str]):
    """Create a new session for AGENT_ID."""

    async def _create():
        client = _get_client()
        try:
            await _connect_synced(client)
            with console.status("Creating session..."):
                session = await client.create_session_and_wait(
                    agent_id, project_path, {"model": model, "reasoning_effort": effort},
                )
        finally:
            await client.close()
        console.print(f"[green]Session created: {session.session_id}[/green] ({session.agent_name})")

    _run(_create())


@sessions.command("close")
@click.argument("session_id")
@click.option("--timeout", default=10.0, type=float, show_default=True)
def sessions_close(session_id: str, timeout: float):
    """Close a session."""

    async def _close():
        client = _get_client()
        try:
            await _connect_synced(client)
            if not client.close_session(session_id):
                raise click.ClickException(client.snapshot.last_error or "Send failed")
            with console.status("Closing..."):
                try:
                    snapshot = await client.wait_for(
                        lambda s: s.find_session(session_id) is None or s.last_error is not None, timeout,
                    )
                except asyncio.TimeoutError:
                    raise click.ClickException(f"Session {session_id} was not closed within {timeout}s")
            if snapshot.find_session(session_id) is not None:
                raise click.ClickException(snapshot.last_error or "Close failed")
        finally:
            await client.close()
        console.print(f"[green]Session {session_id} closed.[/green]")

    _run(_close())
