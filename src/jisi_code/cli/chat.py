"""CLI: jisi chat, jisi send"""

import asyncio
import json
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from jisi_code.client import AsyncJisiClient
from jisi_code.models.message import ChatMessage
from jisi_code.models.session import TokenUsage
from jisi_code.state import SessionSnapshot

console = Console()

DEFAULT_IDLE_S = 30.0


def _get_client():
    from jisi_code.cli.main import _get_client
    return _get_client()


def _connect_synced(client):
    from jisi_code.cli.main import _connect_synced
    return _connect_synced(client)


def _run(coro):
    from jisi_code.cli.main import _run
    return _run(coro)


def format_usage(usage: TokenUsage) -> str:
    return (f"tokens {usage.used_tokens:,}/{usage.window:,} "
            f"({usage.percentage:.0f}% used, {usage.remaining:,} left)")


class TranscriptPrinter:
    """Print a session transcript incrementally as snapshots arrive."""

    def __init__(self, out: Console, session_id: str):
        self._out = out
        self._session_id = session_id
        # message id -> (content chars printed, thinking chars printed)
        self._printed: dict[int, tuple[int, int]] = {}
        self._line_open = False
        self._usage: Optional[TokenUsage] = None

    def mark_seen(self, snapshot: SessionSnapshot) -> None:
        for message in snapshot.transcript(self._session_id):
            self._printed[message.id] = (len(message.content), len(message.thinking or ""))

    def new_messages(self, snapshot: SessionSnapshot) -> list[ChatMessage]:
        return [m for m in snapshot.transcript(self._session_id) if m.id not in self._printed]

    def update(self, snapshot: SessionSnapshot) -> None:
        for message in snapshot.transcript(self._session_id):
            self._print_message(message)
        metadata = snapshot.session_metadata.get(self._session_id)
        if metadata and metadata.token_usage:
            self._usage = metadata.token_usage

    def finish(self) -> None:
        self._end_line()
        if self._usage is not None:
            self._out.print(f"[dim]{format_usage(self._usage)}[/dim]")
            self._usage = None

    def _end_line(self) -> None:
        if self._line_open:
            self._out.print()
            self._line_open = False

    def _print_message(self, message: ChatMessage) -> None:
        is_new = message.id not in self._printed
        content_done, thinking_done = self._printed.get(message.id, (0, 0))
        self._printed[message.id] = (len(message.content), len(message.thinking or ""))
        if message.role == "user":
            return
        if message.role == "system":
            if is_new:
                self._end_line()
                self._out.print(message.content, style="red", markup=False, highlight=False)
            return
        if message.tool_call is not None:
            if is_new:
                self._end_line()
                args = json.dumps(message.tool_call.args, ensure_ascii=False, default=str)
                self._out.print(f"[yellow]> {escape(message.tool_call.tool_name)}[/yellow] [dim]{escape(args)}[/dim]")
            return
        if message.file_change is not None:
            if is_new:
                change = message.file_change
                self._end_line()
                self._out.print(f"[cyan]{change.action}[/cyan] {escape(change.path)}")
                if change.diff:
                    self._out.print(change.diff, markup=False, highlight=False)
            return
        thinking = (message.thinking or "")[thinking_done:]
        if thinking:
            if is_new:
                self._end_line()
            self._out.print(thinking, style="dim italic", end="", markup=False, highlight=False)
            self._line_open = True
        text = message.content[content_done:]
        if text:
            if is_new and not thinking:
                self._end_line()
                self._out.print("[green]Agent:[/green] ", end="")
            self._out.print(text, end="", markup=False, highlight=False)
            self._line_open = True


async def _resolve_session(client: AsyncJisiClient, session_id: Optional[str], agent_id: Optional[str]) -> str:
    if session_id:
        if client.snapshot.find_session(session_id) is None:
            raise click.ClickException(f"Unknown session {session_id}")
        client.select_session(session_id)
        return session_id
    if agent_id:
        with console.status("Creating session..."):
            session = await client.create_session_and_wait(agent_id)
        console.print(f"[dim]Session: {session.session_id}[/dim]")
        return session.session_id
    active = client.snapshot.active_session or (client.snapshot.sessions[0] if client.snapshot.sessions else None)
    if active is None:
        raise click.UsageError("No live session. Pass --agent to create one.")
    client.select_session(active.session_id)
    return active.session_id


async def _prompt_turn(
    client: AsyncJisiClient, printer: TranscriptPrinter, session_id: str, prompt: str, idle: float,
) -> None:
    if not client.send_prompt(session_id, prompt):
        raise click.ClickException(client.snapshot.last_error or "Send failed")
    async for snapshot in client.stream(session_id, idle_timeout=idle):
        printer.update(snapshot)
    printer.finish()


@click.command("chat")
@click.argument("session_id", required=False)
@click.option("--agent", "agent_id", default=None, help="Create a new session for this agent")
@click.option("--idle", default=DEFAULT_IDLE_S, type=float, show_default=True,
              help="Seconds of silence that end an agent turn")
def chat_cmd(session_id: Optional[str], agent_id: Optional[str], idle: float):
    """Interactive chat with an agent session."""

    async def _chat():
        client = _get_client()
        try:
            await _connect_synced(client)
            sid = await _resolve_session(client, session_id, agent_id)
            printer = TranscriptPrinter(console, sid)
            printer.mark_seen(client.snapshot)
            console.print("[cyan]Type your message (/quit to exit)[/cyan]\n")
            while True:
                msg = await asyncio.to_thread(click.prompt, "You", prompt_suffix=": ")
                if msg.lower() in ("/quit", "/exit"):
                    break
                if client.snapshot.find_session(sid) is None:
                    raise click.ClickException(f"Session {sid} was closed")
                try:
                    await _prompt_turn(client, printer, sid, msg, idle)
                except click.ClickException as e:
                    console.print(f"[red]{e.message}[/red]")
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            await client.close()

    _run(_chat())


@click.command("send")
@click.argument("message")
@click.option("-s", "--session", "session_id", default=None)
@click.option("--agent", "agent_id", default=None, help="Create a new session for this agent")
@click.option("--idle", default=DEFAULT_IDLE_S, type=float, show_default=True,
              help="Seconds of silence that end the agent turn")
@click.option("--json-output", "--json", is_flag=True)
def send_cmd(message: str, session_id: Optional[str], agent_id: Optional[str], idle: float, json_output: bool):
    """Send a one-shot prompt and print the agent's answer."""

    async def _send():
        client = _get_client()
        try:
            await _connect_synced(client)
            sid = await _resolve_session(client, session_id, agent_id)
            printer = TranscriptPrinter(console, sid)
            printer.mark_seen(client.snapshot)
            if not json_output:
                await _prompt_turn(client, printer, sid, message, idle)
                return
            if not client.send_prompt(sid, message):
                raise click.ClickException(client.snapshot.last_error or "Send failed")
            async for _ in client.stream(sid, idle_timeout=idle):
                pass
            for m in printer.new_messages(client.snapshot):
                click.echo(json.dumps(m.model_dump(mode="json", exclude_none=True), ensure_ascii=False))
        finally:
            await client.close()

    _run(_send())
