"""CLI: jisi fs ls|common|cwd|home|exists|search"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from jisi_code.filesystem import FilesystemAPI
from jisi_code.models.filesystem import FileSystemEntry, SearchOptions
from jisi_code.transport.http import HttpClient

console = Console()


def _load_config():
    from jisi_code.cli.main import _load_config
    return _load_config()


def _run(coro):
    from jisi_code.cli.main import _run
    return _run(coro)


async def _with_fs(action):
    http = HttpClient(base_url=_load_config().api_url)
    try:
        return await action(FilesystemAPI(http))
    finally:
        await http.close()


def _entries_table(title: str, entries: list[FileSystemEntry]) -> Table:
    table = Table(title=title)
    table.add_column("Name", style="bold")
    table.add_column("Kind")
    table.add_column("Size", justify="right")
    table.add_column("Path", style="dim")
    for entry in entries:
        kind = "dir" if entry.is_dir else "link" if entry.is_symlink else "file"
        size = f"{entry.size:,}" if entry.size is not None else ""
        table.add_row(entry.name + ("/" if entry.is_dir else ""), kind, size, entry.path)
    return table


@click.group()
def fs():
    """Browse the orchestrator host's filesystem."""


@fs.command("ls")
@click.argument("path", default=".")
@click.option("-a", "--all", "show_hidden", is_flag=True, help="Include hidden entries")
@click.option("--json-output", "--json", is_flag=True)
def fs_ls(path: str, show_hidden: bool, json_output: bool):
    """List a directory."""
    info = _run(_with_fs(lambda api: api.list(path)))
    if json_output:
        click.echo(info.model_dump_json(indent=2))
        return
    if not info.accessible:
        raise click.ClickException(f"{info.path} is not accessible")
    entries = [e for e in info.directories + info.files if show_hidden or not e.is_hidden]
    console.print(_entries_table(info.path, entries))
    if info.parent:
        console.print(f"[dim]parent: {info.parent}[/dim]")


@fs.command("common")
def fs_common():
    """Show well-known directories (home, desktop, projects...)."""
    entries = _run(_with_fs(lambda api: api.common_directories()))
    console.print(_entries_table("Common directories", entries))


@fs.command("cwd")
def fs_cwd():
    """Print the orchestrator's working directory."""
    click.echo(_run(_with_fs(lambda api: api.current_directory())))


@fs.command("home")
def fs_home():
    """Print the orchestrator user's home directory."""
    home = _run(_with_fs(lambda api: api.home_directory()))
    if home is None:
        raise click.ClickException("Home directory is unknown")
    click.echo(home)


@fs.command("exists")
@click.argument("path")
def fs_exists(path: str):
    """Check whether PATH exists. Exits 1 when it does not."""
    result = _run(_with_fs(lambda api: api.exists(path)))
    if not result.exists:
        console.print(f"[yellow]{path} does not exist[/yellow]")
        raise SystemExit(1)
    console.print(f"[green]{path}[/green] ({'directory' if result.is_dir else 'file'})")


@fs.command("search")
@click.argument("pattern")
@click.option("--base", "base_path", default=".", show_default=True)
@click.option("--recursive/--no-recursive", default=None)
@click.option("--hidden", "include_hidden", is_flag=True, default=None)
@click.option("--max-depth", type=int, default=None)
@click.option("--max-results", type=int, default=None)
@click.option("--json-output", "--json", is_flag=True)
def fs_search(pattern: str, base_path: str, recursive: Optional[bool], include_hidden: Optional[bool],
              max_depth: Optional[int], max_results: Optional[int], json_output: bool):
    """Search for files matching PATTERN."""
    options = SearchOptions(pattern=pattern, recursive=recursive, include_hidden=include_hidden,
                            max_depth=max_depth, max_results=max_results)
    result = _run(_with_fs(lambda api: api.search(base_path, options)))
    if json_output:
        click.echo(json.dumps(result.model_dump(), indent=2))
        return
    console.print(_entries_table(f"{result.total} match(es) for {pattern!r}", result.files))
    if result.truncated:
        console.print("[dim]results truncated[/dim]")
