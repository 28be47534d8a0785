"""
Catalog commands: list, scan, ingest, remove
"""

import json
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from awbw_replay.catalog import CatalogEvent
from awbw_replay.core import MatchSummary, ReplayError

from .._bootstrap import open_catalog

app = typer.Typer()
console = Console()

DIR_OPTION = typer.Option(None, "--dir", "-d", help="Replay directory (default: $AWBW_REPLAY_DIR)")


def _players(summary: MatchSummary) -> str:
    names = []
    for player in summary.players.values():
        names.append(player.username or f"?{player.user_id}")
    return ", ".join(names)


def _summaries_table(title: str, summaries: List[MatchSummary]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="green")
    table.add_column("Start", style="dim")
    table.add_column("End", style="dim")
    table.add_column("League", justify="center")
    table.add_column("Players", style="yellow")

    for s in summaries:
        table.add_row(
            str(s.id),
            s.name,
            s.start_date.isoformat() if s.start_date else "-",
            s.end_date.isoformat() if s.end_date else "-",
            "yes" if s.league_match else "",
            _players(s),
        )
    return table


def _fail(ex: Exception, json_output: bool = False) -> None:
    if json_output:
        print(json.dumps({"error": str(ex)}))
    else:
        console.print(f"[red]Error:[/red] {ex}")
    raise typer.Exit(2)


@app.command("list")
def list_replays(
    replay_dir: Optional[str] = DIR_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List known replays.

    Examples:
        awbw-replay catalog list
        awbw-replay catalog list --json
    """
    try:
        with open_catalog(replay_dir) as catalog:
            summaries = catalog.get_all()
    except ReplayError as ex:
        _fail(ex, json_output)

    if json_output:
        print(json.dumps({"replays": [s.to_record() for s in summaries], "count": len(summaries)}, indent=2))
        return

    if not summaries:
        console.print("[yellow]No replays in catalog[/yellow]")
        return
    console.print(_summaries_table("Replays", summaries))


@app.command()
def scan(replay_dir: Optional[str] = DIR_OPTION):
    """
    Scan the replay directory for new files and missing usernames.

    Examples:
        awbw-replay catalog scan
        awbw-replay catalog scan --dir ./replays
    """
    added: List[MatchSummary] = []
    try:
        with open_catalog(replay_dir) as catalog:
            catalog.subscribe(CatalogEvent.ADDED, added.append)
            catalog.subscribe(
                CatalogEvent.CHANGED,
                lambda s: console.print(f"[cyan]Updated[/cyan] {s.id}: {_players(s)}"),
            )
            console.print("[bold]Scanning replay directory...[/bold]")
            catalog.scan()
            catalog.drain()
            total = len(catalog)
    except ReplayError as ex:
        _fail(ex)

    if added:
        console.print(_summaries_table("New replays", added))
    console.print(f"[green]✓ Scan complete[/green]: {len(added)} new, {total} known")


@app.command()
def ingest(
    path: str = typer.Argument(..., help="Replay file (.zip or compressed JSON)"),
    replay_dir: Optional[str] = DIR_OPTION,
):
    """
    Decode a replay file and add it to the catalog.

    Examples:
        awbw-replay catalog ingest ~/Downloads/123456.zip
    """
    try:
        with open_catalog(replay_dir) as catalog:
            summary = catalog.ingest(path)
            catalog.drain()
    except ReplayError as ex:
        _fail(ex)

    console.print(f"[green]✓ Stored replay {summary.id}[/green]: {summary.name}")
    console.print(f"  Players: [yellow]{_players(summary)}[/yellow]")


@app.command()
def remove(
    replay_id: int = typer.Argument(..., help="Replay ID"),
    replay_dir: Optional[str] = DIR_OPTION,
):
    """
    Delete a stored replay and its catalog entry.

    Examples:
        awbw-replay catalog remove 123456
    """
    try:
        with open_catalog(replay_dir) as catalog:
            summary = catalog.remove(replay_id)
    except ReplayError as ex:
        _fail(ex)

    console.print(f"[green]✓ Removed replay {summary.id}[/green]: {summary.name}")
