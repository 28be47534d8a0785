"""
Replay commands: inspect and play back a stored replay
"""

import json
from collections import Counter
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from awbw_replay.core import ReplayError
from awbw_replay.playback import DriverState, InMemoryGameState, PlaybackDriver

from .._bootstrap import open_catalog

app = typer.Typer()
console = Console()

DIR_OPTION = typer.Option(None, "--dir", "-d", help="Replay directory (default: $AWBW_REPLAY_DIR)")


def _fail(ex: Exception, json_output: bool = False) -> None:
    if json_output:
        print(json.dumps({"error": str(ex)}))
    else:
        console.print(f"[red]Error:[/red] {ex}")
    raise typer.Exit(2)


@app.command()
def inspect(
    replay_id: int = typer.Argument(..., help="Replay ID"),
    replay_dir: Optional[str] = DIR_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Decode a stored replay and show its turns.

    Examples:
        awbw-replay replay inspect 123456
        awbw-replay replay inspect 123456 --json
    """
    try:
        with open_catalog(replay_dir) as catalog:
            match = catalog.load_match(replay_id)
    except ReplayError as ex:
        _fail(ex, json_output)

    if json_output:
        output = {
            "replay": match.summary.to_record(),
            "turns": [
                {
                    "player_id": t.active_player_id,
                    "team": t.active_team,
                    "day": t.day,
                    "actions": [a.code for a in t.actions],
                }
                for t in match.turns
            ],
        }
        print(json.dumps(output, indent=2))
        return

    console.print(f"[bold]Replay {match.summary.id}[/bold]: {match.summary.name}")
    table = Table(title="Turns")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Day", justify="right")
    table.add_column("Player", style="yellow")
    table.add_column("Actions", style="green")

    players = match.summary.players
    for i, turn in enumerate(match.turns):
        player = players.get(turn.active_player_id)
        name = (player.username if player else None) or str(turn.active_player_id)
        counts = Counter(a.code for a in turn.actions)
        table.add_row(
            str(i),
            str(turn.day),
            name,
            ", ".join(f"{code}×{n}" for code, n in sorted(counts.items())),
        )

    console.print(table)
    console.print(f"\n[bold]Total actions:[/bold] {match.action_count()}")


@app.command()
def play(
    replay_id: int = typer.Argument(..., help="Replay ID"),
    replay_dir: Optional[str] = DIR_OPTION,
    until: Optional[int] = typer.Option(None, "--until", "-u", help="Stop after this many actions"),
):
    """
    Play a stored replay against an in-memory game state.

    Every wait point is resumed immediately.

    Examples:
        awbw-replay replay play 123456
        awbw-replay replay play 123456 --until 40
    """
    try:
        with open_catalog(replay_dir) as catalog:
            match = catalog.load_match(replay_id)

        state = InMemoryGameState()
        driver = PlaybackDriver()
        driver.start(match, state)
        if until is None:
            driver.run_to_completion()
        else:
            driver.run_until(until)
    except ReplayError as ex:
        _fail(ex)

    status = "green" if driver.state == DriverState.COMPLETED else "yellow"
    console.print(
        f"[{status}]Playback {driver.state.value}[/{status}] after "
        f"{driver.completed_actions}/{driver.total_actions} actions (day {state.day})"
    )

    table = Table(title="Units")
    table.add_column("Unit", style="cyan", justify="right")
    table.add_column("Owner", style="yellow", justify="right")
    table.add_column("Name", style="green")
    table.add_column("HP", justify="right")
    table.add_column("Position")

    for unit in sorted(state.units.values(), key=lambda u: u.unit_id):
        table.add_row(
            str(unit.unit_id),
            str(unit.owner_id),
            unit.name or "?",
            str(unit.hit_points),
            f"{unit.position[0]},{unit.position[1]}" if unit.position else "-",
        )
    console.print(table)

    if state.game_over:
        console.print(f"[bold]Game over[/bold] winners: {list(state.winners)}")
