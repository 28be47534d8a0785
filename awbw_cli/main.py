#!/usr/bin/env python3
"""
AWBW Replay CLI

Main entrypoint for the awbw-replay command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from awbw_cli._bootstrap import bootstrap
from awbw_cli.commands import catalog, replay

app = typer.Typer(
    name="awbw-replay",
    help="Replay catalog and playback engine CLI",
    add_completion=False,
)

console = Console()

app.add_typer(catalog.app, name="catalog", help="Replay catalog operations")
app.add_typer(replay.app, name="replay", help="Decode and play back replays")


@app.callback()
def _setup(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    bootstrap(verbose)


@app.command()
def version():
    """Show version information."""
    from awbw_cli import __version__
    from awbw_replay import __version__ as engine_version
    from awbw_replay.core import default_registry

    table = Table(show_header=False, box=None)
    table.add_row("[bold]AWBW Replay CLI[/bold]", f"v{__version__}")
    table.add_row("Engine", f"v{engine_version}")
    table.add_row("Actions", ", ".join(default_registry().codes()))

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
