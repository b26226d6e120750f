"""CLI subpackage for the edge-trading agent.

Create the Typer application and register all command modules.
"""

import typer

from polyquant.apps.agent.cli.analyze_cmd import analyze
from polyquant.apps.agent.cli.balance_cmd import balance
from polyquant.apps.agent.cli.book_cmd import book
from polyquant.apps.agent.cli.markets_cmd import markets
from polyquant.apps.agent.cli.presets_cmd import presets
from polyquant.apps.agent.cli.run_cmd import run

app = typer.Typer(help="Polymarket edge-trading agent")

app.command()(markets)
app.command()(book)
app.command()(analyze)
app.command()(presets)
app.command()(balance)
app.command()(run)

__all__ = ["app"]
