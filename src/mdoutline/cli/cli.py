"""CLI entrypoint: Typer app definition and command registration"""

from typing import Annotated

import typer

from mdoutline.cli.commands import (
    configure_logging, diff_cmd, history_cmd, init_cmd, relink_cmd, renumber_cmd, revert_cmd,
)
from mdoutline.config import load_config


app = typer.Typer(name="mdoutline", no_args_is_help=True, help="Heading numbering and heading link maintenance for markdown documents")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    ):
    try:
        level = load_config().log_level
    except ValueError:
        level = "WARNING"
    configure_logging(level, verbose)


app.command(name="renumber")(renumber_cmd)
app.command(name="relink")(relink_cmd)
app.command(name="init")(init_cmd)
app.command(name="history")(history_cmd)
app.command(name="diff")(diff_cmd)
app.command(name="revert")(revert_cmd)
