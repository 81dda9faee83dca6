"""CLI entrypoint: Typer app definition and command registration"""

import typer

from mdserve.cli.commands import convert_cmd, serve_cmd


app = typer.Typer(name="mdserve", no_args_is_help=True, help="Render Markdown to HTML, or serve a directory of it")

app.command(name="convert")(convert_cmd)
app.command(name="serve")(serve_cmd)
