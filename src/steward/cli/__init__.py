"""
Steward CLI.

- main: serve (run the MCP server for a repository over stdio)
"""

import typer

from steward.cli.main import configure_logging, load_environment, register_commands

app = typer.Typer(help="Steward - a resident engineer for your repository, over MCP")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """
    Steward - a resident engineer for your repository, over MCP.
    """
    configure_logging(verbose)
    load_environment()


register_commands(app)

if __name__ == "__main__":
    app()
