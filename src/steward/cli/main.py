"""
Top-level CLI commands: serve.
"""

import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from mcp.server.stdio import stdio_server

from steward.backend import ClaudeAgentBackend
from steward.config import ConfigError, StewardConfig, load_config, load_engineer_md
from steward.logger import get_logger, setup_logging
from steward.server import create_mcp_server
from steward.session import SessionManager

logger = get_logger(__name__)


def configure_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    setup_logging(level="DEBUG" if verbose else None)


def load_environment():
    """Load backend credentials from a .env file in the working directory, if any."""
    if load_dotenv():
        logger.debug("Loaded environment from .env")


async def run_server(repo_path: Path, config: StewardConfig, engineer_md: str):
    """Run the MCP server over stdio until the client disconnects."""
    session = SessionManager(repo_path, config, engineer_md, ClaudeAgentBackend())
    server = create_mcp_server(session, config)

    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info(f"Steward MCP server running for: {repo_path}")
            logger.info(f"Idle timeout: {config.idle_timeout_minutes:g} minutes")
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        await session.close()


def register_commands(app: typer.Typer):
    """Register top-level commands onto the app."""

    @app.command()
    def serve(
        repo_path: Path = typer.Argument(
            help="Repository containing a .stewardmcp/ directory"
        ),
    ):
        """Serve the steward for a repository as an MCP server over stdio."""
        resolved = repo_path.resolve()
        if not resolved.exists():
            typer.echo(f"Repository path does not exist: {resolved}", err=True)
            raise typer.Exit(code=1)

        try:
            config = load_config(resolved)
        except ConfigError as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(code=1)

        engineer_md = load_engineer_md(resolved)
        asyncio.run(run_server(resolved, config, engineer_md))
