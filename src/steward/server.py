"""
MCP front end: exposes the session as `ask`, `status` and `clear` tools.

`StewardTools` holds the tool logic and is transport-agnostic;
`create_mcp_server` wires it into an MCP low-level server.
"""

import json

import mcp.types as types
from mcp.server.lowlevel import Server
from pydantic import BaseModel, Field, ValidationError

from steward import __version__
from steward.config import StewardConfig
from steward.logger import get_logger
from steward.session import SessionManager

logger = get_logger(__name__)


class ToolError(Exception):
    """A tool call failed; the message is returned to the client as an error result."""


class AskArguments(BaseModel):
    """Arguments for the `ask` tool."""

    question: str = Field(min_length=1)
    caller: str


class EmptyArguments(BaseModel):
    pass


TOOL_DEFINITIONS = [
    types.Tool(
        name="ask",
        description="Ask the steward engineer a question about this codebase",
        inputSchema={
            "type": "object",
            "properties": {
                "question": {"type": "string", "minLength": 1},
                "caller": {"type": "string"},
            },
            "required": ["question", "caller"],
        },
    ),
    types.Tool(
        name="status",
        description="Get the current status of the steward session",
        inputSchema={"type": "object", "properties": {}},
    ),
    types.Tool(
        name="clear",
        description=(
            "Reset the steward session. The next ask will start fresh with a new warmup."
        ),
        inputSchema={"type": "object", "properties": {}},
    ),
]


def _text(text: str) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=text)]


def _validate(model: type[BaseModel], arguments: dict | None) -> BaseModel:
    try:
        return model.model_validate(arguments or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        raise ToolError(f"Invalid arguments: {problems}") from e


class StewardTools:
    """Tool handlers backed by a SessionManager."""

    def __init__(self, session: SessionManager):
        self.session = session

    async def ask(self, arguments: dict | None) -> list[types.TextContent]:
        args = _validate(AskArguments, arguments)
        try:
            answer = await self.session.ask(args.question, args.caller)
        except Exception as e:
            raise ToolError(f"Error: {e}") from e
        return _text(answer)

    async def status(self, arguments: dict | None = None) -> list[types.TextContent]:
        _validate(EmptyArguments, arguments)
        return _text(json.dumps(self.session.status(), indent=2))

    async def clear(self, arguments: dict | None = None) -> list[types.TextContent]:
        self.session.destroy()
        return _text("Session cleared.")

    async def call(self, name: str, arguments: dict | None) -> list[types.TextContent]:
        """Dispatch a tool call by name."""
        handler = {
            "ask": self.ask,
            "status": self.status,
            "clear": self.clear,
        }.get(name)
        if handler is None:
            raise ToolError(f"Unknown tool: {name}")

        logger.debug(f"Tool call: {name}")
        try:
            return await handler(arguments)
        except ToolError as e:
            logger.warning(f"Tool '{name}' returned an error: {e}")
            raise


def create_mcp_server(session: SessionManager, config: StewardConfig) -> Server:
    """Wire up MCP tools and return the server instance (not yet connected)."""
    server = Server(config.name, version=__version__)
    tools = StewardTools(session)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return TOOL_DEFINITIONS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
        # Exceptions raised here become error-flagged results carrying the message.
        return await tools.call(name, arguments)

    return server
