"""Tests for the MCP tool front end."""

import json
from unittest.mock import AsyncMock, MagicMock

import mcp.types as types
import pytest
from mcp.server.lowlevel import Server

from steward.backend import BackendError
from steward.server import TOOL_DEFINITIONS, StewardTools, ToolError, create_mcp_server


@pytest.fixture
def tools(manager):
    return StewardTools(manager)


class TestAskTool:
    @pytest.mark.asyncio
    async def test_returns_answer_text(self, tools):
        content = await tools.call("ask", {"question": "What does X do?", "caller": "alice"})

        assert len(content) == 1
        assert content[0].type == "text"
        assert content[0].text == "answer to: What does X do?"

    @pytest.mark.asyncio
    async def test_backend_failure_becomes_error_result(self, tools, backend):
        backend.fail_on["hello"] = BackendError("process exited with code 1")

        with pytest.raises(ToolError, match="^Error: process exited with code 1$"):
            await tools.call("ask", {"question": "q", "caller": "alice"})

    @pytest.mark.asyncio
    async def test_invalid_arguments_never_reach_session(self):
        session = MagicMock()
        session.ask = AsyncMock()
        tools = StewardTools(session)

        for arguments in (
            {"question": "", "caller": "alice"},
            {"question": "q"},
            {"question": 3, "caller": "alice"},
            None,
        ):
            with pytest.raises(ToolError, match="Invalid arguments"):
                await tools.call("ask", arguments)

        session.ask.assert_not_called()


class TestStatusTool:
    @pytest.mark.asyncio
    async def test_reports_session_status_as_json(self, tools):
        content = await tools.call("status", {})

        assert json.loads(content[0].text) == {
            "state": "uninitialized",
            "currentCaller": None,
            "turnCount": 0,
            "idleSeconds": None,
            "idleTimeoutMinutes": 10,
        }

    @pytest.mark.asyncio
    async def test_reflects_completed_ask(self, tools):
        await tools.call("ask", {"question": "q", "caller": "alice"})

        status = json.loads((await tools.call("status", None))[0].text)
        assert status["state"] == "idle"
        assert status["turnCount"] == 1
        assert status["currentCaller"] == "alice"
        assert status["idleSeconds"] == 0


class TestClearTool:
    @pytest.mark.asyncio
    async def test_clears_session(self, tools, manager):
        await tools.call("ask", {"question": "q", "caller": "alice"})

        content = await tools.call("clear", {})

        assert content[0].text == "Session cleared."
        assert manager.state == "uninitialized"
        assert manager.turn_count == 0

    @pytest.mark.asyncio
    async def test_clear_on_fresh_session_succeeds(self, tools):
        content = await tools.call("clear", None)
        assert content[0].text == "Session cleared."


class TestDispatch:
    @pytest.mark.asyncio
    async def test_unknown_tool(self, tools):
        with pytest.raises(ToolError, match="Unknown tool: nope"):
            await tools.call("nope", {})

    def test_tool_definitions(self):
        assert [tool.name for tool in TOOL_DEFINITIONS] == ["ask", "status", "clear"]
        ask = TOOL_DEFINITIONS[0]
        assert ask.inputSchema["required"] == ["question", "caller"]

    def test_create_mcp_server(self, manager, config):
        server = create_mcp_server(manager, config)

        assert isinstance(server, Server)
        assert server.name == "stewardmcp-test"


async def _call_tool(server, name, arguments):
    handler = server.request_handlers[types.CallToolRequest]
    result = await handler(
        types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name=name, arguments=arguments),
        )
    )
    return result.root


class TestMcpServer:
    """Tool calls routed through the registered MCP handlers."""

    @pytest.mark.asyncio
    async def test_lists_tools(self, manager, config):
        server = create_mcp_server(manager, config)
        handler = server.request_handlers[types.ListToolsRequest]

        result = (await handler(types.ListToolsRequest(method="tools/list"))).root

        assert [tool.name for tool in result.tools] == ["ask", "status", "clear"]

    @pytest.mark.asyncio
    async def test_ask_answer(self, manager, config):
        server = create_mcp_server(manager, config)

        result = await _call_tool(server, "ask", {"question": "q", "caller": "alice"})

        assert not result.isError
        assert result.content[0].text == "answer to: q"

    @pytest.mark.asyncio
    async def test_ask_failure_is_error_result(self, manager, config, backend):
        backend.fail_on["hello"] = BackendError("cli crashed")
        server = create_mcp_server(manager, config)

        result = await _call_tool(server, "ask", {"question": "q", "caller": "alice"})

        assert result.isError is True
        assert result.content[0].text == "Error: cli crashed"

    @pytest.mark.asyncio
    async def test_malformed_ask_is_error_result(self, manager, config, backend):
        server = create_mcp_server(manager, config)

        result = await _call_tool(server, "ask", {"question": ""})

        assert result.isError is True
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_status_is_not_an_error(self, manager, config):
        server = create_mcp_server(manager, config)

        result = await _call_tool(server, "status", {})

        assert not result.isError
        assert json.loads(result.content[0].text)["state"] == "uninitialized"
