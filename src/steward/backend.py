"""
Conversational backend for the steward session.

The session manager talks to a `Backend`: given a `QueryRequest` it returns an
async stream of `BackendMessage` records. `ClaudeAgentBackend` is the
production implementation, built on the Claude Agent SDK; tests substitute
scripted backends.
"""

from dataclasses import dataclass, field
from typing import AsyncIterator, Optional, Protocol

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKError,
    ResultMessage,
    SystemMessage,
    TextBlock,
    UserMessage,
    query,
)

from steward.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_TURNS = 25


class BackendError(Exception):
    """Raised when the backend process fails or its stream is unusable."""


@dataclass
class QueryRequest:
    """A single invocation of the backend."""

    prompt: str
    allowed_tools: list[str] = field(default_factory=list)
    cwd: Optional[str] = None
    append_system_prompt: str = ""
    max_turns: int = DEFAULT_MAX_TURNS
    resume: Optional[str] = None


@dataclass
class BackendMessage:
    """
    One incremental message from the backend stream.

    type is one of "system", "assistant", "user" or "result". Only result
    messages carry `subtype` and `result`; only assistant and user messages
    carry `text_blocks`.
    """

    type: str
    session_id: Optional[str] = None
    subtype: Optional[str] = None
    result: Optional[str] = None
    text_blocks: list[str] = field(default_factory=list)


class Backend(Protocol):
    def query(self, request: QueryRequest) -> AsyncIterator[BackendMessage]: ...


def _text_blocks(content) -> list[str]:
    if isinstance(content, str):
        return [content]
    return [block.text for block in content if isinstance(block, TextBlock)]


def normalize_message(message) -> Optional[BackendMessage]:
    """Convert an SDK message into a BackendMessage, or None for stream events."""
    if isinstance(message, SystemMessage):
        data = message.data or {}
        return BackendMessage(
            type="system", subtype=message.subtype, session_id=data.get("session_id")
        )

    if isinstance(message, AssistantMessage):
        return BackendMessage(
            type="assistant", text_blocks=_text_blocks(message.content)
        )

    if isinstance(message, UserMessage):
        return BackendMessage(type="user", text_blocks=_text_blocks(message.content))

    if isinstance(message, ResultMessage):
        return BackendMessage(
            type="result",
            session_id=message.session_id,
            subtype=message.subtype,
            result=message.result,
        )

    return None


class ClaudeAgentBackend:
    """Runs each request as a Claude Agent SDK query."""

    def build_options(self, request: QueryRequest) -> ClaudeAgentOptions:
        # Always run on the Claude Code default prompt; ENGINEER.md only extends it.
        system_prompt = {"type": "preset", "preset": "claude_code"}
        if request.append_system_prompt:
            system_prompt["append"] = request.append_system_prompt

        options = ClaudeAgentOptions(
            allowed_tools=list(request.allowed_tools),
            cwd=request.cwd,
            max_turns=request.max_turns,
            system_prompt=system_prompt,
        )
        if request.resume:
            options.resume = request.resume
        return options

    async def query(self, request: QueryRequest) -> AsyncIterator[BackendMessage]:
        options = self.build_options(request)
        logger.debug(
            f"Agent query (resume={request.resume or 'new'}, "
            f"{len(request.prompt)} chars)"
        )
        try:
            async for message in query(prompt=request.prompt, options=options):
                if (normalized := normalize_message(message)) is not None:
                    yield normalized
        except ClaudeSDKError as e:
            raise BackendError(str(e)) from e
