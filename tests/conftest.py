"""Shared pytest fixtures and configuration."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from steward.backend import BackendMessage
from steward.config import StewardConfig
from steward.session import SessionManager


class ScriptedBackend:
    """
    In-memory backend that records every request.

    - Each query without a resume token opens a new conversation id (sess-1, sess-2, ...).
    - Prompts containing a substring in `fail_on` raise after the init message.
    - Prompts containing a substring in `gates` wait for that event before answering.
    """

    def __init__(self):
        self.requests = []
        self.fail_on: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.silent = False
        self.active = 0
        self.max_active = 0
        self._conversations = 0

    @property
    def prompts(self) -> list[str]:
        return [r.prompt for r in self.requests]

    async def query(self, request):
        self.requests.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if request.resume:
                session_id = request.resume
            else:
                self._conversations += 1
                session_id = f"sess-{self._conversations}"

            yield BackendMessage(type="system", subtype="init", session_id=session_id)
            await asyncio.sleep(0)

            for marker, event in self.gates.items():
                if marker in request.prompt:
                    await event.wait()

            for marker, error in self.fail_on.items():
                if marker in request.prompt:
                    raise error

            if self.silent:
                return

            yield BackendMessage(type="assistant", text_blocks=["Looking into it."])
            yield BackendMessage(
                type="result",
                subtype="success",
                session_id=session_id,
                result=f"answer to: {request.prompt}",
            )
        finally:
            self.active -= 1


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def config():
    return StewardConfig(
        name="stewardmcp-test",
        idle_timeout_minutes=10,
        allowed_tools=["Read", "Grep"],
        warmup_prompt="hello",
    )


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(tmp_path, config, backend, clock):
    return SessionManager(
        tmp_path, config, "Be concise.", backend, clock=clock
    )


@pytest.fixture
def repo(tmp_path):
    """A repository directory with a valid .stewardmcp/ config."""
    steward_dir = tmp_path / ".stewardmcp"
    steward_dir.mkdir()
    (steward_dir / "config.json").write_text(
        json.dumps(
            {
                "name": "stewardmcp-repo",
                "idle_timeout_minutes": 30,
                "allowed_tools": ["Read", "Glob"],
                "warmup_prompt": "Look around.",
            }
        ),
        encoding="utf-8",
    )
    return tmp_path
