"""
Session manager: one agent conversation shared by every caller.

- Lazy warmup: the first request sends the configured warmup prompt so the
  agent familiarizes itself with the repository before answering.
- Multi-turn: later requests resume the same conversation via its session id.
- Idle timeout: a request that finds the session idle for longer than
  `idle_timeout_minutes` tears it down first and starts fresh.
- Queue: requests go through a FIFO queue drained by a single worker task, so
  only one backend query runs at a time and answers come back in order.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from steward.backend import DEFAULT_MAX_TURNS, Backend, QueryRequest
from steward.config import StewardConfig
from steward.logger import get_logger
from steward.session.lifecycle import SessionLifecycle, SessionPolicy
from steward.session.stream import ResponseAccumulator

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def caller_switch_notice(previous: str, caller: str) -> str:
    return f'[Caller switch: now speaking with "{caller}" instead of "{previous}"]'


@dataclass
class _PendingRequest:
    question: str
    caller: str
    future: asyncio.Future


class SessionManager:
    """
    Owns the lifecycle of a single backend conversation and serializes access
    to it.
    """

    def __init__(
        self,
        repo_path: Path,
        config: StewardConfig,
        engineer_md: str,
        backend: Backend,
        max_turns: int = DEFAULT_MAX_TURNS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repo_path = str(repo_path)
        self.config = config
        self.engineer_md = engineer_md
        self.backend = backend
        self.max_turns = max_turns
        self.lifecycle = SessionLifecycle(
            SessionPolicy(idle_timeout_minutes=config.idle_timeout_minutes)
        )
        self._clock = clock

        self.resumption_token: Optional[str] = None
        self.last_active_at: Optional[datetime] = None
        self.current_caller: Optional[str] = None
        self.turn_count = 0
        self.warmed_up = False
        self.busy = False

        # Bumped on every reset so a query that straddles a reset cannot write
        # into the fresh session.
        self._epoch = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    @property
    def state(self) -> str:
        if not self.warmed_up:
            return "uninitialized"
        return "busy" if self.busy else "idle"

    @property
    def idle_seconds(self) -> Optional[int]:
        """Seconds since the last completed request, or None if there was none."""
        if self.last_active_at is None:
            return None
        return max(0, int((self._clock() - self.last_active_at).total_seconds()))

    def status(self) -> dict:
        return {
            "state": self.state,
            "currentCaller": self.current_caller,
            "turnCount": self.turn_count,
            "idleSeconds": self.idle_seconds,
            "idleTimeoutMinutes": self.config.idle_timeout_minutes,
        }

    async def ask(self, question: str, caller: str) -> str:
        """
        Enqueue a question and wait for its answer. If another request is
        running or queued, this one waits for all of them to finish first.
        """
        future = asyncio.get_running_loop().create_future()
        self._ensure_worker()
        self._queue.put_nowait(_PendingRequest(question, caller, future))
        logger.debug(f"Queued request from '{caller}' ({self._queue.qsize()} pending)")
        return await future

    def destroy(self):
        """
        Reset all session state. The next request triggers a fresh warmup.

        Requests already in the queue are still served, in order, against the
        fresh session. A request that is currently running is not aborted.
        """
        self._epoch += 1
        self.resumption_token = None
        self.last_active_at = None
        self.current_caller = None
        self.turn_count = 0
        self.warmed_up = False
        logger.info("Session destroyed.")

    async def close(self):
        """Stop the worker and fail any requests still waiting in the queue."""
        if self._worker:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        while not self._queue.empty():
            request = self._queue.get_nowait()
            if not request.future.done():
                request.future.cancel()

    # -- Internal ------------------------------------------------------------

    def _ensure_worker(self):
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run_worker())

    async def _run_worker(self):
        """Drain the queue one request at a time."""
        while True:
            request = await self._queue.get()
            try:
                result = await self._process_request(request.question, request.caller)
            except asyncio.CancelledError:
                request.future.cancel()
                raise
            except Exception as e:
                logger.error(f"Request from '{request.caller}' failed: {e}")
                if not request.future.done():
                    request.future.set_exception(e)
            else:
                if not request.future.done():
                    request.future.set_result(result)
            finally:
                self._queue.task_done()

    async def _process_request(self, question: str, caller: str) -> str:
        self._check_idle_timeout()
        epoch = self._epoch
        self.busy = True
        try:
            if not self.warmed_up:
                await self._warmup(epoch)

            prompt = question
            if caller and self.current_caller and self.current_caller != caller:
                prompt = (
                    f"{caller_switch_notice(self.current_caller, caller)}\n\n{question}"
                )
            self.current_caller = caller or None

            response = await self._run_query(prompt)
            if epoch == self._epoch:
                self._capture_session_id(response)
                self.turn_count += 1
                self.last_active_at = self._clock()
            return response.text
        finally:
            self.busy = False

    async def _warmup(self, epoch: int):
        """Send the warmup prompt to familiarize the session with the codebase."""
        logger.info(f"Warming up session for {self.repo_path}")
        response = await self._run_query(self.config.warmup_prompt)
        if epoch == self._epoch:
            self._capture_session_id(response)
            self.warmed_up = True
        logger.info(f"Warmup complete (session {self.resumption_token or 'unknown'})")

    async def _run_query(self, prompt: str) -> ResponseAccumulator:
        """
        Run one backend query and consume its stream fully. The first query
        creates a new conversation; later ones resume it by session id.
        """
        request = QueryRequest(
            prompt=prompt,
            allowed_tools=list(self.config.allowed_tools),
            cwd=self.repo_path,
            append_system_prompt=self.engineer_md,
            max_turns=self.max_turns,
            resume=self.resumption_token,
        )
        return await ResponseAccumulator().consume(self.backend.query(request))

    def _capture_session_id(self, response: ResponseAccumulator):
        if not self.resumption_token and response.session_id:
            self.resumption_token = response.session_id

    def _check_idle_timeout(self):
        """If the session has been idle longer than the configured timeout, tear it down."""
        should_reset, reason = self.lifecycle.should_reset(
            self.last_active_at, now=self._clock()
        )
        if should_reset:
            logger.info(f"Session expired: {reason}")
            self.destroy()
