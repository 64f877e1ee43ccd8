"""
Accumulates a backend response stream into a final answer.

The backend emits a finite, non-restartable sequence of incremental messages.
The accumulator consumes all of them and keeps:
- the first session id seen on any message (the resumption token)
- the text of a successful result message, if one arrives
- the last text block of any assistant message, as a fallback
"""

from typing import AsyncIterator, Optional

from steward.backend import BackendMessage
from steward.logger import get_logger

logger = get_logger(__name__)

NO_RESPONSE = "(no response)"


class ResponseAccumulator:
    """Stateful consumer for one backend response stream."""

    def __init__(self):
        self.session_id: Optional[str] = None
        self.result_text: Optional[str] = None
        self.fallback_text: Optional[str] = None
        self.message_count = 0

    def feed(self, message: BackendMessage):
        self.message_count += 1

        if not self.session_id and message.session_id:
            self.session_id = message.session_id

        if message.type == "result":
            if message.subtype == "success":
                self.result_text = message.result
            else:
                logger.warning(f"Backend finished with result subtype '{message.subtype}'")

        elif message.type == "assistant":
            for text in message.text_blocks:
                if text:
                    self.fallback_text = text

    @property
    def text(self) -> str:
        """Best available final text, or the placeholder if there is none."""
        return self.result_text or self.fallback_text or NO_RESPONSE

    async def consume(self, stream: AsyncIterator[BackendMessage]) -> "ResponseAccumulator":
        async for message in stream:
            self.feed(message)
        return self
