"""
Idle-timeout policy for the steward session.

The check is lazy: it runs only when a request is about to start, never on a
timer. A session that receives no further requests stays allocated until the
next one arrives and finds it stale.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from steward.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SessionPolicy:
    """Configurable session reset policy."""

    idle_timeout_minutes: float


class SessionLifecycle:
    """Checks whether a session should be reset based on policy."""

    def __init__(self, policy: SessionPolicy):
        self.policy = policy

    def should_reset(
        self,
        last_active_at: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> Tuple[bool, str]:
        """
        Check if a session should be reset.

        Returns:
            (should_reset, reason) tuple
        """
        if last_active_at is None:
            return False, ""

        now = now or datetime.now(timezone.utc)
        last_active = (
            last_active_at
            if last_active_at.tzinfo
            else last_active_at.replace(tzinfo=timezone.utc)
        )

        idle = now - last_active
        if idle >= timedelta(minutes=self.policy.idle_timeout_minutes):
            return (
                True,
                f"idle {int(idle.total_seconds() // 60)}m "
                f"(limit: {self.policy.idle_timeout_minutes:g}m)",
            )

        return False, ""
