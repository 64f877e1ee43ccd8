"""
Session management for Steward.

- manager: the single-flight session manager
- lifecycle: idle-timeout reset policy
- stream: backend response accumulation
"""

from steward.session.manager import SessionManager

__all__ = ["SessionManager"]
