"""
Steward: a single long-lived agent session exposed as MCP tools.
"""

__version__ = "1.0.0"
