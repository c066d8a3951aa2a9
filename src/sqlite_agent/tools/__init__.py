"""In-process tools for the agent.

All tools inherit from BaseTool and are served by LocalToolProvider.
"""

from .base import BaseTool

__all__ = ["BaseTool"]
