"""Search engine stack management."""

from .engine import ComposeProject, SearchEngine, user_block, user_marker

__all__ = ["ComposeProject", "SearchEngine", "user_block", "user_marker"]
