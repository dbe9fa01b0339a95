"""Local execution helpers."""

from .probe import LocalProbe
from .session import LocalCommandResult, LocalSession

__all__ = ["LocalCommandResult", "LocalProbe", "LocalSession"]
