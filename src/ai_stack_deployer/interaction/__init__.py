"""Operator interaction."""

from .handler import (
    AutoResponseHandler,
    CLIInteractionHandler,
    InputType,
    InteractionRequest,
    InteractionResponse,
    UserInteractionHandler,
)

__all__ = [
    "AutoResponseHandler",
    "CLIInteractionHandler",
    "InputType",
    "InteractionRequest",
    "InteractionResponse",
    "UserInteractionHandler",
]
