"""Operator interaction for the deployment pipeline."""

from __future__ import annotations

import getpass
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..errors import InvalidInput

logger = logging.getLogger(__name__)


class InputType(str, Enum):
    """Type of operator input expected."""
    CHOICE = "choice"       # pick one of `options`
    TEXT = "text"           # free text
    CONFIRM = "confirm"     # yes/no
    SECRET = "secret"       # hidden input (passwords)


@dataclass
class InteractionRequest:
    """A question put to the operator."""

    question: str
    input_type: InputType = InputType.TEXT
    options: List[str] = field(default_factory=list)   # for CHOICE
    context: Optional[str] = None
    default: Optional[str] = None

    def format_prompt(self) -> str:
        """Format the request as a single prompt line."""
        prompt = self.question
        if self.context:
            prompt = f"{prompt} [{self.context}]"
        if self.input_type == InputType.CONFIRM:
            hint = f"y/n, default {self.default}" if self.default else "y/n"
            prompt = f"{prompt} [{hint}]"
        elif self.input_type == InputType.CHOICE and self.options:
            listed = ", ".join(
                f"{i}) {option}{' (default)' if option == self.default else ''}"
                for i, option in enumerate(self.options, 1)
            )
            prompt = f"{prompt} {listed}"
        elif self.default:
            prompt = f"{prompt} (default: {self.default})"
        return f"{prompt}: "


@dataclass
class InteractionResponse:
    """Operator's answer."""

    value: str
    selected_option: Optional[int] = None   # 1-based, CHOICE only
    cancelled: bool = False

    @classmethod
    def from_choice(cls, option_index: int, options: List[str]) -> "InteractionResponse":
        if 1 <= option_index <= len(options):
            return cls(value=options[option_index - 1], selected_option=option_index)
        raise ValueError(f"Invalid option index: {option_index}")

    @classmethod
    def cancelled_response(cls) -> "InteractionResponse":
        return cls(value="", cancelled=True)


class UserInteractionHandler(ABC):
    """Abstract base class for operator I/O."""

    @abstractmethod
    def ask(self, request: InteractionRequest) -> InteractionResponse:
        """
        Present a request to the operator and get their response.

        Args:
            request: The interaction request to present

        Returns:
            The operator's response
        """

    @abstractmethod
    def notify(self, message: str, level: str = "info") -> None:
        """Show a message that needs no answer."""

    def _answer(self, request: InteractionRequest) -> str:
        response = self.ask(request)
        if response.cancelled:
            raise InvalidInput(f"No answer given to: {request.question}")
        return response.value

    def ask_text(self, question: str, default: Optional[str] = None, context: Optional[str] = None) -> str:
        value = self._answer(InteractionRequest(question, InputType.TEXT, default=default, context=context))
        value = value.strip() or (default or "")
        if not value:
            raise InvalidInput(f"A value is required: {question}")
        return value

    def ask_secret(self, question: str, context: Optional[str] = None) -> str:
        value = self._answer(InteractionRequest(question, InputType.SECRET, context=context))
        if not value:
            raise InvalidInput(f"A value is required: {question}")
        return value

    def confirm(self, question: str, default: str = "n") -> bool:
        value = self._answer(InteractionRequest(question, InputType.CONFIRM, default=default))
        return value == "yes"

    def choose(self, question: str, options: List[str], default: Optional[str] = None) -> str:
        return self._answer(
            InteractionRequest(question, InputType.CHOICE, options=list(options), default=default)
        )


class CLIInteractionHandler(UserInteractionHandler):
    """Line-oriented prompts on the terminal."""

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        try:
            if request.input_type == InputType.CHOICE:
                return self._handle_choice(request)
            elif request.input_type == InputType.CONFIRM:
                return self._handle_confirm(request)
            elif request.input_type == InputType.SECRET:
                return InteractionResponse(value=getpass.getpass(request.format_prompt()))
            else:  # TEXT
                return InteractionResponse(value=input(request.format_prompt()).strip())
        except EOFError:
            return InteractionResponse.cancelled_response()

    def _handle_choice(self, request: InteractionRequest) -> InteractionResponse:
        while True:
            user_input = input(request.format_prompt()).strip()
            if not user_input and request.default in request.options:
                return InteractionResponse.from_choice(
                    request.options.index(request.default) + 1, request.options
                )
            if user_input in request.options:
                return InteractionResponse.from_choice(
                    request.options.index(user_input) + 1, request.options
                )
            try:
                return InteractionResponse.from_choice(int(user_input), request.options)
            except ValueError:
                print(f"   Please enter 1-{len(request.options)}")

    def _handle_confirm(self, request: InteractionRequest) -> InteractionResponse:
        default = request.default or "n"
        while True:
            user_input = input(request.format_prompt()).strip().lower() or default
            if user_input in ("y", "yes"):
                return InteractionResponse(value="yes")
            elif user_input in ("n", "no"):
                return InteractionResponse(value="no")
            print("   Please enter y or n")

    def notify(self, message: str, level: str = "info") -> None:
        icons = {
            "info": "ℹ️",
            "warning": "⚠️",
            "error": "❌",
            "success": "✅",
        }
        print(f"{icons.get(level, '•')} {message}")


class AutoResponseHandler(UserInteractionHandler):
    """
    Automatic response handler for tests or non-interactive runs.

    Answers come from `responses` (question keyword -> answer, first match
    wins), then the request default, then the type's fallback.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, str]] = None,
        always_confirm: bool = False,
    ) -> None:
        self.responses = responses or {}
        self.always_confirm = always_confirm
        self.asked: List[InteractionRequest] = []
        self.notifications: List[str] = []

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        self.asked.append(request)
        logger.info("Auto-responding to: %s", request.question[:60])

        for keyword, response in self.responses.items():
            if keyword.lower() in request.question.lower():
                if request.input_type == InputType.CHOICE and response in request.options:
                    return InteractionResponse.from_choice(request.options.index(response) + 1, request.options)
                return InteractionResponse(value=response)

        if request.input_type == InputType.CONFIRM:
            confirmed = self.always_confirm or (request.default or "n").startswith("y")
            return InteractionResponse(value="yes" if confirmed else "no")
        if request.default:
            return InteractionResponse(value=request.default)
        if request.input_type == InputType.CHOICE and request.options:
            return InteractionResponse.from_choice(1, request.options)
        return InteractionResponse.cancelled_response()

    def notify(self, message: str, level: str = "info") -> None:
        self.notifications.append(message)
        logger.info("[%s] %s", level, message)
