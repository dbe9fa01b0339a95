"""Data models for the deployment pipeline state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..deploy import DeploymentTarget
from ..envfile import ConfigState


class Action(str, Enum):
    """One step the orchestrator executes for a service."""
    CONFIGURE = "configure"
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"
    DEPLOY = "deploy"


class Decision(str, Enum):
    """Operator choice for an already encrypted configuration file."""
    KEEP_ENCRYPTED = "keep"
    DECRYPT = "decrypt"
    RECONFIGURE = "reconfigure"     # decrypt, configure again, encrypt, deploy


DECISION_LABELS: Dict[Decision, str] = {
    Decision.KEEP_ENCRYPTED: "keep encrypted and deploy",
    Decision.DECRYPT: "decrypt only (no deployment)",
    Decision.RECONFIGURE: "decrypt, reconfigure and deploy",
}


_TRANSITIONS: Dict[Tuple[ConfigState, Optional[Decision]], Tuple[Action, ...]] = {
    (ConfigState.UNCONFIGURED, None): (Action.CONFIGURE, Action.ENCRYPT, Action.DEPLOY),
    (ConfigState.CONFIGURED, None): (Action.ENCRYPT, Action.DEPLOY),
    (ConfigState.ENCRYPTED, Decision.KEEP_ENCRYPTED): (Action.DEPLOY,),
    (ConfigState.ENCRYPTED, Decision.DECRYPT): (Action.DECRYPT,),
    (ConfigState.ENCRYPTED, Decision.RECONFIGURE): (
        Action.DECRYPT, Action.CONFIGURE, Action.ENCRYPT, Action.DEPLOY,
    ),
}


def plan(state: ConfigState, decision: Optional[Decision] = None) -> Tuple[Action, ...]:
    """
    Pure transition function: (state, decision) -> actions.

    A decision is required for encrypted files and ignored otherwise.
    """
    if state is ConfigState.ENCRYPTED:
        if decision is None:
            raise ValueError("An encrypted configuration file needs an operator decision")
        return _TRANSITIONS[(state, decision)]
    return _TRANSITIONS[(state, None)]


@dataclass
class ServiceOutcome:
    """What the pipeline did for one service."""

    service: str
    initial_state: ConfigState
    decision: Optional[Decision] = None
    actions: List[Action] = field(default_factory=list)
    target: Optional[DeploymentTarget] = None
    final_state: Optional[ConfigState] = None

    @property
    def deployed(self) -> bool:
        return self.target is not None and self.target.running
