"""Per-service configuration and deployment pipeline."""

from .models import Action, Decision, DECISION_LABELS, ServiceOutcome, plan
from .pipeline import PipelineOrchestrator

__all__ = [
    "Action",
    "Decision",
    "DECISION_LABELS",
    "PipelineOrchestrator",
    "ServiceOutcome",
    "plan",
]
