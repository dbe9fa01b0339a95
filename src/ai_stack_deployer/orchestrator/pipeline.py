"""Deployment pipeline: configure, encrypt and deploy each service."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..config import AppConfig, ServiceSpec
from ..crypto import CryptoGateway
from ..deploy import DeploymentDriver
from ..envfile import ConfigApplier, ConfigState, StateInspector, credential_parameters, hardware_parameters
from ..envfile.applier import validate_username
from ..interaction import UserInteractionHandler
from ..prerequisites import PrerequisiteInstaller
from ..search import SearchEngine
from .models import Action, Decision, DECISION_LABELS, ServiceOutcome, plan

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """
    Walks every service through StateInspector -> ConfigApplier/CryptoGateway
    -> DeploymentDriver, in configuration order, one service at a time.

    The only non-deterministic transition is the operator's decision for an
    encrypted file. Passing `decision` fixes it for every encrypted file so
    the pipeline can run without prompts.
    """

    def __init__(
        self,
        config: AppConfig,
        inspector: StateInspector,
        applier: ConfigApplier,
        crypto: CryptoGateway,
        driver: DeploymentDriver,
        interaction: UserInteractionHandler,
        search_engine: Optional[SearchEngine] = None,
        prerequisites: Optional[PrerequisiteInstaller] = None,
        decision: Optional[Decision] = None,
    ) -> None:
        self.config = config
        self.inspector = inspector
        self.applier = applier
        self.crypto = crypto
        self.driver = driver
        self.interaction = interaction
        self.search_engine = search_engine
        self.prerequisites = prerequisites
        self.decision = decision
        self.parameter_sources: Dict[str, Callable[[ServiceSpec], Optional[Mapping[str, str]]]] = {
            "credential": self._credential_parameters,
            "hardware-id": self._hardware_parameters,
        }

    def select(self, names: Optional[Sequence[str]] = None) -> List[ServiceSpec]:
        if not names:
            return list(self.config.services)
        return [self.config.service(name) for name in names]

    def run(self, names: Optional[Sequence[str]] = None) -> List[ServiceOutcome]:
        services = self.select(names)
        if self.prerequisites is not None:
            self.prerequisites.run()
        if self.search_engine is not None:
            self.search_engine.ensure_running()

        logger.info("Configuration files to sync and encrypt:")
        for service in services:
            logger.info("   %s", service.env_file)

        return [self.run_service(service) for service in services]

    def expected_parameter(self, service: ServiceSpec) -> Optional[str]:
        """Marker value a configured file must carry, when known before configuring."""
        transform = self.applier.transform_for(service)
        if transform.fixed_key:
            return self.parameter_sources[service.family](service)[transform.key]
        return None

    def classify(self, service: ServiceSpec) -> ConfigState:
        transform = self.applier.transform_for(service)
        return self.inspector.classify(service.env_file, transform.transform_id, self.expected_parameter(service))

    def decide(self, service: ServiceSpec, state: ConfigState) -> Optional[Decision]:
        if state is not ConfigState.ENCRYPTED:
            return None
        if self.decision is not None:
            return self.decision
        labels = [DECISION_LABELS[d] for d in Decision]
        answer = self.interaction.choose(
            f"{service.env_file} is already encrypted. What should happen to {service.name}?",
            labels,
            default=DECISION_LABELS[Decision.KEEP_ENCRYPTED],
        )
        return list(Decision)[labels.index(answer)]

    def run_service(self, service: ServiceSpec) -> ServiceOutcome:
        state = self.classify(service)
        logger.info("⚙️  %s: %s", service.name, state.value)
        decision = self.decide(service, state)
        outcome = ServiceOutcome(service=service.name, initial_state=state, decision=decision)

        for action in plan(state, decision):
            self._execute(action, service, outcome)
            outcome.actions.append(action)

        outcome.final_state = self.classify(service)
        if outcome.target is None:
            self.interaction.notify(
                f"{service.name} left {outcome.final_state.value} and not deployed; re-run the pipeline to finish",
                level="warning",
            )
        return outcome

    def _execute(self, action: Action, service: ServiceSpec, outcome: ServiceOutcome) -> None:
        transform = self.applier.transform_for(service)
        if action is Action.CONFIGURE:
            parameters = self.parameter_sources[service.family](service)
            if parameters is not None:
                self.applier.apply(service.env_file, service, parameters)
        elif action is Action.ENCRYPT:
            self.crypto.encrypt(service.env_file, transform.transform_id, self.expected_parameter(service))
        elif action is Action.DECRYPT:
            self.crypto.decrypt(service.env_file)
        elif action is Action.DEPLOY:
            outcome.target = self.driver.deploy(service)

    def _credential_parameters(self, service: ServiceSpec) -> Optional[Mapping[str, str]]:
        user = validate_username(self.interaction.ask_text("Enter the new search engine username"))
        transform = self.applier.transform_for(service)
        text = service.env_file.read_text(encoding="utf-8")
        if self.applier.markers.is_applied(text, transform.transform_id, user):
            logger.info("%s already configured with user %s", service.env_file, user)
            return None
        password = self.interaction.ask_secret("Enter the user password (letters only, no digits)")
        parameters = credential_parameters(
            user,
            password,
            self.config.search_engine.endpoint,
            self.config.hardware.disk_serial,
        )
        if self.search_engine is not None:
            self.search_engine.add_user(user, password)
        return parameters

    def _hardware_parameters(self, service: ServiceSpec) -> Mapping[str, str]:
        return hardware_parameters(self.config.hardware.disk_serial)
