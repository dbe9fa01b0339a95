"""High-level workflow: wires components for each CLI command."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import AppConfig
from .crypto import CryptoGateway
from .deploy import DeploymentDriver, DeploymentTarget, RunningPolicy
from .envfile import ConfigApplier, ConfigState, StateInspector, default_marker_store
from .errors import ConfigMissing
from .interaction import CLIInteractionHandler, UserInteractionHandler
from .local import LocalProbe, LocalSession
from .orchestrator import Decision, PipelineOrchestrator, ServiceOutcome
from .packages import PackageManager
from .prerequisites import PrerequisiteInstaller
from .runtime import ContainerRuntime, RegistryClient
from .search import SearchEngine
from .startup import StartupRunner
from .storage import ObjectStore
from .utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceStatus:
    """Configuration and container state of one service."""

    name: str
    env_file: Path
    state: Optional[ConfigState]    # None when the file is missing
    container: str                  # docker status, or "absent"


class DeploymentWorkflow:
    """Builds the pipeline components from one immutable configuration."""

    def __init__(
        self,
        config: AppConfig,
        interaction: Optional[UserInteractionHandler] = None,
        runtime: Optional[ContainerRuntime] = None,
        session: Optional[LocalSession] = None,
        object_store: Optional[ObjectStore] = None,
        ecr_client_factory: Optional[Callable[[str], object]] = None,
        probe: Optional[LocalProbe] = None,
    ) -> None:
        self.config = config
        self.interaction = interaction or CLIInteractionHandler()
        self.session = session or LocalSession()
        self.runtime = runtime or ContainerRuntime()
        self.probe = probe or LocalProbe()

        self.markers = default_marker_store()
        self.inspector = StateInspector(self.markers)
        self.applier = ConfigApplier(self.markers)
        self.crypto = CryptoGateway(
            config.crypto,
            config.paths.encryption_repo,
            self.inspector,
            session=self.session,
            probe=self.probe,
        )
        self.registry = RegistryClient(
            self.runtime,
            region=config.registry.region,
            region_prompt=lambda: self.interaction.ask_text("Enter your default registry region"),
            ecr_client_factory=ecr_client_factory,
        )
        self.search_engine = SearchEngine(
            config.search_engine,
            config.paths.search_engine_dir,
            self.runtime,
            session=self.session,
        )
        self.object_store = object_store or ObjectStore(config.prerequisites.s3_region)
        self.packages = PackageManager(self.session)

    def driver(self, policy: RunningPolicy = RunningPolicy.RECREATE) -> DeploymentDriver:
        return DeploymentDriver(self.runtime, self.registry, policy=policy)

    def prerequisite_installer(self) -> PrerequisiteInstaller:
        return PrerequisiteInstaller(self.config, self.object_store, self.interaction)

    def preflight(self) -> None:
        """Fail early when the encryption interpreter or compose is missing."""
        self.probe.require_commands(
            [self.crypto.python_executable, self.config.search_engine.compose_command[0]]
        )

    def run_prerequisites(self, install_packages: bool = True) -> List[Path]:
        if install_packages:
            self.packages.ensure_installed(self.config.prerequisites.packages)
        return self.prerequisite_installer().run()

    def orchestrator(self, decision: Optional[Decision] = None) -> PipelineOrchestrator:
        return PipelineOrchestrator(
            config=self.config,
            inspector=self.inspector,
            applier=self.applier,
            crypto=self.crypto,
            driver=self.driver(RunningPolicy.RECREATE),
            interaction=self.interaction,
            search_engine=self.search_engine,
            prerequisites=self.prerequisite_installer(),
            decision=decision,
        )

    def run_deploy(
        self,
        names: Optional[Sequence[str]] = None,
        decision: Optional[Decision] = None,
    ) -> List[ServiceOutcome]:
        self.preflight()
        return self.orchestrator(decision).run(names)

    def run_startup(self, names: Optional[Sequence[str]] = None) -> List[DeploymentTarget]:
        logger.info("🔁 Starting the stack with the keep-running policy")
        runner = StartupRunner(
            self.config,
            self.runtime,
            self.search_engine,
            self.driver(RunningPolicy.KEEP_RUNNING),
        )
        return runner.run(names)

    def status(self) -> List[ServiceStatus]:
        orchestrator = self.orchestrator()
        statuses = []
        for service in self.config.services:
            try:
                state: Optional[ConfigState] = orchestrator.classify(service)
            except ConfigMissing:
                state = None
            container = self.runtime.get(service.name)
            statuses.append(
                ServiceStatus(
                    name=service.name,
                    env_file=service.env_file,
                    state=state,
                    container=container.status if container is not None else "absent",
                )
            )
        return statuses

    def encrypt(self, name: str) -> None:
        service = self.config.service(name)
        orchestrator = self.orchestrator()
        transform = self.applier.transform_for(service)
        self.crypto.encrypt(service.env_file, transform.transform_id, orchestrator.expected_parameter(service))

    def decrypt(self, name: str) -> bool:
        """Decrypt one service's .env once the operator confirms; False when declined."""
        service = self.config.service(name)
        if not self.interaction.confirm(
            f"Decrypt {service.env_file}? It stays in plaintext until encrypted again",
            default="n",
        ):
            self.interaction.notify(f"{service.env_file} left encrypted")
            return False
        self.crypto.decrypt(service.env_file)
        return True
