"""Boot-time startup of the whole stack."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import AppConfig
from .deploy import DeploymentDriver, DeploymentTarget, RunningPolicy
from .runtime import ContainerRuntime
from .search import SearchEngine

logger = logging.getLogger(__name__)


class StartupRunner:
    """
    Brings every service back after a reboot.

    Unlike the deployment pipeline, a service container that is already running
    is left alone; only stopped ones are removed and recreated.
    """

    def __init__(
        self,
        config: AppConfig,
        runtime: ContainerRuntime,
        search_engine: SearchEngine,
        driver: DeploymentDriver,
    ) -> None:
        if driver.policy is not RunningPolicy.KEEP_RUNNING:
            raise ValueError("Startup requires a driver with the keep-running policy")
        self.config = config
        self.runtime = runtime
        self.search_engine = search_engine
        self.driver = driver

    def run(self, names: Optional[Sequence[str]] = None) -> List[DeploymentTarget]:
        logger.info("🧹 Cleaning up exited containers...")
        for name in self.runtime.prune_exited():
            logger.info("   removed %s", name)

        logger.info("🔎 Starting search engine...")
        self.search_engine.start()

        services = [self.config.service(n) for n in names] if names else list(self.config.services)
        return [self.driver.deploy(service) for service in services]
