"""Per-service container deployment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List

from ..config import ServiceSpec
from ..errors import ExternalCommandFailed
from ..runtime import ContainerRuntime, RegistryClient

logger = logging.getLogger(__name__)


class RunningPolicy(str, Enum):
    """What to do with a container of the same name that is already running."""

    RECREATE = "recreate"           # main pipeline: always remove then recreate
    KEEP_RUNNING = "keep-running"   # boot-time startup: leave it, remove only stopped ones


@dataclass
class DeploymentTarget:
    """The container bound to one service after a deployment."""

    service: str
    container_id: str
    image: str
    status: str
    recreated: bool                 # a container with the same name was removed first
    kept: bool = False              # left running untouched (keep-running policy)

    @property
    def running(self) -> bool:
        return self.status == "running"


def service_volumes(service: ServiceSpec) -> List[str]:
    """Configuration file and log directory first, then the service's extras."""
    return [
        f"{service.env_file}:{service.mount_root}/.env",
        f"{service.logs_dir}:{service.mount_root}/logs",
        *service.extra_volumes,
    ]


class DeploymentDriver:
    """
    Resolves the image, clears the name, and starts the container.

        no-image      -> pull (login + one retry on failure) -> image-ready
        name taken    -> remove                              -> image-ready
        image-ready   -> create + start                      -> running
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        registry: RegistryClient,
        policy: RunningPolicy = RunningPolicy.RECREATE,
    ) -> None:
        self.runtime = runtime
        self.registry = registry
        self.policy = policy

    def deploy(self, service: ServiceSpec) -> DeploymentTarget:
        logger.info("🚀 Deploying %s...", service.name)

        existing = self.runtime.get(service.name)
        if (
            existing is not None
            and self.policy is RunningPolicy.KEEP_RUNNING
            and existing.status == "running"
        ):
            logger.info("%s already running", service.name)
            return DeploymentTarget(
                service=service.name,
                container_id=existing.id,
                image=service.image,
                status=existing.status,
                recreated=False,
                kept=True,
            )

        self.registry.ensure_image(service.image)

        if existing is not None:
            self.runtime.remove(service.name, force=True)

        service.logs_dir.mkdir(parents=True, exist_ok=True)
        container = self.runtime.run(
            name=service.name,
            image=service.image,
            ports={service.port: service.port},
            volumes=service_volumes(service),
            privileged=service.privileged,
            pid_mode="host" if service.host_pid else None,
        )
        if container.status != "running":
            raise ExternalCommandFailed(
                f"Container {service.name} did not stay running (status: {container.status})"
            )
        logger.info("✅ %s deployed successfully on port %d", service.name, service.port)
        return DeploymentTarget(
            service=service.name,
            container_id=container.id,
            image=service.image,
            status=container.status,
            recreated=existing is not None,
        )
