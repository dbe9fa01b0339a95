"""Typed wrapper over the Docker engine."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from ..errors import DependencyMissing, ExternalCommandFailed

logger = logging.getLogger(__name__)


def parse_volume(spec: str) -> Tuple[str, Dict[str, str]]:
    """Turn ``host:container[:mode]`` into the docker SDK volume form."""
    parts = spec.split(":")
    if len(parts) == 2:
        host, bind = parts
        mode = "rw"
    elif len(parts) == 3:
        host, bind, mode = parts
    else:
        raise ValueError(f"Invalid volume binding: {spec!r}")
    return host, {"bind": bind, "mode": mode}


@dataclass
class ExecResult:
    exit_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ContainerRuntime:
    """Container operations the pipeline needs, with docker errors translated."""

    def __init__(self, client: Optional["docker.DockerClient"] = None) -> None:
        self._client = client

    @property
    def client(self) -> "docker.DockerClient":
        if self._client is None:
            try:
                self._client = docker.from_env()
                self._client.ping()
            except DockerException as exc:
                raise DependencyMissing(f"Docker engine is not reachable: {exc}") from exc
        return self._client

    def get(self, name: str):
        try:
            return self.client.containers.get(name)
        except NotFound:
            return None
        except APIError as exc:
            raise ExternalCommandFailed(f"Failed to inspect container {name}: {exc}") from exc

    def is_running(self, name: str) -> bool:
        container = self.get(name)
        return container is not None and container.status == "running"

    def remove(self, name: str, force: bool = True) -> bool:
        """Remove `name` and its anonymous volumes; returns False if it did not exist."""
        container = self.get(name)
        if container is None:
            return False
        try:
            container.remove(v=True, force=force)
        except NotFound:
            return False
        except APIError as exc:
            raise ExternalCommandFailed(f"Failed to remove container {name}: {exc}") from exc
        logger.info("🧹 Removed container %s", name)
        return True

    def run(
        self,
        name: str,
        image: str,
        ports: Mapping[int, int],
        volumes: Sequence[str],
        privileged: bool = False,
        pid_mode: Optional[str] = None,
    ):
        options = {
            "name": name,
            "detach": True,
            "ports": {f"{inner}/tcp": outer for inner, outer in ports.items()},
            "volumes": dict(parse_volume(v) for v in volumes),
        }
        if privileged:
            options["privileged"] = True
        if pid_mode:
            options["pid_mode"] = pid_mode
        try:
            container = self.client.containers.run(image, **options)
        except (APIError, ImageNotFound) as exc:
            raise ExternalCommandFailed(f"Failed to start container {name} from {image}: {exc}") from exc
        container.reload()
        return container

    def image_exists(self, image: str) -> bool:
        try:
            self.client.images.get(image)
            return True
        except ImageNotFound:
            return False
        except APIError as exc:
            raise ExternalCommandFailed(f"Failed to inspect image {image}: {exc}") from exc

    def pull(self, image: str) -> None:
        try:
            self.client.images.pull(image)
        except (APIError, NotFound) as exc:
            raise ExternalCommandFailed(f"Failed to pull {image}: {exc}") from exc

    def login(self, username: str, password: str, registry: str) -> None:
        try:
            self.client.login(username=username, password=password, registry=registry, reauth=True)
        except APIError as exc:
            raise ExternalCommandFailed(f"Failed to authenticate with {registry}: {exc}") from exc

    def prune_exited(self) -> List[str]:
        """Remove every exited container; returns their names."""
        try:
            exited = self.client.containers.list(all=True, filters={"status": "exited"})
            for container in exited:
                container.remove(v=True)
        except APIError as exc:
            raise ExternalCommandFailed(f"Failed to clean up exited containers: {exc}") from exc
        return [c.name for c in exited]

    def exec(self, name: str, argv: Sequence[str], workdir: Optional[str] = None) -> ExecResult:
        container = self.get(name)
        if container is None:
            raise ExternalCommandFailed(f"Container {name} does not exist")
        try:
            result = container.exec_run(list(argv), workdir=workdir)
        except APIError as exc:
            raise ExternalCommandFailed(f"Failed to exec in {name}: {exc}") from exc
        output = result.output.decode("utf-8", errors="replace") if result.output else ""
        return ExecResult(exit_code=result.exit_code, output=output.strip())

    def wait_until_running(
        self,
        name: str,
        attempts: int,
        interval: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """Poll at most `attempts` times for `name` to report running."""
        for attempt in range(1, attempts + 1):
            if self.is_running(name):
                return True
            if attempt < attempts:
                sleep(interval)
        return False
