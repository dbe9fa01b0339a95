"""Search engine stack: compose lifecycle and internal users."""

from __future__ import annotations

import logging
import shlex
import time
from pathlib import Path
from typing import Callable, Optional

from ..config import SearchEngineConfig
from ..errors import ConfigMissing, ExternalCommandFailed
from ..local import LocalSession
from ..paths import COMPOSE_FILE_NAME, SYSCTL_CONF
from ..runtime import ContainerRuntime

logger = logging.getLogger(__name__)

SECURITY_ROOT = "/usr/share/elasticsearch/plugins/opendistro_security"
USERS_FILE = f"{SECURITY_ROOT}/securityconfig/internal_users.yml"
HASH_TOOL = f"{SECURITY_ROOT}/tools/hash.sh"
SECURITY_TOOLS_DIR = f"{SECURITY_ROOT}/tools"

SECURITY_ADMIN_ARGS = [
    "./securityadmin.sh",
    "-cd", "../securityconfig/",
    "-icl", "-nhnv",
    "-cacert", "../../../config/root-ca.pem",
    "-cert", "../../../config/kirk.pem",
    "-key", "../../../config/kirk-key.pem",
    "--accept-red-cluster",
]


def user_marker(user: str) -> str:
    return f"#user {user} added to ES admins"


def user_block(user: str, password_hash: str) -> str:
    return "\n".join([
        user_marker(user),
        f"{user}:",
        f"  hash: {password_hash}",
        "  reserved: true",
        "  backend_roles:",
        '  - "admin"',
        '  description: "Main admin user"',
    ])


class ComposeProject:
    """`docker-compose` in one project directory."""

    def __init__(self, directory: Path, command: tuple, session: LocalSession) -> None:
        self.directory = directory
        self.command = list(command)
        self.session = session

    @property
    def compose_file(self) -> Path:
        return self.directory / COMPOSE_FILE_NAME

    def down(self) -> None:
        result = self.session.run([*self.command, "down"], cwd=str(self.directory))
        if not result.ok:
            logger.debug("compose down in %s exited %d", self.directory, result.exit_status)

    def up(self) -> None:
        self.session.check(
            [*self.command, "up", "-d"],
            f"Failed to start compose project in {self.directory}",
            cwd=str(self.directory),
        )


class SearchEngine:
    """Brings the search engine up and manages its admin users."""

    def __init__(
        self,
        config: SearchEngineConfig,
        directory: Path,
        runtime: ContainerRuntime,
        session: Optional[LocalSession] = None,
        sysctl_conf: Path = SYSCTL_CONF,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.config = config
        self.runtime = runtime
        self.session = session or LocalSession()
        self.compose = ComposeProject(directory, config.compose_command, self.session)
        self.sysctl_conf = sysctl_conf
        self._sleep = sleep or time.sleep

    @property
    def container(self) -> str:
        return self.config.container

    def is_running(self) -> bool:
        return self.runtime.is_running(self.container)

    def ensure_running(self) -> None:
        logger.info("🔎 Deploying search engine...")
        if self.is_running():
            logger.info("Search engine container %s already running", self.container)
            return
        self.start()

    def start(self) -> None:
        """Restart the compose project and wait until the node reports running."""
        if not self.compose.compose_file.is_file():
            raise ConfigMissing(f"Compose definition not found: {self.compose.compose_file}")
        self.set_max_map_count()
        self.compose.down()
        self.compose.up()

        ready = self.runtime.wait_until_running(
            self.container,
            attempts=self.config.startup_attempts,
            interval=self.config.startup_interval,
            sleep=self._sleep,
        )
        if not ready:
            raise ExternalCommandFailed(f"Search engine {self.container} failed to initialize")
        logger.info("Search engine initialized successfully")

    def set_max_map_count(self) -> None:
        setting = f"vm.max_map_count={self.config.max_map_count}"
        self.session.check(["sudo", "sysctl", "-w", setting], "Failed to set vm.max_map_count")
        try:
            persisted = self.sysctl_conf.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            persisted = []
        if setting in (line.strip() for line in persisted):
            return
        self.session.check(
            ["sudo", "tee", "-a", str(self.sysctl_conf)],
            f"Failed to update {self.sysctl_conf}",
            input_text=setting + "\n",
        )

    def add_user(self, user: str, password: str) -> bool:
        """Register `user` as an admin; returns False when already registered."""
        hashed = self.runtime.exec(self.container, ["/bin/sh", HASH_TOOL, "-p", password])
        if not hashed.ok or not hashed.output:
            raise ExternalCommandFailed("Failed to hash the search engine password")
        password_hash = hashed.output.splitlines()[-1].strip()

        current = self.runtime.exec(self.container, ["cat", USERS_FILE])
        if not current.ok:
            raise ConfigMissing(f"Users file {USERS_FILE} not found in {self.container}")
        if user_marker(user) in (line.strip() for line in current.output.splitlines()):
            logger.info("User %s already configured in %s", user, USERS_FILE)
            return False

        logger.info("👤 Adding %s to the search engine...", user)
        block = shlex.quote(user_block(user, password_hash))
        appended = self.runtime.exec(
            self.container, ["sh", "-c", f"printf '%s\\n' {block} >> {USERS_FILE}"]
        )
        if not appended.ok:
            raise ExternalCommandFailed(f"Failed to update {USERS_FILE}: {appended.output}")

        applied = self.runtime.exec(self.container, SECURITY_ADMIN_ARGS, workdir=SECURITY_TOOLS_DIR)
        if not applied.ok:
            raise ExternalCommandFailed(f"Failed to update security config: {applied.output}")
        logger.info("User %s added successfully", user)
        return True
