"""Directories and files that must exist before the pipeline runs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .config import AppConfig
from .interaction import UserInteractionHandler
from .paths import COMPOSE_FILE_NAME
from .storage import ObjectStore

logger = logging.getLogger(__name__)


class PrerequisiteInstaller:
    """Creates service directories and fetches missing compose/.env files."""

    def __init__(
        self,
        config: AppConfig,
        store: ObjectStore,
        interaction: UserInteractionHandler,
    ) -> None:
        self.config = config
        self.store = store
        self.interaction = interaction

    def directories(self) -> List[Path]:
        return [
            self.config.paths.search_engine_dir,
            *(service.directory for service in self.config.services),
        ]

    def run(self) -> List[Path]:
        """Returns the files that were downloaded."""
        logger.info("📁 Installing required files...")
        for directory in self.directories():
            directory.mkdir(parents=True, exist_ok=True)

        fetched = []
        compose_file = self.config.paths.search_engine_dir / COMPOSE_FILE_NAME
        if self._fetch(compose_file, self.config.search_engine.compose_uri, COMPOSE_FILE_NAME):
            fetched.append(compose_file)
        for service in self.config.services:
            if self._fetch(service.env_file, service.env_uri, f"the {service.name} .env file"):
                fetched.append(service.env_file)
        return fetched

    def _fetch(self, dest: Path, uri: Optional[str], label: str) -> bool:
        if dest.exists():
            logger.info("Prerequisite file %s already installed", dest)
            return False
        logger.info("%s not found", dest)
        if not uri:
            uri = self.interaction.ask_text(
                f"Enter the S3 URI for {label}",
                context="e.g. s3://bucket/path/to/object",
            )
        return self.store.fetch(uri, dest)
