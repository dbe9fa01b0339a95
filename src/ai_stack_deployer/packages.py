"""System package installation (apt)."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .local import LocalSession

logger = logging.getLogger(__name__)


class PackageManager:
    """Idempotent "ensure installed" over dpkg/apt-get."""

    def __init__(self, session: Optional[LocalSession] = None) -> None:
        self.session = session or LocalSession()

    def is_installed(self, package: str) -> bool:
        return self.session.run(["dpkg", "-s", package]).ok

    def ensure_installed(self, packages: Iterable[str]) -> List[str]:
        """Install whatever is missing; returns the packages that were installed."""
        missing = []
        for package in packages:
            if self.is_installed(package):
                logger.info("%s is already installed", package)
            else:
                missing.append(package)
        if not missing:
            return []

        self.session.check(["sudo", "apt-get", "update"], "Failed to update package index")
        for package in missing:
            logger.info("📦 Installing %s...", package)
            self.session.check(
                ["sudo", "apt-get", "install", "-y", package], f"Failed to install {package}"
            )
        return missing
