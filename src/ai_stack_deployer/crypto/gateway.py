"""Wrapper around the external encrypt/decrypt tool."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..config import CryptoConfig
from ..envfile.state import ConfigState, Encoding, StateInspector
from ..errors import DependencyMissing, ExternalCommandFailed, IntegrityViolation
from ..local import LocalProbe, LocalSession

logger = logging.getLogger(__name__)

ENCRYPT = "encrypt"
DECRYPT = "decrypt"


class CryptoGateway:
    """
    Toggles a configuration file between plaintext and encrypted.

    The tool is trusted to be atomic: either the file is fully transformed or
    the call fails and the file is untouched. It is invoked exactly once per
    call; the resulting encoding is verified afterwards.
    """

    def __init__(
        self,
        config: CryptoConfig,
        encryption_repo: Path,
        inspector: StateInspector,
        session: Optional[LocalSession] = None,
        probe: Optional[LocalProbe] = None,
    ) -> None:
        self.config = config
        self.encryption_repo = encryption_repo
        self.inspector = inspector
        self.session = session or LocalSession()
        self.probe = probe or LocalProbe()

    @property
    def python_executable(self) -> str:
        if not self.config.python_version:
            raise DependencyMissing(
                "Python version for the encryption tool is not set (use --python-version)"
            )
        return f"python{self.config.python_version}"

    def ensure_available(self) -> None:
        self.probe.require_directory(
            self.encryption_repo, hint="Run the prerequisite deployment step first"
        )
        entrypoint = self.encryption_repo / self.config.entrypoint
        if not entrypoint.is_file():
            raise DependencyMissing(f"Encryption tool entrypoint not found: {entrypoint}")
        self.probe.require_commands([self.python_executable])

    def tool_argv(self, operation: str, path: Path) -> List[str]:
        return [
            self.python_executable,
            str(self.encryption_repo / self.config.entrypoint),
            operation,
            str(path),
            "--prompt",
        ]

    def encrypt(self, path: Path, transform_id: str, parameter: Optional[str] = None) -> None:
        state = self.inspector.classify(path, transform_id, parameter)
        if state is not ConfigState.CONFIGURED:
            raise IntegrityViolation(
                f"Refusing to encrypt {path}: it is {state.value}, expected {ConfigState.CONFIGURED.value}"
            )
        self._invoke(ENCRYPT, path, expected=Encoding.BINARY)

    def decrypt(self, path: Path) -> None:
        if self.inspector.encoding(path) is not Encoding.BINARY:
            raise IntegrityViolation(f"Refusing to decrypt {path}: it is not encrypted")
        self._invoke(DECRYPT, path, expected=Encoding.TEXT)

    def _invoke(self, operation: str, path: Path, expected: Encoding) -> None:
        self.ensure_available()
        logger.info("🔐 %s %s...", operation.capitalize(), path)
        result = self.session.run(self.tool_argv(operation, path), interactive=True)
        if not result.ok:
            raise ExternalCommandFailed(f"Failed to {operation} {path} (exit {result.exit_status})")

        actual = self.inspector.encoding(path)
        if actual is not expected:
            raise IntegrityViolation(
                f"{operation} of {path} reported success but the file is still {actual.value}"
            )
        logger.info("%s %sed successfully", path, operation)
