"""Checks for the external tools the pipeline depends on."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Iterable, List

from ..errors import DependencyMissing


class LocalProbe:
    """Answers "is this tool available on the host?"."""

    def has_command(self, name: str) -> bool:
        return shutil.which(name) is not None

    def missing_commands(self, names: Iterable[str]) -> List[str]:
        return [name for name in names if not self.has_command(name)]

    def require_commands(self, names: Iterable[str]) -> None:
        missing = self.missing_commands(names)
        if missing:
            raise DependencyMissing(f"Required command(s) not found: {', '.join(missing)}")

    def require_directory(self, path: Path, hint: str = "") -> None:
        if not path.is_dir():
            suffix = f". {hint}" if hint else ""
            raise DependencyMissing(f"Directory not found: {path}{suffix}")
