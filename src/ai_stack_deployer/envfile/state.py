"""Classification of a configuration file's current condition."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from ..errors import ConfigMissing
from .markers import MarkerStore

# share of printable characters above which content counts as text
PRINTABLE_RATIO = 0.95

_WHITESPACE = frozenset("\t\r\n")


class Encoding(str, Enum):
    TEXT = "text"
    BINARY = "binary"


class ConfigState(str, Enum):
    """Derived state of a configuration file; the orchestrator's decision key."""

    UNCONFIGURED = "unconfigured-plaintext"
    CONFIGURED = "configured-plaintext"
    ENCRYPTED = "encrypted"


def detect_encoding(data: bytes) -> Encoding:
    """Printable-character dominant content is text, anything else binary."""
    if not data:
        return Encoding.TEXT
    if b"\x00" in data:
        return Encoding.BINARY
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return Encoding.BINARY
    printable = sum(1 for ch in text if ch.isprintable() or ch in _WHITESPACE)
    return Encoding.TEXT if printable / len(text) >= PRINTABLE_RATIO else Encoding.BINARY


class StateInspector:
    """Side-effect-free classifier over (encoding, markers)."""

    def __init__(self, markers: MarkerStore) -> None:
        self.markers = markers

    def read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ConfigMissing(f"Configuration file not found: {path}") from None
        except IsADirectoryError:
            raise ConfigMissing(f"Configuration path is a directory: {path}") from None

    def encoding(self, path: Path) -> Encoding:
        return detect_encoding(self.read(path))

    def classify(
        self,
        path: Path,
        transform_id: str,
        parameter: Optional[str] = None,
    ) -> ConfigState:
        """
        Classify `path` for the transform that owns it.

        Args:
            path: configuration file
            transform_id: transform whose marker makes the file "configured"
            parameter: when given, only a marker carrying this exact value counts
        """
        data = self.read(path)
        return self.classify_bytes(data, transform_id, parameter)

    def classify_bytes(
        self,
        data: bytes,
        transform_id: str,
        parameter: Optional[str] = None,
    ) -> ConfigState:
        if detect_encoding(data) is Encoding.BINARY:
            return ConfigState.ENCRYPTED
        text = data.decode("utf-8")
        if self.markers.is_applied(text, transform_id, parameter):
            return ConfigState.CONFIGURED
        return ConfigState.UNCONFIGURED
