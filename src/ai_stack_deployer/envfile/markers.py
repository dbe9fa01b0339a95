"""Idempotency markers embedded in configuration files.

A marker is a full comment line ``<prefix><parameter>`` recording that a
transform ran with a given parameter. Markers are parsed line by line into a
typed set, so a value that merely contains marker-like text never counts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

_PARAMETER_RE = re.compile(r"^\S+$")


@dataclass(frozen=True)
class Marker:
    """A parsed idempotency marker."""

    transform_id: str
    parameter: str


class MarkerStore:
    """Reads and renders the marker lines of registered transforms."""

    def __init__(self, prefixes: Mapping[str, str]) -> None:
        """
        Args:
            prefixes: transform id -> marker prefix (must start with ``#``)
        """
        for transform_id, prefix in prefixes.items():
            if not prefix.startswith("#"):
                raise ValueError(f"Marker prefix for {transform_id} must be a comment: {prefix!r}")
        self._prefixes: Dict[str, str] = dict(prefixes)

    def render(self, transform_id: str, parameter: str) -> str:
        if not _PARAMETER_RE.match(parameter):
            raise ValueError(f"Marker parameter must be a single token: {parameter!r}")
        return f"{self._prefixes[transform_id]}{parameter}"

    def parse_line(self, line: str) -> Optional[Marker]:
        stripped = line.strip()
        if not stripped.startswith("#"):
            return None
        # longest prefix wins when one prefix is a prefix of another
        for transform_id, prefix in sorted(self._prefixes.items(), key=lambda kv: -len(kv[1])):
            if stripped.startswith(prefix):
                parameter = stripped[len(prefix):]
                if parameter and _PARAMETER_RE.match(parameter):
                    return Marker(transform_id, parameter)
        return None

    def parse(self, text: str) -> FrozenSet[Marker]:
        markers = (self.parse_line(line) for line in text.splitlines())
        return frozenset(m for m in markers if m is not None)

    def is_applied(self, text: str, transform_id: str, parameter: Optional[str] = None) -> bool:
        """Whether `transform_id` ran; with `parameter`, whether it ran with that exact value."""
        for marker in self.parse(text):
            if marker.transform_id != transform_id:
                continue
            if parameter is None or marker.parameter == parameter:
                return True
        return False

    def strip(self, lines: Iterable[str], transform_id: str) -> List[str]:
        """Drop every marker line of `transform_id`, whatever its parameter."""
        kept = []
        for line in lines:
            marker = self.parse_line(line)
            if marker is not None and marker.transform_id == transform_id:
                continue
            kept.append(line)
        return kept
