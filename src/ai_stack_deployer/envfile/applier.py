"""Marker-guarded configuration transforms.

Each service family injects validated parameters into its ``.env`` file.
A family is data: a marker prefix, the parameter recorded in the marker, and
the field rules to write. Adding a family means adding a ``Transform``.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

from ..config import ServiceSpec
from ..errors import ConfigMissing, ConfigWriteFailed, IntegrityViolation, InvalidInput
from .markers import MarkerStore
from .state import Encoding, detect_encoding

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")


class FieldMode(str, Enum):
    REPLACE = "replace"         # drop every KEY= line, append KEY=value after the marker
    SUBSTITUTE = "substitute"   # rewrite existing KEY= lines in place, never add one


@dataclass(frozen=True)
class FieldRule:
    name: str
    template: str
    mode: FieldMode = FieldMode.REPLACE

    def render(self, parameters: Mapping[str, str]) -> str:
        return f"{self.name}={self.template.format(**parameters)}"


@dataclass(frozen=True)
class Transform:
    """One configuration family."""

    transform_id: str
    marker_prefix: str
    key: str                            # parameter recorded in the marker
    fields: Tuple[FieldRule, ...]
    fixed_key: bool = False             # key comes from configuration, not from the operator

    def required_parameters(self) -> List[str]:
        names = {self.key}
        for rule in self.fields:
            names.update(re.findall(r"{(\w+)}", rule.template))
        return sorted(names)


CREDENTIAL = Transform(
    transform_id="credential",
    marker_prefix="#qna-envfile-Configured-with-the-Following-ES-user:",
    key="user",
    fields=(
        FieldRule("ES_CONNECTION_LINE", "'{connection}'"),
        FieldRule("DISK_SERIAL", "{disk_serial}", FieldMode.SUBSTITUTE),
    ),
)

HARDWARE_ID = Transform(
    transform_id="hardware-id",
    marker_prefix="#envfile-added-with-serial-",
    key="disk_serial",
    fields=(FieldRule("DISK_SERIAL", "{disk_serial}"),),
    fixed_key=True,
)

TRANSFORMS: Dict[str, Transform] = {t.transform_id: t for t in (CREDENTIAL, HARDWARE_ID)}


def default_marker_store(transforms: Mapping[str, Transform] = TRANSFORMS) -> MarkerStore:
    return MarkerStore({t.transform_id: t.marker_prefix for t in transforms.values()})


def validate_username(user: str) -> str:
    user = (user or "").strip()
    if not user:
        raise InvalidInput("Username must not be empty")
    if not _TOKEN_RE.match(user):
        raise InvalidInput(f"Username may only contain letters, digits, '.', '_' and '-': {user!r}")
    return user


def validate_password(password: str) -> str:
    if not password:
        raise InvalidInput("Password must not be empty")
    if not (password.isascii() and password.isalpha()):
        raise InvalidInput("Password must contain ASCII letters only (no digits, spaces, symbols or accents)")
    return password


def validate_serial(serial: str) -> str:
    serial = (serial or "").strip()
    if not serial or not _TOKEN_RE.match(serial):
        raise InvalidInput(f"Invalid hardware identifier: {serial!r}")
    return serial


def build_connection_line(user: str, password: str, endpoint: str) -> str:
    """Embed credentials into the search engine endpoint URL."""
    parsed = urlsplit(endpoint)
    if not parsed.scheme or not parsed.hostname:
        raise InvalidInput(f"Search engine endpoint must be an absolute URL: {endpoint!r}")
    host = parsed.netloc.rpartition("@")[2]
    return urlunsplit((parsed.scheme, f"{user}:{password}@{host}", parsed.path, "", ""))


def credential_parameters(user: str, password: str, endpoint: str, disk_serial: str) -> Dict[str, str]:
    user = validate_username(user)
    password = validate_password(password)
    return {
        "user": user,
        "connection": build_connection_line(user, password, endpoint),
        "disk_serial": validate_serial(disk_serial),
    }


def hardware_parameters(disk_serial: str) -> Dict[str, str]:
    return {"disk_serial": validate_serial(disk_serial)}


@dataclass
class ApplyResult:
    path: Path
    marker: str
    changed: bool


def _line_key(line: str) -> Optional[str]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    key = stripped.split("=", 1)[0].strip()
    if key.startswith("export "):
        key = key[len("export "):].strip()
    return key


def write_atomic(path: Path, text: str) -> None:
    """Replace `path` with `text`, keeping its permission bits."""
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        tmp.write_bytes(text.encode("utf-8"))
        shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise ConfigWriteFailed(f"Failed to write {path}: {exc}") from exc


class ConfigApplier:
    """Applies exactly one transform per service family."""

    def __init__(
        self,
        markers: MarkerStore,
        transforms: Mapping[str, Transform] = TRANSFORMS,
    ) -> None:
        self.markers = markers
        self.transforms = dict(transforms)

    def transform_for(self, service: ServiceSpec) -> Transform:
        try:
            return self.transforms[service.family]
        except KeyError:
            raise InvalidInput(f"Unknown configuration family {service.family!r} for {service.name}") from None

    def apply(self, path: Path, service: ServiceSpec, parameters: Mapping[str, str]) -> ApplyResult:
        transform = self.transform_for(service)
        missing = [name for name in transform.required_parameters() if not parameters.get(name)]
        if missing:
            raise InvalidInput(f"Missing parameters for {transform.transform_id}: {', '.join(missing)}")

        if not path.is_file():
            raise ConfigMissing(f"Configuration file not found: {path}")
        data = path.read_bytes()
        if detect_encoding(data) is Encoding.BINARY:
            raise IntegrityViolation(f"{path} is encrypted; decrypt it before configuring")

        text = data.decode("utf-8")
        key_value = parameters[transform.key]
        marker = self.markers.render(transform.transform_id, key_value)

        if self.markers.is_applied(text, transform.transform_id, key_value):
            logger.info("File %s already configured (%s)", path, marker)
            return ApplyResult(path=path, marker=marker, changed=False)

        write_atomic(path, self._rewrite(text, transform, marker, parameters))

        if not self.markers.is_applied(path.read_text(encoding="utf-8"), transform.transform_id, key_value):
            raise IntegrityViolation(f"Failed to configure {path}: marker missing after write")
        logger.info("✅ Configured %s for %s", path, service.name)
        return ApplyResult(path=path, marker=marker, changed=True)

    def _rewrite(
        self,
        text: str,
        transform: Transform,
        marker: str,
        parameters: Mapping[str, str],
    ) -> str:
        replaced = {r.name for r in transform.fields if r.mode is FieldMode.REPLACE}
        substituted = {r.name: r.render(parameters) for r in transform.fields if r.mode is FieldMode.SUBSTITUTE}

        newline = "\r\n" if "\r\n" in text else "\n"
        lines = self.markers.strip(text.splitlines(), transform.transform_id)
        result = []
        for line in lines:
            key = _line_key(line)
            if key in replaced:
                continue
            if key in substituted:
                result.append(substituted[key])
                continue
            result.append(line)

        result.append(marker)
        result.extend(r.render(parameters) for r in transform.fields if r.mode is FieldMode.REPLACE)
        return newline.join(result) + newline
