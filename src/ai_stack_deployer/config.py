"""Configuration loading utilities for the AI stack deployer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigMissing, InvalidInput
from .paths import DEFAULT_CONFIG_PATH, ENV_FILE_NAME, LOGS_DIR_NAME, expand

# Load .env file if it exists
load_dotenv()

ECR_REGISTRY = "074697765782.dkr.ecr.us-east-1.amazonaws.com"


@dataclass(frozen=True)
class ServiceSpec:
    """One deployable service and the rules for its configuration file."""

    name: str
    port: int
    directory: Path                         # host directory holding .env and logs/
    image: str                              # repository:tag
    family: str                             # transform family applied to .env
    mount_root: str                         # in-container directory receiving .env and logs
    privileged: bool = False
    host_pid: bool = False
    extra_volumes: Tuple[str, ...] = ()     # "host:container[:mode]"
    env_uri: Optional[str] = None           # object-storage source for a missing .env

    @property
    def env_file(self) -> Path:
        return self.directory / ENV_FILE_NAME

    @property
    def logs_dir(self) -> Path:
        return self.directory / LOGS_DIR_NAME

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], base_dir: Path) -> "ServiceSpec":
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in payload.items() if k in known}
        missing = [n for n in ("name", "port", "image", "family", "mount_root") if n not in data]
        if missing:
            raise InvalidInput(f"Service entry is missing {', '.join(missing)}: {payload}")
        directory = Path(str(data.pop("directory", data["name"]))).expanduser()
        if not directory.is_absolute():
            directory = base_dir / directory
        data["extra_volumes"] = tuple(data.get("extra_volumes") or ())
        try:
            data["port"] = int(data["port"])
        except (TypeError, ValueError):
            raise InvalidInput(f"Service {data['name']!r} has a non-numeric port: {data['port']!r}") from None
        return cls(directory=directory, **data)


DEFAULT_SERVICES: List[Dict[str, Any]] = [
    {
        "name": "qna",
        "port": 8081,
        "directory": "qna",
        "image": f"{ECR_REGISTRY}/qna:on-prem",
        "family": "credential",
        "mount_root": "/qna",
        "privileged": True,
        "host_pid": True,
        "extra_volumes": ["/run/udev:/run/udev:ro"],
    },
    {
        "name": "ar-sentiment",
        "port": 8084,
        "directory": "ar_sent",
        "image": f"{ECR_REGISTRY}/ar-sentiment:on-prem",
        "family": "hardware-id",
        "mount_root": "/ar-multi-sentiment-analysis",
    },
    {
        "name": "en-sentiment",
        "port": 8085,
        "directory": "en_sent",
        "image": f"{ECR_REGISTRY}/en-sentiment:on-prem",
        "family": "hardware-id",
        "mount_root": "/en-multi-sentiment-analysis",
    },
]


@dataclass(frozen=True)
class PathsConfig:
    """Host directories shared by all services."""

    base_dir: Path = field(default_factory=lambda: expand("~/env"))
    search_engine_dir: Path = field(default_factory=lambda: expand("~/env/opendistro_es"))
    encryption_repo: Path = field(default_factory=lambda: expand("~/env/encryption-script"))


@dataclass(frozen=True)
class SearchEngineConfig:
    """Search engine compose stack and the endpoint services connect to."""

    container: str = "odfe-node1"
    endpoint: str = "https://172.17.0.1:9200"
    compose_command: Tuple[str, ...] = ("docker-compose",)
    compose_uri: Optional[str] = None
    max_map_count: int = 262144
    startup_attempts: int = 20              # readiness polls after compose up
    startup_interval: float = 2.0           # seconds between polls


@dataclass(frozen=True)
class RegistryConfig:
    """Container registry (ECR) settings."""

    region: Optional[str] = "us-east-1"


@dataclass(frozen=True)
class CryptoConfig:
    """External encrypt/decrypt tool settings."""

    python_version: Optional[str] = None    # the tool runs under python<version>
    entrypoint: str = "main.py"


@dataclass(frozen=True)
class HardwareConfig:
    """Host hardware identifiers injected into service configuration."""

    disk_serial: str = "5916P1XFT"


@dataclass(frozen=True)
class PrerequisitesConfig:
    """System packages and object-storage settings for the prerequisite step."""

    packages: Tuple[str, ...] = ("ca-certificates", "curl", "gnupg", "lsb-release")
    s3_region: str = "us-east-1"


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    search_engine: SearchEngineConfig = field(default_factory=SearchEngineConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    crypto: CryptoConfig = field(default_factory=CryptoConfig)
    hardware: HardwareConfig = field(default_factory=HardwareConfig)
    prerequisites: PrerequisitesConfig = field(default_factory=PrerequisitesConfig)
    services: Tuple[ServiceSpec, ...] = ()

    def service(self, name: str) -> ServiceSpec:
        for spec in self.services:
            if spec.name == name:
                return spec
        known = ", ".join(s.name for s in self.services)
        raise InvalidInput(f"Unknown service {name!r} (known: {known})")

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        paths_payload = _strip_comments(payload.get("paths", {}) or {})
        search_payload = _strip_comments(payload.get("search_engine", {}) or {})
        registry_payload = _strip_comments(payload.get("registry", {}) or {})
        crypto_payload = _strip_comments(payload.get("crypto", {}) or {})
        hardware_payload = _strip_comments(payload.get("hardware", {}) or {})
        prereq_payload = _strip_comments(payload.get("prerequisites", {}) or {})

        _reject_unknown(PathsConfig, "paths", paths_payload)
        # search engine and encryption repo default to siblings inside base_dir
        base_dir = expand(paths_payload.get("base_dir", "~/env"))
        paths = PathsConfig(
            base_dir=base_dir,
            search_engine_dir=_under(base_dir, paths_payload.get("search_engine_dir", "opendistro_es")),
            encryption_repo=_under(base_dir, paths_payload.get("encryption_repo", "encryption-script")),
        )

        if "compose_command" in search_payload:
            search_payload["compose_command"] = tuple(search_payload["compose_command"])
        if "packages" in prereq_payload:
            prereq_payload["packages"] = tuple(prereq_payload["packages"])

        services_payload = payload.get("services") or DEFAULT_SERVICES
        services = tuple(ServiceSpec.from_dict(item, base_dir) for item in services_payload)
        names = [s.name for s in services]
        if len(set(names)) != len(names):
            raise InvalidInput(f"Duplicate service names in configuration: {names}")

        return cls(
            paths=paths,
            search_engine=_section(SearchEngineConfig, "search_engine", search_payload),
            registry=_section(RegistryConfig, "registry", registry_payload),
            crypto=_section(CryptoConfig, "crypto", crypto_payload),
            hardware=_section(HardwareConfig, "hardware", hardware_payload),
            prerequisites=_section(PrerequisitesConfig, "prerequisites", prereq_payload),
            services=services,
        )


def _strip_comments(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if not k.startswith("_")}


def _reject_unknown(section_cls, name: str, payload: Dict[str, Any]) -> None:
    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise InvalidInput(
            f"Unknown key(s) in '{name}' configuration: {', '.join(unknown)} (known: {', '.join(sorted(known))})"
        )


_NUMERIC = {"max_map_count": int, "startup_attempts": int, "startup_interval": float}


def _section(section_cls, name: str, payload: Dict[str, Any]):
    """Build one config section on top of its defaults, rejecting unknown keys."""
    _reject_unknown(section_cls, name, payload)
    data = {**section_cls().__dict__, **payload}
    for key, convert in _NUMERIC.items():
        if key in payload:
            try:
                data[key] = convert(payload[key])
            except (TypeError, ValueError):
                raise InvalidInput(f"'{name}.{key}' must be a number, got {payload[key]!r}") from None
    return section_cls(**data)


def _under(base_dir: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def _read_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError as exc:
            raise InvalidInput(f"Invalid JSON in {path}: {exc}") from exc


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path`, the default location, or built-in defaults.

    Environment variables (higher priority than config file):
    - STACK_DEPLOYER_BASE_DIR: host directory holding service directories
    - STACK_DEPLOYER_AWS_REGION: registry region
    - STACK_DEPLOYER_PYTHON_VERSION: python version running the encryption tool
    - STACK_DEPLOYER_DISK_SERIAL: hardware identifier for sentiment services
    """

    data: Dict[str, Any] = {}
    if path:
        candidate = Path(path)
        if not candidate.is_file():
            raise ConfigMissing(f"Configuration file not found: {candidate}")
        data = _read_json(candidate)
    elif DEFAULT_CONFIG_PATH.is_file():
        data = _read_json(DEFAULT_CONFIG_PATH)

    env_base = os.getenv("STACK_DEPLOYER_BASE_DIR")
    if env_base:
        data.setdefault("paths", {})["base_dir"] = env_base

    env_region = os.getenv("STACK_DEPLOYER_AWS_REGION")
    if env_region:
        data.setdefault("registry", {})["region"] = env_region

    env_python = os.getenv("STACK_DEPLOYER_PYTHON_VERSION")
    if env_python:
        data.setdefault("crypto", {})["python_version"] = env_python

    env_serial = os.getenv("STACK_DEPLOYER_DISK_SERIAL")
    if env_serial:
        data.setdefault("hardware", {})["disk_serial"] = env_serial

    return AppConfig.from_dict(data)
