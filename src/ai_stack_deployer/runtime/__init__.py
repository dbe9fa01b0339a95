"""Container engine and registry adapters."""

from .containers import ContainerRuntime, ExecResult, parse_volume
from .registry import RegistryClient, registry_of

__all__ = ["ContainerRuntime", "ExecResult", "RegistryClient", "parse_volume", "registry_of"]
