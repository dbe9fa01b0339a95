"""Error taxonomy shared by every pipeline component.

Every error is fatal for the current run: the CLI prints one line and exits
non-zero. Recovery is by re-running the pipeline.
"""

from __future__ import annotations


class DeployerError(Exception):
    """Base class for all deployer failures."""


class DependencyMissing(DeployerError):
    """A required external tool or repository is not available."""


class ConfigMissing(DeployerError):
    """An expected file (configuration, compose definition) is absent."""


class ExternalCommandFailed(DeployerError):
    """An external collaborator (package manager, docker, S3, registry, crypto tool) failed."""


class IntegrityViolation(DeployerError):
    """A file is not in the state an operation requires or promised to produce."""


class InvalidInput(DeployerError):
    """Operator-supplied value is empty or malformed."""


class ConfigWriteFailed(DeployerError):
    """Writing a configuration file failed."""
