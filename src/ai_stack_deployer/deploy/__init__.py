"""Container deployment for services."""

from .driver import DeploymentDriver, DeploymentTarget, RunningPolicy, service_volumes

__all__ = ["DeploymentDriver", "DeploymentTarget", "RunningPolicy", "service_volumes"]
