"""Registry authentication and image pulls."""

from __future__ import annotations

import base64
import logging
from typing import Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import ExternalCommandFailed, InvalidInput
from .containers import ContainerRuntime

logger = logging.getLogger(__name__)


def registry_of(image: str) -> Optional[str]:
    """Registry host of an image reference, None for Docker Hub images."""
    first, sep, _ = image.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        return first
    return None


class RegistryClient:
    """
    Pulls images, authenticating lazily.

    A pull is tried first with whatever token the engine has cached; only on
    failure is a fresh ECR token fetched and the pull retried exactly once.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        region: Optional[str] = None,
        region_prompt: Optional[Callable[[], str]] = None,
        ecr_client_factory: Optional[Callable[[str], object]] = None,
    ) -> None:
        self.runtime = runtime
        self.region = region
        self.region_prompt = region_prompt
        self._ecr_client_factory = ecr_client_factory or (
            lambda region: boto3.client("ecr", region_name=region)
        )

    def ensure_image(self, image: str) -> None:
        if self.runtime.image_exists(image):
            logger.info("Image %s already present", image)
            return
        self.pull_with_login(image)

    def pull_with_login(self, image: str) -> None:
        logger.info("📦 Pulling %s with the current registry token...", image)
        try:
            self.runtime.pull(image)
            logger.info("Image %s pulled with existing token", image)
            return
        except ExternalCommandFailed as exc:
            logger.info("Existing registry token rejected (%s); fetching a new one", exc)

        registry = registry_of(image)
        if registry is None:
            raise ExternalCommandFailed(f"Failed to pull {image} and it has no private registry to log in to")
        self.login(registry)
        logger.info("📦 Pulling %s...", image)
        self.runtime.pull(image)

    def _resolve_region(self) -> str:
        region = self.region
        if not region and self.region_prompt is not None:
            region = self.region_prompt().strip()
        if not region:
            raise InvalidInput("Registry region is required to authenticate")
        self.region = region
        return region

    def login(self, registry: str) -> None:
        region = self._resolve_region()
        try:
            response = self._ecr_client_factory(region).get_authorization_token()
            auth = response["authorizationData"][0]
        except (BotoCoreError, ClientError, KeyError, IndexError) as exc:
            raise ExternalCommandFailed(f"Failed to fetch a registry token for {registry}: {exc}") from exc

        token = base64.b64decode(auth["authorizationToken"]).decode("utf-8")
        username, _, password = token.partition(":")
        endpoint = auth.get("proxyEndpoint") or f"https://{registry}"
        self.runtime.login(username, password, endpoint)
        logger.info("🔑 Authenticated with %s", registry)
