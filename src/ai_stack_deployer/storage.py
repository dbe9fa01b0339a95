"""Object-storage fetches for prerequisite files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ExternalCommandFailed, InvalidInput

logger = logging.getLogger(__name__)


def parse_s3_uri(uri: str) -> Tuple[str, str]:
    uri = (uri or "").strip()
    if not uri.startswith("s3://"):
        raise InvalidInput(f"Expected an s3:// URI, got {uri!r}")
    bucket, _, key = uri[len("s3://"):].partition("/")
    if not bucket or not key or key.endswith("/"):
        raise InvalidInput(f"S3 URI must name an object: {uri!r}")
    return bucket, key


class ObjectStore:
    """Materializes files from S3; an existing destination is never re-fetched."""

    def __init__(
        self,
        region: str,
        client_factory: Optional[Callable[[str], object]] = None,
    ) -> None:
        self.region = region
        self._client_factory = client_factory or (lambda region: boto3.client("s3", region_name=region))
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory(self.region)
        return self._client

    def fetch(self, uri: str, dest: Path) -> bool:
        """Download `uri` to `dest`; returns False when `dest` already exists."""
        if dest.exists():
            logger.info("Prerequisite file %s already installed", dest)
            return False
        bucket, key = parse_s3_uri(uri)
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info("⬇️  Downloading %s to %s", uri, dest)
        try:
            self.client.download_file(bucket, key, str(dest))
        except (BotoCoreError, ClientError) as exc:
            raise ExternalCommandFailed(f"Failed to download {uri}: {exc}") from exc
        return True
