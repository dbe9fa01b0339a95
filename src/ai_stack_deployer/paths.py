"""Filesystem names and locations shared across the deployer.

Layout on the host (relative to the base directory, ``~/env`` by default):
- opendistro_es/          # search engine compose project
- qna/.env, qna/logs/     # one directory per service
- encryption-script/      # external encrypt/decrypt tool
"""

from pathlib import Path

DEFAULT_CONFIG_PATH = Path("config/default_config.json")

SYSCTL_CONF = Path("/etc/sysctl.conf")

ENV_FILE_NAME = ".env"
LOGS_DIR_NAME = "logs"
COMPOSE_FILE_NAME = "docker-compose.yml"


def expand(path: str) -> Path:
    """Expand ``~`` in a configured path."""
    return Path(path).expanduser()
