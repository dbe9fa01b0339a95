"""Shared fixtures."""

from pathlib import Path

import pytest

from ai_stack_deployer.config import (
    ECR_REGISTRY,
    AppConfig,
    CryptoConfig,
    PathsConfig,
    SearchEngineConfig,
    ServiceSpec,
)
from ai_stack_deployer.crypto import CryptoGateway
from ai_stack_deployer.deploy import DeploymentDriver, RunningPolicy
from ai_stack_deployer.envfile import ConfigApplier, StateInspector, default_marker_store
from ai_stack_deployer.runtime import ContainerRuntime, RegistryClient

from fakes import FakeCryptoTool, FakeDockerClient, FakeECR, FakeImages, FakeProbe, FakeSession

CREDENTIAL_ENV = "DB_HOST=localhost\nDISK_SERIAL=unset\nES_CONNECTION_LINE='https://old@host:9200'\n"
HARDWARE_ENV = "MODEL_PATH=/models/current\nDISK_SERIAL=unset\n"


def make_service(base: Path, name: str = "qna", family: str = "credential", port: int = 8081, **extra) -> ServiceSpec:
    defaults = {
        "mount_root": f"/{name}",
        "privileged": family == "credential",
        "host_pid": family == "credential",
        "extra_volumes": ("/run/udev:/run/udev:ro",) if family == "credential" else (),
    }
    defaults.update(extra)
    return ServiceSpec(
        name=name,
        port=port,
        directory=base / name,
        image=f"{ECR_REGISTRY}/{name}:on-prem",
        family=family,
        **defaults,
    )


def write_env(service: ServiceSpec, content) -> Path:
    service.directory.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        service.env_file.write_bytes(content)
    else:
        service.env_file.write_text(content, encoding="utf-8")
    return service.env_file


@pytest.fixture
def markers():
    return default_marker_store()


@pytest.fixture
def inspector(markers):
    return StateInspector(markers)


@pytest.fixture
def applier(markers):
    return ConfigApplier(markers)


@pytest.fixture
def qna_service(tmp_path):
    return make_service(tmp_path)


@pytest.fixture
def sentiment_service(tmp_path):
    return make_service(tmp_path, name="ar-sentiment", family="hardware-id", port=8084)


@pytest.fixture
def app_config(tmp_path):
    services = (
        make_service(tmp_path),
        make_service(tmp_path, name="ar-sentiment", family="hardware-id", port=8084),
        make_service(tmp_path, name="en-sentiment", family="hardware-id", port=8085),
    )
    return AppConfig(
        paths=PathsConfig(
            base_dir=tmp_path,
            search_engine_dir=tmp_path / "opendistro_es",
            encryption_repo=tmp_path / "encryption-script",
        ),
        search_engine=SearchEngineConfig(startup_attempts=3, startup_interval=0.0),
        crypto=CryptoConfig(python_version="3.9"),
        services=services,
    )


@pytest.fixture
def encryption_repo(tmp_path):
    repo = tmp_path / "encryption-script"
    repo.mkdir(exist_ok=True)
    (repo / "main.py").write_text("# encryption tool\n", encoding="utf-8")
    return repo


@pytest.fixture
def crypto_tool():
    return FakeCryptoTool()


@pytest.fixture
def session(crypto_tool):
    return FakeSession([crypto_tool])


@pytest.fixture
def crypto(inspector, encryption_repo, session):
    return CryptoGateway(
        CryptoConfig(python_version="3.9"),
        encryption_repo,
        inspector,
        session=session,
        probe=FakeProbe(),
    )


@pytest.fixture
def docker_client():
    return FakeDockerClient(FakeImages(require_login=True))


@pytest.fixture
def runtime(docker_client):
    return ContainerRuntime(client=docker_client)


@pytest.fixture
def ecr():
    return FakeECR()


@pytest.fixture
def registry(runtime, ecr):
    return RegistryClient(runtime, region="us-east-1", ecr_client_factory=lambda region: ecr)


@pytest.fixture
def driver(runtime, registry):
    return DeploymentDriver(runtime, registry, policy=RunningPolicy.RECREATE)
