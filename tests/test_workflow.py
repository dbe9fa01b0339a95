"""End-to-end tests of the command workflows over in-memory collaborators."""

from dataclasses import replace

import pytest

from ai_stack_deployer.envfile import ConfigState
from ai_stack_deployer.errors import DependencyMissing
from ai_stack_deployer.interaction import AutoResponseHandler
from ai_stack_deployer.orchestrator import Action, Decision
from ai_stack_deployer.runtime import ContainerRuntime
from ai_stack_deployer.storage import ObjectStore
from ai_stack_deployer.workflow import DeploymentWorkflow

from conftest import CREDENTIAL_ENV, HARDWARE_ENV, write_env
from fakes import (
    FakeContainer,
    FakeCryptoTool,
    FakeDockerClient,
    FakeECR,
    FakeImages,
    FakeProbe,
    FakeS3,
    FakeSession,
    encrypted_bytes,
)


@pytest.fixture
def tool():
    return FakeCryptoTool()


@pytest.fixture
def client():
    return FakeDockerClient(FakeImages(require_login=True))


@pytest.fixture
def make_workflow(app_config, encryption_repo, tool, client):
    def build(config=None, probe=None, responses=None):
        config = config or app_config
        (config.paths.search_engine_dir).mkdir(parents=True, exist_ok=True)
        (config.paths.search_engine_dir / "docker-compose.yml").write_text("services: {}\n")
        return DeploymentWorkflow(
            config,
            interaction=AutoResponseHandler(responses=responses),
            runtime=ContainerRuntime(client),
            session=FakeSession([tool]),
            object_store=ObjectStore("us-east-1", client_factory=lambda region: FakeS3()),
            ecr_client_factory=lambda region: FakeECR(),
            probe=probe or FakeProbe(),
        )
    return build


@pytest.fixture
def sentiment_config(app_config):
    return replace(app_config, services=app_config.services[1:])


class TestDeploymentWorkflow:
    """Tests for DeploymentWorkflow commands."""

    def test_deploy_sentiment_services(self, make_workflow, sentiment_config, client):
        """Test deploying the sentiment services."""
        client.containers.add(FakeContainer("odfe-node1"))
        for service in sentiment_config.services:
            write_env(service, HARDWARE_ENV)

        outcomes = make_workflow(sentiment_config).run_deploy()

        assert [o.actions for o in outcomes] == [[Action.CONFIGURE, Action.ENCRYPT, Action.DEPLOY]] * 2
        assert all(o.deployed for o in outcomes)
        assert len(client.logins) == 1

    def test_preflight_reports_missing_tools(self, make_workflow):
        """Test that missing tools fail before any work."""
        workflow = make_workflow(probe=FakeProbe(missing=["docker-compose"]))
        with pytest.raises(DependencyMissing, match="docker-compose"):
            workflow.run_deploy(decision=Decision.KEEP_ENCRYPTED)

    def test_status(self, make_workflow, app_config, client):
        """Test the status report."""
        qna, ar, en = app_config.services
        write_env(qna, CREDENTIAL_ENV)
        write_env(ar, HARDWARE_ENV + "#envfile-added-with-serial-5916P1XFT\nDISK_SERIAL=5916P1XFT\n")
        client.containers.add(FakeContainer("qna", status="exited"))

        statuses = {s.name: s for s in make_workflow().status()}

        assert statuses["qna"].state is ConfigState.UNCONFIGURED
        assert statuses["qna"].container == "exited"
        assert statuses["ar-sentiment"].state is ConfigState.CONFIGURED
        assert statuses["ar-sentiment"].container == "absent"
        assert statuses["en-sentiment"].state is None

    def test_manual_encrypt_and_decrypt(self, make_workflow, app_config, tool):
        """Test the manual encrypt and decrypt commands."""
        ar = app_config.service("ar-sentiment")
        configured = HARDWARE_ENV + "#envfile-added-with-serial-5916P1XFT\n"
        write_env(ar, configured)
        workflow = make_workflow(responses={"Decrypt": "yes"})

        workflow.encrypt("ar-sentiment")
        assert workflow.inspector.classify(ar.env_file, "hardware-id") is ConfigState.ENCRYPTED

        assert workflow.decrypt("ar-sentiment")
        assert ar.env_file.read_text() == configured
        assert [op for op, _ in tool.invocations] == ["encrypt", "decrypt"]

    def test_manual_decrypt_declined(self, make_workflow, app_config, tool):
        """Test that declining decrypt leaves the file encrypted."""
        ar = app_config.service("ar-sentiment")
        payload = encrypted_bytes(HARDWARE_ENV)
        write_env(ar, payload)
        workflow = make_workflow()

        assert not workflow.decrypt("ar-sentiment")
        assert ar.env_file.read_bytes() == payload
        assert tool.invocations == []
        assert workflow.interaction.notifications == [f"{ar.env_file} left encrypted"]

    def test_startup_keeps_running_services(self, make_workflow, app_config, client):
        """Test that startup keeps running containers."""
        client.containers.add(FakeContainer("qna", status="running"))

        def compose_up(argv, kwargs):
            if argv[-2:] == ["up", "-d"]:
                client.containers.add(FakeContainer("odfe-node1"))
            return None

        workflow = make_workflow()
        workflow.session.handlers.append(compose_up)
        workflow.search_engine.sysctl_conf = app_config.paths.base_dir / "sysctl.conf"

        targets = workflow.run_startup()

        assert [t.kept for t in targets] == [True, False, False]
        assert "odfe-node1" in client.containers.by_name
