"""Tests for the encryption tool wrapper."""

import pytest

from ai_stack_deployer.config import CryptoConfig
from ai_stack_deployer.crypto import CryptoGateway
from ai_stack_deployer.envfile import ConfigState, Encoding, hardware_parameters
from ai_stack_deployer.errors import DependencyMissing, ExternalCommandFailed, IntegrityViolation

from conftest import CREDENTIAL_ENV, HARDWARE_ENV, write_env
from fakes import FakeCryptoTool, FakeProbe, FakeSession

CONFIGURED_QNA = CREDENTIAL_ENV + "#qna-envfile-Configured-with-the-Following-ES-user:admin\n"


def gateway(inspector, repo, tool, probe=None, python_version="3.9"):
    return CryptoGateway(
        CryptoConfig(python_version=python_version),
        repo,
        inspector,
        session=FakeSession([tool]),
        probe=probe or FakeProbe(),
    )


class TestCryptoGateway:
    """Tests for the encryption tool wrapper."""

    def test_tool_argv(self, crypto, encryption_repo, tmp_path):
        """Test the tool command line."""
        argv = crypto.tool_argv("encrypt", tmp_path / ".env")
        assert argv == [
            "python3.9",
            str(encryption_repo / "main.py"),
            "encrypt",
            str(tmp_path / ".env"),
            "--prompt",
        ]

    def test_round_trip_restores_content(self, crypto, inspector, crypto_tool, qna_service):
        """Test that decrypt restores the configured file."""
        path = write_env(qna_service, CONFIGURED_QNA)

        crypto.encrypt(path, "credential")
        assert inspector.classify(path, "credential") is ConfigState.ENCRYPTED

        crypto.decrypt(path)
        assert path.read_text() == CONFIGURED_QNA
        assert [op for op, _ in crypto_tool.invocations] == ["encrypt", "decrypt"]

    def test_tool_runs_interactively(self, crypto, session, qna_service):
        """Test that the tool inherits the terminal."""
        path = write_env(qna_service, CONFIGURED_QNA)
        crypto.encrypt(path, "credential")
        assert session.kwargs[-1] == {"interactive": True}

    def test_encrypt_requires_configured_file(self, crypto, crypto_tool, qna_service):
        """Test that only configured files are encrypted."""
        path = write_env(qna_service, CREDENTIAL_ENV)
        with pytest.raises(IntegrityViolation):
            crypto.encrypt(path, "credential")
        assert crypto_tool.invocations == []

    def test_encrypt_checks_expected_parameter(self, crypto, applier, sentiment_service):
        """Test that a marker with the wrong value blocks encryption."""
        path = write_env(sentiment_service, HARDWARE_ENV)
        applier.apply(path, sentiment_service, hardware_parameters("OLD"))
        with pytest.raises(IntegrityViolation):
            crypto.encrypt(path, "hardware-id", "NEW")
        crypto.encrypt(path, "hardware-id", "OLD")

    def test_decrypt_requires_encrypted_file(self, crypto, crypto_tool, qna_service):
        """Test that only encrypted files are decrypted."""
        path = write_env(qna_service, CONFIGURED_QNA)
        with pytest.raises(IntegrityViolation):
            crypto.decrypt(path)
        assert crypto_tool.invocations == []

    def test_tool_failure(self, inspector, encryption_repo, qna_service):
        """Test a non-zero tool exit."""
        path = write_env(qna_service, CONFIGURED_QNA)
        crypto = gateway(inspector, encryption_repo, FakeCryptoTool(fail=True))
        with pytest.raises(ExternalCommandFailed):
            crypto.encrypt(path, "credential")
        assert path.read_text() == CONFIGURED_QNA

    def test_success_without_effect_is_an_integrity_violation(self, inspector, encryption_repo, qna_service):
        """Test a tool run that leaves the file unchanged."""
        path = write_env(qna_service, CONFIGURED_QNA)
        crypto = gateway(inspector, encryption_repo, FakeCryptoTool(no_op=True))
        with pytest.raises(IntegrityViolation):
            crypto.encrypt(path, "credential")
        assert inspector.encoding(path) is Encoding.TEXT

    def test_python_version_required(self, inspector, encryption_repo, qna_service):
        """Test that the python version must be known."""
        path = write_env(qna_service, CONFIGURED_QNA)
        crypto = gateway(inspector, encryption_repo, FakeCryptoTool(), python_version=None)
        with pytest.raises(DependencyMissing):
            crypto.encrypt(path, "credential")

    def test_missing_interpreter(self, inspector, encryption_repo, qna_service):
        """Test a missing python interpreter."""
        path = write_env(qna_service, CONFIGURED_QNA)
        crypto = gateway(inspector, encryption_repo, FakeCryptoTool(), probe=FakeProbe(missing=["python3.9"]))
        with pytest.raises(DependencyMissing):
            crypto.encrypt(path, "credential")

    def test_missing_repository(self, inspector, tmp_path, qna_service):
        """Test a missing encryption repository."""
        path = write_env(qna_service, CONFIGURED_QNA)
        crypto = gateway(inspector, tmp_path / "nowhere", FakeCryptoTool())
        with pytest.raises(DependencyMissing):
            crypto.encrypt(path, "credential")
