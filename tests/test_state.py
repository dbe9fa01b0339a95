"""Tests for configuration file classification."""

import pytest

from ai_stack_deployer.envfile import ConfigState, Encoding, detect_encoding
from ai_stack_deployer.errors import ConfigMissing

from fakes import encrypted_bytes


class TestDetectEncoding:
    """Tests for the text/binary heuristic."""

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"KEY=value\n",
            b"A=1\r\nB=2\tx\n",
            "NAME=café مرحبا\n".encode("utf-8"),
        ],
    )
    def test_text(self, data):
        """Test plain text."""
        assert detect_encoding(data) is Encoding.TEXT

    @pytest.mark.parametrize(
        "data",
        [
            b"KEY=value\x00\n",
            b"\xff\xfe\xfa\x80",
            bytes(range(1, 32)) * 4,
        ],
    )
    def test_binary(self, data):
        """Test binary payloads."""
        assert detect_encoding(data) is Encoding.BINARY

    def test_few_control_characters_still_text(self):
        """Test the printable ratio threshold."""
        data = b"A" * 99 + b"\x07"
        assert detect_encoding(data) is Encoding.TEXT


class TestStateInspector:
    """Tests for configuration state classification."""

    def test_unconfigured(self, inspector, tmp_path):
        """Test a file without markers."""
        path = tmp_path / ".env"
        path.write_text("A=1\n")
        assert inspector.classify(path, "credential") is ConfigState.UNCONFIGURED

    def test_configured(self, inspector, tmp_path):
        """Test a file with the transform's marker."""
        path = tmp_path / ".env"
        path.write_text("A=1\n#qna-envfile-Configured-with-the-Following-ES-user:admin\n")
        assert inspector.classify(path, "credential") is ConfigState.CONFIGURED

    def test_marker_of_another_transform_does_not_count(self, inspector, tmp_path):
        """Test that other transforms' markers are ignored."""
        path = tmp_path / ".env"
        path.write_text("#qna-envfile-Configured-with-the-Following-ES-user:admin\n")
        assert inspector.classify(path, "hardware-id") is ConfigState.UNCONFIGURED

    def test_parameter_must_match_when_given(self, inspector, tmp_path):
        """Test matching an expected marker value."""
        path = tmp_path / ".env"
        path.write_text("#envfile-added-with-serial-OLD\nDISK_SERIAL=OLD\n")
        assert inspector.classify(path, "hardware-id", "NEW") is ConfigState.UNCONFIGURED
        assert inspector.classify(path, "hardware-id", "OLD") is ConfigState.CONFIGURED

    def test_encrypted(self, inspector, tmp_path):
        """Test an encrypted file."""
        path = tmp_path / ".env"
        path.write_bytes(encrypted_bytes("#envfile-added-with-serial-X\n"))
        assert inspector.classify(path, "hardware-id") is ConfigState.ENCRYPTED

    def test_empty_file_is_unconfigured(self, inspector, tmp_path):
        """Test an empty file."""
        path = tmp_path / ".env"
        path.write_bytes(b"")
        assert inspector.classify(path, "credential") is ConfigState.UNCONFIGURED

    def test_classification_is_stable_and_read_only(self, inspector, tmp_path):
        """Test that classify never changes the file."""
        path = tmp_path / ".env"
        path.write_text("A=1\n")
        before = path.read_bytes()
        states = {inspector.classify(path, "credential") for _ in range(3)}
        assert states == {ConfigState.UNCONFIGURED}
        assert path.read_bytes() == before

    def test_missing_file(self, inspector, tmp_path):
        """Test a missing file."""
        with pytest.raises(ConfigMissing):
            inspector.classify(tmp_path / "absent.env", "credential")

    def test_directory_is_missing(self, inspector, tmp_path):
        """Test a directory in place of the file."""
        with pytest.raises(ConfigMissing):
            inspector.classify(tmp_path, "credential")
