"""Tests for idempotency marker parsing."""

import pytest

from ai_stack_deployer.envfile import Marker, MarkerStore

CRED_PREFIX = "#qna-envfile-Configured-with-the-Following-ES-user:"
SERIAL_PREFIX = "#envfile-added-with-serial-"


class TestMarkerStore:
    """Tests for marker line parsing."""

    def test_render_and_parse_line(self, markers):
        """Test rendering a marker and parsing it back."""
        line = markers.render("credential", "admin")
        assert line == f"{CRED_PREFIX}admin"
        assert markers.parse_line(line) == Marker("credential", "admin")

    def test_parse_collects_every_marker(self, markers):
        """Test collecting markers from a whole file."""
        text = "\n".join([
            "A=1",
            f"{CRED_PREFIX}admin",
            f"{SERIAL_PREFIX}5916P1XFT",
            "B=2",
        ])
        assert markers.parse(text) == frozenset({
            Marker("credential", "admin"),
            Marker("hardware-id", "5916P1XFT"),
        })

    def test_marker_text_inside_value_is_not_a_marker(self, markers):
        """Only full comment lines count."""
        text = f"NOTE='{CRED_PREFIX}admin'\nOTHER=x {SERIAL_PREFIX}abc\n"
        assert markers.parse(text) == frozenset()
        assert not markers.is_applied(text, "credential")

    def test_is_applied_with_and_without_parameter(self, markers):
        """Test is_applied with and without a parameter."""
        text = f"{SERIAL_PREFIX}5916P1XFT\n"
        assert markers.is_applied(text, "hardware-id")
        assert markers.is_applied(text, "hardware-id", "5916P1XFT")
        assert not markers.is_applied(text, "hardware-id", "OTHER")
        assert not markers.is_applied(text, "credential")

    def test_prefix_without_parameter_is_ignored(self, markers):
        """Test that a bare prefix is not a marker."""
        assert markers.parse_line(CRED_PREFIX) is None
        assert markers.parse_line(f"{CRED_PREFIX}two words") is None

    def test_indented_marker_still_parsed(self, markers):
        """Test that leading whitespace is allowed."""
        assert markers.parse_line(f"   {SERIAL_PREFIX}XYZ  ") == Marker("hardware-id", "XYZ")

    def test_strip_removes_only_the_given_transform(self, markers):
        """Test stripping markers of one transform."""
        lines = ["A=1", f"{CRED_PREFIX}old", f"{SERIAL_PREFIX}S1", f"{CRED_PREFIX}older"]
        assert markers.strip(lines, "credential") == ["A=1", f"{SERIAL_PREFIX}S1"]

    def test_longest_prefix_wins(self):
        """Test that the longest matching prefix wins."""
        store = MarkerStore({"short": "#user-", "long": "#user-admin-"})
        assert store.parse_line("#user-admin-bob") == Marker("long", "bob")
        assert store.parse_line("#user-bob") == Marker("short", "bob")

    def test_prefix_must_be_comment(self):
        """Test that markers must start a comment line."""
        with pytest.raises(ValueError):
            MarkerStore({"bad": "marker:"})

    def test_render_rejects_whitespace(self, markers):
        """Test that parameters with whitespace are rejected."""
        with pytest.raises(ValueError):
            markers.render("credential", "two words")
