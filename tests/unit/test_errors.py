"""Tests for the error taxonomy and phase scoping."""

import pytest

from kind_conformance.errors import (
    BuildError,
    CommandError,
    ConformanceError,
    ProvisionError,
    RunInterrupted,
    UnsupportedPlatformError,
    phase_scope,
)


class TestPhaseScope:
    """Tests for converting collaborator failures into phase errors."""

    def test_command_error_keeps_exit_code(self):
        """Test that the tool's exit code becomes the phase exit code."""
        with pytest.raises(BuildError) as exc_info:
            with phase_scope(BuildError):
                raise CommandError("kind build node-image", 2, "bazel failed")

        err = exc_info.value
        assert err.exit_code == 2
        assert err.output == "bazel failed"
        assert err.phase == "build"
        assert "[build]" in str(err)
        assert isinstance(err.__cause__, CommandError)

    def test_os_error(self):
        """Test that filesystem errors map to the phase with exit code 1."""
        with pytest.raises(ProvisionError) as exc_info:
            with phase_scope(ProvisionError):
                raise PermissionError("read-only file system")

        assert exc_info.value.exit_code == 1

    def test_phase_errors_pass_through(self):
        """Test that an error already owned by a phase is not re-wrapped."""
        with pytest.raises(UnsupportedPlatformError):
            with phase_scope(BuildError):
                raise UnsupportedPlatformError("sparc64")

    def test_other_errors_propagate(self):
        """Test that programming errors are not disguised as phase failures."""
        with pytest.raises(KeyError):
            with phase_scope(BuildError):
                raise KeyError("oops")


class TestErrors:
    """Tests for error attributes."""

    def test_unsupported_platform_exit_code(self):
        """Test the distinguished exit code."""
        assert UnsupportedPlatformError("x").exit_code == 3

    def test_run_interrupted(self):
        """Test that signals map to 128 + signum."""
        err = RunInterrupted(15)

        assert isinstance(err, ConformanceError)
        assert err.exit_code == 143

    def test_command_error_message(self):
        """Test the command error message."""
        err = CommandError("kind version", 127, "command not found: kind\n")

        assert str(err) == "'kind version' failed with exit code 127: command not found: kind"
