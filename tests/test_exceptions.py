"""Tests for the exception hierarchy."""

import pytest

from manifest_runner.exceptions import (
    CleanupError,
    ConfigError,
    DisplayError,
    ManifestRunnerError,
    ManifestValidationError,
    RunStepError,
    SupervisorLoadError,
    WorkingDirectoryError,
    WriteError,
)


class TestManifestRunnerError:
    def test_str_includes_code_context_cause_and_suggestion(self):
        error = ManifestRunnerError(
            "Something broke",
            error_code="BROKEN",
            context={"path": "/tmp/x"},
            cause=OSError("disk full"),
            recovery_suggestion="Free some space",
        )

        assert str(error) == (
            "[BROKEN] Something broke (context: path=/tmp/x) "
            "(caused by: disk full) (suggestion: Free some space)"
        )

    def test_to_dict(self):
        error = WriteError("Cannot write", path="/tmp/sa-wrapper.json")

        assert error.to_dict() == {
            "error_type": "WriteError",
            "message": "Cannot write",
            "error_code": "MANIFEST_WRITE_FAILED",
            "context": {"path": "/tmp/sa-wrapper.json", "step": 3},
            "cause": None,
            "recovery_suggestion": None,
        }


class TestRunStepErrors:
    @pytest.mark.parametrize(
        "error_class, step, name",
        [
            (WorkingDirectoryError, 1, "resolve working directory"),
            (WriteError, 3, "write manifest"),
            (SupervisorLoadError, 5, "supervisor load"),
            (DisplayError, 7, "display manifest"),
            (CleanupError, 8, "delete manifest"),
        ],
    )
    def test_step_labels(self, error_class, step, name):
        error = error_class("failed")

        assert isinstance(error, RunStepError)
        assert error.step == step
        assert error.step_label == f"step {step} ({name})"
        assert error.context["step"] == step

    def test_supervisor_load_error_context(self):
        error = SupervisorLoadError(
            "load failed", returncode=1, command="../launchctl load sa-wrapper.json"
        )

        assert error.returncode == 1
        assert error.context["command"] == "../launchctl load sa-wrapper.json"
        assert error.recovery_suggestion is not None

    def test_non_step_errors(self):
        assert not isinstance(ConfigError("bad"), RunStepError)
        error = ManifestValidationError("bad", errors=["a", "b"], label="test.job")
        assert error.errors == ["a", "b"]
        assert error.context == {"label": "test.job"}
        assert error.error_code == "MANIFEST_INVALID"
