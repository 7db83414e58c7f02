"""
Custom Exception Hierarchy for Manifest Runner

This module provides the exception hierarchy used by the runner, the manifest
model and the configuration loader. Every error carries structured context so
it can be rendered for the user and emitted as a structured log event.
"""

from typing import Any, Dict, Optional


class ManifestRunnerError(Exception):
    """
    Base exception class for all Manifest Runner errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Run step exceptions
class RunStepError(ManifestRunnerError):
    """Base class for errors raised by a numbered step of a manifest run."""

    step: int = 0
    step_name: str = "unknown"

    def __init__(self, message: str, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        context.setdefault("step", self.step)
        kwargs["context"] = context
        super().__init__(message, **kwargs)

    @property
    def step_label(self) -> str:
        return f"step {self.step} ({self.step_name})"


class WorkingDirectoryError(RunStepError):
    """Raised when the current working directory cannot be resolved."""

    step = 1
    step_name = "resolve working directory"

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CWD_UNRESOLVED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Change into an existing directory before running the harness",
        )
        super().__init__(message, **kwargs)


class WriteError(RunStepError):
    """Raised when the manifest file cannot be created or written."""

    step = 3
    step_name = "write manifest"

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MANIFEST_WRITE_FAILED")
        super().__init__(message, **kwargs)


class SupervisorLoadError(RunStepError):
    """Raised when the supervisor's load call reports failure."""

    step = 5
    step_name = "supervisor load"

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        command: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if returncode is not None:
            context["returncode"] = returncode
        if command:
            context["command"] = command
        kwargs["context"] = context
        kwargs.setdefault("error_code", "SUPERVISOR_LOAD_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check that the supervisor daemon is running and the control binary path is correct",
        )
        super().__init__(message, **kwargs)
        self.returncode = returncode


class DisplayError(RunStepError):
    """Raised when the manifest cannot be displayed after loading."""

    step = 7
    step_name = "display manifest"

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MANIFEST_DISPLAY_FAILED")
        super().__init__(message, **kwargs)


class CleanupError(RunStepError):
    """Raised when the manifest file cannot be deleted. Never fatal."""

    step = 8
    step_name = "delete manifest"

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MANIFEST_CLEANUP_FAILED")
        super().__init__(message, **kwargs)


# Manifest and configuration exceptions
class ManifestValidationError(ManifestRunnerError):
    """Raised when a manifest does not satisfy the supervisor's rules."""

    def __init__(
        self,
        message: str,
        errors: Optional[list[str]] = None,
        label: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if label:
            context["label"] = label
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MANIFEST_INVALID")
        super().__init__(message, **kwargs)
        self.errors = errors or []


class ConfigError(ManifestRunnerError):
    """Configuration loading or validation error."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CONFIG_INVALID")
        super().__init__(message, **kwargs)
