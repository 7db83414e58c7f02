"""
Configuration models for the manifest runner.

Provides type-safe configuration using pydantic with validation,
defaults, and schema enforcement. Defaults reproduce the fixed values
of the sa-wrapper socket activation test.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ManifestDefaults(BaseModel):
    """Values used to build the test service manifest."""

    user_name: str = Field(
        default="nobody",
        description="Unprivileged user the program runs as",
    )
    group_name: str = Field(
        default="nogroup",
        description="Unprivileged group the program runs as",
    )
    label: str = Field(
        default="test.sa-wrapper",
        description="Unique label of the service within the supervisor",
    )
    program_name: str = Field(
        default="test-wrapper",
        description="Executable name, resolved against the working directory",
    )
    preload_library: str = Field(
        default="sa-wrapper.so",
        description="Library injected through LD_PRELOAD",
    )
    socket_name: str = Field(
        default="MyService",
        description="Name of the pre-bound listening socket",
    )
    socket_service: str = Field(
        default="8088",
        description="Port number or service name for the listening socket",
    )
    enable_globbing: bool = Field(default=True)
    working_directory: str = Field(default="/")
    root_directory: str = Field(default="/")
    stdin_path: str = Field(default="/dev/null")

    model_config = ConfigDict(extra="forbid")

    @field_validator("label", "program_name", "user_name", "group_name")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("value must not be blank")
        return v


class RunnerConfig(BaseModel):
    """
    Root configuration model for the manifest runner.

    Aggregates the file, supervisor and display settings together with
    the manifest defaults.
    """

    manifest_filename: str = Field(
        default="sa-wrapper.json",
        description="Manifest file name, created in the current directory",
    )
    supervisor_binary: str = Field(
        default="../launchctl",
        description="Supervisor control binary, invoked as '<binary> load <path>'",
    )
    display_binary: str = Field(
        default="cat",
        description="Program used to dump the manifest to stdout",
    )
    wait_seconds: Annotated[float, Field(ge=0.0, allow_inf_nan=False)] = Field(
        default=2.0,
        description="Seconds to block after a successful load",
    )
    log_level: str = Field(default="INFO")

    manifest: ManifestDefaults = Field(
        default_factory=ManifestDefaults,
        description="Test manifest values",
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("manifest_filename")
    @classmethod
    def validate_manifest_filename(cls, v: str) -> str:
        """Manifest file must live in the current directory."""
        if not v or "/" in v:
            raise ValueError("manifest_filename must be a plain file name")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()
