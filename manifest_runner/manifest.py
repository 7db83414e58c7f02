"""
Service manifest model.

A service manifest tells the supervisor how to launch and supervise one
program instance. The model mirrors the supervisor's manifest grammar:
JSON keys are the CamelCase names the supervisor reads, values are checked
against their declared JSON type, and unknown keys are ignored the same way
the supervisor skips them.
"""

import json
import os
import socket
from pathlib import Path
from typing import Annotated, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from .config.models import ManifestDefaults
from .exceptions import ManifestValidationError


class SocketSpec(BaseModel):
    """A named listening socket the supervisor binds before launch."""

    sock_service_name: StrictStr = Field(alias="SockServiceName")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def resolve_port(self) -> int:
        """
        Resolve the service name to a TCP port.

        A decimal value is used as-is; anything else is looked up in the
        system services database.

        Raises:
            ManifestValidationError: If the name cannot be resolved
        """
        name = self.sock_service_name
        if name.isdecimal():
            port = int(name)
            if not 0 < port < 65536:
                raise ManifestValidationError(
                    f"Port {port} is out of range",
                    errors=[f"SockServiceName {name!r} is not a valid port"],
                )
            return port
        try:
            return socket.getservbyname(name)
        except (OSError, UnicodeError) as e:
            raise ManifestValidationError(
                f"Unknown service name {name!r}",
                errors=[f"SockServiceName {name!r} does not resolve to a port"],
                cause=e,
            ) from e


class CalendarInterval(BaseModel):
    """crontab(5) style start schedule."""

    minute: Optional[Annotated[StrictInt, Field(ge=0, le=59)]] = Field(
        default=None, alias="Minute"
    )
    hour: Optional[Annotated[StrictInt, Field(ge=0, le=23)]] = Field(
        default=None, alias="Hour"
    )
    day: Optional[Annotated[StrictInt, Field(ge=1, le=31)]] = Field(
        default=None, alias="Day"
    )
    weekday: Optional[Annotated[StrictInt, Field(ge=0, le=7)]] = Field(
        default=None, alias="Weekday"
    )
    month: Optional[Annotated[StrictInt, Field(ge=1, le=12)]] = Field(
        default=None, alias="Month"
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ServiceManifest(BaseModel):
    """
    In-memory service manifest.

    Field order is the key order of the encoded JSON document.
    """

    user_name: Optional[StrictStr] = Field(default=None, alias="UserName")
    group_name: Optional[StrictStr] = Field(default=None, alias="GroupName")
    program: Optional[StrictStr] = Field(default=None, alias="Program")
    environment_variables: Optional[Dict[StrictStr, StrictStr]] = Field(
        default=None, alias="EnvironmentVariables"
    )
    enable_globbing: Optional[StrictBool] = Field(default=None, alias="EnableGlobbing")
    working_directory: Optional[StrictStr] = Field(
        default=None, alias="WorkingDirectory"
    )
    root_directory: Optional[StrictStr] = Field(default=None, alias="RootDirectory")
    standard_in_path: Optional[StrictStr] = Field(default=None, alias="StandardInPath")
    standard_out_path: Optional[StrictStr] = Field(
        default=None, alias="StandardOutPath"
    )
    standard_error_path: Optional[StrictStr] = Field(
        default=None, alias="StandardErrorPath"
    )
    sockets: Optional[Dict[StrictStr, SocketSpec]] = Field(default=None, alias="Sockets")
    label: Optional[StrictStr] = Field(default=None, alias="Label")

    # Optional keys of the supervisor grammar
    program_arguments: Optional[List[StrictStr]] = Field(
        default=None, alias="ProgramArguments"
    )
    run_at_load: Optional[StrictBool] = Field(default=None, alias="RunAtLoad")
    init_groups: Optional[StrictBool] = Field(default=None, alias="InitGroups")
    keep_alive: Optional[StrictBool] = Field(default=None, alias="KeepAlive")
    abandon_process_group: Optional[StrictBool] = Field(
        default=None, alias="AbandonProcessGroup"
    )
    start_on_mount: Optional[StrictBool] = Field(default=None, alias="StartOnMount")
    watch_paths: Optional[List[StrictStr]] = Field(default=None, alias="WatchPaths")
    queue_directories: Optional[List[StrictStr]] = Field(
        default=None, alias="QueueDirectories"
    )
    start_interval: Optional[StrictInt] = Field(default=None, alias="StartInterval")
    start_calendar_interval: Optional[CalendarInterval] = Field(
        default=None, alias="StartCalendarInterval"
    )
    throttle_interval: Optional[StrictInt] = Field(
        default=None, alias="ThrottleInterval"
    )
    umask: Optional[StrictStr] = Field(default=None, alias="Umask")
    jail_name: Optional[StrictStr] = Field(default=None, alias="JailName")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("umask")
    @classmethod
    def validate_umask(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            value = int(v, 8)
        except ValueError:
            raise ValueError(f"Umask {v!r} is not an octal number") from None
        if not 0 <= value <= 0o777:
            raise ValueError(f"Umask {v!r} is out of range")
        return v

    @model_validator(mode="after")
    def validate_job(self) -> "ServiceManifest":
        """Apply the supervisor's acceptance rules."""
        if not self.label:
            raise ValueError("job does not have a label")
        if not self.program and not self.program_arguments:
            raise ValueError(f"job {self.label} does not set Program or ProgramArguments")
        if not self.user_name:
            raise ValueError(f"job {self.label} does not set UserName")
        if not self.group_name:
            raise ValueError(f"job {self.label} does not set GroupName")
        if self.start_calendar_interval is not None and self.start_interval is not None:
            raise ValueError(
                f"job {self.label} has both a calendar and a non-calendar interval"
            )
        return self

    def socket_ports(self) -> Dict[str, int]:
        """Resolve every socket to its port."""
        return {
            name: spec.resolve_port() for name, spec in (self.sockets or {}).items()
        }


def build_test_manifest(
    cwd: Union[str, Path], defaults: Optional[ManifestDefaults] = None
) -> ServiceManifest:
    """
    Build the sa-wrapper test manifest for a working directory.

    The program and its output/error files are placed in ``cwd``.
    """
    defaults = defaults or ManifestDefaults()
    program = os.path.join(str(cwd), defaults.program_name)
    return ServiceManifest(
        user_name=defaults.user_name,
        group_name=defaults.group_name,
        program=program,
        environment_variables={"LD_PRELOAD": defaults.preload_library},
        enable_globbing=defaults.enable_globbing,
        working_directory=defaults.working_directory,
        root_directory=defaults.root_directory,
        standard_in_path=defaults.stdin_path,
        standard_out_path=f"{program}.out",
        standard_error_path=f"{program}.err",
        sockets={
            defaults.socket_name: SocketSpec(
                sock_service_name=defaults.socket_service
            )
        },
        label=defaults.label,
    )


def encode_manifest(manifest: ServiceManifest) -> str:
    """Serialize a manifest to strict JSON with a trailing newline."""
    return manifest.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"


def _format_errors(e: ValidationError) -> List[str]:
    messages = []
    for error in e.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        # model-level rule failures carry no location
        messages.append(f"{location}: {message}" if location else message)
    return messages


def decode_manifest(text: str) -> ServiceManifest:
    """
    Parse and validate manifest JSON.

    Raises:
        ManifestValidationError: If the text is not JSON or breaks a rule
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestValidationError(
            f"Manifest is not valid JSON: {e}", errors=[str(e)], cause=e
        ) from e
    if not isinstance(data, dict):
        raise ManifestValidationError(
            "Manifest must be a JSON object",
            errors=["top-level value is not an object"],
        )

    try:
        return ServiceManifest.model_validate(data)
    except ValidationError as e:
        errors = _format_errors(e)
        label = data.get("Label") if isinstance(data.get("Label"), str) else None
        raise ManifestValidationError(
            f"Manifest failed validation with {len(errors)} error(s)",
            errors=errors,
            label=label,
        ) from e


def load_manifest(path: Union[str, Path]) -> ServiceManifest:
    """Read and validate a manifest file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestValidationError(
            f"Cannot read manifest {path}: {e}",
            errors=[str(e)],
            context={"path": str(path)},
            cause=e,
        ) from e
    return decode_manifest(text)
