"""
Manifest runner.

Writes the test service manifest into the current directory, hands it to
the supervisor, waits, echoes the manifest and removes it again. The run is
strictly sequential with a single abort branch: when the supervisor rejects
the manifest the run stops and the file is left on disk for inspection.
"""

import os
import subprocess  # nosec B404
import time
from pathlib import Path
from typing import Callable, Optional

import click
import structlog

from .config.models import RunnerConfig
from .exceptions import (
    CleanupError,
    DisplayError,
    SupervisorLoadError,
    WorkingDirectoryError,
    WriteError,
)
from .manifest import ServiceManifest, build_test_manifest, encode_manifest
from .supervisor import SupervisorClient

logger = structlog.get_logger(__name__)

DISPLAY_LABEL = "plist:"


class ManifestRunner:
    """Runs one test manifest end to end, with no retries."""

    def __init__(
        self,
        config: Optional[RunnerConfig] = None,
        supervisor: Optional[SupervisorClient] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.config = config or RunnerConfig()
        self.supervisor = supervisor or SupervisorClient(self.config.supervisor_binary)
        self._sleep = sleep

    def resolve_working_directory(self) -> str:
        try:
            return os.getcwd()
        except OSError as e:
            raise WorkingDirectoryError(
                f"Cannot determine the current working directory: {e}", cause=e
            ) from e

    def build_manifest(self, cwd: str) -> ServiceManifest:
        return build_test_manifest(cwd, self.config.manifest)

    def manifest_path(self, cwd: str) -> Path:
        return Path(cwd) / self.config.manifest_filename

    def write_manifest(self, manifest: ServiceManifest, path: Path) -> None:
        """Write the encoded manifest, truncating any earlier file."""
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(encode_manifest(manifest))
        except OSError as e:
            raise WriteError(
                f"Cannot write manifest file: {e}", path=str(path), cause=e
            ) from e

    def load(self, path: Path) -> None:
        result = self.supervisor.load(path)
        if result.ok:
            return

        if result.returncode is None:
            message = f"Supervisor binary {self.supervisor.binary!r} could not be run"
        else:
            message = f"Supervisor load failed with exit status {result.returncode}"
        raise SupervisorLoadError(
            message,
            returncode=result.returncode,
            command=result.command_line,
            context={"path": str(path)},
        )

    def wait(self) -> None:
        sleep = self._sleep or time.sleep
        sleep(self.config.wait_seconds)

    def display(self, path: Path) -> None:
        """Print the label line, then dump the manifest through the display program."""
        click.echo(DISPLAY_LABEL)
        cmd = [self.config.display_binary, str(path)]
        try:
            result = subprocess.run(  # nosec B603
                cmd, capture_output=True, encoding="utf-8", check=False
            )
        except OSError as e:
            raise DisplayError(
                f"Cannot run display program: {e}", path=str(path), cause=e
            ) from e

        if result.returncode != 0:
            raise DisplayError(
                f"Manifest could not be displayed: {result.stderr.strip()}",
                path=str(path),
                context={"returncode": result.returncode},
            )
        click.echo(result.stdout, nl=False)

    def cleanup(self, path: Path) -> bool:
        """Delete the manifest file. Failures are logged, never raised."""
        try:
            path.unlink()
        except OSError as e:
            error = CleanupError(
                f"Cannot delete manifest file: {e}", path=str(path), cause=e
            )
            logger.warning("Manifest cleanup failed", **error.to_dict())
            return False
        return True

    def run(self) -> int:
        """
        Execute the full manifest run.

        Returns:
            Process exit status, 0 on success

        Raises:
            WorkingDirectoryError, WriteError, SupervisorLoadError, DisplayError
        """
        cwd = self.resolve_working_directory()

        manifest = self.build_manifest(cwd)
        path = self.manifest_path(cwd)
        log = logger.bind(label=manifest.label, path=str(path))

        self.write_manifest(manifest, path)
        log.info("Manifest written")

        self.load(path)
        log.info("Manifest loaded", wait_seconds=self.config.wait_seconds)

        self.wait()

        self.display(path)

        if self.cleanup(path):
            log.info("Manifest removed")
        return 0
