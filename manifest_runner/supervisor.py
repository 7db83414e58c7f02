"""Client for the supervisor control binary.

The supervisor is an external, already running daemon. This module only
invokes its control binary and reports the exit status; the daemon's own
behavior is opaque.
"""

import subprocess  # nosec B404
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class SupervisorResult:
    """Outcome of a control binary invocation."""

    command: List[str]
    returncode: Optional[int]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return " ".join(self.command)


class SupervisorClient:
    """Invokes '<binary> <subcommand> <manifest>' as an argument vector."""

    def __init__(self, binary: str = "../launchctl"):
        self.binary = binary

    def load(self, manifest_path: Union[str, Path]) -> SupervisorResult:
        """Ask the supervisor to load a manifest.

        Output of the control binary is not captured; it goes straight to
        the terminal. Only the exit status is reported.

        Args:
            manifest_path: Manifest file handed to the supervisor

        Returns:
            SupervisorResult with the exit status
        """
        return self._invoke("load", manifest_path)

    def _invoke(
        self, subcommand: str, manifest_path: Union[str, Path]
    ) -> SupervisorResult:
        cmd = [self.binary, subcommand, str(manifest_path)]
        logger.debug("Invoking supervisor", command=cmd)

        try:
            completed = subprocess.run(cmd, check=False)  # nosec B603
        except OSError as e:
            logger.error(
                "Supervisor binary could not be executed",
                binary=self.binary,
                error=str(e),
            )
            return SupervisorResult(command=cmd, returncode=None, error=str(e))

        result = SupervisorResult(command=cmd, returncode=completed.returncode)
        if result.ok:
            logger.info("Supervisor accepted request", subcommand=subcommand)
        else:
            logger.warning(
                "Supervisor rejected request",
                subcommand=subcommand,
                returncode=completed.returncode,
            )
        return result
