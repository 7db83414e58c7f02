import os
import stat
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from manifest_runner.logging_config import configure_logging
from manifest_runner.supervisor import SupervisorResult


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep user configuration and MANIFEST_RUNNER_* variables out of tests."""
    for key in list(os.environ):
        if key.startswith("MANIFEST_RUNNER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv(
        "MANIFEST_RUNNER_CONFIG_PATH", str(tmp_path / "no-such-config.yaml")
    )
    configure_logging("DEBUG")


@pytest.fixture
def workdir(tmp_path, monkeypatch) -> Path:
    """A fresh current directory, one level below tmp_path."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


class FakeSupervisor:
    """Records load calls instead of talking to a real supervisor."""

    binary = "fake-launchctl"

    def __init__(
        self,
        returncode: Optional[int] = 0,
        on_load: Optional[Callable[[Path], None]] = None,
    ):
        self.returncode = returncode
        self.on_load = on_load
        self.calls: List[Path] = []
        self.contents_at_load: List[str] = []

    def load(self, manifest_path) -> SupervisorResult:
        path = Path(manifest_path)
        self.calls.append(path)
        self.contents_at_load.append(path.read_text(encoding="utf-8"))
        if self.on_load:
            self.on_load(path)
        return SupervisorResult(
            command=[self.binary, "load", str(path)], returncode=self.returncode
        )


@pytest.fixture
def supervisor_factory():
    return FakeSupervisor


@pytest.fixture
def fake_supervisor() -> FakeSupervisor:
    return FakeSupervisor()


@pytest.fixture
def make_supervisor_script(tmp_path) -> Callable[[int], Path]:
    """Create an executable launchctl stand-in next to the work directory.

    The script appends its arguments to calls.txt and exits with the
    requested status.
    """

    def _make(exit_status: int = 0, name: str = "launchctl") -> Path:
        script = tmp_path / name
        script.write_text(
            "#!/bin/sh\n"
            'echo "$@" >> "$(dirname "$0")/calls.txt"\n'
            f"exit {exit_status}\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make
