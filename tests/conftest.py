"""
Shared test fixtures and configuration.
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from debian_maintenance.config import AppConfig
from debian_maintenance.exceptions import ExecutionError
from debian_maintenance.models import MaintenanceReport
from debian_maintenance.steps import MaintenanceSteps

DEBIAN_OS_RELEASE = """\
PRETTY_NAME="Debian GNU/Linux 13 (trixie)"
NAME="Debian GNU/Linux"
VERSION_ID="13"
VERSION="13 (trixie)"
VERSION_CODENAME=trixie
ID=debian
HOME_URL="https://www.debian.org/"
"""


class FakeRunner:
    """
    Command runner double with scripted responses.

    Responses are keyed by the command prefix joined with spaces; the
    longest matching prefix wins. Unscripted commands succeed with empty
    output.
    """

    def __init__(self, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self.responses: Dict[str, Tuple[int, str]] = {}
        self.tools: Dict[str, bool] = {}
        self.calls: List[List[str]] = []
        self.executed: List[List[str]] = []

    def script(self, prefix: str, stdout: str = "", returncode: int = 0) -> None:
        self.responses[prefix] = (returncode, stdout)

    def command_exists(self, cmd: str) -> bool:
        return self.tools.get(cmd, False)

    def _lookup(self, cmd: List[str]) -> Tuple[int, str]:
        joined = " ".join(cmd)
        best: Optional[str] = None
        for prefix in self.responses:
            if joined == prefix or joined.startswith(prefix + " "):
                if best is None or len(prefix) > len(best):
                    best = prefix
        return self.responses[best] if best is not None else (0, "")

    def run(self, cmd, check=True, mutating=False, timeout=None, env=None):
        self.calls.append(list(cmd))
        if mutating and self.dry_run:
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")
        self.executed.append(list(cmd))
        returncode, stdout = self._lookup(cmd)
        if check and returncode != 0:
            raise ExecutionError(f"Command failed (code {returncode}): {' '.join(cmd)}")
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")

    def succeeds(self, cmd, mutating=False) -> bool:
        try:
            self.run(cmd, check=True, mutating=mutating)
            return True
        except ExecutionError:
            return False

    def output(self, cmd) -> str:
        return self.run(cmd, check=False).stdout

    def ran(self, prefix: str) -> bool:
        """True when a command starting with ``prefix`` actually executed."""
        return any(" ".join(c).startswith(prefix) for c in self.executed)


class RecordingConfirmer:
    """Confirmer double that records prompts and replays fixed answers."""

    def __init__(self, answer: bool = True, phrase_answer: bool = True) -> None:
        self.answer = answer
        self.phrase_answer = phrase_answer
        self.prompts: List[str] = []

    def confirm(self, prompt: str, default: bool = False) -> bool:
        self.prompts.append(prompt)
        return self.answer

    def confirm_phrase(self, prompt: str, phrase: str) -> bool:
        self.prompts.append(prompt)
        return self.phrase_answer


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def confirmer() -> RecordingConfirmer:
    return RecordingConfirmer()


@pytest.fixture
def report() -> MaintenanceReport:
    return MaintenanceReport()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    """Attended configuration with all paths inside a temporary directory."""
    return AppConfig(
        BACKUP_DIR=str(tmp_path / "backups"),
        LOG_DIR=str(tmp_path / "logs"),
        LOCK_FILE=str(tmp_path / "run" / "maintenance.lock"),
    )


@pytest.fixture
def os_release_file(tmp_path: Path) -> Path:
    path = tmp_path / "os-release"
    path.write_text(DEBIAN_OS_RELEASE)
    return path


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Return a path for a config file that does not exist yet."""
    return tmp_path / "etc" / "config.json"


@pytest.fixture
def step_paths(tmp_path: Path, monkeypatch) -> Path:
    """Point every filesystem location used by the steps at tmp_path."""
    apt_dir = tmp_path / "etc" / "apt"
    (apt_dir / "sources.list.d").mkdir(parents=True)
    (apt_dir / "sources.list").write_text("deb http://deb.debian.org/debian trixie main\n")
    (apt_dir / "trusted.gpg.d").mkdir()
    monkeypatch.setattr(MaintenanceSteps, "APT_DIR", str(apt_dir))
    monkeypatch.setattr(MaintenanceSteps, "REBOOT_MARKER", str(tmp_path / "reboot-required"))
    monkeypatch.setattr(MaintenanceSteps, "FWUPD_METADATA", str(tmp_path / "metadata.xml"))
    monkeypatch.setattr(MaintenanceSteps, "TMP_DIR", str(tmp_path / "vartmp"))
    monkeypatch.setattr(MaintenanceSteps, "HOME_DIRS", [str(tmp_path / "home")])
    monkeypatch.setattr(MaintenanceSteps, "ROOT_HOME", str(tmp_path / "root"))
    return tmp_path
