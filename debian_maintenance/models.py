"""
Step identifiers, step results and the per-run maintenance report.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from debian_maintenance.reboot import RebootVerdict


# ----------------------------------------------------------------
# Enums
# ----------------------------------------------------------------
class StepId(str, Enum):
    """Pipeline steps, declared in execution order."""

    CONNECTIVITY = "connectivity"
    DEPENDENCIES = "dependencies"
    BACKUP = "backup"
    SNAPSHOT = "snapshot"
    UPDATE_REPOS = "update_repos"
    UPGRADE = "upgrade"
    FLATPAK = "flatpak"
    SNAP = "snap"
    FIRMWARE = "firmware"
    CLEANUP_APT = "cleanup_apt"
    CLEANUP_KERNELS = "cleanup_kernels"
    CLEANUP_DISK = "cleanup_disk"
    CHECK_REBOOT = "check_reboot"

    @property
    def label(self) -> str:
        return STEP_LABELS[self]


STEP_LABELS: Dict[StepId, str] = {
    StepId.CONNECTIVITY: "Check connectivity",
    StepId.DEPENDENCIES: "Check dependencies",
    StepId.BACKUP: "Backup APT configuration",
    StepId.SNAPSHOT: "Timeshift snapshot",
    StepId.UPDATE_REPOS: "Update repositories",
    StepId.UPGRADE: "Upgrade system (APT)",
    StepId.FLATPAK: "Update Flatpak",
    StepId.SNAP: "Update Snap",
    StepId.FIRMWARE: "Check firmware",
    StepId.CLEANUP_APT: "APT cleanup",
    StepId.CLEANUP_KERNELS: "Kernel cleanup",
    StepId.CLEANUP_DISK: "Disk and log cleanup",
    StepId.CHECK_REBOOT: "Check reboot",
}


class StepStatus(str, Enum):
    """Outcome of a single pipeline step."""

    PENDING = "pending"
    OK = "ok"
    WARNING = "warning"
    FAILED = "failed"
    SKIPPED = "skipped"
    SIMULATED = "simulated"


# ----------------------------------------------------------------
# Data Models
# ----------------------------------------------------------------
@dataclass
class StepResult:
    """Result returned by each pipeline step."""

    step: StepId
    status: StepStatus
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status in (StepStatus.OK, StepStatus.SIMULATED)


@dataclass
class DiskUsage:
    """Used kilobytes on / and /boot."""

    root_used_kb: int = 0
    boot_used_kb: int = 0


@dataclass
class MaintenanceReport:
    """Aggregated results of one maintenance run."""

    results: Dict[StepId, StepResult] = field(default_factory=dict)
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    usage_before: Optional[DiskUsage] = None
    usage_after: Optional[DiskUsage] = None
    reboot_verdict: Optional[RebootVerdict] = None
    firmware_updates_available: bool = False
    aborted_reason: Optional[str] = None

    def record(self, result: StepResult) -> None:
        """Store a step result, replacing any earlier one for the same step."""
        self.results[result.step] = result

    def get(self, step: StepId) -> Optional[StepResult]:
        return self.results.get(step)

    @property
    def upgrade_occurred(self) -> bool:
        """True only when the upgrade step installed packages in this run."""
        result = self.results.get(StepId.UPGRADE)
        if result is None or result.status != StepStatus.OK:
            return False
        return int(result.details.get("upgraded", 0)) > 0

    @property
    def reboot_required(self) -> bool:
        return bool(self.reboot_verdict and self.reboot_verdict.required)

    def status_counts(self) -> Dict[StepStatus, int]:
        counts = {status: 0 for status in StepStatus}
        for result in self.results.values():
            counts[result.status] += 1
        return counts

    def failed_steps(self) -> List[StepId]:
        return [
            step
            for step, result in self.results.items()
            if result.status == StepStatus.FAILED
        ]

    def complete(self) -> None:
        """Mark the run as complete."""
        self.end_time = time.time()

    @property
    def elapsed_time(self) -> float:
        return (self.end_time or time.time()) - self.start_time

    def freed_space_mb(self) -> Dict[str, int]:
        """Space freed on / and /boot in MB (negative when usage grew)."""
        if self.usage_before is None or self.usage_after is None:
            return {"root": 0, "boot": 0}
        return {
            "root": (self.usage_before.root_used_kb - self.usage_after.root_used_kb)
            // 1024,
            "boot": (self.usage_before.boot_used_kb - self.usage_after.boot_used_kb)
            // 1024,
        }
