"""
Tests for step results and the maintenance report.
"""

from debian_maintenance.models import (
    DiskUsage,
    MaintenanceReport,
    StepId,
    StepResult,
    StepStatus,
)
from debian_maintenance.reboot import RebootVerdict


class TestMaintenanceReport:
    def test_upgrade_occurred_requires_packages(self):
        report = MaintenanceReport()
        assert not report.upgrade_occurred
        report.record(StepResult(StepId.UPGRADE, StepStatus.OK, "", {"upgraded": 0}))
        assert not report.upgrade_occurred
        report.record(StepResult(StepId.UPGRADE, StepStatus.OK, "", {"upgraded": 5}))
        assert report.upgrade_occurred

    def test_simulated_upgrade_does_not_count(self):
        report = MaintenanceReport()
        report.record(
            StepResult(StepId.UPGRADE, StepStatus.SIMULATED, "", {"upgraded": 5})
        )
        assert not report.upgrade_occurred

    def test_counts_and_failures(self):
        report = MaintenanceReport()
        report.record(StepResult(StepId.CONNECTIVITY, StepStatus.OK))
        report.record(StepResult(StepId.BACKUP, StepStatus.FAILED))
        report.record(StepResult(StepId.SNAP, StepStatus.SKIPPED))
        counts = report.status_counts()
        assert counts[StepStatus.OK] == 1
        assert counts[StepStatus.FAILED] == 1
        assert counts[StepStatus.WARNING] == 0
        assert report.failed_steps() == [StepId.BACKUP]

    def test_freed_space(self):
        report = MaintenanceReport(
            usage_before=DiskUsage(root_used_kb=10 * 1024, boot_used_kb=4096),
            usage_after=DiskUsage(root_used_kb=4 * 1024, boot_used_kb=2048),
        )
        assert report.freed_space_mb() == {"root": 6, "boot": 2}

    def test_freed_space_unknown(self):
        assert MaintenanceReport().freed_space_mb() == {"root": 0, "boot": 0}

    def test_reboot_required(self):
        report = MaintenanceReport()
        assert not report.reboot_required
        report.reboot_verdict = RebootVerdict(True, ("system-flagged reboot pending",))
        assert report.reboot_required

    def test_elapsed(self):
        report = MaintenanceReport(start_time=100.0)
        report.end_time = 130.0
        assert report.elapsed_time == 30.0


def test_step_labels():
    assert StepId.CLEANUP_KERNELS.label == "Kernel cleanup"
    assert all(step.label for step in StepId)
