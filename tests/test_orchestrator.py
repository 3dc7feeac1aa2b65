"""
Tests for the maintenance run flow.
"""

import pytest

from debian_maintenance import orchestrator
from debian_maintenance.exceptions import PrivilegeError
from debian_maintenance.models import DiskUsage, StepId, StepStatus
from debian_maintenance.orchestrator import (
    EXIT_ABORTED,
    EXIT_INTERRUPTED,
    EXIT_OK,
    MaintenanceRun,
    format_elapsed,
)
from debian_maintenance.steps import MaintenanceSteps

from tests.conftest import FakeRunner, RecordingConfirmer

PLENTY_KB = 100 * 1024 * 1024


@pytest.fixture
def host(monkeypatch, tmp_path, step_paths):
    """Simulate a root shell on a healthy host."""
    monkeypatch.setattr(orchestrator, "check_root", lambda: None)
    monkeypatch.setattr(orchestrator, "get_disk_usage", lambda path: (PLENTY_KB, 1024))
    monkeypatch.setattr(
        orchestrator,
        "snapshot_disk_usage",
        lambda boot_path: DiskUsage(root_used_kb=4096, boot_used_kb=2048),
    )
    monkeypatch.setattr(orchestrator, "countdown", lambda seconds, message: None)
    monkeypatch.setattr(MaintenanceRun, "BOOT_PATH", str(tmp_path / "boot"))
    monkeypatch.delenv("DISPLAY", raising=False)
    return step_paths


@pytest.fixture
def make_run(config, os_release_file, host):
    def factory(runner=None, confirmer=None):
        return MaintenanceRun(
            config,
            confirmer or RecordingConfirmer(),
            runner or FakeRunner(dry_run=config.DRY_RUN),
            os_release_path=str(os_release_file),
        )

    return factory


class TestDryRun:
    def test_completes_without_mutating(self, make_run, config):
        config.DRY_RUN = True
        runner = FakeRunner(dry_run=True)
        run = make_run(runner=runner)

        assert run.run() == EXIT_OK
        assert not runner.ran("apt-get")
        assert not runner.ran("dpkg --configure")
        assert run.report.get(StepId.SNAP).status == StepStatus.SKIPPED
        assert run.report.get(StepId.BACKUP).status == StepStatus.SIMULATED
        assert len(run.report.results) == len(StepId)

    def test_lock_released(self, make_run, config, tmp_path):
        config.DRY_RUN = True
        make_run().run()
        assert not (tmp_path / "run" / "maintenance.lock").exists()


class TestPreflight:
    def test_not_root(self, make_run, monkeypatch):
        def deny():
            raise PrivilegeError("root required")

        monkeypatch.setattr(orchestrator, "check_root", deny)
        assert make_run().run() == EXIT_ABORTED

    def test_upgrade_requires_repository_update(self, make_run, config):
        config.set_step(StepId.UPDATE_REPOS, False)
        run = make_run()
        assert run.run() == EXIT_ABORTED
        assert run.report.results == {}

    def test_kernel_cleanup_without_snapshot_declined(self, make_run, config):
        config.set_step(StepId.SNAPSHOT, False)
        confirmer = RecordingConfirmer(answer=False)
        assert make_run(confirmer=confirmer).run() == EXIT_ABORTED
        assert confirmer.prompts == ["Continue without a snapshot?"]

    def test_user_declines_to_proceed(self, make_run):
        run = make_run(confirmer=RecordingConfirmer(answer=False))
        assert run.run() == EXIT_ABORTED
        assert run.report.results == {}

    def test_insufficient_disk_space(self, make_run, monkeypatch):
        monkeypatch.setattr(orchestrator, "get_disk_usage", lambda path: (1024, 0))
        run = make_run()
        assert run.run() == EXIT_ABORTED
        assert run.report.results == {}
        assert "Insufficient disk space" in run.report.aborted_reason

    def test_low_boot_space_only_warns(self, make_run, monkeypatch, host, config):
        (host / "boot").mkdir()
        monkeypatch.setattr(
            orchestrator,
            "get_disk_usage",
            lambda path: (10, 0) if path.endswith("boot") else (PLENTY_KB, 0),
        )
        config.DRY_RUN = True
        assert make_run().run() == EXIT_OK

    def test_lock_held_by_other_instance(self, make_run, config, monkeypatch, tmp_path):
        lock_path = tmp_path / "run" / "maintenance.lock"
        lock_path.parent.mkdir(parents=True)
        lock_path.write_text("424242\n")
        monkeypatch.setattr("debian_maintenance.system._pid_alive", lambda pid: True)
        assert make_run().run() == EXIT_ABORTED
        assert lock_path.read_text().strip() == "424242"


class TestPipeline:
    def test_abort_stops_pipeline(self, make_run, config, tmp_path):
        runner = FakeRunner()
        runner.script("ping", returncode=1)
        run = make_run(runner=runner)

        assert run.run() == EXIT_ABORTED
        result = run.report.get(StepId.CONNECTIVITY)
        assert result.status == StepStatus.FAILED
        assert run.report.aborted_reason == result.message
        assert run.report.get(StepId.DEPENDENCIES) is None
        assert not (tmp_path / "run" / "maintenance.lock").exists()

    def test_disabled_steps_recorded_as_skipped(self, make_run, config):
        config.DRY_RUN = True
        config.set_step(StepId.FIRMWARE, False)
        run = make_run()
        run.run()
        assert run.report.get(StepId.FIRMWARE).message == "Disabled in configuration"

    def test_step_numbers_count_enabled_steps(self, make_run, config, monkeypatch):
        titles = []
        monkeypatch.setattr(orchestrator, "print_section", titles.append)
        config.DRY_RUN = True
        config.set_step(StepId.FIRMWARE, False)
        make_run().run()
        assert len(titles) == len(config.enabled_steps()) == 11
        assert titles[0] == f"[1/11] {StepId.CONNECTIVITY.label}"
        assert titles[-1] == f"[11/11] {StepId.CHECK_REBOOT.label}"

    def test_interrupt(self, make_run, monkeypatch, tmp_path):
        def interrupted(self):
            raise KeyboardInterrupt

        monkeypatch.setattr(MaintenanceSteps, "check_connectivity", interrupted)
        assert make_run().run() == EXIT_INTERRUPTED
        assert not (tmp_path / "run" / "maintenance.lock").exists()

    def test_usage_recorded(self, make_run, config):
        config.DRY_RUN = True
        run = make_run()
        run.run()
        assert run.report.usage_before == DiskUsage(4096, 2048)
        assert run.report.freed_space_mb() == {"root": 0, "boot": 0}
        assert run.report.end_time is not None


class TestRebootAndNotification:
    def test_reboots_when_confirmed(self, make_run, host):
        (host / "reboot-required").touch()
        runner = FakeRunner()
        run = make_run(runner=runner)

        assert run.run() == EXIT_OK
        assert run.report.reboot_required
        assert ["reboot"] in runner.executed

    def test_unattended_never_reboots(self, make_run, host, config):
        (host / "reboot-required").touch()
        config.UNATTENDED = True
        runner = FakeRunner()
        run = make_run(runner=runner)

        assert run.run() == EXIT_OK
        assert run.report.reboot_required
        assert ["reboot"] not in runner.executed

    def test_declined_reboot(self, make_run, host):
        (host / "reboot-required").touch()
        runner = FakeRunner()
        confirmer = RecordingConfirmer()
        run = make_run(runner=runner, confirmer=confirmer)
        # Answer yes to everything but the reboot prompt
        confirmer.confirm = lambda prompt, default=False: prompt != "Reboot now?"

        assert run.run() == EXIT_OK
        assert ["reboot"] not in runner.executed

    def test_desktop_notification(self, make_run, monkeypatch, config):
        monkeypatch.setenv("DISPLAY", ":0")
        config.DRY_RUN = True
        runner = FakeRunner(dry_run=True)
        runner.tools["notify-send"] = True

        make_run(runner=runner).run()
        assert runner.ran("notify-send --urgency=normal Maintenance complete")


def test_format_elapsed():
    assert format_elapsed(5.2) == "5s"
    assert format_elapsed(125) == "2m 5s"
