"""
Maintenance run orchestration: pre-flight checks, the step pipeline and the
final summary.
"""

import datetime
import logging
import os
import time
from pathlib import Path
from typing import Optional

from debian_maintenance.commands import CommandRunner
from debian_maintenance.config import AppConfig
from debian_maintenance.exceptions import (
    ExecutionError,
    InvalidConfiguration,
    MaintenanceAborted,
    MaintenanceError,
)
from debian_maintenance.models import (
    DiskUsage,
    MaintenanceReport,
    StepId,
    StepResult,
    StepStatus,
)
from debian_maintenance.steps import MaintenanceSteps
from debian_maintenance.system import (
    OS_RELEASE_FILE,
    DistroInfo,
    InstanceLock,
    check_root,
    detect_distro,
    get_disk_usage,
    snapshot_disk_usage,
)
from debian_maintenance.ui import (
    Confirmer,
    console,
    countdown,
    create_header,
    print_error,
    print_section,
    print_step,
    print_success,
    print_warning,
    progress_manager,
    status_report,
    step_summary_table,
)

logger = logging.getLogger("debian_maintenance")

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_INTERRUPTED = 130

REBOOT_COUNTDOWN_SECONDS = 5


def format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class MaintenanceRun:
    """
    One complete maintenance run.

    The confirmer answers every operator prompt, so the same flow serves
    attended and unattended runs.
    """

    ROOT_PATH = "/"
    BOOT_PATH = "/boot"

    def __init__(
        self,
        config: AppConfig,
        confirmer: Confirmer,
        runner: Optional[CommandRunner] = None,
        os_release_path: str = OS_RELEASE_FILE,
        log_file: Optional[Path] = None,
    ) -> None:
        self.config = config
        self.confirmer = confirmer
        self.runner = runner or CommandRunner(
            dry_run=config.DRY_RUN,
            timeout=config.COMMAND_TIMEOUT,
            retry=config.MAX_RETRIES,
        )
        self.os_release_path = os_release_path
        self.log_file = log_file
        self.report = MaintenanceReport()

    def run(self) -> int:
        """
        Execute the run.

        Returns:
            int: 0 when the pipeline completed, 1 on abort, 130 on interrupt
        """
        try:
            check_root()
            with InstanceLock(self.config.LOCK_FILE, self.runner):
                return self._run_locked()
        except KeyboardInterrupt:
            progress_manager.stop_progress()
            print_warning("Process interrupted by user")
            return EXIT_INTERRUPTED
        except MaintenanceAborted as e:
            self.report.aborted_reason = str(e)
            print_error(f"Aborted: {e}")
            return EXIT_ABORTED
        except MaintenanceError as e:
            print_error(str(e))
            return EXIT_ABORTED

    def _run_locked(self) -> int:
        distro = detect_distro(self.os_release_path)
        self.validate_plan()
        self.introduce(distro)
        self.check_disk_space()
        self.report.usage_before = self.measure_usage()

        steps = MaintenanceSteps(
            self.config, self.runner, self.confirmer, self.report, distro
        )
        completed = self.execute_steps(steps)
        self.summarize()
        if not completed:
            return EXIT_ABORTED
        self.offer_reboot()
        return EXIT_OK

    # Pre-flight --------------------------------------------------

    def validate_plan(self) -> None:
        """
        Check that the enabled steps make sense together.

        Raises:
            InvalidConfiguration: If upgrade is enabled without update_repos
            MaintenanceAborted: If the operator declines an unsafe plan
        """
        config = self.config
        if config.is_enabled(StepId.UPGRADE) and not config.is_enabled(
            StepId.UPDATE_REPOS
        ):
            raise InvalidConfiguration(
                "The upgrade step requires update_repos to be enabled"
            )

        if config.is_enabled(StepId.CLEANUP_KERNELS) and not config.is_enabled(
            StepId.SNAPSHOT
        ):
            print_warning("Removing kernels without a snapshot is risky")
            if config.interactive and not self.confirmer.confirm(
                "Continue without a snapshot?", default=False
            ):
                raise MaintenanceAborted("Cancelled by user")

    def introduce(self, distro: DistroInfo) -> None:
        """Show the header and the plan, then ask to proceed."""
        console.print(create_header(self.config))
        now = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        print_step(f"Starting maintenance at {now}")
        print_step(f"Distribution: {distro.name} ({distro.family})")
        print_step(f"Hostname: {self.config.HOSTNAME}")
        console.print(step_summary_table(self.config))

        if self.config.DRY_RUN:
            print_warning("DRY-RUN mode: no changes will be made")
        if self.config.interactive and not self.confirmer.confirm(
            "Proceed with the maintenance?", default=True
        ):
            raise MaintenanceAborted("Cancelled by user")

    def check_disk_space(self) -> None:
        """
        Verify free space before touching packages.

        Raises:
            MaintenanceAborted: If the root filesystem is below the minimum
        """
        print_step("Checking free disk space...")
        root_free_kb, _ = get_disk_usage(self.ROOT_PATH)
        required_kb = self.config.MIN_FREE_SPACE_GB * 1024 * 1024
        if root_free_kb < required_kb:
            raise MaintenanceAborted(
                f"Insufficient disk space on {self.ROOT_PATH}: "
                f"{root_free_kb // (1024 * 1024)}GB free, "
                f"{self.config.MIN_FREE_SPACE_GB}GB required"
            )

        if os.path.isdir(self.BOOT_PATH):
            boot_free_kb, _ = get_disk_usage(self.BOOT_PATH)
            if boot_free_kb < self.config.MIN_FREE_SPACE_BOOT_MB * 1024:
                print_warning(
                    f"Low space on {self.BOOT_PATH}: {boot_free_kb // 1024}MB free "
                    f"(minimum {self.config.MIN_FREE_SPACE_BOOT_MB}MB)"
                )
        print_success("Disk space OK")

    def measure_usage(self) -> Optional[DiskUsage]:
        try:
            return snapshot_disk_usage(self.BOOT_PATH)
        except OSError as e:
            logger.warning(f"Could not measure disk usage: {e}")
            return None

    # Pipeline ----------------------------------------------------

    def execute_steps(self, steps: MaintenanceSteps) -> bool:
        """
        Run every step in order and record its result.

        Returns:
            bool: False if a step aborted the run
        """
        handlers = steps.handlers()
        total = len(self.config.enabled_steps())
        number = 0

        for step in StepId:
            if not self.config.is_enabled(step):
                logger.info(f"Step {step.value} disabled, skipping")
                self.report.record(
                    StepResult(step, StepStatus.SKIPPED, "Disabled in configuration")
                )
                continue

            number += 1
            print_section(f"[{number}/{total}] {step.label}")
            start = time.time()
            try:
                result = handlers[step]()
            except MaintenanceAborted as e:
                progress_manager.stop_progress()
                self.report.record(
                    StepResult(step, StepStatus.FAILED, str(e), elapsed=time.time() - start)
                )
                self.report.aborted_reason = str(e)
                print_error(f"Aborted: {e}")
                return False
            except ExecutionError as e:
                progress_manager.stop_progress()
                result = StepResult(step, StepStatus.FAILED, str(e))

            result.elapsed = time.time() - start
            self.report.record(result)
            logger.info(
                f"Step {step.value}: {result.status.value} ({result.message}) "
                f"in {result.elapsed:.1f}s"
            )
        return True

    # Summary -----------------------------------------------------

    def summarize(self) -> None:
        self.report.usage_after = self.measure_usage()
        self.report.complete()
        status_report(self.report, self.config)

        freed = self.report.freed_space_mb()
        print_step(
            f"Space freed: {freed['root']} MB on /, {freed['boot']} MB on /boot"
        )
        print_step(f"Elapsed time: {format_elapsed(self.report.elapsed_time)}")

        if self.report.firmware_updates_available:
            print_warning(
                "Firmware updates are available. Run 'fwupdmgr update' to install them."
            )
        if self.log_file:
            print_step(f"Log file: {self.log_file}")
        if self.config.is_enabled(StepId.BACKUP) and not self.config.DRY_RUN:
            print_step(f"Backups: {self.config.BACKUP_DIR}")

        self.notify()

    def notify(self) -> None:
        """Send a desktop notification when a graphical session is present."""
        if not os.environ.get("DISPLAY") or not self.runner.command_exists(
            "notify-send"
        ):
            return

        if self.report.aborted_reason:
            title, urgency = "Maintenance aborted", "critical"
            body = self.report.aborted_reason
        elif self.report.reboot_required:
            title, urgency = "Maintenance complete", "critical"
            body = "A reboot is required."
        else:
            title, urgency = "Maintenance complete", "normal"
            body = "The system is up to date."
        if self.report.failed_steps():
            failed = ", ".join(s.value for s in self.report.failed_steps())
            body += f" Failed steps: {failed}."

        try:
            self.runner.run(
                ["notify-send", f"--urgency={urgency}", title, body], check=False
            )
        except ExecutionError as e:
            logger.debug(f"Desktop notification failed: {e}")

    def offer_reboot(self) -> None:
        if not self.report.reboot_required:
            return

        reasons = self.report.reboot_verdict.reasons
        print_warning("A reboot is required: " + "; ".join(reasons))
        if not self.config.interactive:
            print_warning("Reboot the system as soon as possible")
            return
        if not self.confirmer.confirm("Reboot now?", default=False):
            print_warning("Remember to reboot the system")
            return

        countdown(REBOOT_COUNTDOWN_SECONDS, "Rebooting in")
        logger.info("Rebooting the system")
        self.runner.run(["reboot"], check=False, mutating=True)
