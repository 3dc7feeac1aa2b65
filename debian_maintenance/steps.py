"""
The maintenance pipeline steps.

Each step inspects the configuration, drives external tools through the
command runner and returns a ``StepResult``. Conditions that make it unsafe
to continue raise ``MaintenanceAborted``; ordinary tool failures are
reported as failed results.
"""

import datetime
import logging
import platform
import shutil
import tarfile
import time
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from debian_maintenance.commands import CommandRunner
from debian_maintenance.config import AppConfig
from debian_maintenance.exceptions import MaintenanceAborted
from debian_maintenance.kernels import (
    KernelRetentionPlanner,
    kernel_package_name,
    parse_installed_kernels,
)
from debian_maintenance.models import MaintenanceReport, StepId, StepResult, StepStatus
from debian_maintenance.needrestart import (
    NeedrestartReport,
    build_reboot_signals,
    parse_needrestart,
)
from debian_maintenance.reboot import RebootInferenceEngine
from debian_maintenance.system import DistroInfo
from debian_maintenance.ui import (
    Confirmer,
    NordColors,
    console,
    print_list,
    print_step,
    print_success,
    print_warning,
    spinner,
)

logger = logging.getLogger("debian_maintenance")

FALLBACK_MIRROR = "deb.debian.org"
FALLBACK_HOST = "8.8.8.8"

# tool -> (description, step that needs it, package providing it)
TOOL_REQUIREMENTS: Dict[str, Tuple[str, StepId, str]] = {
    "timeshift": ("System snapshots (critical for safety)", StepId.SNAPSHOT, "timeshift"),
    "needrestart": ("Service and kernel restart detection", StepId.CHECK_REBOOT, "needrestart"),
    "fwupdmgr": ("Firmware management", StepId.FIRMWARE, "fwupd"),
    "flatpak": ("Flatpak application manager", StepId.FLATPAK, "flatpak"),
    "snap": ("Snap application manager", StepId.SNAP, "snapd"),
}


# ----------------------------------------------------------------
# Tool Output Parsers
# ----------------------------------------------------------------
def count_upgradable(apt_list_output: str) -> int:
    """Count packages in ``apt list --upgradable`` output."""
    return sum(1 for line in apt_list_output.splitlines() if "[upgradable" in line)


def proposed_removals(simulation_output: str) -> List[str]:
    """Package names APT would remove, from ``apt-get -s`` output."""
    removals = []
    for line in simulation_output.splitlines():
        if line.startswith("Remv "):
            parts = line.split()
            if len(parts) > 1:
                removals.append(parts[1])
    return removals


def parse_residual_packages(dpkg_list_output: str) -> List[str]:
    """Packages removed but with configuration left behind (state ``rc``)."""
    packages = []
    for line in dpkg_list_output.splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[0] == "rc":
            packages.append(fields[1])
    return packages


def count_failed_units(systemctl_output: str) -> int:
    return sum(1 for line in systemctl_output.splitlines() if line.strip())


# ----------------------------------------------------------------
# Steps
# ----------------------------------------------------------------
class MaintenanceSteps:
    """Implementation of every pipeline step for one run."""

    REBOOT_MARKER = "/var/run/reboot-required"
    FWUPD_METADATA = "/var/lib/fwupd/metadata.xml"
    APT_DIR = "/etc/apt"
    TMP_DIR = "/var/tmp"
    HOME_DIRS = ["/home"]
    ROOT_HOME = "/root"
    FIRMWARE_METADATA_MAX_AGE_DAYS = 7
    TMP_MAX_AGE_DAYS = 30
    JOURNAL_MAX_SIZE = "500M"

    def __init__(
        self,
        config: AppConfig,
        runner: CommandRunner,
        confirmer: Confirmer,
        report: MaintenanceReport,
        distro: Optional[DistroInfo] = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.confirmer = confirmer
        self.report = report
        self.distro = distro
        self.planner = KernelRetentionPlanner()
        self.engine = RebootInferenceEngine()

    def handlers(self) -> Dict[StepId, Callable[[], StepResult]]:
        return {
            StepId.CONNECTIVITY: self.check_connectivity,
            StepId.DEPENDENCIES: self.check_dependencies,
            StepId.BACKUP: self.backup_configuration,
            StepId.SNAPSHOT: self.create_snapshot,
            StepId.UPDATE_REPOS: self.update_repositories,
            StepId.UPGRADE: self.upgrade_system,
            StepId.FLATPAK: self.update_flatpak,
            StepId.SNAP: self.update_snap,
            StepId.FIRMWARE: self.check_firmware,
            StepId.CLEANUP_APT: self.cleanup_apt,
            StepId.CLEANUP_KERNELS: self.cleanup_kernels,
            StepId.CLEANUP_DISK: self.cleanup_disk,
            StepId.CHECK_REBOOT: self.check_reboot,
        }

    # Helpers -----------------------------------------------------

    def _done(self, step: StepId, message: str, **details) -> StepResult:
        """Successful result, marked as simulated in dry-run mode."""
        status = StepStatus.SIMULATED if self.config.DRY_RUN else StepStatus.OK
        return StepResult(step, status, message, details)

    def _mutate(self, cmd: List[str]) -> bool:
        return self.runner.succeeds(cmd, mutating=True)

    def _ping(self, host: str) -> bool:
        return self.runner.succeeds(["ping", "-c", "1", "-W", "3", host])

    # 1. Connectivity ---------------------------------------------

    def check_connectivity(self) -> StepResult:
        mirror = self.distro.mirror if self.distro else FALLBACK_MIRROR
        print_step(f"Checking connection to {mirror}...")

        if self._ping(mirror):
            print_success("Internet connection OK")
            return StepResult(
                StepId.CONNECTIVITY, StepStatus.OK, f"Reached {mirror}", {"host": mirror}
            )

        if self._ping(FALLBACK_HOST):
            print_warning(f"Mirror {mirror} unreachable, but the internet is available")
            return StepResult(
                StepId.CONNECTIVITY,
                StepStatus.WARNING,
                f"Mirror {mirror} unreachable, general connectivity OK",
                {"host": FALLBACK_HOST},
            )

        raise MaintenanceAborted("No internet connection. Check your network.")

    # 2. Dependencies ---------------------------------------------

    def check_dependencies(self) -> StepResult:
        print_step("Checking recommended tools...")
        missing: List[Tuple[str, str, str]] = []
        skipped: List[str] = []

        for tool, (description, step, package) in TOOL_REQUIREMENTS.items():
            if not self.config.is_enabled(step):
                skipped.append(tool)
                logger.info(f"Skipping check for {tool} (step {step.value} disabled)")
                continue
            if not self.runner.command_exists(tool):
                missing.append((tool, description, package))

        if skipped:
            print_step(f"Tools not checked (steps disabled): {', '.join(skipped)}")

        if not missing:
            print_success("All required tools are installed")
            return StepResult(StepId.DEPENDENCIES, StepStatus.OK, "All tools available")

        print_warning(f"{len(missing)} tools needed by enabled steps are missing:")
        print_list(
            [f"{tool}: {description}" for tool, description, _ in missing],
            "•",
            NordColors.YELLOW,
        )
        names = [tool for tool, _, _ in missing]

        if not self.config.interactive:
            return StepResult(
                StepId.DEPENDENCIES,
                StepStatus.WARNING,
                f"Missing tools: {', '.join(names)}",
                {"missing": names},
            )

        if not self.confirmer.confirm("Install them now?", default=False):
            logger.warning("User chose to continue without installing tools")
            return StepResult(
                StepId.DEPENDENCIES,
                StepStatus.WARNING,
                f"Continuing without: {', '.join(names)}",
                {"missing": names},
            )

        packages = [package for _, _, package in missing]
        with spinner("Installing tools..."):
            installed = self._mutate(["apt-get", "update"]) and self._mutate(
                ["apt-get", "install", "-y", *packages]
            )
        if installed:
            print_success("Tools installed")
            return StepResult(
                StepId.DEPENDENCIES,
                StepStatus.OK,
                f"Installed: {', '.join(packages)}",
                {"installed": packages},
            )
        print_warning("Some tools could not be installed")
        return StepResult(
            StepId.DEPENDENCIES,
            StepStatus.WARNING,
            "Tool installation partially failed",
            {"missing": names},
        )

    # 3. Backup ---------------------------------------------------

    def _apt_config_paths(self) -> List[Path]:
        apt_dir = Path(self.APT_DIR)
        paths = sorted(apt_dir.glob("sources.list*"))
        trusted = apt_dir / "trusted.gpg.d"
        if trusted.exists():
            paths.append(trusted)
        return paths

    def _prune_backups(self, backup_dir: Path) -> List[Path]:
        archives = sorted(backup_dir.glob("backup_*.tar.gz"), reverse=True)
        pruned = []
        for archive in archives[self.config.BACKUPS_TO_KEEP :]:
            ts = archive.name[len("backup_") : -len(".tar.gz")]
            for path in (archive, backup_dir / f"packages_{ts}.list"):
                if path.exists():
                    path.unlink()
                    pruned.append(path)
        if pruned:
            logger.info(f"Pruned {len(pruned)} old backup files")
        return pruned

    def backup_configuration(self) -> StepResult:
        print_step("Backing up APT configuration...")
        if self.config.DRY_RUN:
            return StepResult(StepId.BACKUP, StepStatus.SIMULATED, "Backup simulated")

        sources = self._apt_config_paths()
        if not sources:
            return StepResult(
                StepId.BACKUP, StepStatus.FAILED, "No APT configuration found"
            )

        backup_dir = Path(self.config.BACKUP_DIR)
        ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        archive = backup_dir / f"backup_{ts}.tar.gz"
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            with tarfile.open(archive, "w:gz") as tar:
                for path in sources:
                    tar.add(str(path), arcname=str(path).lstrip("/"))
            selections = self.runner.output(["dpkg", "--get-selections"])
            (backup_dir / f"packages_{ts}.list").write_text(selections)
        except (OSError, tarfile.TarError) as e:
            logger.error(f"Backup failed: {e}")
            return StepResult(StepId.BACKUP, StepStatus.FAILED, f"Backup failed: {e}")

        self._prune_backups(backup_dir)
        print_success(f"Backup created: {archive}")
        return StepResult(
            StepId.BACKUP, StepStatus.OK, f"Created {archive.name}", {"archive": str(archive)}
        )

    # 4. Snapshot -------------------------------------------------

    def create_snapshot(self) -> StepResult:
        print_step("Creating system snapshot (Timeshift)...")
        if not self.runner.command_exists("timeshift"):
            print_warning("Timeshift is not installed")
            return StepResult(StepId.SNAPSHOT, StepStatus.SKIPPED, "Timeshift not available")

        if self.config.ASK_SNAPSHOT and self.config.interactive:
            if self.confirmer.confirm("Skip the Timeshift snapshot?", default=False):
                logger.warning("User skipped the Timeshift snapshot")
                return StepResult(StepId.SNAPSHOT, StepStatus.SKIPPED, "Skipped by user")

        if self.config.DRY_RUN:
            return StepResult(StepId.SNAPSHOT, StepStatus.SIMULATED, "Snapshot simulated")

        comment = f"Pre-Maintenance {datetime.datetime.now():%Y-%m-%d_%H:%M:%S}"
        with spinner("Creating Timeshift snapshot..."):
            created = self._mutate(
                ["timeshift", "--create", "--comments", comment, "--tags", "O"]
            )
        if not created:
            raise MaintenanceAborted(
                "Could not create the Timeshift snapshot. Aborting for safety."
            )
        print_success("Timeshift snapshot created")
        return StepResult(StepId.SNAPSHOT, StepStatus.OK, "Snapshot created", {"comment": comment})

    # 5. Repositories ---------------------------------------------

    def update_repositories(self) -> StepResult:
        print_step("Updating repository lists...")
        # Repair interrupted dpkg runs first
        self.runner.run(["dpkg", "--configure", "-a"], check=False, mutating=True)

        with spinner("Running apt-get update..."):
            updated = self._mutate(["apt-get", "update"])
        if not updated:
            raise MaintenanceAborted("Critical error while updating repositories")
        print_success("Repositories updated")
        return self._done(StepId.UPDATE_REPOS, "Repositories updated")

    # 6. Upgrade --------------------------------------------------

    def upgrade_system(self) -> StepResult:
        print_step("Analyzing available upgrades...")
        count = count_upgradable(self.runner.output(["apt", "list", "--upgradable"]))
        if count == 0:
            print_success("System already up to date")
            return StepResult(
                StepId.UPGRADE, StepStatus.OK, "No changes", {"upgraded": 0}
            )

        print_step(f"{count} packages to upgrade")
        logger.info("Simulating upgrade to detect removals...")
        removals = proposed_removals(
            self.runner.output(["apt-get", "full-upgrade", "-s"])
        )

        if len(removals) > self.config.MAX_REMOVALS_ALLOWED:
            print_warning(f"SAFETY ALERT: APT proposes removing {len(removals)} packages")
            print_list(removals[:5], "-", NordColors.RED)
            if self.config.UNATTENDED:
                raise MaintenanceAborted(
                    f"APT proposes removing {len(removals)} packages; "
                    "aborted automatically in unattended mode"
                )
            if not self.config.DRY_RUN and not self.confirmer.confirm_phrase(
                "Do you have a valid snapshot and want to proceed?", "YES"
            ):
                raise MaintenanceAborted("Upgrade cancelled by user")

        with spinner(f"Upgrading {count} packages..."):
            upgraded = self._mutate(["apt-get", "full-upgrade", "-y"])
        if not upgraded:
            return StepResult(
                StepId.UPGRADE,
                StepStatus.FAILED,
                "Error applying upgrades",
                {"upgraded": 0},
            )
        print_success(f"{count} packages upgraded")
        return self._done(
            StepId.UPGRADE,
            f"{count} packages upgraded",
            upgraded=count,
            removed=removals,
        )

    # 7-8. Flatpak and Snap ---------------------------------------

    def update_flatpak(self) -> StepResult:
        print_step("Updating Flatpak applications...")
        if not self.runner.command_exists("flatpak"):
            return StepResult(StepId.FLATPAK, StepStatus.SKIPPED, "Flatpak not installed")

        with spinner("Running flatpak update..."):
            if not self._mutate(["flatpak", "update", "-y"]):
                return StepResult(StepId.FLATPAK, StepStatus.FAILED, "Flatpak update failed")
            cleaned = self._mutate(["flatpak", "uninstall", "--unused", "-y"])
            repaired = self._mutate(["flatpak", "repair"])

        if not (cleaned and repaired):
            print_warning("Flatpak updated, but cleanup or repair reported errors")
            return StepResult(
                StepId.FLATPAK, StepStatus.WARNING, "Updated; cleanup or repair failed"
            )
        print_success("Flatpak updated and cleaned")
        return self._done(StepId.FLATPAK, "Flatpak updated and cleaned")

    def update_snap(self) -> StepResult:
        print_step("Updating Snap applications...")
        if not self.runner.command_exists("snap"):
            return StepResult(StepId.SNAP, StepStatus.SKIPPED, "Snap not installed")

        with spinner("Running snap refresh..."):
            refreshed = self._mutate(["snap", "refresh"])
        if not refreshed:
            return StepResult(StepId.SNAP, StepStatus.FAILED, "Snap refresh failed")
        print_success("Snap updated")
        return self._done(StepId.SNAP, "Snap updated")

    # 9. Firmware -------------------------------------------------

    def _metadata_age_days(self) -> Optional[int]:
        try:
            mtime = Path(self.FWUPD_METADATA).stat().st_mtime
        except OSError:
            return None
        return int((time.time() - mtime) // 86400)

    def check_firmware(self) -> StepResult:
        print_step("Checking for firmware updates...")
        if not self.runner.command_exists("fwupdmgr"):
            return StepResult(StepId.FIRMWARE, StepStatus.SKIPPED, "fwupd not installed")

        age = self._metadata_age_days()
        if age is None or age > self.FIRMWARE_METADATA_MAX_AGE_DAYS:
            with spinner("Refreshing firmware metadata..."):
                if not self._mutate(["fwupdmgr", "refresh", "--force"]):
                    print_warning("Could not refresh firmware metadata")
        else:
            print_step(f"Firmware metadata refreshed {age} days ago")

        if self.runner.succeeds(["fwupdmgr", "get-updates"]):
            self.report.firmware_updates_available = True
            print_warning("Firmware updates are available!")
            return StepResult(
                StepId.FIRMWARE, StepStatus.WARNING, "Firmware updates available"
            )
        print_success("Firmware up to date")
        return StepResult(StepId.FIRMWARE, StepStatus.OK, "Firmware up to date")

    # 10. APT cleanup ---------------------------------------------

    def cleanup_apt(self) -> StepResult:
        print_step("Removing orphaned and residual packages...")
        with spinner("Running apt-get autoremove..."):
            if not self._mutate(["apt-get", "autoremove", "-y"]):
                return StepResult(StepId.CLEANUP_APT, StepStatus.FAILED, "autoremove failed")

        residual = parse_residual_packages(self.runner.output(["dpkg", "-l"]))
        if residual:
            with spinner(f"Purging {len(residual)} residual configurations..."):
                if not self._mutate(["apt-get", "purge", "-y", *residual]):
                    return StepResult(
                        StepId.CLEANUP_APT,
                        StepStatus.FAILED,
                        "Error purging residual packages",
                        {"residual": residual},
                    )
            print_step(f"{len(residual)} residual configurations purged")
        else:
            print_step("No residual configurations")

        if not self._mutate(["apt-get", self.config.APT_CLEAN_MODE]):
            print_warning("Could not clean the APT cache")
        print_success("APT cleanup completed")
        return self._done(
            StepId.CLEANUP_APT,
            f"Cleanup done, {len(residual)} residual configs purged",
            purged=residual,
        )

    # 11. Kernels -------------------------------------------------

    def cleanup_kernels(self) -> StepResult:
        print_step("Cleaning up old kernels...")
        running = (
            self.runner.output(["uname", "-r"]).strip() or platform.release().strip()
        )
        if not running:
            # Without the running kernel nothing can be protected.
            print_warning("Could not determine the running kernel, skipping")
            return StepResult(
                StepId.CLEANUP_KERNELS,
                StepStatus.WARNING,
                "Running kernel unknown, kernels left untouched",
            )
        print_step(f"Running kernel: {running}")

        installed = parse_installed_kernels(self.runner.output(["dpkg", "-l"]))
        if not installed:
            return StepResult(
                StepId.CLEANUP_KERNELS, StepStatus.OK, "No kernels found to manage"
            )

        plan = self.planner.plan(installed, running, self.config.KERNELS_TO_KEEP)
        details = {"keep": list(plan.keep), "remove": list(plan.remove)}
        if not plan.has_removals:
            print_success(f"{len(installed)} kernels installed, nothing to remove")
            return StepResult(
                StepId.CLEANUP_KERNELS, StepStatus.OK, "Nothing to clean", details
            )

        console.print("  Kernels to keep:")
        print_list(list(plan.keep), "✓", NordColors.GREEN)
        console.print("  Kernels to remove:")
        print_list(list(plan.remove), "✗", NordColors.RED)

        if self.config.interactive and not self.confirmer.confirm(
            "Remove these kernels?", default=False
        ):
            logger.info("User cancelled kernel cleanup")
            return StepResult(
                StepId.CLEANUP_KERNELS, StepStatus.SKIPPED, "Cancelled by user", details
            )

        packages = [kernel_package_name(k) for k in plan.remove]
        with spinner(f"Purging {len(packages)} kernels..."):
            purged = self._mutate(["apt-get", "purge", "-y", *packages])
        if not purged:
            return StepResult(
                StepId.CLEANUP_KERNELS,
                StepStatus.FAILED,
                "Error removing kernels",
                details,
            )

        if self.runner.command_exists("update-grub"):
            if not self._mutate(["update-grub"]):
                print_warning("update-grub failed")
        print_success(f"{len(packages)} old kernels removed")
        return self._done(
            StepId.CLEANUP_KERNELS, f"Removed {len(packages)} old kernels", **details
        )

    # 12. Disk ----------------------------------------------------

    def _thumbnail_dirs(self) -> List[Path]:
        homes: List[Path] = []
        for base in self.HOME_DIRS:
            base_path = Path(base)
            if base_path.is_dir():
                homes.extend(p for p in sorted(base_path.iterdir()) if p.is_dir())
        homes.append(Path(self.ROOT_HOME))
        return [h / ".cache" / "thumbnails" for h in homes if (h / ".cache" / "thumbnails").is_dir()]

    def _clear_directory(self, directory: Path) -> None:
        for entry in directory.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry, ignore_errors=True)
            else:
                entry.unlink(missing_ok=True)

    def cleanup_disk(self) -> StepResult:
        print_step("Cleaning logs and caches...")
        problems = []

        if self.runner.command_exists("journalctl"):
            if self._mutate(
                [
                    "journalctl",
                    f"--vacuum-time={self.config.LOG_DAYS}d",
                    f"--vacuum-size={self.JOURNAL_MAX_SIZE}",
                ]
            ):
                print_step("Journal logs reduced")
            else:
                problems.append("journal vacuum failed")

        if Path(self.TMP_DIR).is_dir():
            if self._mutate(
                [
                    "find",
                    self.TMP_DIR,
                    "-type",
                    "f",
                    "-atime",
                    f"+{self.TMP_MAX_AGE_DAYS}",
                    "-delete",
                ]
            ):
                print_step("Old temporary files removed")
            else:
                problems.append(f"cleaning {self.TMP_DIR} failed")

        thumbnail_dirs = self._thumbnail_dirs()
        if not self.config.DRY_RUN:
            for directory in thumbnail_dirs:
                try:
                    self._clear_directory(directory)
                except OSError as e:
                    problems.append(f"{directory}: {e}")
        if thumbnail_dirs:
            print_step(f"Thumbnail cache cleared ({len(thumbnail_dirs)} users)")

        if problems:
            for problem in problems:
                print_warning(problem)
            return StepResult(
                StepId.CLEANUP_DISK,
                StepStatus.WARNING,
                "; ".join(problems),
                {"thumbnail_dirs": len(thumbnail_dirs)},
            )
        print_success("Disk cleanup completed")
        return self._done(
            StepId.CLEANUP_DISK,
            "Logs and caches cleaned",
            thumbnail_dirs=len(thumbnail_dirs),
        )

    # 13. Reboot --------------------------------------------------

    def _read_needrestart(self) -> Optional[NeedrestartReport]:
        if not self.runner.command_exists("needrestart"):
            logger.info("needrestart is not installed")
            print_step("needrestart not available (recommended)")
            return None

        print_step("Analyzing kernel and services with needrestart...")
        report = parse_needrestart(self.runner.output(["needrestart", "-b"]))
        logger.info(f"Running kernel: {report.running_kernel}")
        logger.info(f"Expected kernel: {report.expected_kernel}")
        logger.info(f"Kernel status (KSTA): {report.kernel_status}")
        logger.info(f"Critical libraries (UCSTA): {report.critical_library_status!r}")

        if report.services_needing_restart:
            print_step(
                f"{report.services_needing_restart} services use outdated libraries"
            )
        if report.critical_library_flag_set and not self.report.upgrade_occurred:
            logger.info("UCSTA=1 left over from an earlier upgrade, not this run")
        return report

    def check_reboot(self) -> StepResult:
        print_step("Checking whether a reboot is needed...")
        marker_present = Path(self.REBOOT_MARKER).exists()
        if marker_present:
            print_warning(f"{self.REBOOT_MARKER} is present")

        failed_output = self.runner.output(
            ["systemctl", "--failed", "--no-legend", "--plain"]
        )
        failed_services = count_failed_units(failed_output)
        if failed_services:
            print_warning(f"{failed_services} services in failed state")
            if not self.config.UNATTENDED:
                for line in failed_output.strip().splitlines()[:10]:
                    console.print(f"   [dim]{line}[/dim]", highlight=False)

        needrestart = self._read_needrestart()
        signals = build_reboot_signals(
            needrestart, marker_present, failed_services, self.report.upgrade_occurred
        )
        verdict = self.engine.evaluate(signals)
        self.report.reboot_verdict = verdict

        if needrestart and needrestart.services_needing_restart and not self.config.DRY_RUN:
            print_step("Restarting outdated services...")
            if not self._mutate(["needrestart", "-r", "a"]):
                print_warning("needrestart could not restart all services")

        details = {"signals": asdict(signals), "reasons": list(verdict.reasons)}
        if verdict.required:
            for reason in verdict.reasons:
                print_warning(f"Reboot needed: {reason}")
            return StepResult(
                StepId.CHECK_REBOOT, StepStatus.WARNING, "Reboot required", details
            )
        print_success("No reboot required")
        message = "No reboot required"
        if failed_services:
            message += f" ({failed_services} failed services)"
        return StepResult(StepId.CHECK_REBOOT, StepStatus.OK, message, details)
