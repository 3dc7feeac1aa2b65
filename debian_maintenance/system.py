"""
Host facts and guards: root check, distribution detection, disk space and
the single-instance lock.
"""

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from debian_maintenance.commands import CommandRunner
from debian_maintenance.exceptions import (
    LockError,
    PrivilegeError,
    UnsupportedDistroError,
)
from debian_maintenance.models import DiskUsage

logger = logging.getLogger("debian_maintenance")

OS_RELEASE_FILE = "/etc/os-release"
APT_LOCK_FILES = [
    "/var/lib/dpkg/lock",
    "/var/lib/dpkg/lock-frontend",
    "/var/lib/apt/lists/lock",
]

# id -> (family, mirror used for the connectivity check)
KNOWN_DISTROS: Dict[str, Tuple[str, str]] = {
    "debian": ("debian", "deb.debian.org"),
    "ubuntu": ("ubuntu", "archive.ubuntu.com"),
    "linuxmint": ("mint", "packages.linuxmint.com"),
    "pop": ("ubuntu", "apt.pop-os.org"),
    "elementary": ("ubuntu", "packages.elementary.io"),
    "zorin": ("ubuntu", "packages.zorinos.com"),
    "kali": ("debian", "http.kali.org"),
}


def check_root() -> None:
    """
    Ensure the process runs as root.

    Raises:
        PrivilegeError: If not running as root
    """
    if os.geteuid() != 0:
        raise PrivilegeError("This tool requires root privileges (run with sudo)")
    logger.info("Root privileges confirmed.")


# ----------------------------------------------------------------
# Distribution Detection
# ----------------------------------------------------------------
@dataclass
class DistroInfo:
    """Identity of the running distribution."""

    id: str
    name: str
    version: str
    codename: str
    family: str
    mirror: str


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse ``KEY=value`` lines; values may be shell-quoted."""
    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


def detect_distro(os_release_path: str = OS_RELEASE_FILE) -> DistroInfo:
    """
    Identify the distribution and its family from os-release.

    Raises:
        UnsupportedDistroError: If the file is missing or the system is not
            Debian or Ubuntu based
    """
    path = Path(os_release_path)
    if not path.is_file():
        raise UnsupportedDistroError(
            f"Cannot detect the distribution: {os_release_path} not found"
        )
    values = parse_os_release(path.read_text())

    distro_id = values.get("ID", "unknown").lower()
    name = values.get("PRETTY_NAME") or values.get("NAME") or distro_id
    codename = values.get("VERSION_CODENAME") or values.get("UBUNTU_CODENAME", "")

    if distro_id in KNOWN_DISTROS:
        family, mirror = KNOWN_DISTROS[distro_id]
    else:
        id_like = values.get("ID_LIKE", "").lower().split()
        if "ubuntu" in id_like:
            family, mirror = KNOWN_DISTROS["ubuntu"]
        elif "debian" in id_like:
            family, mirror = KNOWN_DISTROS["debian"]
        else:
            raise UnsupportedDistroError(
                f"Unsupported distribution: {name}. "
                "Only Debian and Ubuntu based systems are supported."
            )

    info = DistroInfo(
        id=distro_id,
        name=name,
        version=values.get("VERSION_ID", "unknown"),
        codename=codename,
        family=family,
        mirror=mirror,
    )
    logger.info(f"Detected distribution: {info.name} ({info.id})")
    logger.info(
        f"Family: {info.family} | Version: {info.version} | "
        f"Codename: {info.codename or 'N/A'} | Mirror: {info.mirror}"
    )
    return info


# ----------------------------------------------------------------
# Disk Space
# ----------------------------------------------------------------
def get_disk_usage(path: str = "/") -> Tuple[int, int]:
    """Return (free KB, used KB) for the filesystem holding ``path``."""
    stat = os.statvfs(path)
    free = stat.f_bavail * stat.f_frsize
    used = (stat.f_blocks - stat.f_bfree) * stat.f_frsize
    return free // 1024, used // 1024


def snapshot_disk_usage(boot_path: str = "/boot") -> DiskUsage:
    _, root_used = get_disk_usage("/")
    boot_used = 0
    if os.path.isdir(boot_path):
        try:
            _, boot_used = get_disk_usage(boot_path)
        except OSError:
            boot_used = 0
    return DiskUsage(root_used_kb=root_used, boot_used_kb=boot_used)


# ----------------------------------------------------------------
# Instance Lock
# ----------------------------------------------------------------
def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class InstanceLock:
    """
    PID file lock preventing concurrent maintenance runs.

    A lock file left behind by a dead process is replaced. Acquisition also
    fails while another program holds the APT/dpkg locks.
    """

    def __init__(
        self,
        lock_file: str,
        runner: Optional[CommandRunner] = None,
        apt_lock_files: Optional[List[str]] = None,
    ) -> None:
        self.path = Path(lock_file)
        self.runner = runner
        self.apt_lock_files = APT_LOCK_FILES if apt_lock_files is None else apt_lock_files
        self.acquired = False

    def _read_pid(self) -> Optional[int]:
        try:
            return int(self.path.read_text().strip())
        except (OSError, ValueError):
            return None

    def apt_busy(self) -> bool:
        """True when ``fuser`` reports a process holding an APT/dpkg lock."""
        if self.runner is None or not self.runner.command_exists("fuser"):
            return False
        existing = [f for f in self.apt_lock_files if os.path.exists(f)]
        if not existing:
            return False
        result = self.runner.run(["fuser", *existing], check=False)
        return bool(result.stdout.strip())

    def acquire(self) -> None:
        """
        Take the lock.

        Raises:
            LockError: If another instance is running or APT is busy
        """
        if self.path.exists():
            pid = self._read_pid()
            if pid is not None and pid != os.getpid() and _pid_alive(pid):
                raise LockError(f"Another instance is already running (PID: {pid})")
            logger.info(f"Removing stale lock file {self.path}")
            self.path.unlink()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{os.getpid()}\n")
        self.acquired = True

        if self.apt_busy():
            self.release()
            raise LockError(
                "APT is busy. Close other package managers (Synaptic, Discover) and retry."
            )
        logger.info(f"Lock acquired: {self.path}")

    def release(self) -> None:
        if not self.acquired:
            return
        if self._read_pid() == os.getpid():
            try:
                self.path.unlink()
                logger.info("Lock file removed")
            except FileNotFoundError:
                pass
        self.acquired = False

    def __enter__(self) -> "InstanceLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
