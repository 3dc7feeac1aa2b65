"""
Kernel retention policy.

Decides which installed kernel images to keep and which to purge: the
``keep_count`` newest are kept, and the running kernel is never removed.
Also holds the adapter that reads installed kernels out of ``dpkg -l``.
"""

import logging
import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Tuple

from debian_maintenance.exceptions import InvalidConfiguration

logger = logging.getLogger("debian_maintenance")

KERNEL_PACKAGE_PREFIX = "linux-image-"
DEFAULT_KERNELS_TO_KEEP = 3

_SEPARATORS = re.compile(r"[.\-]")
_NUMERIC = re.compile(r"[0-9]+")
_RUNS = re.compile(r"[0-9]+|[^0-9]+")
_KERNEL_PACKAGE = re.compile(r"^linux-image-[0-9]")

# Each segment is a tuple of (kind, number, text) runs; digit runs (kind 0)
# sort before text runs.
VersionRun = Tuple[int, int, str]
VersionKey = Tuple[Tuple[VersionRun, ...], ...]


# ----------------------------------------------------------------
# Version Ordering
# ----------------------------------------------------------------
def version_key(version: str) -> VersionKey:
    """
    Build a sort key for a kernel release string.

    The string is split on ``.`` and ``-``, and each segment is split again
    into digit and non-digit runs. Digit runs compare as numbers and other
    runs compare as text, so ``99+deb13 < 100+deb13`` as with ``sort -V``.
    A version that is a prefix of another sorts first, e.g.
    ``6.1 < 6.1.0 < 6.1.0-amd64``.
    """
    segments = [part for part in _SEPARATORS.split(version.strip()) if part]
    key = []
    for part in segments:
        runs = []
        for run in _RUNS.findall(part):
            if _NUMERIC.fullmatch(run):
                runs.append((0, int(run), ""))
            else:
                runs.append((1, 0, run))
        key.append(tuple(runs))
    return tuple(key)


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as ``a`` sorts before, equal to, or after ``b``."""
    ka, kb = version_key(a), version_key(b)
    return (ka > kb) - (ka < kb)


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Sort versions ascending; equivalent spellings are ordered by raw text."""
    return sorted(versions, key=lambda v: (version_key(v), v))


# ----------------------------------------------------------------
# Retention Planner
# ----------------------------------------------------------------
@dataclass(frozen=True)
class RetentionPlan:
    """Partition of the installed kernels, both sides sorted ascending."""

    keep: Tuple[str, ...] = ()
    remove: Tuple[str, ...] = ()
    running: Optional[str] = None

    @property
    def keep_set(self) -> FrozenSet[str]:
        return frozenset(self.keep)

    @property
    def remove_set(self) -> FrozenSet[str]:
        return frozenset(self.remove)

    @property
    def has_removals(self) -> bool:
        return bool(self.remove)


class KernelRetentionPlanner:
    """Compute which kernels to keep and which to remove."""

    def plan(
        self,
        installed: Iterable[str],
        running_kernel: Optional[str],
        keep_count: int = DEFAULT_KERNELS_TO_KEEP,
    ) -> RetentionPlan:
        """
        Partition ``installed`` into keep and remove sets.

        Args:
            installed: Installed kernel identifiers (duplicates allowed)
            running_kernel: Identifier of the running kernel, if known
            keep_count: Number of newest kernels to retain (at least 1)

        Returns:
            RetentionPlan whose keep set always contains the running kernel
            when that kernel is installed

        Raises:
            InvalidConfiguration: If keep_count is lower than 1
        """
        if keep_count < 1:
            raise InvalidConfiguration(
                f"Kernel retention count must be at least 1 (got {keep_count})"
            )

        ranked = sort_versions({k.strip() for k in installed if k and k.strip()})
        running = running_kernel.strip() if running_kernel else None
        keep = ranked[-keep_count:]

        if running and running not in keep:
            if running in ranked:
                # Replace the oldest retained kernel, unless that would drop
                # the only (newest) one.
                if keep_count > 1:
                    keep = keep[1:]
                keep = sort_versions(keep + [running])
            else:
                logger.warning(
                    f"Running kernel {running} is not among installed kernel packages"
                )

        retained = set(keep)
        remove = [k for k in ranked if k not in retained]
        return RetentionPlan(keep=tuple(keep), remove=tuple(remove), running=running)


def plan_retention(
    installed: Iterable[str],
    running_kernel: Optional[str],
    keep_count: int = DEFAULT_KERNELS_TO_KEEP,
) -> RetentionPlan:
    return KernelRetentionPlanner().plan(installed, running_kernel, keep_count)


# ----------------------------------------------------------------
# dpkg Adapter
# ----------------------------------------------------------------
def parse_installed_kernels(dpkg_list_output: str) -> List[str]:
    """
    Extract installed kernel identifiers from ``dpkg -l`` output.

    Only fully installed (``ii``) ``linux-image-<version>`` packages count;
    meta packages such as ``linux-image-amd64`` never match.
    """
    kernels: List[str] = []
    for line in dpkg_list_output.splitlines():
        fields = line.split()
        if len(fields) < 2 or fields[0] != "ii":
            continue
        name = fields[1].split(":", 1)[0]
        if not _KERNEL_PACKAGE.match(name) or "meta" in name:
            continue
        identifier = name[len(KERNEL_PACKAGE_PREFIX) :]
        if identifier not in kernels:
            kernels.append(identifier)
    return kernels


def kernel_package_name(identifier: str) -> str:
    return f"{KERNEL_PACKAGE_PREFIX}{identifier}"
