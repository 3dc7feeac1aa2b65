"""
Reboot requirement inference.

Combines the reboot-relevant facts collected during a run into a single
verdict. The engine is a pure function over ``RebootSignals``: it never
queries the system, so the same signals always produce the same verdict.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

REASON_PENDING_MARKER = "system-flagged reboot pending"
REASON_KERNEL_MISMATCH = "running kernel differs from installed kernel"
REASON_CRITICAL_LIBRARIES = "critical system libraries upgraded this session"


@dataclass(frozen=True)
class RebootSignals:
    """Reboot-relevant facts gathered once per run."""

    pending_reboot_marker_present: bool = False
    failed_service_count: int = 0
    running_kernel_version: Optional[str] = None
    expected_kernel_version: Optional[str] = None
    services_needing_restart: int = 0
    critical_library_flag_set: bool = False
    upgrade_occurred_this_session: bool = False


@dataclass(frozen=True)
class RebootVerdict:
    """Whether a reboot is required and which rules said so."""

    required: bool = False
    reasons: Tuple[str, ...] = ()


def _normalize_version(version: Optional[str]) -> Optional[str]:
    if version is None:
        return None
    version = version.strip()
    return version or None


class RebootInferenceEngine:
    """
    Evaluate reboot signals against a fixed, ordered decision table.

    Rules only ever add a reason; none of them retracts an earlier one.
    Failed services and services needing restart are informational and do
    not affect the verdict.
    """

    def evaluate(self, signals: RebootSignals) -> RebootVerdict:
        reasons: List[str] = []

        if signals.pending_reboot_marker_present:
            reasons.append(REASON_PENDING_MARKER)

        running = _normalize_version(signals.running_kernel_version)
        expected = _normalize_version(signals.expected_kernel_version)
        if running is not None and expected is not None and running != expected:
            reasons.append(REASON_KERNEL_MISMATCH)

        # The flag persists after a library upgrade until the next reboot,
        # so it only counts when this run upgraded packages.
        if (
            signals.critical_library_flag_set
            and signals.upgrade_occurred_this_session
        ):
            reasons.append(REASON_CRITICAL_LIBRARIES)

        return RebootVerdict(required=bool(reasons), reasons=tuple(reasons))


def evaluate(signals: RebootSignals) -> RebootVerdict:
    """Module-level shortcut for ``RebootInferenceEngine().evaluate``."""
    return RebootInferenceEngine().evaluate(signals)
