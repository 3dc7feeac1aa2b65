"""
Adapter for ``needrestart -b`` (batch mode) output.

Turns the ``NEEDRESTART-<KEY>: value`` lines into a typed report, and the
report plus the other collected facts into ``RebootSignals``.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from debian_maintenance.reboot import RebootSignals

_PREFIX = "NEEDRESTART-"


@dataclass
class NeedrestartReport:
    """Parsed batch output of needrestart."""

    version: Optional[str] = None
    running_kernel: Optional[str] = None
    expected_kernel: Optional[str] = None
    kernel_status: Optional[int] = None
    critical_library_status: Optional[str] = None
    services: List[str] = field(default_factory=list)

    @property
    def critical_library_flag_set(self) -> bool:
        return self.critical_library_status == "1"

    @property
    def services_needing_restart(self) -> int:
        return len(self.services)


def _first_token(value: str) -> Optional[str]:
    tokens = value.split()
    return tokens[0] if tokens else None


def parse_needrestart(batch_output: str) -> NeedrestartReport:
    """Parse ``needrestart -b`` output; unknown or malformed lines are ignored."""
    report = NeedrestartReport()
    for raw_line in batch_output.splitlines():
        line = raw_line.strip()
        if not line.startswith(_PREFIX) or ":" not in line:
            continue
        key, _, value = line[len(_PREFIX) :].partition(":")
        key = key.strip().upper()
        token = _first_token(value)

        if key == "VER":
            report.version = token
        elif key == "KCUR":
            report.running_kernel = token
        elif key == "KEXP":
            report.expected_kernel = token
        elif key == "KSTA":
            if token is not None and token.isdigit():
                report.kernel_status = int(token)
        elif key == "UCSTA":
            report.critical_library_status = "".join(value.split()) or None
        elif key == "SVC":
            if token is not None:
                report.services.append(token)
    return report


def build_reboot_signals(
    report: Optional[NeedrestartReport],
    marker_present: bool,
    failed_services: int,
    upgrade_occurred: bool,
) -> RebootSignals:
    """Combine the needrestart report (if any) with the other run facts."""
    if report is None:
        report = NeedrestartReport()
    return RebootSignals(
        pending_reboot_marker_present=marker_present,
        failed_service_count=max(0, failed_services),
        running_kernel_version=report.running_kernel,
        expected_kernel_version=report.expected_kernel,
        services_needing_restart=report.services_needing_restart,
        critical_library_flag_set=report.critical_library_flag_set,
        upgrade_occurred_this_session=upgrade_occurred,
    )
