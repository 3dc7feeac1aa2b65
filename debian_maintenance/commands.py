"""
Command execution for the maintenance steps.

All external tools are reached through ``CommandRunner`` so that dry-run
mode, retries and logging behave the same everywhere.
"""

import logging
import os
import shutil
import subprocess
import time
from typing import Dict, List, Optional

from debian_maintenance.exceptions import ExecutionError

logger = logging.getLogger("debian_maintenance")


def command_exists(cmd: str) -> bool:
    """Check if a command exists in the system PATH."""
    return shutil.which(cmd) is not None


class CommandRunner:
    """
    Run system commands with logging, retries and dry-run support.

    Args:
        dry_run: Log mutating commands instead of executing them
        timeout: Default timeout per command in seconds
        retry: Number of attempts for each command
    """

    def __init__(
        self, dry_run: bool = False, timeout: int = 1800, retry: int = 1
    ) -> None:
        self.dry_run = dry_run
        self.timeout = timeout
        self.retry = max(1, retry)

    def command_exists(self, cmd: str) -> bool:
        return command_exists(cmd)

    def _environment(self, env: Optional[Dict[str, str]]) -> Dict[str, str]:
        merged = os.environ.copy()
        if env:
            merged.update(env)
        # Predictable tool output for parsing
        merged["LC_ALL"] = "C"
        merged.setdefault("DEBIAN_FRONTEND", "noninteractive")
        return merged

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        mutating: bool = False,
        timeout: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """
        Execute a command and capture its output.

        Args:
            cmd: Command and arguments
            check: Raise ExecutionError on a non-zero exit code
            mutating: The command changes the system (skipped in dry-run)
            timeout: Override the default timeout
            env: Extra environment variables

        Returns:
            subprocess.CompletedProcess with text stdout/stderr

        Raises:
            ExecutionError: If the command fails, times out or is not found
        """
        cmd_str = " ".join(cmd)
        if mutating and self.dry_run:
            logger.info(f"[DRY-RUN] {cmd_str}")
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        logger.debug(f"Executing: {cmd_str}")
        timeout = timeout or self.timeout
        attempts = 0

        while True:
            attempts += 1
            try:
                result = subprocess.run(
                    cmd,
                    env=self._environment(env),
                    check=False,
                    text=True,
                    capture_output=True,
                    timeout=timeout,
                )
            except subprocess.TimeoutExpired:
                error_msg = f"Command timed out after {timeout} seconds: {cmd_str}"
            except OSError as e:
                error_msg = f"Error executing command: {cmd_str}: {e}"
            else:
                if result.stdout:
                    logger.debug(result.stdout.rstrip())
                if result.returncode == 0 or not check:
                    if attempts > 1:
                        logger.info(f"Command succeeded on attempt {attempts}")
                    return result
                error_msg = f"Command failed (code {result.returncode}): {cmd_str}"
                if result.stderr:
                    error_msg += f"\nError: {result.stderr.strip()}"

            if attempts < self.retry:
                logger.warning(f"{error_msg}. Retrying ({attempts}/{self.retry})...")
                time.sleep(1)
                continue
            logger.error(error_msg)
            raise ExecutionError(error_msg)

    def succeeds(self, cmd: List[str], mutating: bool = False) -> bool:
        """Run a command and report whether it exited with status 0."""
        try:
            self.run(cmd, check=True, mutating=mutating)
            return True
        except ExecutionError:
            return False

    def output(self, cmd: List[str]) -> str:
        """Return stdout of a read-only query, or an empty string on failure."""
        try:
            return self.run(cmd, check=False).stdout or ""
        except ExecutionError:
            return ""
