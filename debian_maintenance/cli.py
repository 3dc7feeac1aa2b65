"""
Command line entry point.
"""

import logging
import signal
import sys
from typing import Any, Optional, Tuple

import click

from debian_maintenance import __version__
from debian_maintenance.config import (
    DEFAULT_CONFIG_FILE,
    AppConfig,
    load_config,
    save_config,
)
from debian_maintenance.exceptions import InvalidConfiguration
from debian_maintenance.models import StepId
from debian_maintenance.orchestrator import MaintenanceRun
from debian_maintenance.ui import (
    AutoConfirmer,
    RichConfirmer,
    console,
    print_error,
    print_success,
    print_warning,
    progress_manager,
    set_quiet,
    setup_logging,
)

logger = logging.getLogger("debian_maintenance")


# ----------------------------------------------------------------
# Signal Handling
# ----------------------------------------------------------------
def signal_handler(signum: int, frame: Optional[Any]) -> None:
    """
    Handle termination signals: stop spinners, log and exit.

    SIGINT is re-raised as KeyboardInterrupt so the run reports the
    interruption itself and exits 130. Other signals exit through
    SystemExit. Both let context managers release the lock.
    """
    if signum == signal.SIGINT:
        raise KeyboardInterrupt

    sig_name = f"signal {signum}"
    try:
        sig_name = signal.Signals(signum).name
    except ValueError:
        pass

    progress_manager.stop_progress()
    console.print()
    print_warning(f"Process interrupted by {sig_name}")
    logger.error(f"Interrupted by {sig_name}. Exiting.")
    sys.exit(128 + signum)


def install_signal_handlers() -> None:
    for sig in (signal.SIGINT, signal.SIGTERM, signal.SIGHUP):
        try:
            signal.signal(sig, signal_handler)
        except (AttributeError, ValueError):
            pass


# ----------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------
def build_config(
    config_path: str,
    dry_run: bool = False,
    unattended: bool = False,
    no_backup: bool = False,
    quiet: bool = False,
    keep_kernels: Optional[int] = None,
    skip_steps: Tuple[str, ...] = (),
) -> AppConfig:
    """
    Load the config file and apply command line overrides.

    Raises:
        InvalidConfiguration: If the file or the resulting values are invalid
    """
    config = load_config(config_path)
    config.DRY_RUN = dry_run
    # Prompts cannot be answered without console output
    config.UNATTENDED = unattended or quiet
    config.QUIET = quiet
    if keep_kernels is not None:
        config.KERNELS_TO_KEEP = keep_kernels
    if no_backup:
        config.set_step(StepId.BACKUP, False)
    for name in skip_steps:
        config.set_step(StepId(name), False)
    config.validate()
    return config


# ----------------------------------------------------------------
# Main Entry Point
# ----------------------------------------------------------------
@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--dry-run", is_flag=True, help="Simulate; make no changes")
@click.option(
    "-y", "--unattended", is_flag=True, help="Run without prompts; abort on risk"
)
@click.option("--no-backup", is_flag=True, help="Skip the APT configuration backup")
@click.option("--quiet", is_flag=True, help="No console output (log file only)")
@click.option(
    "--keep-kernels",
    type=click.IntRange(min=1),
    default=None,
    help="Number of kernels to keep",
)
@click.option(
    "--skip",
    "skip_steps",
    multiple=True,
    type=click.Choice([step.value for step in StepId]),
    help="Disable a step (repeatable)",
)
@click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="JSON configuration file",
)
@click.option(
    "--save-config",
    "save_requested",
    is_flag=True,
    help="Write the effective configuration and exit",
)
@click.option("--debug", is_flag=True, help="Enable debug logging on the console")
@click.version_option(__version__, prog_name="debian-maintenance")
def main(
    dry_run: bool,
    unattended: bool,
    no_backup: bool,
    quiet: bool,
    keep_kernels: Optional[int],
    skip_steps: Tuple[str, ...],
    config_path: str,
    save_requested: bool,
    debug: bool,
) -> None:
    """Update and clean up a Debian or Ubuntu based system."""
    try:
        config = build_config(
            config_path,
            dry_run=dry_run,
            unattended=unattended,
            no_backup=no_backup,
            quiet=quiet,
            keep_kernels=keep_kernels,
            skip_steps=skip_steps,
        )
    except InvalidConfiguration as e:
        print_error(f"Invalid configuration: {e}")
        sys.exit(1)

    if save_requested:
        try:
            path = save_config(config, config_path)
        except OSError as e:
            print_error(f"Could not save configuration: {e}")
            sys.exit(1)
        print_success(f"Configuration saved to {path}")
        sys.exit(0)

    install_signal_handlers()
    set_quiet(config.QUIET)

    log_file = None
    try:
        log_file = setup_logging(config, debug)
    except OSError as e:
        print_warning(f"Could not set up logging: {e}")

    confirmer = AutoConfirmer() if config.UNATTENDED else RichConfirmer()
    sys.exit(MaintenanceRun(config, confirmer, log_file=log_file).run())


if __name__ == "__main__":
    main()
