"""
Terminal output, logging and prompts.

Everything the user sees goes through the Nord-themed rich console defined
here; every message printed is also written to the run log.
"""

import datetime
import gzip
import logging
import os
import shutil
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Protocol, Tuple

import pyfiglet
from rich.align import Align
from rich.box import ROUNDED
from rich.console import Console, Group
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.prompt import Confirm, Prompt
from rich.style import Style
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from debian_maintenance.config import AppConfig
from debian_maintenance.models import MaintenanceReport, StepId, StepStatus

LOGGER_NAME = "debian_maintenance"
logger = logging.getLogger(LOGGER_NAME)


# ----------------------------------------------------------------
# Nord-Themed Colors and Rich Console
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette for consistent theming throughout the application."""

    # Polar Night (dark background)
    POLAR_NIGHT_1: str = "#2E3440"
    POLAR_NIGHT_4: str = "#4C566A"

    # Snow Storm (light text)
    SNOW_STORM_1: str = "#D8DEE9"
    SNOW_STORM_2: str = "#E5E9F0"

    # Frost (blue accents)
    FROST_1: str = "#8FBCBB"
    FROST_2: str = "#88C0D0"
    FROST_3: str = "#81A1C1"
    FROST_4: str = "#5E81AC"

    # Aurora (other accents)
    RED: str = "#BF616A"
    ORANGE: str = "#D08770"
    YELLOW: str = "#EBCB8B"
    GREEN: str = "#A3BE8C"
    PURPLE: str = "#B48EAD"

    @classmethod
    def get_frost_gradient(cls, steps: int = 4) -> List[str]:
        """Return a list of frost colors for gradients."""
        frosts = [cls.FROST_1, cls.FROST_2, cls.FROST_3, cls.FROST_4]
        return frosts[: max(1, steps)]


console = Console(
    theme=Theme(
        {
            "info": f"bold {NordColors.FROST_2}",
            "warning": f"bold {NordColors.YELLOW}",
            "error": f"bold {NordColors.RED}",
            "success": f"bold {NordColors.GREEN}",
            "step": f"{NordColors.FROST_2}",
            "prompt": f"bold {NordColors.PURPLE}",
            "path": f"italic {NordColors.FROST_1}",
        }
    )
)

STATUS_ICONS = {
    StepStatus.OK: "✓",
    StepStatus.WARNING: "⚠",
    StepStatus.FAILED: "✗",
    StepStatus.SKIPPED: "⏩",
    StepStatus.SIMULATED: "◌",
    StepStatus.PENDING: "?",
}

STATUS_STYLES = {
    StepStatus.OK: "success",
    StepStatus.WARNING: "warning",
    StepStatus.FAILED: "error",
    StepStatus.SKIPPED: "step",
    StepStatus.SIMULATED: "info",
    StepStatus.PENDING: "step",
}


def set_quiet(quiet: bool) -> None:
    """Silence (or restore) all console output; the log file is unaffected."""
    console.quiet = quiet


# ----------------------------------------------------------------
# Logging
# ----------------------------------------------------------------
def rotate_logs(log_dir: Path, max_size: int) -> List[Path]:
    """Gzip-compress plain log files in ``log_dir`` larger than ``max_size``."""
    rotated: List[Path] = []
    for log_path in sorted(log_dir.glob("*.log")):
        try:
            if log_path.stat().st_size <= max_size:
                continue
            target = log_path.with_name(log_path.name + ".gz")
            with open(log_path, "rb") as fin, gzip.open(target, "wb") as fout:
                shutil.copyfileobj(fin, fout)
            log_path.unlink()
            rotated.append(target)
        except OSError as e:
            console.print(f"[warning]Failed to rotate log file {log_path}: {e}[/warning]")
    return rotated


def setup_logging(config: AppConfig, debug: bool = False) -> Path:
    """
    Configure logging with a Rich console handler and a per-run log file.

    Returns:
        Path of the log file for this run
    """
    log_dir = Path(config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    for rotated in rotate_logs(log_dir, config.MAX_LOG_SIZE):
        console.print(f"Rotated log file to [path]{rotated}[/path]")

    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"sys-update-{ts}.log"
    log_file.touch()
    os.chmod(log_file, 0o600)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
    )
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)
    # Console messages already go through the print_* helpers
    if debug:
        logger.addHandler(
            RichHandler(
                rich_tracebacks=True, markup=False, console=console, show_path=False
            )
        )
    logger.propagate = False

    logger.info("Logging initialized: %s", log_file)
    return log_file


# ----------------------------------------------------------------
# Banner and Message Helpers
# ----------------------------------------------------------------
def create_header(config: AppConfig) -> Panel:
    """
    Create an ASCII art header using Pyfiglet with a Nord-themed gradient.

    Returns:
        Panel: A Rich Panel containing the styled header.
    """
    fonts = ["slant", "small", "standard", "digital"]
    ascii_art = ""
    adjusted_width = min(config.TERM_WIDTH - 10, 80)

    for font in fonts:
        try:
            fig = pyfiglet.Figlet(font=font, width=adjusted_width)
            ascii_art = fig.renderText(config.APP_NAME)
            if ascii_art.strip():
                break
        except Exception as e:
            logger.debug(f"Font {font} failed: {e}")

    if not ascii_art.strip():
        ascii_art = f"=== {config.APP_NAME} ===\n"

    lines = [line for line in ascii_art.splitlines() if line.strip()]
    colors = NordColors.get_frost_gradient(min(len(lines), 4))

    styled_text = Text()
    for i, line in enumerate(lines):
        styled_text.append(Text(line, style=f"bold {colors[i % len(colors)]}"))
        if i < len(lines) - 1:
            styled_text.append("\n")

    return Panel(
        Align.center(styled_text),
        border_style=Style(color=NordColors.FROST_1),
        padding=(1, 2),
        box=ROUNDED,
        title=f"[bold {NordColors.SNOW_STORM_2}]v{config.VERSION}[/]",
        title_align="right",
        subtitle=f"[bold {NordColors.SNOW_STORM_1}]{config.APP_SUBTITLE}[/]",
        subtitle_align="center",
    )


def print_message(
    text: str, style: str = NordColors.FROST_2, prefix: str = "•"
) -> None:
    """Print a styled message with a prefix."""
    console.print(f"[{style}]{prefix} {text}[/{style}]", highlight=False)


def print_step(text: str) -> None:
    print_message(text, NordColors.FROST_3, "➜")
    logger.info(text)


def print_success(text: str) -> None:
    print_message(text, NordColors.GREEN, "✓")
    logger.info(f"SUCCESS: {text}")


def print_warning(text: str) -> None:
    print_message(text, NordColors.YELLOW, "⚠")
    logger.warning(text)


def print_error(text: str) -> None:
    print_message(text, NordColors.RED, "✗")
    logger.error(text)


def print_section(title: str) -> None:
    """Print a section header with a decorative separator."""
    console.print()
    console.print(f"[bold {NordColors.FROST_2}]{title}[/]")
    console.print(f"[{NordColors.FROST_3}]{'─' * 60}[/]")
    logger.info(f"--- {title} ---")


def print_list(items: List[str], marker: str, style: str) -> None:
    for item in items:
        console.print(f"   [{style}]{marker} {item}[/]", highlight=False)


# ----------------------------------------------------------------
# Progress Manager
# ----------------------------------------------------------------
class ProgressManager:
    """
    Singleton manager for progress displays to prevent conflicts.
    Ensures only one progress display is active at a time.
    """

    _instance = None
    _active_progress = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ProgressManager, cls).__new__(cls)
            cls._instance._active_progress = None
        return cls._instance

    def start_progress(self, progress: Progress) -> Progress:
        self.stop_progress()
        self._active_progress = progress
        progress.start()
        return progress

    def stop_progress(self) -> None:
        """Safely stop the current progress display if one exists."""
        if self._active_progress is not None:
            try:
                self._active_progress.stop()
            except Exception as e:
                logger.debug(f"Failed to stop progress display: {e}")
            self._active_progress = None


progress_manager = ProgressManager()


@contextmanager
def spinner(description: str) -> Iterator[None]:
    """Show an indeterminate spinner while the block runs."""
    progress = Progress(
        SpinnerColumn(spinner_name="dots", style=f"bold {NordColors.FROST_1}"),
        TextColumn(f"[bold {NordColors.FROST_2}]{{task.description}}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    progress_manager.start_progress(progress)
    progress.add_task(description, total=None)
    try:
        yield
    finally:
        progress_manager.stop_progress()


def countdown(seconds: int, message: str) -> None:
    """Print a visible countdown; Ctrl+C interrupts it."""
    for remaining in range(seconds, 0, -1):
        console.print(f"[bold {NordColors.YELLOW}]{message} {remaining}s...[/]")
        time.sleep(1)


# ----------------------------------------------------------------
# Prompts
# ----------------------------------------------------------------
class Confirmer(Protocol):
    """Capability used by the orchestrator to ask the operator."""

    def confirm(self, prompt: str, default: bool = False) -> bool: ...

    def confirm_phrase(self, prompt: str, phrase: str) -> bool: ...


class RichConfirmer:
    """Ask on the terminal with rich prompts."""

    def confirm(self, prompt: str, default: bool = False) -> bool:
        progress_manager.stop_progress()
        answer = Confirm.ask(
            f"[prompt]{prompt}[/prompt]", default=default, console=console
        )
        logger.info(f"Prompt: {prompt} -> {'yes' if answer else 'no'}")
        return answer

    def confirm_phrase(self, prompt: str, phrase: str) -> bool:
        progress_manager.stop_progress()
        answer = Prompt.ask(
            f"[prompt]{prompt} Type '{phrase}' to continue[/prompt]", console=console
        )
        logger.info(f"Prompt: {prompt} -> {answer!r}")
        return answer.strip() == phrase


class AutoConfirmer:
    """Answer every yes/no prompt with a fixed value; typed phrases always fail."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer

    def confirm(self, prompt: str, default: bool = False) -> bool:
        logger.info(f"Auto-answered prompt: {prompt} -> {'yes' if self.answer else 'no'}")
        return self.answer

    def confirm_phrase(self, prompt: str, phrase: str) -> bool:
        logger.info(f"Refusing typed confirmation without an operator: {prompt}")
        return False


# ----------------------------------------------------------------
# Tables and Reports
# ----------------------------------------------------------------
def step_summary_table(config: AppConfig) -> Table:
    """Table of configured steps, marking the disabled ones."""
    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        border_style=NordColors.FROST_3,
        box=ROUNDED,
        title=f"[bold {NordColors.FROST_2}]Configured Steps[/]",
        title_justify="center",
    )
    table.add_column("#", justify="right", style=f"{NordColors.FROST_4}")
    table.add_column("Step", style=f"bold {NordColors.FROST_2}")
    table.add_column("State", justify="center")

    for number, step in enumerate(StepId, 1):
        state = (
            "[success]✓ enabled[/]"
            if config.is_enabled(step)
            else "[warning]⏩ skipped[/]"
        )
        table.add_row(str(number), step.label, state)
    return table


def _format_reboot_state(report: MaintenanceReport) -> Tuple[str, str]:
    verdict = report.reboot_verdict
    if verdict is None:
        return "not checked", "step"
    if verdict.required:
        return "REQUIRED", "error"
    return "not required", "success"


def status_report(report: MaintenanceReport, config: AppConfig) -> None:
    """Display a table reporting the status of every executed step."""
    print_section("Maintenance Summary")

    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        border_style=NordColors.FROST_3,
        box=ROUNDED,
        title=f"[bold {NordColors.FROST_2}]{config.APP_NAME} Status[/]",
        title_justify="center",
        expand=True,
    )
    table.add_column("Step", style=f"bold {NordColors.FROST_2}")
    table.add_column("Status", justify="center")
    table.add_column("Message", style=f"{NordColors.SNOW_STORM_1}", ratio=3)

    for step in StepId:
        result = report.get(step)
        if result is None:
            continue
        icon = STATUS_ICONS[result.status]
        style = STATUS_STYLES[result.status]
        table.add_row(
            step.label,
            f"[{style}]{icon} {result.status.value.upper()}[/]",
            result.message,
        )

    counts = report.status_counts()
    summary = Text()
    summary.append("Status Summary: ", style=f"bold {NordColors.FROST_3}")
    summary.append(f"{counts[StepStatus.OK]} OK", style=f"bold {NordColors.GREEN}")
    summary.append(" | ")
    summary.append(
        f"{counts[StepStatus.WARNING]} Warnings", style=f"bold {NordColors.YELLOW}"
    )
    summary.append(" | ")
    summary.append(f"{counts[StepStatus.FAILED]} Failed", style=f"bold {NordColors.RED}")
    summary.append(" | ")
    summary.append(
        f"{counts[StepStatus.SKIPPED]} Skipped",
        style=f"bold {NordColors.POLAR_NIGHT_4}",
    )

    renderables = [table, Align.center(summary)]
    if config.is_enabled(StepId.CHECK_REBOOT):
        state, style = _format_reboot_state(report)
        reboot_line = Text.from_markup(f"Reboot status: [{style}]{state}[/]")
        renderables.append(Align.center(reboot_line))
        if report.reboot_verdict and report.reboot_verdict.reasons:
            for reason in report.reboot_verdict.reasons:
                renderables.append(Align.center(Text(f"• {reason}")))

    console.print(
        Panel(
            Group(*renderables),
            border_style=Style(color=NordColors.FROST_4),
            padding=(0, 1),
            box=ROUNDED,
        )
    )
