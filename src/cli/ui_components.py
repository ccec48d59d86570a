"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- The pipeline only sees `PipelineHooks`; spinners and prompts live here.
"""

from __future__ import annotations

import logging
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.status import Status
from rich.table import Table
from rich.text import Text

from core.domain.models import Candidate, PipelineResult, PipelineStage
from core.services.device_selector import SelectionHooks
from core.services.playback_pipeline import PipelineHooks, StageOutcome

# Libraries that are very chatty at DEBUG.
_NOISY_LOGGERS = ("zeroconf", "pyatv", "asyncio", "httpx", "httpcore")


def configure_logging(*, verbose: bool, console: Console | None = None) -> None:
    """Route stdlib logging through Rich; DEBUG only with `--verbose`."""

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=verbose)],
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if verbose else logging.WARNING)


def build_devices_table(candidates: Sequence[Candidate], *, title: str | None = None) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("#", style="blue", justify="right", no_wrap=True)
    table.add_column("Host", style="white", no_wrap=True)
    table.add_column("Port", style="dim")
    table.add_column("Name", style="cyan")
    for index, candidate in enumerate(candidates, start=1):
        table.add_row(str(index), candidate.host, str(candidate.port), candidate.name)
    return table


def print_failure(console: Console, result: PipelineResult) -> None:
    """Report the terminal failure once, with its stage."""

    line = Text()
    line.append("Error", style="bold red")
    if result.stage is not None:
        line.append(f" [{result.stage.value}]", style="red")
    line.append(f" {result.reason or 'unknown error'}")
    console.print()
    console.print(line)


class StageReporter:
    """Spinner per stage plus a ✔/✖ line when it ends (ora-like)."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self._status: Status | None = None

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def stage_enter(self, stage: PipelineStage) -> None:
        self.stop()
        self._status = self._console.status(
            f"{stage.label()}...",
            spinner="dots2",
            spinner_style="yellow",
        )
        self._status.start()

    def stage_result(self, stage: PipelineStage, outcome: StageOutcome) -> None:
        self.stop()
        if outcome.ok:
            self._console.print(f"[green]✔[/green] {outcome.message}", highlight=False)
        else:
            self._console.print(f"[red]✖[/red] {stage.label()} failed.", highlight=False)

    def show_choices(self, candidates: Sequence[Candidate]) -> None:
        self.stop()
        self._console.print()
        self._console.print("Please select one AirPlay device:")
        self._console.print(build_devices_table(candidates))

    def ask(self) -> None:
        self._console.print("Please enter the number corresponding to your selection:")

    def rejected(self, reason: str) -> None:
        self._console.print(f"[yellow]{reason}[/yellow]")

    def hooks(self) -> PipelineHooks:
        return PipelineHooks(
            stage_enter=self.stage_enter,
            stage_result=self.stage_result,
            selection=SelectionHooks(
                show_choices=self.show_choices,
                ask=self.ask,
                rejected=self.rejected,
            ),
        )
