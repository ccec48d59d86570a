"""Reduce a discovery set to exactly one device.

Zero candidates is an error, one is returned as-is, and several trigger a
numbered prompt read line by line from a `LineSource`. Invalid answers are
recovered locally by asking again; only a closed input or an exhausted
attempt budget ends the prompt without a device.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from core.domain.errors import NoDeviceSelected, SelectionInputError
from core.domain.models import Candidate
from core.interfaces.input import LineSource

log = logging.getLogger(__name__)


@dataclass
class SelectionHooks:
    """Optional callbacks for UI layers rendering the prompt."""

    show_choices: Callable[[Sequence[Candidate]], None] | None = None
    ask: Callable[[], None] | None = None
    rejected: Callable[[str], None] | None = None


def parse_choice(text: str, count: int) -> int:
    """Validate one answer and return the 1-based choice."""

    text = text.strip()
    if not text:
        raise SelectionInputError("Please enter a number.")
    # int() alone would also take "1_0" and non-ASCII digits.
    if not (text.isascii() and text.isdigit()):
        raise SelectionInputError(f"'{text}' is not a number.")
    number = int(text)
    if number < 1 or number > count:
        raise SelectionInputError("The number entered is outside the range of valid options.")
    return number


class DeviceSelector:
    def __init__(
        self,
        lines: LineSource | None = None,
        *,
        max_attempts: int | None = None,
        hooks: SelectionHooks | None = None,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._lines = lines
        self.max_attempts = max_attempts
        self._hooks = hooks or SelectionHooks()

    async def select(self, candidates: Sequence[Candidate]) -> Candidate:
        if not candidates:
            raise NoDeviceSelected("No AirPlay device to choose from.")
        if len(candidates) == 1:
            return candidates[0]
        if self._lines is None:
            raise NoDeviceSelected(
                f"{len(candidates)} AirPlay devices found but no input is available to choose one."
            )

        hooks = self._hooks
        if hooks.show_choices:
            hooks.show_choices(candidates)

        attempts = 0
        async with self._lines as lines:
            while True:
                if hooks.ask:
                    hooks.ask()
                text = await lines.readline()
                if text is None:
                    raise NoDeviceSelected("Input closed before a device was selected.")
                try:
                    choice = parse_choice(text, len(candidates))
                except SelectionInputError as exc:
                    attempts += 1
                    log.debug("Rejected selection %r: %s", text, exc)
                    if hooks.rejected:
                        hooks.rejected(str(exc))
                    if self.max_attempts is not None and attempts >= self.max_attempts:
                        raise NoDeviceSelected(
                            f"No valid selection after {attempts} attempt(s)."
                        ) from exc
                    continue

                selected = candidates[choice - 1]
                log.debug("Selected #%d: %s", choice, selected.address)
                return selected
