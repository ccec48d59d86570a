"""Error taxonomy of the playback pipeline.

Every stage failure is a `CastError` subclass; the pipeline turns it into a
terminal `PipelineResult`. `SelectionInputError` is the exception: the
selector recovers from it by prompting again.
"""

from __future__ import annotations


class CastError(Exception):
    """Base class for expected, user-reportable failures."""


class ResolutionError(CastError):
    """The source has no usable playable stream."""


class DeviceResolutionError(CastError):
    """No single playback target could be determined."""


class DiscoveryExhausted(DeviceResolutionError):
    """A bounded discovery window closed without any candidate."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"No AirPlay device found within {timeout_seconds:g}s.")


class NoDeviceSelected(DeviceResolutionError):
    """The selector could not pick a device (empty set, closed input, too many attempts)."""


class SelectionInputError(CastError):
    """An answer to the device prompt was empty, not a number or out of range."""


class DeviceConnectionError(CastError):
    """The receiver could not be reached or refused the session."""


class PlaybackError(CastError):
    """The receiver rejected or failed the play command."""
