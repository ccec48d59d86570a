"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation and self-documenting fields (Field) without coupling the
  core to any I/O library.
- Frozen models make "produced once, immutable thereafter" explicit.

Note:
- These models describe *what* the information is, not *how* it is obtained.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Candidate(BaseModel):
    """A playback-capable device seen during one discovery window.

    Never persisted: it only lives as long as the window (or the explicit
    override) that produced it.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(
        ...,
        min_length=1,
        description="Hostname or IP address of the receiver.",
    )
    port: int = Field(
        ...,
        ge=1,
        le=65535,
        description="Port the receiver listens on.",
    )
    name: str = Field(
        default="",
        description="Friendly name from the advertisement (may be empty).",
    )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def key(self) -> tuple[str, int]:
        """Identity used when repeated advertisements are deduplicated."""

        return (self.host, self.port)


class MediaSource(BaseModel):
    """A playable stream resolved from a source identifier."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(
        default="",
        description="Human readable title of the media.",
    )
    url: str = Field(
        ...,
        min_length=1,
        description="Direct URL the receiver will fetch.",
    )
    quality_label: str | None = Field(
        default=None,
        description="Quality of the chosen format (e.g. '720p'), for display only.",
    )
    format_id: str | None = Field(
        default=None,
        description="Provider format identifier, for diagnostics.",
    )
    source_id: str | None = Field(
        default=None,
        description="Identifier the user supplied (page URL or video id).",
    )


class PipelineStage(str, Enum):
    """Stages of the playback pipeline, in execution order."""

    SOURCE = "source"
    DEVICE = "device"
    DISPATCH = "dispatch"

    def label(self) -> str:
        return {
            PipelineStage.SOURCE: "Loading video info",
            PipelineStage.DEVICE: "Searching for AirPlay devices",
            PipelineStage.DISPATCH: "Connecting to AirPlay device",
        }[self]


@dataclass(frozen=True)
class PipelineResult:
    """Terminal outcome of one pipeline run: either success or a failure at one stage."""

    succeeded: bool
    stage: PipelineStage | None = None
    reason: str | None = None
    error: BaseException | None = None
    media: MediaSource | None = None
    device: Candidate | None = None

    @classmethod
    def success(cls, *, media: MediaSource, device: Candidate) -> "PipelineResult":
        return cls(succeeded=True, media=media, device=device)

    @classmethod
    def failure(
        cls,
        *,
        stage: PipelineStage,
        error: BaseException,
        media: MediaSource | None = None,
        device: Candidate | None = None,
    ) -> "PipelineResult":
        reason = str(error) or error.__class__.__name__
        return cls(
            succeeded=False,
            stage=stage,
            reason=reason,
            error=error,
            media=media,
            device=device,
        )

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1
