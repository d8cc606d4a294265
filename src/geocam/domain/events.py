"""Typed notifications delivered to the session controller."""

from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from geocam.domain.artifacts import CompressedArtifact, RawArtifact, SavedLocation


@dataclass(frozen=True)
class CaptureFinished:
    """Capture device completion, carrying an artifact or an error."""

    session_id: UUID
    artifact: RawArtifact | None = None
    error: BaseException | str | None = None


@dataclass(frozen=True)
class CompressionProgress:
    """Compression engine progress update in percent."""

    session_id: UUID
    percent: int


@dataclass(frozen=True)
class CompressionFinished:
    """Compression engine terminal result."""

    session_id: UUID
    artifact: CompressedArtifact | None = None
    error: BaseException | str | None = None


@dataclass(frozen=True)
class PersistenceFinished:
    """Persistence resolver terminal result."""

    session_id: UUID
    location: SavedLocation | None = None
    error: BaseException | str | None = None


PipelineEvent = (
    CaptureFinished | CompressionProgress | CompressionFinished | PersistenceFinished
)

EventSink = Callable[[PipelineEvent], None]
