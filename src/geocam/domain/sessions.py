"""Domain models for recording sessions."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from geocam.domain.artifacts import CompressedArtifact, RawArtifact, SaveStrategy
from geocam.domain.position import PositionSample
from geocam.domain.quality import QualityProfile


class SessionState(StrEnum):
    """Lifecycle states of a recording session."""

    IDLE = "IDLE"
    RECORDING = "RECORDING"
    COMPRESSING = "COMPRESSING"
    PERSISTING = "PERSISTING"
    SAVED = "SAVED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in {SessionState.SAVED, SessionState.FAILED}

    @property
    def is_active(self) -> bool:
        return self in {
            SessionState.RECORDING,
            SessionState.COMPRESSING,
            SessionState.PERSISTING,
        }


class Stage(StrEnum):
    """Pipeline stage that produced a failure."""

    CAPTURE = "capture"
    COMPRESSION = "compression"
    PERSISTENCE = "persistence"


@dataclass(frozen=True)
class ErrorInfo:
    """Structured failure detail for display."""

    stage: Stage
    kind: str
    cause: str


@dataclass(frozen=True)
class Session:
    """Immutable snapshot of a recording session."""

    id: UUID | None = None
    state: SessionState = SessionState.IDLE
    quality: QualityProfile | None = None
    raw_artifact: RawArtifact | None = None
    compressed_artifact: CompressedArtifact | None = None
    progress_percent: int = 0
    saved_location: str | None = None
    saved_strategy: SaveStrategy | None = None
    error: ErrorInfo | None = None
    started_at: datetime | None = None
    position: PositionSample | None = None
    address: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class RecordingRecord:
    """History row for a session that reached a terminal state."""

    session_id: UUID
    state: SessionState
    quality_label: str | None
    saved_location: str | None
    size_bytes: int | None
    error_kind: str | None
    error_cause: str | None
    address: str | None
    started_at: datetime | None
    finished_at: datetime
