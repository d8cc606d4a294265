"""Pydantic models for the HTTP surface."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from geocam.domain.quality import QualityProfile
from geocam.domain.sessions import RecordingRecord, Session
from geocam.services.overlay import OverlayFrame


class StartSessionRequest(BaseModel):
    """Request body for starting a recording."""

    quality: str | None = None


class StartSessionResponse(BaseModel):
    """Identifier of a newly started recording."""

    session_id: UUID


class PermissionGrantsRequest(BaseModel):
    """Raw platform permission results reported by the host."""

    grants: dict[str, bool]


class PositionRequest(BaseModel):
    """GPS fix reported by the host."""

    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)


class QualityView(BaseModel):
    """Quality preset payload."""

    label: str
    max_dimension: int
    target_bitrate_floor: int

    @classmethod
    def from_profile(cls, profile: QualityProfile) -> "QualityView":
        return cls(
            label=profile.label,
            max_dimension=profile.max_dimension,
            target_bitrate_floor=profile.target_bitrate_floor,
        )


class ErrorView(BaseModel):
    """Failure detail payload."""

    stage: str
    kind: str
    cause: str


class SessionView(BaseModel):
    """Session snapshot payload."""

    id: UUID | None
    state: str
    quality: str | None
    progress_percent: int
    raw_path: str | None
    compressed_path: str | None
    compressed_size_bytes: int | None
    saved_location: str | None
    saved_strategy: str | None
    error: ErrorView | None
    started_at: datetime | None
    lat: float | None
    lon: float | None
    address: str | None
    message: str | None

    @classmethod
    def from_session(cls, session: Session) -> "SessionView":
        raw = session.raw_artifact
        compressed = session.compressed_artifact
        error = session.error
        return cls(
            id=session.id,
            state=session.state.value,
            quality=session.quality.label if session.quality else None,
            progress_percent=session.progress_percent,
            raw_path=str(raw.path) if raw else None,
            compressed_path=str(compressed.path) if compressed else None,
            compressed_size_bytes=compressed.size_bytes if compressed else None,
            saved_location=session.saved_location,
            saved_strategy=(
                session.saved_strategy.value if session.saved_strategy else None
            ),
            error=(
                ErrorView(stage=error.stage.value, kind=error.kind, cause=error.cause)
                if error
                else None
            ),
            started_at=session.started_at,
            lat=session.position.lat if session.position else None,
            lon=session.position.lon if session.position else None,
            address=session.address,
            message=session.message,
        )


class OverlayView(BaseModel):
    """Overlay display payload."""

    elapsed_seconds: int
    elapsed_text: str
    blink: bool
    timestamp: str
    address_line: str | None

    @classmethod
    def from_frame(cls, frame: OverlayFrame) -> "OverlayView":
        return cls(
            elapsed_seconds=frame.elapsed_seconds,
            elapsed_text=frame.elapsed_text,
            blink=frame.blink,
            timestamp=frame.timestamp,
            address_line=frame.address_line,
        )


class RecordingView(BaseModel):
    """Recording history payload."""

    session_id: UUID
    state: str
    quality: str | None
    saved_location: str | None
    size_bytes: int | None
    error_kind: str | None
    error_cause: str | None
    address: str | None
    started_at: datetime | None
    finished_at: datetime

    @classmethod
    def from_record(cls, record: RecordingRecord) -> "RecordingView":
        return cls(
            session_id=record.session_id,
            state=record.state.value,
            quality=record.quality_label,
            saved_location=record.saved_location,
            size_bytes=record.size_bytes,
            error_kind=record.error_kind,
            error_cause=record.error_cause,
            address=record.address,
            started_at=record.started_at,
            finished_at=record.finished_at,
        )
