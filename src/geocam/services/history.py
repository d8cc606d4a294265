"""History of finished recordings."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from geocam.domain.sessions import RecordingRecord, Session


class RecordingHistoryRepository(Protocol):
    """Persistence interface for finished recordings."""

    def add_recording(self, record: RecordingRecord) -> None:
        """Store a finished recording."""

    def list_recent(self, limit: int) -> list[RecordingRecord]:
        """Return the most recent recordings, newest first."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class RecordingHistoryService:
    """Writes one history row per session that reaches a terminal state."""

    repository: RecordingHistoryRepository
    clock: Callable[[], datetime] = field(default=_utc_now)
    _last_recorded: UUID | None = field(default=None, init=False)

    def on_session(self, session: Session) -> None:
        """Session listener that records terminal snapshots."""
        if session.id is None or not session.state.is_terminal:
            return
        if session.id == self._last_recorded:
            return
        self._last_recorded = session.id
        self.repository.add_recording(to_record(session, self.clock()))

    def list_recent(self, limit: int = 20) -> list[RecordingRecord]:
        """Return recent recordings."""
        return self.repository.list_recent(limit)


def to_record(session: Session, finished_at: datetime) -> RecordingRecord:
    """Flatten a terminal session snapshot into a history row."""
    if session.id is None:
        raise ValueError("Cannot record a session without an id")
    compressed = session.compressed_artifact
    return RecordingRecord(
        session_id=session.id,
        state=session.state,
        quality_label=session.quality.label if session.quality else None,
        saved_location=session.saved_location,
        size_bytes=compressed.size_bytes if compressed else None,
        error_kind=session.error.kind if session.error else None,
        error_cause=session.error.cause if session.error else None,
        address=session.address,
        started_at=session.started_at,
        finished_at=finished_at,
    )
