"""Supabase-backed recording history."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from geocam.domain.sessions import RecordingRecord, SessionState
from geocam.services.history import RecordingHistoryRepository

_COLUMNS = (
    "session_id, state, quality_label, saved_location, size_bytes, error_kind, "
    "error_cause, address, started_at, finished_at"
)


@dataclass
class SupabaseRecordingHistoryRepository(RecordingHistoryRepository):
    """Supabase implementation for recording history."""

    client: Client

    def add_recording(self, record: RecordingRecord) -> None:
        """Insert a recording row."""
        self.client.table("recordings").insert(
            {
                "session_id": str(record.session_id),
                "state": record.state.value,
                "quality_label": record.quality_label,
                "saved_location": record.saved_location,
                "size_bytes": record.size_bytes,
                "error_kind": record.error_kind,
                "error_cause": record.error_cause,
                "address": record.address,
                "started_at": (
                    record.started_at.isoformat() if record.started_at else None
                ),
                "finished_at": record.finished_at.isoformat(),
            }
        ).execute()

    def list_recent(self, limit: int) -> list[RecordingRecord]:
        """Return the most recent recordings."""
        response = (
            self.client.table("recordings")
            .select(_COLUMNS)
            .order("finished_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]


def _parse_row(row: dict[str, object]) -> RecordingRecord:
    started_at_raw = row.get("started_at")
    size_bytes = row.get("size_bytes")
    return RecordingRecord(
        session_id=UUID(str(row["session_id"])),
        state=SessionState(str(row["state"])),
        quality_label=_optional_str(row.get("quality_label")),
        saved_location=_optional_str(row.get("saved_location")),
        size_bytes=int(size_bytes) if isinstance(size_bytes, int | float) else None,
        error_kind=_optional_str(row.get("error_kind")),
        error_cause=_optional_str(row.get("error_cause")),
        address=_optional_str(row.get("address")),
        started_at=(
            datetime.fromisoformat(started_at_raw)
            if isinstance(started_at_raw, str) and started_at_raw
            else None
        ),
        finished_at=datetime.fromisoformat(str(row["finished_at"])),
    )


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None
