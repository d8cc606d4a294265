"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from geocam.adapters.supabase_history_repository import (
    SupabaseRecordingHistoryRepository,
)
from geocam.domain.sessions import RecordingRecord, SessionState


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    rows: list[dict[str, object]] = field(default_factory=list)
    last_payload: object | None = None
    last_columns: str | None = None
    last_order: tuple[str, bool] | None = None
    last_limit: int | None = None

    def select(self, columns: str) -> "FakeTable":
        self._action = "select"
        self.last_columns = columns
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeTable":
        self.last_limit = count
        return self

    def execute(self) -> FakeResponse:
        if self._action == "insert":
            return FakeResponse(data=[self.last_payload])  # type: ignore[list-item]
        return FakeResponse(data=self.rows)


@dataclass
class FakeClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_history_repository_insert_serializes_record() -> None:
    client = FakeClient()
    repo = SupabaseRecordingHistoryRepository(client)  # type: ignore[arg-type]
    session_id = uuid4()
    finished_at = datetime(2026, 1, 2, 3, 5, tzinfo=UTC)

    repo.add_recording(
        RecordingRecord(
            session_id=session_id,
            state=SessionState.FAILED,
            quality_label="1080p",
            saved_location=None,
            size_bytes=None,
            error_kind="PersistenceFailed",
            error_cause="disk full",
            address=None,
            started_at=None,
            finished_at=finished_at,
        )
    )

    payload = client.tables["recordings"].last_payload
    assert payload == {
        "session_id": str(session_id),
        "state": "FAILED",
        "quality_label": "1080p",
        "saved_location": None,
        "size_bytes": None,
        "error_kind": "PersistenceFailed",
        "error_cause": "disk full",
        "address": None,
        "started_at": None,
        "finished_at": "2026-01-02T03:05:00+00:00",
    }


def test_history_repository_lists_newest_first() -> None:
    client = FakeClient()
    session_id = uuid4()
    table = client.table("recordings")
    table.rows = [
        {
            "session_id": str(session_id),
            "state": "SAVED",
            "quality_label": "720p",
            "saved_location": "/DCIM/Camera/vid_1.mp4",
            "size_bytes": 2048,
            "error_kind": None,
            "error_cause": None,
            "address": "Main St 1",
            "started_at": "2026-01-02T03:04:05+00:00",
            "finished_at": "2026-01-02T03:05:00+00:00",
        }
    ]
    repo = SupabaseRecordingHistoryRepository(client)  # type: ignore[arg-type]

    records = repo.list_recent(5)

    assert table.last_order == ("finished_at", True)
    assert table.last_limit == 5
    assert table.last_columns is not None and "session_id" in table.last_columns
    assert len(records) == 1
    record = records[0]
    assert record.session_id == session_id
    assert record.state is SessionState.SAVED
    assert record.size_bytes == 2048
    assert record.started_at == datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert record.error_kind is None


def test_history_repository_handles_empty_response() -> None:
    client = FakeClient()
    client.table("recordings").rows = []
    repo = SupabaseRecordingHistoryRepository(client)  # type: ignore[arg-type]

    assert repo.list_recent(10) == []
