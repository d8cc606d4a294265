"""In-process recording history."""

from dataclasses import dataclass, field

from geocam.domain.sessions import RecordingRecord
from geocam.services.history import RecordingHistoryRepository


@dataclass
class InMemoryRecordingHistoryRepository(RecordingHistoryRepository):
    """Keeps recording history in memory, bounded to ``max_entries``."""

    max_entries: int = 200
    records: list[RecordingRecord] = field(default_factory=list)

    def add_recording(self, record: RecordingRecord) -> None:
        """Store a finished recording."""
        self.records.append(record)
        if len(self.records) > self.max_entries:
            del self.records[: len(self.records) - self.max_entries]

    def list_recent(self, limit: int) -> list[RecordingRecord]:
        """Return the most recent recordings, newest first."""
        return list(reversed(self.records))[:limit]
