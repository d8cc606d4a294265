"""Process-wide recording counters."""

from dataclasses import dataclass


@dataclass
class RecordingStats:
    """Counts sessions by pipeline milestone."""

    started: int = 0
    captured: int = 0
    saved: int = 0
    failed: int = 0

    def record_started(self) -> None:
        self.started += 1

    def record_captured(self) -> None:
        self.captured += 1

    def record_saved(self) -> None:
        self.saved += 1

    def record_failed(self) -> None:
        self.failed += 1

    def reset(self) -> None:
        """Zero every counter."""
        self.started = 0
        self.captured = 0
        self.saved = 0
        self.failed = 0

    def snapshot(self) -> dict[str, int]:
        """Return the counters as a plain mapping."""
        return {
            "started": self.started,
            "captured": self.captured,
            "saved": self.saved,
            "failed": self.failed,
        }
