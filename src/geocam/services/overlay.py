"""Elapsed time, blink indicator and timestamp shown over a recording."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from geocam.domain.sessions import Session, SessionState
from geocam.services.sessions import PositionSource, SessionController

_logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
BLINK_PERIOD_MS = 500


@dataclass(frozen=True)
class OverlayFrame:
    """Display state for the recording overlay."""

    elapsed_seconds: int = 0
    elapsed_text: str = "00:00"
    blink: bool = False
    timestamp: str = ""
    address_line: str | None = None


def format_elapsed(seconds: int) -> str:
    """Format seconds as MM:SS."""
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_address(address: str | None) -> str:
    if address:
        return f"Address: {address}"
    return "Address unavailable"


def compute_frame(
    started_at: datetime, now: datetime, tz: ZoneInfo, address: str | None
) -> OverlayFrame:
    """Derive the overlay for a recording that began at ``started_at``."""
    elapsed_ms = max(int((now - started_at).total_seconds() * 1000), 0)
    seconds = elapsed_ms // 1000
    return OverlayFrame(
        elapsed_seconds=seconds,
        elapsed_text=format_elapsed(seconds),
        blink=(elapsed_ms // BLINK_PERIOD_MS) % 2 == 0,
        timestamp=now.astimezone(tz).strftime(TIMESTAMP_FORMAT),
        address_line=format_address(address),
    )


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class OverlayTicker:
    """Refreshes the overlay frame while a session is recording."""

    controller: SessionController
    position_source: PositionSource | None = None
    timezone_name: str = "UTC"
    interval_seconds: float = BLINK_PERIOD_MS / 1000
    clock: Callable[[], datetime] = field(default=_utc_now)
    frame: OverlayFrame = field(default_factory=OverlayFrame, init=False)
    _zone: ZoneInfo = field(init=False)
    _started_at: datetime | None = field(default=None, init=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _unsubscribe: Callable[[], None] | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self._zone = ZoneInfo(self.timezone_name)

    def attach(self) -> None:
        """Start following the controller's session snapshots."""
        if self._unsubscribe is None:
            self._unsubscribe = self.controller.subscribe(self._on_session)

    def detach(self) -> None:
        """Stop following the controller and reset the frame."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._reset()

    def refresh(self) -> OverlayFrame:
        """Recompute the frame from the current wall-clock time."""
        if self._started_at is None:
            return self.frame
        address = (
            self.position_source.latest_address if self.position_source else None
        )
        self.frame = compute_frame(
            self._started_at, self.clock(), self._zone, address
        )
        return self.frame

    def _on_session(self, session: Session) -> None:
        if session.state is not SessionState.RECORDING or session.started_at is None:
            self._reset()
            return
        if self._task is not None and self._started_at == session.started_at:
            return
        self._reset()
        self._started_at = session.started_at
        self.refresh()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.refresh()

    def _reset(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._started_at = None
        self.frame = OverlayFrame()
