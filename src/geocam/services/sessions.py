"""Recording session state machine.

The controller owns at most one active session. Capture, compression and
persistence report back through ``notify``, which is the only place a session
changes state. Notifications for any other session id are dropped.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol
from uuid import UUID, uuid4

from geocam.domain.artifacts import (
    CompressedArtifact,
    RawArtifact,
    SavedLocation,
    SaveStrategy,
)
from geocam.domain.errors import (
    AlreadyActiveError,
    CaptureFailedError,
    CompressionFailedError,
    NotRecordingError,
    PermissionsNotGrantedError,
    PersistenceFailedError,
    StageError,
)
from geocam.domain.events import (
    CaptureFinished,
    CompressionFinished,
    CompressionProgress,
    EventSink,
    PersistenceFinished,
    PipelineEvent,
)
from geocam.domain.platform import PlatformContext
from geocam.domain.position import PositionSample
from geocam.domain.quality import QualityProfile
from geocam.domain.sessions import ErrorInfo, Session, SessionState, Stage
from geocam.services.persistence import FileSystem
from geocam.services.stats import RecordingStats

_logger = logging.getLogger(__name__)

_MAX_PROGRESS = 100

_STAGE_LABELS = {
    Stage.CAPTURE: "Recording",
    Stage.COMPRESSION: "Video compression",
    Stage.PERSISTENCE: "Saving video",
}

SessionListener = Callable[[Session], None]


class CapabilityGate(Protocol):
    """Aggregated permission readiness supplied by the host."""

    @property
    def ready(self) -> bool:
        """Return whether every permission needed to record is granted."""


class PositionSource(Protocol):
    """Best-effort position snapshot supplied by the host."""

    latest_position: PositionSample | None
    latest_address: str | None


class CaptureDevice(Protocol):
    """Camera that records one raw artifact per start command."""

    def start_capture(self, session_id: UUID, sink: EventSink) -> None:
        """Begin recording; completion is delivered to the sink."""

    def stop_capture(self, session_id: UUID) -> None:
        """Ask the device to finalize the current recording."""


class CompressionEngine(Protocol):
    """Video encoder reporting progress and one terminal result."""

    def compress(
        self,
        session_id: UUID,
        artifact: RawArtifact,
        profile: QualityProfile,
        sink: EventSink,
    ) -> None:
        """Start compressing; progress and result are delivered to the sink."""


class ArtifactPersister(Protocol):
    """Makes a compressed artifact durable."""

    async def persist(
        self, artifact: CompressedArtifact, context: PlatformContext
    ) -> SavedLocation:
        """Save the artifact and return where it landed."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionController:
    """Drives one recording through capture, compression and persistence."""

    capability_gate: CapabilityGate
    capture_device: CaptureDevice
    compression_engine: CompressionEngine
    persistence_resolver: ArtifactPersister
    file_system: FileSystem
    platform: PlatformContext
    stats: RecordingStats = field(default_factory=RecordingStats)
    position_source: PositionSource | None = None
    clock: Callable[[], datetime] = field(default=_utc_now)
    _session: Session = field(default_factory=Session, init=False)
    _listeners: list[SessionListener] = field(default_factory=list, init=False)
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    def start(self, quality: QualityProfile) -> UUID:
        """Begin a new recording and return its session id."""
        if self._session.state.is_active:
            raise AlreadyActiveError
        if not self.capability_gate.ready:
            raise PermissionsNotGrantedError
        session_id = uuid4()
        self._publish(
            Session(
                id=session_id,
                state=SessionState.RECORDING,
                quality=quality,
                started_at=self.clock(),
            )
        )
        self.stats.record_started()
        _logger.info(
            "Recording started: session=%s quality=%s", session_id, quality.label
        )
        try:
            self.capture_device.start_capture(session_id, self.notify)
        except Exception as exc:
            self.notify(CaptureFinished(session_id=session_id, error=exc))
        return session_id

    def stop(self) -> None:
        """Ask the capture device to finalize the active recording."""
        session = self._session
        if session.state is not SessionState.RECORDING or session.id is None:
            raise NotRecordingError
        _logger.info("Stopping recording: session=%s", session.id)
        self.capture_device.stop_capture(session.id)

    def status(self) -> Session:
        """Return the current session snapshot."""
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for snapshot changes and return an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: PipelineEvent) -> None:
        """Apply a pipeline notification to the active session."""
        if event.session_id != self._session.id:
            _logger.debug(
                "Ignoring %s for stale session %s",
                type(event).__name__,
                event.session_id,
            )
            return
        if isinstance(event, CaptureFinished):
            self._on_capture_finished(event)
        elif isinstance(event, CompressionProgress):
            self._on_compression_progress(event)
        elif isinstance(event, CompressionFinished):
            self._on_compression_finished(event)
        elif isinstance(event, PersistenceFinished):
            self._on_persistence_finished(event)

    async def join(self) -> None:
        """Wait for every background task the controller started."""
        while self._tasks:
            await asyncio.gather(*self._tasks)

    def _on_capture_finished(self, event: CaptureFinished) -> None:
        session = self._session
        if not self._expect(SessionState.RECORDING, event):
            return
        if event.error is not None or event.artifact is None:
            self._fail(
                Stage.CAPTURE,
                _stage_error(CaptureFailedError, event.error, "No video was captured"),
            )
            return
        quality = session.quality
        if quality is None:
            self._fail(
                Stage.COMPRESSION, CompressionFailedError("No quality profile selected")
            )
            return
        position, address = self._position_stamp()
        self._publish(
            replace(
                session,
                state=SessionState.COMPRESSING,
                raw_artifact=event.artifact,
                progress_percent=0,
                position=position,
                address=address,
            )
        )
        self.stats.record_captured()
        _logger.info(
            "Capture finished: session=%s path=%s duration_ms=%s",
            event.session_id,
            event.artifact.path,
            event.artifact.duration_ms,
        )
        try:
            self.compression_engine.compress(
                event.session_id, event.artifact, quality, self.notify
            )
        except Exception as exc:
            self.notify(CompressionFinished(session_id=event.session_id, error=exc))

    def _on_compression_progress(self, event: CompressionProgress) -> None:
        session = self._session
        if not self._expect(SessionState.COMPRESSING, event):
            return
        percent = event.percent
        if not 0 <= percent <= _MAX_PROGRESS or percent < session.progress_percent:
            _logger.debug(
                "Discarding progress %s (current %s) for session %s",
                percent,
                session.progress_percent,
                event.session_id,
            )
            return
        if percent == session.progress_percent:
            return
        self._publish(replace(session, progress_percent=percent))

    def _on_compression_finished(self, event: CompressionFinished) -> None:
        session = self._session
        if not self._expect(SessionState.COMPRESSING, event):
            return
        if event.error is not None or event.artifact is None:
            self._fail(
                Stage.COMPRESSION,
                _stage_error(
                    CompressionFailedError, event.error, "Video compression failed"
                ),
            )
            return
        self._publish(
            replace(
                session,
                state=SessionState.PERSISTING,
                compressed_artifact=event.artifact,
                progress_percent=_MAX_PROGRESS,
            )
        )
        _logger.info(
            "Compressed size: %s (session=%s)",
            _format_megabytes(event.artifact.size_bytes),
            event.session_id,
        )
        self._spawn(
            self._persist(event.session_id, session.raw_artifact, event.artifact)
        )

    def _on_persistence_finished(self, event: PersistenceFinished) -> None:
        session = self._session
        if not self._expect(SessionState.PERSISTING, event):
            return
        if event.error is not None or event.location is None:
            self._fail(
                Stage.PERSISTENCE,
                _stage_error(
                    PersistenceFailedError, event.error, "Video was not saved"
                ),
            )
            return
        self._publish(
            replace(
                session,
                state=SessionState.SAVED,
                saved_location=event.location.path,
                saved_strategy=event.location.strategy,
                message=_saved_message(session.quality, event.location),
            )
        )
        self.stats.record_saved()
        _logger.info(
            "Recording saved: session=%s path=%s",
            event.session_id,
            event.location.path,
        )

    async def _persist(
        self,
        session_id: UUID,
        raw: RawArtifact | None,
        artifact: CompressedArtifact,
    ) -> None:
        if raw is not None:
            await self._reclaim(raw.path)
        try:
            location = await self.persistence_resolver.persist(artifact, self.platform)
        except Exception as exc:
            self.notify(PersistenceFinished(session_id=session_id, error=exc))
            return
        if location.path != str(artifact.path):
            await self._reclaim(artifact.path)
        self.notify(PersistenceFinished(session_id=session_id, location=location))

    async def _reclaim(self, path: Path) -> None:
        """Delete a cached file that a later stage has copied elsewhere."""
        try:
            await self.file_system.delete(path)
        except Exception as exc:
            _logger.warning("Could not delete cached video %s: %s", path, exc)

    def _expect(self, state: SessionState, event: PipelineEvent) -> bool:
        if self._session.state is state:
            return True
        _logger.debug(
            "Ignoring %s in state %s for session %s",
            type(event).__name__,
            self._session.state,
            event.session_id,
        )
        return False

    def _fail(self, stage: Stage, error: StageError) -> None:
        info = ErrorInfo(stage=stage, kind=error.kind, cause=str(error))
        self._publish(
            replace(
                self._session,
                state=SessionState.FAILED,
                error=info,
                message=f"{_STAGE_LABELS[stage]} failed: {info.cause}",
            )
        )
        self.stats.record_failed()
        _logger.error(
            "Recording failed: session=%s stage=%s cause=%s",
            self._session.id,
            stage,
            info.cause,
        )

    def _position_stamp(self) -> tuple[PositionSample | None, str | None]:
        if self.position_source is None:
            return None, None
        return self.position_source.latest_position, self.position_source.latest_address

    def _publish(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                _logger.exception("Session listener failed")

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def _stage_error(
    error_type: type[StageError], cause: BaseException | str | None, fallback: str
) -> StageError:
    if isinstance(cause, error_type):
        return cause
    return error_type(cause if cause is not None else fallback)


def _format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):.2f} MB"


def _saved_message(quality: QualityProfile | None, location: SavedLocation) -> str:
    size = _format_megabytes(location.size_bytes)
    if location.strategy is SaveStrategy.GALLERY and quality is not None:
        return f"Video saved in {quality.label} ({size})"
    return f"Video saved to {location.path} ({size})"
