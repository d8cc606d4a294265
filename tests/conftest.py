"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID

import pytest

from geocam.adapters.memory_history_repository import (
    InMemoryRecordingHistoryRepository,
)
from geocam.config import Settings
from geocam.containers import AppContainer
from geocam.domain.artifacts import CompressedArtifact, RawArtifact
from geocam.domain.events import (
    CaptureFinished,
    CompressionFinished,
    CompressionProgress,
    EventSink,
)
from geocam.domain.platform import PermissionSet, PlatformContext
from geocam.domain.quality import QualityProfile
from geocam.services.capabilities import PermissionGate
from geocam.services.history import RecordingHistoryService
from geocam.services.overlay import OverlayTicker
from geocam.services.persistence import FileSystem, GalleryClient, PersistenceResolver
from geocam.services.position import PositionFeed, ReverseGeocoder
from geocam.services.sessions import (
    CaptureDevice,
    CompressionEngine,
    SessionController,
)
from geocam.services.stats import RecordingStats

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
PUBLIC_DIR = Path("/storage/emulated/0/DCIM/Camera")
ALL_GRANTED = PermissionSet(location=True, camera=True, microphone=True, storage=True)


@dataclass
class FakeClock:
    """Manually advanced wall clock."""

    now: datetime = FIXED_NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeCaptureDevice(CaptureDevice):
    """Capture device whose completion is triggered by the test."""

    started: list[UUID] = field(default_factory=list)
    stopped: list[UUID] = field(default_factory=list)
    sinks: dict[UUID, EventSink] = field(default_factory=dict)
    start_error: Exception | None = None

    def start_capture(self, session_id: UUID, sink: EventSink) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started.append(session_id)
        self.sinks[session_id] = sink

    def stop_capture(self, session_id: UUID) -> None:
        self.stopped.append(session_id)

    def finish(
        self, session_id: UUID, path: str = "/tmp/a.raw", duration_ms: int = 4000
    ) -> None:
        self.sinks[session_id](
            CaptureFinished(
                session_id=session_id,
                artifact=RawArtifact(path=Path(path), duration_ms=duration_ms),
            )
        )

    def fail(self, session_id: UUID, error: Exception) -> None:
        self.sinks[session_id](CaptureFinished(session_id=session_id, error=error))


@dataclass
class FakeCompressionEngine(CompressionEngine):
    """Compression engine driven step by step by the test."""

    jobs: list[tuple[UUID, RawArtifact, QualityProfile]] = field(default_factory=list)
    sinks: dict[UUID, EventSink] = field(default_factory=dict)
    compress_error: Exception | None = None

    def compress(
        self,
        session_id: UUID,
        artifact: RawArtifact,
        profile: QualityProfile,
        sink: EventSink,
    ) -> None:
        if self.compress_error is not None:
            raise self.compress_error
        self.jobs.append((session_id, artifact, profile))
        self.sinks[session_id] = sink

    def progress(self, session_id: UUID, percent: int) -> None:
        self.sinks[session_id](
            CompressionProgress(session_id=session_id, percent=percent)
        )

    def finish(
        self, session_id: UUID, path: str = "/tmp/a.mp4", size_bytes: int = 2_000_000
    ) -> None:
        self.sinks[session_id](
            CompressionFinished(
                session_id=session_id,
                artifact=CompressedArtifact(path=Path(path), size_bytes=size_bytes),
            )
        )

    def fail(self, session_id: UUID, error: Exception) -> None:
        self.sinks[session_id](CompressionFinished(session_id=session_id, error=error))


@dataclass
class FakeGalleryClient(GalleryClient):
    """Gallery that records saves or fails on demand."""

    saved: list[Path] = field(default_factory=list)
    error: Exception | None = None
    calls: list[str] | None = None

    async def save_video(self, path: Path) -> str:
        if self.calls is not None:
            self.calls.append("gallery")
        if self.error is not None:
            raise self.error
        self.saved.append(path)
        return f"content://media/external/video/{len(self.saved)}"


@dataclass
class InMemoryFileSystem(FileSystem):
    """Filesystem fake keyed by path with byte sizes."""

    files: dict[Path, int] = field(default_factory=dict)
    dirs: set[Path] = field(default_factory=set)
    copies: list[tuple[Path, Path]] = field(default_factory=list)
    deleted: list[Path] = field(default_factory=list)
    copy_error: Exception | None = None
    delete_error: Exception | None = None
    calls: list[str] | None = None

    async def exists(self, path: Path) -> bool:
        return path in self.files or path in self.dirs

    async def make_dirs(self, path: Path) -> None:
        self.dirs.add(path)

    async def copy(self, src: Path, dest: Path) -> None:
        if self.calls is not None:
            self.calls.append("copy")
        if self.copy_error is not None:
            raise self.copy_error
        self.files[dest] = self.files.get(src, 0)
        self.copies.append((src, dest))

    async def delete(self, path: Path) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(path)
        self.files.pop(path, None)

    async def size(self, path: Path) -> int:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]


@dataclass
class FakeGeocoder(ReverseGeocoder):
    """Geocoder returning a fixed address or raising."""

    address: str | None = "1 Market St, San Francisco"
    error: Exception | None = None
    lookups: list[tuple[float, float]] = field(default_factory=list)

    async def reverse(self, lat: float, lon: float) -> str | None:
        self.lookups.append((lat, lon))
        if self.error is not None:
            raise self.error
        return self.address


@dataclass
class Pipeline:
    """A session controller wired to fakes."""

    controller: SessionController
    gate: PermissionGate
    capture: FakeCaptureDevice
    engine: FakeCompressionEngine
    gallery: FakeGalleryClient
    file_system: InMemoryFileSystem
    position_feed: PositionFeed
    stats: RecordingStats
    clock: FakeClock


def build_pipeline(
    permissions: PermissionSet = ALL_GRANTED,
    platform: PlatformContext | None = None,
) -> Pipeline:
    """Wire a controller to in-memory collaborators."""
    clock = FakeClock()
    gate = PermissionGate(permissions)
    capture = FakeCaptureDevice()
    engine = FakeCompressionEngine()
    gallery = FakeGalleryClient()
    file_system = InMemoryFileSystem(
        files={Path("/tmp/a.raw"): 40_000_000, Path("/tmp/a.mp4"): 2_000_000}
    )
    position_feed = PositionFeed(FakeGeocoder())
    stats = RecordingStats()
    resolver = PersistenceResolver(
        gallery=gallery,
        file_system=file_system,
        public_video_dir=PUBLIC_DIR,
        clock=clock,
    )
    controller = SessionController(
        capability_gate=gate,
        capture_device=capture,
        compression_engine=engine,
        persistence_resolver=resolver,
        file_system=file_system,
        platform=platform or PlatformContext(os="android", version=34),
        stats=stats,
        position_source=position_feed,
        clock=clock,
    )
    return Pipeline(
        controller=controller,
        gate=gate,
        capture=capture,
        engine=engine,
        gallery=gallery,
        file_system=file_system,
        position_feed=position_feed,
        stats=stats,
        clock=clock,
    )


@pytest.fixture
def pipeline() -> Pipeline:
    return build_pipeline()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        platform_os="android",
        platform_version=34,
        cache_dir=tmp_path / "cache",
        public_video_dir=tmp_path / "DCIM" / "Camera",
        gallery_dir=tmp_path / "Gallery",
        display_timezone="UTC",
    )


@pytest.fixture
def container(settings: Settings, pipeline: Pipeline) -> AppContainer:
    history_service = RecordingHistoryService(
        InMemoryRecordingHistoryRepository(), clock=pipeline.clock
    )
    pipeline.controller.subscribe(history_service.on_session)
    overlay_ticker = OverlayTicker(
        controller=pipeline.controller,
        position_source=pipeline.position_feed,
        timezone_name=settings.display_timezone,
        clock=pipeline.clock,
    )
    overlay_ticker.attach()

    async def close_resources() -> None:
        overlay_ticker.detach()
        await pipeline.controller.join()

    return AppContainer(
        settings=settings,
        permission_gate=pipeline.gate,
        position_feed=pipeline.position_feed,
        session_controller=pipeline.controller,
        overlay_ticker=overlay_ticker,
        stats=pipeline.stats,
        history_service=history_service,
        close_resources=close_resources,
    )
