"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from geocam.adapters.ffmpeg_capture import FfmpegCaptureDevice
from geocam.adapters.ffmpeg_compression import FfmpegCompressionEngine
from geocam.adapters.local_filesystem import DirectoryGallery, LocalFileSystem
from geocam.adapters.memory_history_repository import (
    InMemoryRecordingHistoryRepository,
)
from geocam.adapters.nominatim_client import NominatimGeocoder
from geocam.adapters.supabase_history_repository import (
    SupabaseRecordingHistoryRepository,
)
from geocam.config import Settings, parse_capture_input
from geocam.services.capabilities import PermissionGate
from geocam.services.history import (
    RecordingHistoryRepository,
    RecordingHistoryService,
)
from geocam.services.overlay import OverlayTicker
from geocam.services.persistence import PersistenceResolver
from geocam.services.position import PositionFeed
from geocam.services.sessions import SessionController
from geocam.services.stats import RecordingStats


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    permission_gate: PermissionGate
    position_feed: PositionFeed
    session_controller: SessionController
    overlay_ticker: OverlayTicker
    stats: RecordingStats
    history_service: RecordingHistoryService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    file_system = LocalFileSystem()
    geocoder = NominatimGeocoder.create(
        base_url=resolved_settings.nominatim_base_url,
        user_agent=resolved_settings.geocoder_user_agent,
    )
    position_feed = PositionFeed(geocoder)
    permission_gate = PermissionGate()
    persistence_resolver = PersistenceResolver(
        gallery=DirectoryGallery(resolved_settings.gallery_dir, file_system),
        file_system=file_system,
        public_video_dir=resolved_settings.public_video_dir,
    )
    capture_device = FfmpegCaptureDevice(
        output_dir=resolved_settings.cache_dir,
        input_args=parse_capture_input(resolved_settings.capture_input),
        file_system=file_system,
        ffmpeg_binary=resolved_settings.ffmpeg_binary,
    )
    compression_engine = FfmpegCompressionEngine(
        output_dir=resolved_settings.cache_dir,
        file_system=file_system,
        ffmpeg_binary=resolved_settings.ffmpeg_binary,
        fps=resolved_settings.compression_fps,
    )
    stats = RecordingStats()
    session_controller = SessionController(
        capability_gate=permission_gate,
        capture_device=capture_device,
        compression_engine=compression_engine,
        persistence_resolver=persistence_resolver,
        file_system=file_system,
        platform=resolved_settings.platform,
        stats=stats,
        position_source=position_feed,
    )
    history_service = RecordingHistoryService(
        _build_history_repository(resolved_settings)
    )
    session_controller.subscribe(history_service.on_session)
    overlay_ticker = OverlayTicker(
        controller=session_controller,
        position_source=position_feed,
        timezone_name=resolved_settings.display_timezone,
    )
    overlay_ticker.attach()

    async def close_resources() -> None:
        overlay_ticker.detach()
        await session_controller.join()
        await geocoder.close()

    return AppContainer(
        settings=resolved_settings,
        permission_gate=permission_gate,
        position_feed=position_feed,
        session_controller=session_controller,
        overlay_ticker=overlay_ticker,
        stats=stats,
        history_service=history_service,
        close_resources=close_resources,
    )


def _build_history_repository(settings: Settings) -> RecordingHistoryRepository:
    if settings.supabase_url and settings.supabase_service_key:
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseRecordingHistoryRepository(client)
    return InMemoryRecordingHistoryRepository()
