"""Durable storage of compressed recordings with fallback."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Protocol

from geocam.domain.artifacts import CompressedArtifact, SavedLocation, SaveStrategy
from geocam.domain.errors import PersistenceFailedError
from geocam.domain.platform import PlatformContext

_logger = logging.getLogger(__name__)

_MAX_NAME_ATTEMPTS = 1000


class GalleryClient(Protocol):
    """Interface for the platform's shared media gallery."""

    async def save_video(self, path: Path) -> str:
        """Add a video to the gallery and return the entry location."""


class FileSystem(Protocol):
    """Interface for the filesystem primitives used by the pipeline."""

    async def exists(self, path: Path) -> bool:
        """Return whether a path exists."""

    async def make_dirs(self, path: Path) -> None:
        """Create a directory and any missing parents."""

    async def copy(self, src: Path, dest: Path) -> None:
        """Copy a file."""

    async def delete(self, path: Path) -> None:
        """Delete a file."""

    async def size(self, path: Path) -> int:
        """Return a file size in bytes."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def save_strategies(context: PlatformContext) -> list[SaveStrategy]:
    """Return the ordered save strategies for a platform."""
    if context.uses_legacy_storage:
        return [SaveStrategy.PUBLIC_COPY]
    return [SaveStrategy.GALLERY, SaveStrategy.PUBLIC_COPY]


@dataclass
class PersistenceResolver:
    """Saves compressed videos to the gallery, falling back to a public copy."""

    gallery: GalleryClient
    file_system: FileSystem
    public_video_dir: Path
    clock: Callable[[], datetime] = field(default=_utc_now)

    async def persist(
        self, artifact: CompressedArtifact, context: PlatformContext
    ) -> SavedLocation:
        """Run each strategy in order until one succeeds."""
        last_error: Exception | None = None
        for strategy in save_strategies(context):
            try:
                path = await self._run(strategy, artifact)
            except Exception as exc:
                last_error = exc
                _logger.warning(
                    "Save strategy %s failed for %s: %s", strategy, artifact.path, exc
                )
                continue
            _logger.info(
                "Saved %s via %s (%s bytes)", path, strategy, artifact.size_bytes
            )
            return SavedLocation(
                path=path, size_bytes=artifact.size_bytes, strategy=strategy
            )
        raise PersistenceFailedError(last_error or "No save strategy available")

    async def _run(self, strategy: SaveStrategy, artifact: CompressedArtifact) -> str:
        if strategy is SaveStrategy.GALLERY:
            return await self.gallery.save_video(artifact.path)
        return await self._copy_to_public_dir(artifact.path)

    async def _copy_to_public_dir(self, src: Path) -> str:
        if not await self.file_system.exists(self.public_video_dir):
            await self.file_system.make_dirs(self.public_video_dir)
        dest = await self._unique_destination()
        await self.file_system.copy(src, dest)
        return str(dest)

    async def _unique_destination(self) -> Path:
        """Pick a timestamped file name that is not taken yet."""
        moment = self.clock()
        for _ in range(_MAX_NAME_ATTEMPTS):
            millis = int(moment.timestamp() * 1000)
            candidate = self.public_video_dir / f"vid_{millis}.mp4"
            if not await self.file_system.exists(candidate):
                return candidate
            moment += timedelta(milliseconds=1)
        raise FileExistsError(f"No free file name in {self.public_video_dir}")
