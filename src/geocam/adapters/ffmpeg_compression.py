"""Compression engine that transcodes through an ffmpeg subprocess."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from geocam.adapters.ffmpeg_capture import kill_if_running, last_line
from geocam.domain.artifacts import CompressedArtifact, RawArtifact
from geocam.domain.errors import CompressionFailedError
from geocam.domain.events import CompressionFinished, CompressionProgress, EventSink
from geocam.domain.quality import QualityProfile
from geocam.services.persistence import FileSystem
from geocam.services.sessions import CompressionEngine

_logger = logging.getLogger(__name__)

_PROGRESS_TIME_KEYS = {"out_time_us", "out_time_ms"}
_MAX_RUNNING_PERCENT = 99


def build_compression_command(
    ffmpeg_binary: str,
    src: Path,
    dest: Path,
    profile: QualityProfile,
    fps: int,
) -> list[str]:
    """Return the ffmpeg argv that compresses ``src`` for ``profile``."""
    size = profile.max_dimension
    scale = (
        f"scale='if(gt(iw,ih),min({size},iw),-2)'"
        f":'if(gt(iw,ih),-2,min({size},ih))'"
    )
    return [
        ffmpeg_binary,
        "-y",
        "-hide_banner",
        "-i",
        str(src),
        "-vf",
        scale,
        "-r",
        str(fps),
        "-c:v",
        "libx264",
        "-b:v",
        str(profile.target_bitrate_floor),
        "-c:a",
        "aac",
        "-progress",
        "pipe:1",
        "-nostats",
        str(dest),
    ]


@dataclass
class ProgressTracker:
    """Turns ffmpeg ``-progress`` lines into increasing percentages."""

    duration_ms: int
    last_percent: int = 0

    def feed(self, line: str) -> int | None:
        """Return a new percentage, or None when the line adds nothing."""
        key, _, value = line.strip().partition("=")
        if key not in _PROGRESS_TIME_KEYS or self.duration_ms <= 0:
            return None
        try:
            micros = int(value)
        except ValueError:
            return None
        percent = min(micros // 1000 * 100 // self.duration_ms, _MAX_RUNNING_PERCENT)
        if percent <= self.last_percent:
            return None
        self.last_percent = percent
        return percent


@dataclass
class FfmpegCompressionEngine(CompressionEngine):
    """Compresses raw captures with libx264."""

    output_dir: Path
    file_system: FileSystem
    ffmpeg_binary: str = "ffmpeg"
    fps: int = 15
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    def compress(
        self,
        session_id: UUID,
        artifact: RawArtifact,
        profile: QualityProfile,
        sink: EventSink,
    ) -> None:
        """Start transcoding; progress and the result go to ``sink``."""
        task = asyncio.get_running_loop().create_task(
            self._run(session_id, artifact, profile, sink)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(
        self,
        session_id: UUID,
        artifact: RawArtifact,
        profile: QualityProfile,
        sink: EventSink,
    ) -> None:
        dest = self.output_dir / f"{artifact.path.stem}_{profile.label}.mp4"
        command = build_compression_command(
            self.ffmpeg_binary, artifact.path, dest, profile, self.fps
        )
        try:
            await self.file_system.make_dirs(self.output_dir)
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            _logger.error("Could not start ffmpeg compression: %s", exc)
            sink(CompressionFinished(session_id=session_id, error=exc))
            return

        try:
            event = await self._collect(session_id, process, artifact, dest, sink)
        except Exception as exc:
            _logger.exception("ffmpeg compression failed for session %s", session_id)
            kill_if_running(process)
            event = CompressionFinished(session_id=session_id, error=exc)
        sink(event)

    async def _collect(
        self,
        session_id: UUID,
        process: asyncio.subprocess.Process,
        artifact: RawArtifact,
        dest: Path,
        sink: EventSink,
    ) -> CompressionFinished:
        tracker = ProgressTracker(duration_ms=artifact.duration_ms)
        stderr_task = asyncio.create_task(_read_stream(process.stderr))
        try:
            if process.stdout is not None:
                async for raw_line in process.stdout:
                    percent = tracker.feed(raw_line.decode(errors="ignore"))
                    if percent is not None:
                        sink(
                            CompressionProgress(session_id=session_id, percent=percent)
                        )
            stderr = await stderr_task
        finally:
            stderr_task.cancel()
        await process.wait()

        if process.returncode != 0:
            reason = last_line(stderr) or f"ffmpeg exited with {process.returncode}"
            return CompressionFinished(
                session_id=session_id, error=CompressionFailedError(reason)
            )
        size = await self.file_system.size(dest)
        return CompressionFinished(
            session_id=session_id,
            artifact=CompressedArtifact(path=dest, size_bytes=size),
        )


async def _read_stream(stream: asyncio.StreamReader | None) -> bytes:
    if stream is None:
        return b""
    return await stream.read()
