"""Capture device that records through an ffmpeg subprocess."""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from geocam.domain.artifacts import RawArtifact
from geocam.domain.errors import CaptureFailedError
from geocam.domain.events import CaptureFinished, EventSink
from geocam.services.persistence import FileSystem
from geocam.services.sessions import CaptureDevice

_logger = logging.getLogger(__name__)


def build_capture_command(
    ffmpeg_binary: str, input_args: list[str], dest: Path
) -> list[str]:
    """Return the ffmpeg argv recording ``input_args`` into ``dest``."""
    return [ffmpeg_binary, "-y", "-hide_banner", *input_args, str(dest)]


def last_line(output: bytes) -> str:
    """Return the last non-empty line of process output."""
    lines = [line.strip() for line in output.decode(errors="ignore").splitlines()]
    lines = [line for line in lines if line]
    return lines[-1] if lines else ""


@dataclass
class FfmpegCaptureDevice(CaptureDevice):
    """Records raw video with ffmpeg until asked to stop."""

    output_dir: Path
    input_args: list[str]
    file_system: FileSystem
    ffmpeg_binary: str = "ffmpeg"
    clock: Callable[[], float] = field(default=time.monotonic)
    _processes: dict[UUID, asyncio.subprocess.Process] = field(
        default_factory=dict, init=False
    )
    _stop_requested: set[UUID] = field(default_factory=set, init=False)
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    def start_capture(self, session_id: UUID, sink: EventSink) -> None:
        """Launch ffmpeg; the result is delivered to ``sink``."""
        task = asyncio.get_running_loop().create_task(self._record(session_id, sink))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def stop_capture(self, session_id: UUID) -> None:
        """Ask ffmpeg to finish writing the file."""
        self._stop_requested.add(session_id)
        process = self._processes.get(session_id)
        if process is not None:
            _send_quit(process)

    async def _record(self, session_id: UUID, sink: EventSink) -> None:
        dest = self.output_dir / f"raw_{session_id.hex}.mkv"
        command = build_capture_command(self.ffmpeg_binary, self.input_args, dest)
        try:
            await self.file_system.make_dirs(self.output_dir)
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            _logger.error("Could not start ffmpeg capture: %s", exc)
            sink(CaptureFinished(session_id=session_id, error=exc))
            return

        started = self.clock()
        self._processes[session_id] = process
        if session_id in self._stop_requested:
            _send_quit(process)
        try:
            event = await self._collect(session_id, process, dest, started)
        except Exception as exc:
            _logger.exception("ffmpeg capture failed for session %s", session_id)
            kill_if_running(process)
            event = CaptureFinished(session_id=session_id, error=exc)
        finally:
            self._processes.pop(session_id, None)
            self._stop_requested.discard(session_id)
        sink(event)

    async def _collect(
        self,
        session_id: UUID,
        process: asyncio.subprocess.Process,
        dest: Path,
        started: float,
    ) -> CaptureFinished:
        stderr = await process.stderr.read() if process.stderr else b""
        await process.wait()
        stopped = session_id in self._stop_requested
        duration_ms = int((self.clock() - started) * 1000)
        exists = await self.file_system.exists(dest)
        if not exists or (process.returncode != 0 and not stopped):
            reason = last_line(stderr) or f"ffmpeg exited with {process.returncode}"
            return CaptureFinished(
                session_id=session_id, error=CaptureFailedError(reason)
            )
        size = await self.file_system.size(dest)
        return CaptureFinished(
            session_id=session_id,
            artifact=RawArtifact(path=dest, duration_ms=duration_ms, size_bytes=size),
        )


def _send_quit(process: asyncio.subprocess.Process) -> None:
    if process.stdin is None or process.stdin.is_closing():
        return
    try:
        process.stdin.write(b"q")
        process.stdin.close()
    except (BrokenPipeError, ConnectionResetError) as exc:
        _logger.debug("ffmpeg already exited before quit: %s", exc)


def kill_if_running(process: asyncio.subprocess.Process) -> None:
    """Terminate a process that is still running."""
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
