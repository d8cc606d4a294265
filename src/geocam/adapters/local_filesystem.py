"""Local filesystem adapters."""

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path

from geocam.services.persistence import FileSystem


@dataclass
class LocalFileSystem(FileSystem):
    """Filesystem primitives backed by pathlib, run off the event loop."""

    async def exists(self, path: Path) -> bool:
        """Return whether a path exists."""
        return await asyncio.to_thread(path.exists)

    async def make_dirs(self, path: Path) -> None:
        """Create a directory tree."""
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)

    async def copy(self, src: Path, dest: Path) -> None:
        """Copy a file with its metadata."""
        await asyncio.to_thread(shutil.copy2, src, dest)

    async def delete(self, path: Path) -> None:
        """Delete a file; a missing file is not an error."""
        await asyncio.to_thread(path.unlink, missing_ok=True)

    async def size(self, path: Path) -> int:
        """Return a file size in bytes."""
        stat = await asyncio.to_thread(path.stat)
        return stat.st_size


@dataclass
class DirectoryGallery:
    """Media gallery backed by a synced library directory."""

    gallery_dir: Path
    file_system: FileSystem

    async def save_video(self, path: Path) -> str:
        """Copy a video into the library and return its new path."""
        if not await self.file_system.exists(path):
            raise FileNotFoundError(f"Video not found: {path}")
        if not await self.file_system.exists(self.gallery_dir):
            await self.file_system.make_dirs(self.gallery_dir)
        dest = self.gallery_dir / path.name
        counter = 1
        while await self.file_system.exists(dest):
            dest = self.gallery_dir / f"{path.stem}_{counter}{path.suffix}"
            counter += 1
        await self.file_system.copy(path, dest)
        return str(dest)
