"""Domain models for pipeline artifacts."""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


@dataclass(frozen=True)
class RawArtifact:
    """Uncompressed capture output."""

    path: Path
    duration_ms: int
    size_bytes: int = 0


@dataclass(frozen=True)
class CompressedArtifact:
    """Compression engine output."""

    path: Path
    size_bytes: int


class SaveStrategy(StrEnum):
    """Ways a compressed artifact can be made durable."""

    GALLERY = "gallery"
    PUBLIC_COPY = "public_copy"


@dataclass(frozen=True)
class SavedLocation:
    """Where a recording ended up."""

    path: str
    size_bytes: int
    strategy: SaveStrategy
