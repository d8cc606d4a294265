"""Domain models for device position."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PositionSample:
    """Single GPS fix."""

    lat: float
    lon: float
    recorded_at: datetime | None = None
