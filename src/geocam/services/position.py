"""Latest device position and its best-effort address."""

import logging
from dataclasses import dataclass
from typing import Protocol

from geocam.domain.position import PositionSample

_logger = logging.getLogger(__name__)


class ReverseGeocoder(Protocol):
    """Interface for turning coordinates into a human address."""

    async def reverse(self, lat: float, lon: float) -> str | None:
        """Return an address for the coordinates, if one is known."""


@dataclass
class PositionFeed:
    """Holds the most recent position sample and derived address."""

    geocoder: ReverseGeocoder
    latest_position: PositionSample | None = None
    latest_address: str | None = None

    async def update(self, sample: PositionSample) -> str | None:
        """Record a new sample and refresh the address."""
        self.latest_position = sample
        try:
            address = await self.geocoder.reverse(sample.lat, sample.lon)
        except Exception as exc:
            _logger.warning(
                "Reverse geocoding failed for %.6f,%.6f: %s",
                sample.lat,
                sample.lon,
                exc,
            )
            address = None
        if self.latest_position is not sample:
            _logger.debug("Dropping address for superseded fix %s", sample)
            return address
        self.latest_address = address
        return address
