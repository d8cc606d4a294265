"""OpenStreetMap Nominatim reverse geocoding client."""

from dataclasses import dataclass

import httpx

from geocam.services.position import ReverseGeocoder

NO_ADDRESS = "No address found"


@dataclass
class NominatimGeocoder(ReverseGeocoder):
    """Reverse geocoder implemented with httpx."""

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, user_agent: str) -> "NominatimGeocoder":
        """Create a geocoder with a managed httpx session."""
        return cls(
            base_url=base_url, user_agent=user_agent, http_client=httpx.AsyncClient()
        )

    async def reverse(self, lat: float, lon: float) -> str | None:
        """Return the display name for the coordinates."""
        url = f"{self.base_url}/reverse"
        response = await self.http_client.get(
            url,
            params={
                "format": "jsonv2",
                "lat": lat,
                "lon": lon,
                "addressdetails": 1,
            },
            headers={"User-Agent": self.user_agent},
            timeout=10,
        )
        response.raise_for_status()
        payload = response.json()
        return payload.get("display_name") or NO_ADDRESS

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
