"""Application configuration."""

import os
import shlex
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from geocam.domain.platform import PlatformContext

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    platform_os: str = "android"
    platform_version: int = 34
    default_quality: str = "720p"
    cache_dir: Path = Path.home() / ".cache" / "geocam" / "videos"
    public_video_dir: Path = Path.home() / "DCIM" / "Camera"
    gallery_dir: Path = Path.home() / "Videos" / "geocam"
    ffmpeg_binary: str = "ffmpeg"
    capture_input: str = "-f v4l2 -i /dev/video0"
    compression_fps: int = 15
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "geocam/1.0"
    display_timezone: str = "UTC"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("display_timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def platform(self) -> PlatformContext:
        """Return the platform the recorder runs on."""
        return PlatformContext(
            os=self.platform_os.lower(), version=self.platform_version
        )


def parse_capture_input(raw: str) -> list[str]:
    """Split the configured ffmpeg input arguments."""
    return shlex.split(raw.strip())
