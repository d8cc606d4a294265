"""Compression quality presets."""

from dataclasses import dataclass


@dataclass(frozen=True)
class QualityProfile:
    """Named preset controlling target resolution and bitrate."""

    label: str
    max_dimension: int
    target_bitrate_floor: int


QUALITY_PRESETS: dict[str, QualityProfile] = {
    "480p": QualityProfile(
        label="480p", max_dimension=480, target_bitrate_floor=500_000
    ),
    "720p": QualityProfile(
        label="720p", max_dimension=720, target_bitrate_floor=500_000
    ),
    "1080p": QualityProfile(
        label="1080p", max_dimension=1080, target_bitrate_floor=500_000
    ),
}


def get_quality_profile(label: str) -> QualityProfile:
    """Return the preset for a label, raising KeyError for unknown labels."""
    try:
        return QUALITY_PRESETS[label]
    except KeyError:
        raise KeyError(f"Unknown quality profile: {label}") from None
