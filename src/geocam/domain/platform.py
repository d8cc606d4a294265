"""Host platform descriptors."""

from dataclasses import dataclass

ANDROID = "android"
IOS = "ios"
ANDROID_SCOPED_MEDIA_API = 33


@dataclass(frozen=True)
class PlatformContext:
    """Operating system and version the recorder runs on."""

    os: str
    version: int

    @property
    def is_android(self) -> bool:
        return self.os == ANDROID

    @property
    def uses_legacy_storage(self) -> bool:
        """Android releases before scoped media permissions."""
        return self.is_android and self.version < ANDROID_SCOPED_MEDIA_API


@dataclass(frozen=True)
class PermissionSet:
    """Aggregated grant state for the capabilities a recording needs."""

    location: bool = False
    camera: bool = False
    microphone: bool = False
    storage: bool = False

    @property
    def all_granted(self) -> bool:
        return self.location and self.camera and self.microphone and self.storage
