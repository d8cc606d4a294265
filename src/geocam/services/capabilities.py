"""Permission readiness for recording."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from geocam.domain.platform import PermissionSet, PlatformContext

_logger = logging.getLogger(__name__)

_ANDROID_LOCATION = ("android.permission.ACCESS_FINE_LOCATION",)
_ANDROID_CAMERA = ("android.permission.CAMERA",)
_ANDROID_MICROPHONE = ("android.permission.RECORD_AUDIO",)
_ANDROID_MEDIA_STORAGE = (
    "android.permission.READ_MEDIA_VIDEO",
    "android.permission.READ_MEDIA_IMAGES",
    "android.permission.READ_MEDIA_AUDIO",
)
_ANDROID_LEGACY_STORAGE = (
    "android.permission.WRITE_EXTERNAL_STORAGE",
    "android.permission.READ_EXTERNAL_STORAGE",
)
_IOS_LOCATION = ("ios.location.whenInUse",)
_IOS_CAMERA = ("ios.camera",)
_IOS_MICROPHONE = ("ios.microphone",)


def required_permissions(context: PlatformContext) -> dict[str, tuple[str, ...]]:
    """Return the platform permission names needed per capability."""
    if context.is_android:
        storage = (
            _ANDROID_LEGACY_STORAGE
            if context.uses_legacy_storage
            else _ANDROID_MEDIA_STORAGE
        )
        return {
            "location": _ANDROID_LOCATION,
            "camera": _ANDROID_CAMERA,
            "microphone": _ANDROID_MICROPHONE,
            "storage": storage,
        }
    return {
        "location": _IOS_LOCATION,
        "camera": _IOS_CAMERA,
        "microphone": _IOS_MICROPHONE,
        "storage": (),
    }


def permission_set_from_grants(
    context: PlatformContext, grants: Mapping[str, bool]
) -> PermissionSet:
    """Aggregate individual platform grants into a permission set."""
    required = required_permissions(context)
    granted = {
        capability: all(grants.get(name, False) for name in names)
        for capability, names in required.items()
    }
    return PermissionSet(**granted)


@dataclass
class PermissionGate:
    """Capability gate backed by the latest permission set."""

    permissions: PermissionSet = field(default_factory=PermissionSet)

    @property
    def ready(self) -> bool:
        return self.permissions.all_granted

    def update(self, permissions: PermissionSet) -> None:
        """Replace the current permission set."""
        self.permissions = permissions
        if not permissions.all_granted:
            _logger.info("Recording permissions incomplete: %s", permissions)
