"""Exception taxonomy for the recording pipeline."""


class RecordingError(Exception):
    """Base class for recording pipeline errors."""

    kind = "RecordingError"


class AlreadyActiveError(RecordingError):
    """A session is already in a non-terminal state."""

    kind = "AlreadyActive"

    def __init__(self) -> None:
        super().__init__("A recording session is already active")


class NotRecordingError(RecordingError):
    """stop() was called outside the recording state."""

    kind = "NotRecording"

    def __init__(self) -> None:
        super().__init__("No recording in progress")


class PermissionsNotGrantedError(RecordingError):
    """The capability gate has not reported readiness."""

    kind = "PermissionsNotGranted"

    def __init__(self) -> None:
        super().__init__("All permissions are required to record")


class StageError(RecordingError):
    """A pipeline stage failed with an underlying cause."""

    def __init__(self, cause: BaseException | str) -> None:
        self.cause = cause
        super().__init__(describe_cause(cause))


class CaptureFailedError(StageError):
    kind = "CaptureFailed"


class CompressionFailedError(StageError):
    kind = "CompressionFailed"


class PersistenceFailedError(StageError):
    kind = "PersistenceFailed"


def describe_cause(cause: BaseException | str) -> str:
    """Return a readable description for an error cause."""
    if isinstance(cause, str):
        return cause
    return str(cause) or type(cause).__name__
