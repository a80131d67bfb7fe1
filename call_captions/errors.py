"""Exceptions raised across the capture pipeline."""


class CaptionsError(Exception):
    """Base class for all pipeline errors."""


class CapturePermissionError(CaptionsError):
    """The host refused access to the target's audio."""


class DeviceUnavailableError(CaptionsError):
    """The target's audio device is missing or busy."""


class HandleRevokedError(CaptionsError):
    """A media handle was used after its capture activation ended."""

    def __init__(self, stream_id: str):
        super().__init__(f"Media handle {stream_id} has been revoked")
        self.stream_id = stream_id


class ModelLoadError(CaptionsError):
    """The ASR pipeline could not be constructed."""


class TranscriptionError(CaptionsError):
    """Inference failed for a single chunk."""


class ConsumerUnavailableError(CaptionsError):
    """No foreground consumer is attached to receive a transcript."""

    def __init__(self):
        super().__init__("No transcript consumer attached")


class InvalidTransitionError(CaptionsError):
    """A capture session was asked to make an illegal state change."""

    def __init__(self, target_id: str, current: str, requested: str):
        super().__init__(
            f"Session {target_id}: cannot go from {current} to {requested}"
        )
        self.target_id = target_id
        self.current = current
        self.requested = requested
