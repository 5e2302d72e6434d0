"""Custom exception hierarchy for the call transcription service.

All exceptions inherit from TranscriberError, enabling targeted handling
at call and session boundaries while preserving specific failure context.
"""


class TranscriberError(Exception):
    """Base exception for all call transcription errors."""

    def __init__(self, message: str, call_sid: str | None = None) -> None:
        self.call_sid = call_sid
        super().__init__(message)

    def __str__(self) -> str:
        if self.call_sid:
            return f"[call={self.call_sid}] {super().__str__()}"
        return super().__str__()


class FrameDecodeError(TranscriberError):
    """Raised when an incoming media stream envelope cannot be decoded."""

    def __init__(
        self,
        message: str,
        call_sid: str | None = None,
        event: str | None = None,
        track_id: str | None = None,
    ) -> None:
        self.event = event
        self.track_id = track_id
        super().__init__(message, call_sid)


class RecognitionError(TranscriberError):
    """Raised when the speech recognition backend fails."""

    def __init__(
        self,
        message: str,
        call_sid: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(message, call_sid)


class RegistryClosedError(TranscriberError):
    """Raised when a track is requested after the call was torn down."""

    def __init__(
        self,
        message: str,
        call_sid: str | None = None,
        track_id: str | None = None,
    ) -> None:
        self.track_id = track_id
        super().__init__(message, call_sid)


class ConfigurationError(TranscriberError):
    """Raised when an environment setting is missing or invalid."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)
